"""Custom exceptions raised by openlogin."""

from __future__ import annotations

from typing import Any, Optional

from .auth.types import LoginErrorKind


class OpenLoginError(Exception):
    """Base exception for all openlogin specific failures."""


class LoginError(OpenLoginError):
    """A login flow failure with an inspectable ``kind``."""

    kind: LoginErrorKind


class CallbackTimeout(LoginError):
    """Raised when no matching callback arrived before the deadline."""

    kind = LoginErrorKind.CALLBACK_TIMEOUT


class _ExchangeError(LoginError):
    def __init__(self, message: str, status_code: Optional[int] = None, response: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.message} ({self.status_code})"


class TokenExchangeFailed(_ExchangeError):
    """Raised when the authorization-code grant fails or returns a malformed body."""

    kind = LoginErrorKind.TOKEN_EXCHANGE_FAILED


class ApiKeyExchangeFailed(_ExchangeError):
    """Raised when the token-exchange grant fails or omits the API key."""

    kind = LoginErrorKind.API_KEY_EXCHANGE_FAILED


class ListenerBindFailed(LoginError):
    """Raised when the loopback callback port cannot be bound."""

    kind = LoginErrorKind.LISTENER_BIND_FAILED

    def __init__(self, message: str, port: int):
        super().__init__(message)
        self.port = port
