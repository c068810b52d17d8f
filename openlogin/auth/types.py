"""Typed values passed between the pieces of the login flow."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class LoginErrorKind(str, Enum):
    """Why a login flow ended in failure."""

    CALLBACK_TIMEOUT = "callback_timeout"
    TOKEN_EXCHANGE_FAILED = "token_exchange_failed"
    API_KEY_EXCHANGE_FAILED = "api_key_exchange_failed"
    LISTENER_BIND_FAILED = "listener_bind_failed"


@dataclass(frozen=True)
class PKCEPair:
    """PKCE code verifier and its S256 challenge."""

    verifier: str
    challenge: str


@dataclass(frozen=True)
class CallbackOutcome:
    """What a pending request was completed with: a code, or a timeout."""

    code: str | None = None
    timed_out: bool = False


@dataclass
class OAuthTokens:
    """Tokens returned by the authorization-code grant."""

    id_token: str
    access_token: str | None = None
    refresh_token: str | None = None


@dataclass(frozen=True)
class Credential:
    """API credential handed to the credential store."""

    key: str
    type: str = "api"

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type, "key": self.key}


@dataclass
class LoginResult:
    """Result of a login attempt."""

    success: bool
    api_key: str | None = None
    error: str | None = None
    error_kind: LoginErrorKind | None = None
    auth_url: str | None = None


@dataclass
class AuthStatus:
    """Current authentication status."""

    authenticated: bool
    masked_key: str | None = None
    source: str | None = None  # "keyring", "config_file", "env_var", or None
    config_path: str | None = None
