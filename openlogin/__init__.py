"""openlogin - browser-based OAuth login that issues an API key for a CLI."""

from importlib.metadata import PackageNotFoundError, version

from .exceptions import (
    ApiKeyExchangeFailed,
    CallbackTimeout,
    ListenerBindFailed,
    LoginError,
    OpenLoginError,
    TokenExchangeFailed,
)

__all__ = [
    "OpenLoginError",
    "LoginError",
    "CallbackTimeout",
    "TokenExchangeFailed",
    "ApiKeyExchangeFailed",
    "ListenerBindFailed",
]

try:
    __version__ = version("openlogin")
except PackageNotFoundError:
    __version__ = "0.1.0"
