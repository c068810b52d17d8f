"""Authentication flow for openlogin.

Lightweight imports (credentials, types) are eager. Heavyweight imports
(flow, which pulls in http.server, threading, webbrowser, httpx) are lazy so that
reading a stored key stays cheap.
"""

from .credentials import CredentialStore, resolve_api_key
from .types import AuthStatus, Credential, LoginErrorKind, LoginResult


def __getattr__(name: str):
    if name == "LoginFlow":
        from .flow import LoginFlow

        return LoginFlow
    if name == "run_login_flow":
        from .flow import run_login_flow

        return run_login_flow
    if name == "get_auth_status":
        from .flow import get_auth_status

        return get_auth_status
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "get_auth_status",
    "resolve_api_key",
    "run_login_flow",
    "AuthStatus",
    "Credential",
    "CredentialStore",
    "LoginErrorKind",
    "LoginFlow",
    "LoginResult",
]
