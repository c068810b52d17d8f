"""Configuration helpers for openlogin."""

from __future__ import annotations

DEFAULT_ISSUER = "https://auth.openai.com"
DEFAULT_TIMEOUT_SECONDS = 30.0


def sanitize_base_url(url: str) -> str:
    """Ensure the base URL never ends with a trailing slash."""

    return url.rstrip("/")
