"""PKCE (Proof Key for Code Exchange) and state token generation.

RFC 7636: https://www.rfc-editor.org/rfc/rfc7636

The verifier stays in this process; only its S256 challenge travels through
the browser. The provider later checks SHA256(code_verifier) == code_challenge
before it hands out tokens, so an intercepted authorization code is useless
on its own.
"""

from __future__ import annotations

import base64
import hashlib
import secrets

from .types import PKCEPair

__all__ = ["compute_code_challenge", "generate_pkce", "generate_state"]


def generate_pkce() -> PKCEPair:
    """Generate a PKCE code verifier and its S256 challenge.

    The verifier is 64 random bytes, base64url-encoded (86 characters, inside
    the 43-128 range RFC 7636 allows).
    """
    code_verifier = secrets.token_urlsafe(64)
    return PKCEPair(verifier=code_verifier, challenge=compute_code_challenge(code_verifier))


def compute_code_challenge(code_verifier: str) -> str:
    """Compute BASE64URL(SHA256(code_verifier)) without padding."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def generate_state() -> str:
    """Generate a random state token (16 bytes, 32 hex characters)."""
    return secrets.token_hex(16)
