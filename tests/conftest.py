"""Test configuration for openlogin tests."""

import http.client

import pytest

from openlogin.auth.credentials import CredentialStore
from openlogin.auth.registry import PendingRequestRegistry


@pytest.fixture
def store(tmp_path):
    """File-only credential store under a temp directory."""
    return CredentialStore(tmp_path / ".openlogin" / "auth.json", use_keyring=False)


@pytest.fixture
def registry():
    """Registry with no eviction timer; tests drive expiry explicitly."""
    return PendingRequestRegistry(timeout=60, timer_factory=None)


@pytest.fixture(autouse=True)
def _no_provider_key_env(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


def _http_get(port: int, path: str) -> tuple[int, str]:
    conn = http.client.HTTPConnection("127.0.0.1", port, timeout=5)
    try:
        conn.request("GET", path)
        response = conn.getresponse()
        return response.status, response.read().decode()
    finally:
        conn.close()


@pytest.fixture
def http_get():
    """Plain GET against the loopback callback server, returning (status, body)."""
    return _http_get
