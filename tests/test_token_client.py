"""Tests for the token endpoint client."""

from __future__ import annotations

import re
from urllib.parse import parse_qs

import httpx
import pytest

from openlogin.auth.token_client import TokenExchangeClient, build_key_name
from openlogin.exceptions import ApiKeyExchangeFailed, TokenExchangeFailed


def make_client(handler) -> TokenExchangeClient:
    http_client = httpx.Client(transport=httpx.MockTransport(handler))
    return TokenExchangeClient("https://auth.example.com", "client-1", http_client=http_client)


def form_of(request: httpx.Request) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


class TestExchangeCode:
    def test_success(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"id_token": "eyJ.id", "access_token": "at", "refresh_token": "rt"})

        tokens = make_client(handler).exchange_code("abc123", "verifier", "http://localhost:1455/auth/callback")

        assert tokens.id_token == "eyJ.id"
        assert tokens.access_token == "at"
        assert tokens.refresh_token == "rt"

        (request,) = seen
        assert request.method == "POST"
        assert str(request.url) == "https://auth.example.com/oauth/token"
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert form_of(request) == {
            "grant_type": "authorization_code",
            "code": "abc123",
            "redirect_uri": "http://localhost:1455/auth/callback",
            "client_id": "client-1",
            "code_verifier": "verifier",
        }

    def test_optional_tokens_may_be_absent(self):
        tokens = make_client(lambda r: httpx.Response(200, json={"id_token": "eyJ"})).exchange_code("c", "v", "r")
        assert tokens.access_token is None
        assert tokens.refresh_token is None

    def test_non_success_raises(self):
        client = make_client(lambda r: httpx.Response(401, json={"error": "invalid_grant"}))
        with pytest.raises(TokenExchangeFailed) as exc_info:
            client.exchange_code("bad", "v", "r")
        assert exc_info.value.status_code == 401
        assert "401" in str(exc_info.value)

    def test_missing_id_token_raises(self):
        client = make_client(lambda r: httpx.Response(200, json={"access_token": "at"}))
        with pytest.raises(TokenExchangeFailed, match="id_token"):
            client.exchange_code("c", "v", "r")

    def test_non_json_body_raises(self):
        client = make_client(lambda r: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(TokenExchangeFailed):
            client.exchange_code("c", "v", "r")

    def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TokenExchangeFailed) as exc_info:
            make_client(handler).exchange_code("c", "v", "r")
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        with pytest.raises(TokenExchangeFailed):
            make_client(handler).exchange_code("c", "v", "r")
        assert len(calls) == 1


class TestExchangeIdentity:
    def test_success(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"access_token": "sk-live-123"})

        assert make_client(handler).exchange_identity("eyJ.id") == "sk-live-123"

        form = form_of(seen[0])
        assert form["grant_type"] == "urn:ietf:params:oauth:grant-type:token-exchange"
        assert form["client_id"] == "client-1"
        assert form["requested_token"] == "openai-api-key"
        assert form["subject_token"] == "eyJ.id"
        assert form["subject_token_type"] == "urn:ietf:params:oauth:token-type:id_token"
        assert form["name"].startswith("openlogin CLI [auto-generated] (")

    def test_non_success_raises(self):
        client = make_client(lambda r: httpx.Response(403, text="forbidden"))
        with pytest.raises(ApiKeyExchangeFailed) as exc_info:
            client.exchange_identity("eyJ")
        assert exc_info.value.status_code == 403

    def test_missing_key_raises(self):
        client = make_client(lambda r: httpx.Response(200, json={"token_type": "bearer"}))
        with pytest.raises(ApiKeyExchangeFailed, match="not returned"):
            client.exchange_identity("eyJ")

    def test_empty_key_raises(self):
        client = make_client(lambda r: httpx.Response(200, json={"access_token": ""}))
        with pytest.raises(ApiKeyExchangeFailed):
            client.exchange_identity("eyJ")


class TestKeyName:
    def test_format(self):
        name = build_key_name("prefix")
        assert re.fullmatch(r"prefix \(\d{4}-\d{2}-\d{2}\) \[[0-9a-f]{8}\]", name)

    def test_random_suffix(self):
        assert build_key_name() != build_key_name()


class TestLifecycle:
    def test_borrowed_http_client_not_closed(self):
        http_client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        with TokenExchangeClient(http_client=http_client):
            pass
        assert not http_client.is_closed
        http_client.close()

    def test_owned_http_client_closed(self):
        client = TokenExchangeClient()
        client.close()
        assert client._client.is_closed
