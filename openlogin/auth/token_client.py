"""Client for the provider's OAuth token endpoint."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from typing import Any

import httpx

from .._http import FORM_HEADERS, parse_json_object, pick_string, response_excerpt
from ..config import DEFAULT_TIMEOUT_SECONDS
from ..exceptions import ApiKeyExchangeFailed, TokenExchangeFailed
from .constants import (
    CLIENT_ID,
    ERROR_API_KEY_EXCHANGE,
    ERROR_API_KEY_MISSING,
    ERROR_ID_TOKEN_MISSING,
    ERROR_TOKEN_EXCHANGE,
    GRANT_TYPE_AUTHORIZATION_CODE,
    GRANT_TYPE_TOKEN_EXCHANGE,
    ISSUER,
    KEY_NAME_PREFIX,
    REQUESTED_TOKEN_TYPE,
    SUBJECT_TOKEN_TYPE_ID_TOKEN,
    build_token_url,
)
from .types import OAuthTokens

logger = logging.getLogger(__name__)


def build_key_name(prefix: str = KEY_NAME_PREFIX) -> str:
    """Build a label for the issued key, e.g. ``"... (2024-05-01) [1a2b3c4d]"``.

    The random suffix tells apart keys issued on the same day in the
    provider's key management UI.
    """
    date = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    return f"{prefix} ({date}) [{secrets.token_hex(4)}]"


class TokenExchangeClient:
    """Performs the two token grants of the login flow.

    Neither call is retried; a failure is raised as ``TokenExchangeFailed``
    or ``ApiKeyExchangeFailed`` and ends the flow.

    Example:
        >>> with TokenExchangeClient() as client:
        ...     tokens = client.exchange_code(code, verifier, redirect_uri)
        ...     api_key = client.exchange_identity(tokens.id_token)
    """

    def __init__(
        self,
        issuer: str = ISSUER,
        client_id: str = CLIENT_ID,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        requested_token: str = REQUESTED_TOKEN_TYPE,
        key_name_prefix: str = KEY_NAME_PREFIX,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            issuer: Identity provider base URL.
            client_id: OAuth client ID registered with the provider.
            timeout: Request timeout in seconds (ignored if ``http_client`` is given).
            requested_token: Token type asked for in the token-exchange grant.
            key_name_prefix: Prefix of the label attached to issued keys.
            http_client: Preconfigured httpx client; the caller keeps ownership.
        """
        self.token_url = build_token_url(issuer)
        self.client_id = client_id
        self.requested_token = requested_token
        self.key_name_prefix = key_name_prefix
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(timeout=timeout)

    def exchange_code(self, code: str, code_verifier: str, redirect_uri: str) -> OAuthTokens:
        """Exchange an authorization code (plus PKCE verifier) for tokens.

        Raises:
            TokenExchangeFailed: On transport errors, non-2xx responses, or a
                body without an ``id_token``.
        """
        form = {
            "grant_type": GRANT_TYPE_AUTHORIZATION_CODE,
            "code": code,
            "redirect_uri": redirect_uri,
            "client_id": self.client_id,
            "code_verifier": code_verifier,
        }
        response = self._post(form, TokenExchangeFailed, ERROR_TOKEN_EXCHANGE)
        data = parse_json_object(response)
        id_token = pick_string(data, "id_token") if data is not None else None
        if id_token is None:
            raise TokenExchangeFailed(ERROR_ID_TOKEN_MISSING, status_code=response.status_code, response=response)

        return OAuthTokens(
            id_token=id_token,
            access_token=pick_string(data, "access_token"),
            refresh_token=pick_string(data, "refresh_token"),
        )

    def exchange_identity(self, id_token: str) -> str:
        """Exchange an ID token for an API key.

        Raises:
            ApiKeyExchangeFailed: On transport errors, non-2xx responses, or a
                body without an ``access_token``.
        """
        form = {
            "grant_type": GRANT_TYPE_TOKEN_EXCHANGE,
            "client_id": self.client_id,
            "requested_token": self.requested_token,
            "subject_token": id_token,
            "subject_token_type": SUBJECT_TOKEN_TYPE_ID_TOKEN,
            "name": build_key_name(self.key_name_prefix),
        }
        response = self._post(form, ApiKeyExchangeFailed, ERROR_API_KEY_EXCHANGE)
        data = parse_json_object(response)
        api_key = pick_string(data, "access_token") if data is not None else None
        if api_key is None:
            raise ApiKeyExchangeFailed(ERROR_API_KEY_MISSING, status_code=response.status_code, response=response)
        return api_key

    def _post(self, form: dict[str, str], error_cls: Any, message: str) -> httpx.Response:
        grant = form["grant_type"]
        try:
            response = self._client.post(self.token_url, data=form, headers=FORM_HEADERS)
        except httpx.HTTPError as e:
            raise error_cls(f"{message}: {e}") from e

        if not response.is_success:
            logger.warning(
                "Token endpoint rejected %s grant (%d): %s",
                grant,
                response.status_code,
                response_excerpt(response),
            )
            raise error_cls(message, status_code=response.status_code, response=response)
        logger.debug("Token endpoint accepted %s grant", grant)
        return response

    def close(self) -> None:
        """Release the underlying HTTP client resources."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> TokenExchangeClient:
        return self

    def __exit__(self, exc_type: type | None, exc: BaseException | None, traceback: Any) -> None:
        self.close()
