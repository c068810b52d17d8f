"""OAuth 2.0 + PKCE login flow.

browser auth -> loopback callback -> code exchange -> ID token exchange ->
API key saved to the credential store.

``LoginFlow.run`` returns a typed ``LoginResult`` and never prints directly;
the URL to open is handed to ``on_auth_url`` so callers decide how to show it.
"""

from __future__ import annotations

import logging
import os
import webbrowser
from enum import Enum
from typing import Callable
from urllib.parse import urlencode

from ..exceptions import CallbackTimeout, LoginError
from .callback_server import CallbackServer
from .constants import (
    AUTH_TIMEOUT_SECONDS,
    AUTHORIZE_FLOW_FLAGS,
    AUTHORIZE_PATH,
    CLIENT_ID,
    ERROR_AUTH_TIMEOUT,
    ISSUER,
    PROVIDER_NAME,
    SCOPE,
)
from .credentials import CredentialStore, api_key_env_var
from .pkce import generate_pkce, generate_state
from .registry import PendingRequestRegistry
from .token_client import TokenExchangeClient
from .types import AuthStatus, Credential, LoginErrorKind, LoginResult

logger = logging.getLogger(__name__)

# Extra time the flow waits past the registry deadline for the eviction timer.
_WAIT_GRACE_SECONDS = 1.0


class FlowState(str, Enum):
    IDLE = "idle"
    BROWSER_LAUNCHED = "browser_launched"
    AWAITING_CALLBACK = "awaiting_callback"
    EXCHANGING_CODE = "exchanging_code"
    EXCHANGING_IDENTITY = "exchanging_identity"
    COMPLETED = "completed"
    FAILED = "failed"


def build_auth_url(
    code_challenge: str,
    state: str,
    redirect_uri: str,
    *,
    issuer: str = ISSUER,
    client_id: str = CLIENT_ID,
    scope: str = SCOPE,
) -> str:
    """Build the provider's OAuth authorization URL."""
    params: dict[str, str] = {
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "scope": scope,
        "code_challenge": code_challenge,
        "code_challenge_method": "S256",
        **AUTHORIZE_FLOW_FLAGS,
        "state": state,
    }
    return f"{issuer}{AUTHORIZE_PATH}?{urlencode(params)}"


class LoginFlow:
    """One attempt at logging in through the browser.

    Every collaborator can be injected; anything left as None gets the
    default implementation. A flow instance runs once. Start a new one to
    retry.

    ``timeout`` only sizes the default registry. An injected ``registry``
    keeps its own timeout.
    """

    def __init__(
        self,
        *,
        provider: str = PROVIDER_NAME,
        issuer: str = ISSUER,
        client_id: str = CLIENT_ID,
        scope: str = SCOPE,
        timeout: float = AUTH_TIMEOUT_SECONDS,
        registry: PendingRequestRegistry | None = None,
        listener: CallbackServer | None = None,
        token_client: TokenExchangeClient | None = None,
        credential_store: CredentialStore | None = None,
        open_browser: Callable[[str], bool] | None = webbrowser.open,
        on_auth_url: Callable[[str], None] | None = None,
    ) -> None:
        self.provider = provider
        self.issuer = issuer
        self.client_id = client_id
        self.scope = scope
        self.registry = registry if registry is not None else PendingRequestRegistry(timeout)
        self.listener = listener if listener is not None else CallbackServer(self.registry)
        self.credential_store = credential_store or CredentialStore()
        self._token_client = token_client
        self._open_browser = open_browser
        self._on_auth_url = on_auth_url

        self.state = FlowState.IDLE
        self.failure: LoginErrorKind | None = None
        self.auth_url: str | None = None

    def run(self) -> LoginResult:
        """Run the flow to completion or failure."""
        if self.state is not FlowState.IDLE:
            raise RuntimeError("LoginFlow instances can only be run once")

        try:
            api_key = self._run()
        except LoginError as e:
            return self._fail(e)
        except BaseException:
            self.state = FlowState.FAILED
            raise

        self.state = FlowState.COMPLETED
        logger.info("Login completed; API key stored for %s", self.provider)
        return LoginResult(success=True, api_key=api_key, auth_url=self.auth_url)

    def _run(self) -> str:
        pkce = generate_pkce()
        state = generate_state()

        self.listener.start()
        try:
            redirect_uri = self.listener.redirect_uri
            self.auth_url = build_auth_url(
                pkce.challenge,
                state,
                redirect_uri,
                issuer=self.issuer,
                client_id=self.client_id,
                scope=self.scope,
            )
            # Register before the browser opens so an instant redirect is not dropped.
            waiter = self.registry.register(state)
            try:
                self._launch_browser(self.auth_url)
                self.state = FlowState.BROWSER_LAUNCHED

                self.state = FlowState.AWAITING_CALLBACK
                outcome = waiter.wait(timeout=self.registry.timeout + _WAIT_GRACE_SECONDS)
            finally:
                # No-op if the entry was already resolved or expired.
                self.registry.expire(state)
        finally:
            self.listener.stop()

        if outcome is None:
            # Either expire() above evicted it, or a callback won the race.
            outcome = waiter.wait(timeout=0)
        if outcome is None or outcome.timed_out or not outcome.code:
            raise CallbackTimeout(ERROR_AUTH_TIMEOUT)

        token_client = self._token_client or TokenExchangeClient(self.issuer, self.client_id)
        try:
            self.state = FlowState.EXCHANGING_CODE
            tokens = token_client.exchange_code(outcome.code, pkce.verifier, redirect_uri)

            self.state = FlowState.EXCHANGING_IDENTITY
            api_key = token_client.exchange_identity(tokens.id_token)
        finally:
            if self._token_client is None:
                token_client.close()

        self.credential_store.set(self.provider, Credential(key=api_key))
        return api_key

    def _launch_browser(self, url: str) -> None:
        """Open ``url`` in a browser; failure only means the user opens it by hand."""
        if self._open_browser is not None:
            try:
                if not self._open_browser(url):
                    logger.debug("Browser launcher reported that no browser was opened")
            except Exception:
                logger.warning("Failed to launch browser", exc_info=True)

        # Launchers can report success on a headless machine.
        if self._on_auth_url is not None:
            self._on_auth_url(url)
        else:
            logger.warning("If your browser did not open, visit this URL to log in:\n  %s", url)

    def _fail(self, error: LoginError) -> LoginResult:
        self.state = FlowState.FAILED
        self.failure = error.kind
        logger.warning("Login failed (%s): %s", error.kind.value, error)
        return LoginResult(success=False, error=str(error), error_kind=error.kind, auth_url=self.auth_url)


def run_login_flow(**kwargs: object) -> LoginResult:
    """Run the full OAuth 2.0 + PKCE login flow.

    Opens the browser for authentication, runs a local callback server,
    exchanges the auth code for tokens, exchanges the ID token for an API
    key, and saves it. Keyword arguments are passed to ``LoginFlow``.

    Returns a LoginResult and never prints directly.
    """
    return LoginFlow(**kwargs).run()  # type: ignore[arg-type]


def _mask_key(key: str) -> str:
    if len(key) >= 16:
        return key[:4] + "..." + key[-4:]
    if len(key) >= 8:
        return key[:4] + "..."
    return "***"


def get_auth_status(provider: str = PROVIDER_NAME, store: CredentialStore | None = None) -> AuthStatus:
    """Check current authentication status.

    Precedence matches resolve_api_key(): env var > credential store.
    Returns an AuthStatus and never prints directly.
    """
    store = store or CredentialStore()
    config_path = str(store.path)

    env_key = os.environ.get(api_key_env_var(provider))
    if env_key:
        return AuthStatus(
            authenticated=True,
            masked_key=_mask_key(env_key),
            source="env_var",
            config_path=config_path,
        )

    credential = store.get(provider)
    if credential is not None:
        return AuthStatus(
            authenticated=True,
            masked_key=_mask_key(credential.key),
            source=store.get_source(provider),
            config_path=config_path,
        )

    return AuthStatus(authenticated=False, config_path=config_path)
