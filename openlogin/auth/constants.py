"""Constants for openlogin authentication and configuration."""

from __future__ import annotations

import os

from ..config import DEFAULT_ISSUER, sanitize_base_url

PROVIDER_NAME = "openai"

# OAuth client registered with the identity provider
ISSUER = sanitize_base_url(os.environ.get("OPENLOGIN_ISSUER", DEFAULT_ISSUER))
CLIENT_ID = os.environ.get("OPENLOGIN_CLIENT_ID", "app_EMoamEEZ73f0CkXaXp7hrann")
SCOPE = "openid profile email offline_access"

# Extra authorize parameters required by the provider's CLI-friendly flow
AUTHORIZE_FLOW_FLAGS = {
    "id_token_add_organizations": "true",
    "codex_cli_simplified_flow": "true",
}

# Callback server: bind to 127.0.0.1 (avoids IPv4/IPv6 mismatch),
# but use localhost in redirect URI (must match the registered URL).
CALLBACK_HOST = "127.0.0.1"
REDIRECT_HOST = "localhost"
REDIRECT_PORT = 1455
CALLBACK_PATH = "/auth/callback"
REDIRECT_URI = f"http://{REDIRECT_HOST}:{REDIRECT_PORT}{CALLBACK_PATH}"
AUTH_TIMEOUT_SECONDS = 300
CALLBACK_REQUEST_TIMEOUT_SECONDS = 10

# Token endpoint grants
TOKEN_PATH = "/oauth/token"
AUTHORIZE_PATH = "/oauth/authorize"
GRANT_TYPE_AUTHORIZATION_CODE = "authorization_code"
GRANT_TYPE_TOKEN_EXCHANGE = "urn:ietf:params:oauth:grant-type:token-exchange"
REQUESTED_TOKEN_TYPE = "openai-api-key"
SUBJECT_TOKEN_TYPE_ID_TOKEN = "urn:ietf:params:oauth:token-type:id_token"
KEY_NAME_PREFIX = "openlogin CLI [auto-generated]"

# Credential storage
CONFIG_DIR = ".openlogin"
CREDENTIALS_FILE = "auth.json"
KEYRING_SERVICE_NAME = "openlogin"

# Error messages
ERROR_AUTH_TIMEOUT = "Login timed out. Please try again."
ERROR_TOKEN_EXCHANGE = "Token exchange failed"
ERROR_API_KEY_EXCHANGE = "API key exchange failed"
ERROR_API_KEY_MISSING = "API key not returned"
ERROR_ID_TOKEN_MISSING = "id_token not returned"


def build_token_url(issuer: str = ISSUER) -> str:
    """Build the provider's token endpoint URL."""
    return f"{sanitize_base_url(issuer)}{TOKEN_PATH}"
