"""Credential storage for openlogin.

Keys go to the system keyring when one is available. Otherwise they are
stored in ~/.openlogin/auth.json with restrictive permissions, keyed by
provider name. This matches the pattern used by ~/.aws/credentials,
~/.npmrc, etc.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from .constants import CONFIG_DIR, CREDENTIALS_FILE, KEYRING_SERVICE_NAME
from .types import Credential

logger = logging.getLogger(__name__)


def get_credentials_path() -> Path:
    return Path.home() / CONFIG_DIR / CREDENTIALS_FILE


def _try_keyring_get(provider: str) -> str | None:
    try:
        import keyring

        return keyring.get_password(KEYRING_SERVICE_NAME, provider)
    except Exception:
        return None


def _try_keyring_set(provider: str, key: str) -> bool:
    try:
        import keyring

        keyring.set_password(KEYRING_SERVICE_NAME, provider, key)
        return True
    except Exception:
        logger.debug("Keyring unavailable, falling back to file storage", exc_info=True)
        return False


def _try_keyring_delete(provider: str) -> bool:
    try:
        import keyring

        keyring.delete_password(KEYRING_SERVICE_NAME, provider)
        return True
    except Exception:
        return False


class CredentialStore:
    """Stores one API credential per provider.

    Args:
        path: Credentials file (default ~/.openlogin/auth.json).
        use_keyring: Try the system keyring before the file.
    """

    def __init__(self, path: Path | None = None, *, use_keyring: bool = True) -> None:
        self._path = path
        self.use_keyring = use_keyring

    @property
    def path(self) -> Path:
        return self._path or get_credentials_path()

    def load(self) -> dict[str, Any] | None:
        """Load the credentials file.

        Returns None if the file doesn't exist, is corrupt, or is not a dict.
        """
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text())
            if not isinstance(data, dict):
                return None
            return data
        except (json.JSONDecodeError, OSError):
            return None

    def get(self, provider: str) -> Credential | None:
        if self.use_keyring:
            key = _try_keyring_get(provider)
            if key:
                return Credential(key=key)

        entry = (self.load() or {}).get(provider)
        if isinstance(entry, dict) and isinstance(entry.get("key"), str) and entry["key"]:
            return Credential(key=entry["key"], type=entry.get("type", "api"))
        return None

    def get_source(self, provider: str) -> str | None:
        """Where ``get`` would find the credential: "keyring", "config_file", or None."""
        if self.use_keyring and _try_keyring_get(provider):
            return "keyring"
        entry = (self.load() or {}).get(provider)
        if isinstance(entry, dict) and isinstance(entry.get("key"), str) and entry["key"]:
            return "config_file"
        return None

    def set(self, provider: str, credential: Credential) -> None:
        """Store ``credential`` for ``provider``, replacing any previous one."""
        data = self.load() or {}
        if self.use_keyring and _try_keyring_set(provider, credential.key):
            # Don't leave a stale key on disk next to the keyring copy.
            if data.pop(provider, None) is not None:
                self._write(data)
            return

        data[provider] = credential.to_dict()
        self._write(data)

    def remove(self, provider: str) -> bool:
        """Remove the credential for ``provider``. Returns True if anything was removed."""
        removed = self.use_keyring and _try_keyring_delete(provider)

        data = self.load()
        if data and provider in data:
            del data[provider]
            self._write(data)
            removed = True
        return removed

    def _write(self, data: dict[str, Any]) -> None:
        """Write the credentials file atomically.

        - Directory: 0700 (owner read/write/execute only)
        - File: 0600 (owner read/write only)
        - Atomic: writes to temp file in same dir, then os.replace()
        """
        config_path = self.path
        config_dir = config_path.parent
        config_dir.mkdir(parents=True, exist_ok=True)
        os.chmod(config_dir, 0o700)

        content = json.dumps(data, indent=2)

        fd, tmp_path = tempfile.mkstemp(dir=config_dir, prefix=".auth_", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(content)
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, config_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


_PLACEHOLDER_KEYS = frozenset({"YOUR_API_KEY"})


def _is_real_key(key: str | None) -> bool:
    return bool(key and key.strip() and key.strip() not in _PLACEHOLDER_KEYS)


def api_key_env_var(provider: str) -> str:
    return f"{provider.upper()}_API_KEY"


def resolve_api_key(provider: str, api_key: str | None = None, store: CredentialStore | None = None) -> str | None:
    """Resolve an API key using the standard precedence chain.

    Order: explicit parameter > <PROVIDER>_API_KEY env var > credential store.
    Placeholder values like ``"YOUR_API_KEY"`` are treated as missing.
    Returns None if no key is found (caller decides error behavior).
    """
    if _is_real_key(api_key):
        return api_key

    env_key = os.environ.get(api_key_env_var(provider))
    if _is_real_key(env_key):
        return env_key

    credential = (store or CredentialStore()).get(provider)
    if credential is not None and _is_real_key(credential.key):
        return credential.key

    return None
