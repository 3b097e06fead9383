"""
Secret providers.

A secret provider resolves secret-backed configuration keys. Two strategies
exist and are chosen by environment (see selector.py):
- Developer-local user secrets (Development environments)
- Azure Key Vault with certificate authentication (everything else,
  in backends.py)

Providers are plugged into the source chain through SecretSource, so their
keys merge with file and environment keys under the same ':' convention.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

import structlog

from configbridge.config.keys import normalize
from configbridge.config.sources import ConfigurationSource, FileSource

logger = structlog.get_logger()

USER_SECRETS_FILE = "secrets.json"


def _sanitize_path(key: str) -> str:
    """Mask a secret key for logging, keeping only its first segment."""
    if not key or len(key) <= 2:
        return "***"
    if ":" in key:
        return f"{key.split(':', 1)[0]}:***"
    return f"{key[:2]}***"


class BaseSecretProvider(ABC):
    """Base class for secret providers."""

    name: str = "secrets"

    @abstractmethod
    def get_secret(self, key: str) -> str | None:
        """Get a secret by configuration key."""
        pass

    @abstractmethod
    def load(self) -> dict[str, str]:
        """Load every secret as flattened configuration keys."""
        pass

    def list_secrets(self) -> list[str]:
        """List available secret keys."""
        return sorted(self.load())

    def has_changed(self) -> bool:
        return False

    def mark_loaded(self) -> None:
        """Called once the data returned by the last load() is live."""

    def watched_files(self) -> list[FileSource]:
        return []


class UserSecretsProvider(BaseSecretProvider):
    """Developer-local secret store.

    Secrets live outside the project tree in
    ``<root>/<secrets_id>/secrets.json`` so they never get committed. The
    file may be nested JSON or already flat (``"AppSettings:ApiKey": "..."``).
    A missing file is an empty store.
    """

    name = "user-secrets"

    def __init__(self, secrets_id: str, root: Path):
        self.secrets_id = secrets_id
        self.path = Path(root) / secrets_id / USER_SECRETS_FILE
        self._file = FileSource(self.path, optional=True, reload_on_change=True)
        self._cache: dict[str, str] | None = None

    def load(self) -> dict[str, str]:
        self._cache = self._file.load()
        return dict(self._cache)

    def get_secret(self, key: str) -> str | None:
        data = self._cache if self._cache is not None else self.load()
        wanted = normalize(key)
        for existing, value in data.items():
            if normalize(existing) == wanted:
                return value
        logger.debug("user_secret_not_found", key=_sanitize_path(key))
        return None

    def has_changed(self) -> bool:
        return self._file.has_changed()

    def mark_loaded(self) -> None:
        self._file.mark_loaded()

    def watched_files(self) -> list[FileSource]:
        return self._file.watched_files()


class SecretSource(ConfigurationSource):
    """Adapts a secret provider into the configuration source chain."""

    reload_on_change = True

    def __init__(self, provider: BaseSecretProvider):
        self.provider = provider
        self.name = provider.name

    def load(self) -> dict[str, str]:
        return self.provider.load()

    def has_changed(self) -> bool:
        return self.provider.has_changed()

    def mark_loaded(self) -> None:
        self.provider.mark_loaded()

    def watched_files(self) -> list[FileSource]:
        return self.provider.watched_files()


__all__ = [
    "BaseSecretProvider",
    "UserSecretsProvider",
    "SecretSource",
    "USER_SECRETS_FILE",
]
