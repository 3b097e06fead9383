"""
Azure Key Vault secret provider.

Key Vault secret names cannot contain ':', so hierarchy is written with a
double hyphen: ``ConnectionStrings--Default`` maps to
``ConnectionStrings:Default``. Every enabled secret in the vault is loaded
into the source chain.

Requires azure-identity and azure-keyvault-secrets.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import structlog
from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.identity import CertificateCredential
from azure.keyvault.secrets import SecretClient

from configbridge.config.keys import KEY_DELIMITER
from configbridge.config.secrets import BaseSecretProvider, _sanitize_path
from configbridge.core.errors import SecretProviderError

if TYPE_CHECKING:
    from configbridge.config.secrets.certificates import StoredCertificate

logger = structlog.get_logger()

SECRET_NAME_DELIMITER = "--"


def _sanitize_error(exc: Exception) -> str:
    """Sanitize error message to avoid leaking sensitive details."""
    return type(exc).__name__


def secret_name_to_key(name: str) -> str:
    return name.replace(SECRET_NAME_DELIMITER, KEY_DELIMITER)


def key_to_secret_name(key: str) -> str:
    return key.replace(KEY_DELIMITER, SECRET_NAME_DELIMITER)


def create_secret_client(
    vault_name: str,
    tenant_id: str,
    client_id: str,
    certificate: "StoredCertificate",
    url_template: str = "https://{vault_name}.vault.azure.net/",
) -> SecretClient:
    """Build a Key Vault client authenticated as a service principal."""
    credential = CertificateCredential(
        tenant_id=tenant_id,
        client_id=client_id,
        certificate_data=certificate.data,
    )
    vault_url = url_template.format(vault_name=vault_name)
    logger.info("key_vault_client_created", vault_url=vault_url, thumbprint=certificate.thumbprint)
    return SecretClient(vault_url=vault_url, credential=credential)


class KeyVaultSecretProvider(BaseSecretProvider):
    """Azure Key Vault backend."""

    name = "key-vault"

    def __init__(self, client: SecretClient, refresh_interval: float | None = None):
        self.client = client
        self.refresh_interval = refresh_interval
        self._read_at: float | None = None
        self._loaded_at: float | None = None

    def load(self) -> dict[str, str]:
        self._read_at = time.monotonic()
        result: dict[str, str] = {}
        try:
            for props in self.client.list_properties_of_secrets():
                if props.enabled is False:
                    continue
                secret = self.client.get_secret(props.name)
                if secret.value is None:
                    continue
                result[secret_name_to_key(props.name)] = secret.value
        except AzureError as e:
            raise SecretProviderError(
                "Failed to load secrets from Key Vault",
                {"vault_url": self.client.vault_url, "error": _sanitize_error(e)},
            ) from e

        logger.info("key_vault_loaded", vault_url=self.client.vault_url, secrets=len(result))
        return result

    def get_secret(self, key: str) -> str | None:
        try:
            return self.client.get_secret(key_to_secret_name(key)).value
        except ResourceNotFoundError:
            logger.debug("key_vault_secret_not_found", key=_sanitize_path(key))
            return None
        except AzureError as e:
            raise SecretProviderError(
                "Failed to read secret from Key Vault",
                {"key": _sanitize_path(key), "error": _sanitize_error(e)},
            ) from e

    def list_secrets(self) -> list[str]:
        try:
            return sorted(
                secret_name_to_key(props.name)
                for props in self.client.list_properties_of_secrets()
                if props.enabled is not False
            )
        except AzureError as e:
            raise SecretProviderError(
                "Failed to list Key Vault secrets", {"error": _sanitize_error(e)}
            ) from e

    def mark_loaded(self) -> None:
        self._loaded_at = self._read_at

    def has_changed(self) -> bool:
        """Vault has no change feed; report a change once the refresh interval elapses."""
        if self.refresh_interval is None or self._loaded_at is None:
            return False
        return time.monotonic() - self._loaded_at >= self.refresh_interval


__all__ = [
    "KeyVaultSecretProvider",
    "create_secret_client",
    "secret_name_to_key",
    "key_to_secret_name",
]
