"""Selection of the secret strategy for an environment."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from configbridge.config.environment import is_development
from configbridge.config.secrets import BaseSecretProvider, UserSecretsProvider
from configbridge.config.secrets.certificates import CertificateStore
from configbridge.core.errors import ConfigurationError

if TYPE_CHECKING:
    from configbridge.config.settings import BridgeSettings
    from configbridge.config.snapshot import ConfigurationRoot

logger = structlog.get_logger()

# Read from the configuration built so far (files + environment variables),
# e.g. DEMO_ServicePrincipalId once the certificate is installed.
VAULT_SETTING_KEYS = (
    "KeyVaultName",
    "ServicePrincipalId",
    "ServicePrincipalCertificateThumbprint",
    "TenantId",
)


def select_secret_provider(
    environment: str,
    partial_config: "ConfigurationRoot",
    settings: "BridgeSettings",
) -> BaseSecretProvider:
    """Pick the secret provider for the environment.

    Development environments use the developer's local user secrets. Any
    other environment authenticates to Key Vault with the service principal
    certificate named by thumbprint in the partial configuration.

    Raises:
        ConfigurationError: vault settings are missing
        CertificateResolutionError: thumbprint matches zero or several certificates
        SecretProviderError: the vault cannot be reached
    """
    if is_development(environment):
        logger.info(
            "secret_strategy_selected", strategy="user-secrets", secrets_id=settings.user_secrets_id
        )
        return UserSecretsProvider(settings.user_secrets_id, settings.user_secrets_dir)

    from configbridge.config.secrets.backends import KeyVaultSecretProvider, create_secret_client

    values = {key: partial_config.get(key) for key in VAULT_SETTING_KEYS}
    missing = [key for key, value in values.items() if not value]
    if missing:
        raise ConfigurationError(
            "Key Vault settings missing", {"environment": environment, "missing": missing}
        )

    with CertificateStore(settings.certificate_store_path) as store:
        certificate = store.find_single(values["ServicePrincipalCertificateThumbprint"])

    client = create_secret_client(
        vault_name=values["KeyVaultName"],
        tenant_id=values["TenantId"],
        client_id=values["ServicePrincipalId"],
        certificate=certificate,
        url_template=settings.vault_url_template,
    )
    logger.info("secret_strategy_selected", strategy="key-vault", vault=values["KeyVaultName"])
    return KeyVaultSecretProvider(client, refresh_interval=settings.vault_refresh_interval)
