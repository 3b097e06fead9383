"""Tests for config/secrets (providers and strategy selection)."""

from unittest.mock import MagicMock, patch

import pytest
from helpers import make_certificate, write_json

from configbridge.config.secrets import (
    SecretSource,
    UserSecretsProvider,
    _sanitize_path,
)
from configbridge.config.secrets.selector import VAULT_SETTING_KEYS, select_secret_provider
from configbridge.config.snapshot import ConfigurationRoot
from configbridge.config.sources import MemorySource
from configbridge.core.errors import CertificateResolutionError, ConfigurationError


def _vault_config(thumbprint: str) -> ConfigurationRoot:
    return ConfigurationRoot(
        [
            MemorySource(
                {
                    "KeyVaultName": "demo-vault",
                    "ServicePrincipalId": "sp-id",
                    "ServicePrincipalCertificateThumbprint": thumbprint,
                    "TenantId": "tenant-id",
                }
            )
        ]
    )


class TestSanitizePath:
    """Tests for _sanitize_path."""

    def test_short_keys_fully_masked(self):
        assert _sanitize_path("") == "***"
        assert _sanitize_path("ab") == "***"

    def test_hierarchical_key_keeps_first_segment(self):
        assert _sanitize_path("ConnectionStrings:Db") == "ConnectionStrings:***"

    def test_flat_key(self):
        assert _sanitize_path("ApiKey") == "Ap***"


class TestUserSecretsProvider:
    """Tests for UserSecretsProvider."""

    def test_loads_flat_and_nested_secrets(self, tmp_path):
        write_json(
            tmp_path / "demo-web-app" / "secrets.json",
            {"AppSettings:ApiKey": "flat", "ConnectionStrings": {"Db": "Server=db"}},
        )
        provider = UserSecretsProvider("demo-web-app", tmp_path)

        assert provider.load() == {
            "AppSettings:ApiKey": "flat",
            "ConnectionStrings:Db": "Server=db",
        }

    def test_missing_file_is_empty_store(self, tmp_path):
        provider = UserSecretsProvider("demo-web-app", tmp_path)

        assert provider.load() == {}
        assert provider.list_secrets() == []
        assert provider.get_secret("AppSettings:ApiKey") is None

    def test_get_secret_is_case_insensitive(self, tmp_path):
        write_json(tmp_path / "app" / "secrets.json", {"AppSettings:ApiKey": "secret"})
        provider = UserSecretsProvider("app", tmp_path)

        assert provider.get_secret("appsettings:APIKEY") == "secret"

    def test_list_secrets_sorted(self, tmp_path):
        write_json(tmp_path / "app" / "secrets.json", {"B": "2", "A": "1"})

        assert UserSecretsProvider("app", tmp_path).list_secrets() == ["A", "B"]

    def test_secrets_file_is_watched(self, tmp_path):
        path = write_json(tmp_path / "app" / "secrets.json", {"A": "1"})
        provider = UserSecretsProvider("app", tmp_path)
        provider.load()
        provider.mark_loaded()

        [watched] = provider.watched_files()
        assert watched.path == path.absolute()
        assert provider.has_changed() is False

        watched.notify_changed()
        assert provider.has_changed() is True

        provider.load()
        provider.mark_loaded()
        assert provider.has_changed() is False


class TestSecretSource:
    """Tests for SecretSource."""

    def test_delegates_to_provider(self):
        provider = MagicMock()
        provider.name = "fake"
        provider.load.return_value = {"A": "1"}
        provider.has_changed.return_value = True
        source = SecretSource(provider)

        assert source.name == "fake"
        assert source.load() == {"A": "1"}
        assert source.has_changed() is True
        assert source.reload_on_change is True

        source.mark_loaded()
        provider.mark_loaded.assert_called_once()
        assert source.watched_files() is provider.watched_files.return_value


class TestSelectSecretProvider:
    """Tests for select_secret_provider."""

    @pytest.mark.parametrize("environment", ["Development", "development", "DevelopmentLocal"])
    def test_development_uses_user_secrets(self, environment, settings):
        provider = select_secret_provider(environment, ConfigurationRoot(), settings)

        assert isinstance(provider, UserSecretsProvider)
        assert provider.path == settings.user_secrets_dir / settings.user_secrets_id / "secrets.json"

    def test_development_ignores_vault_settings(self, settings):
        with patch("configbridge.config.secrets.selector.CertificateStore") as store:
            select_secret_provider("Development", _vault_config("AB" * 20), settings)

        store.assert_not_called()

    def test_missing_vault_settings(self, settings):
        partial = ConfigurationRoot([MemorySource({"KeyVaultName": "demo-vault"})])

        with pytest.raises(ConfigurationError) as exc:
            select_secret_provider("Production", partial, settings)

        assert exc.value.details["missing"] == list(VAULT_SETTING_KEYS[1:])

    def test_no_matching_certificate(self, settings):
        with pytest.raises(CertificateResolutionError) as exc:
            select_secret_provider("Production", _vault_config("AB" * 20), settings)

        assert exc.value.matches == 0

    def test_ambiguous_certificate(self, tmp_path, settings):
        thumbprint, pem = make_certificate()
        (tmp_path / "certs").mkdir()
        (tmp_path / "certs" / "one.pem").write_bytes(pem)
        (tmp_path / "certs" / "two.pem").write_bytes(pem)

        with pytest.raises(CertificateResolutionError) as exc:
            select_secret_provider("Staging", _vault_config(thumbprint), settings)

        assert exc.value.matches == 2

    def test_production_builds_key_vault_provider(self, tmp_path, settings):
        thumbprint, pem = make_certificate()
        (tmp_path / "certs").mkdir()
        (tmp_path / "certs" / "sp.pem").write_bytes(pem)
        settings.vault_refresh_interval = 300.0

        with patch(
            "configbridge.config.secrets.backends.create_secret_client"
        ) as create_client:
            provider = select_secret_provider("Production", _vault_config(thumbprint), settings)

        kwargs = create_client.call_args.kwargs
        assert kwargs["vault_name"] == "demo-vault"
        assert kwargs["tenant_id"] == "tenant-id"
        assert kwargs["client_id"] == "sp-id"
        assert kwargs["certificate"].thumbprint == thumbprint
        assert provider.client is create_client.return_value
        assert provider.refresh_interval == 300.0
