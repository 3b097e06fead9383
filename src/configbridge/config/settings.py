"""
Bootstrap settings for the configuration bridge.

These control where sources are read from, not application configuration
itself. Loaded from CONFIGBRIDGE_* environment variables or a .env file.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BridgeSettings(BaseSettings):
    """Bootstrap settings."""

    # Files
    base_path: Path = Field(default_factory=Path.cwd)
    base_file: str = "appsettings.json"

    # Environment variables
    variable_prefix: str = "DEMO_"
    environment_variables: list[str] = [
        "DEMO_ENVIRONMENT",
        "ASPNETCORE_ENVIRONMENT",
        "ASPNET_ENVIRONMENT",
    ]

    # Developer secrets (Development environments only)
    user_secrets_id: str = "demo-web-app"
    user_secrets_dir: Path = Field(
        default_factory=lambda: Path.home() / ".configbridge" / "usersecrets"
    )

    # Key Vault (all other environments)
    certificate_store_path: Path = Field(
        default_factory=lambda: Path.home() / ".configbridge" / "certs"
    )
    vault_url_template: str = "https://{vault_name}.vault.azure.net/"
    vault_refresh_interval: float | None = None

    # Reload
    reload_on_change: bool = True
    reload_poll_interval: float = 1.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CONFIGBRIDGE_",
    )

    @property
    def base_file_path(self) -> Path:
        return self.base_path / self.base_file

    def environment_file_path(self, environment: str) -> Path:
        """appsettings.json -> appsettings.<environment>.json"""
        base = Path(self.base_file)
        return self.base_path / f"{base.stem}.{environment}{base.suffix}"


@lru_cache
def get_settings() -> BridgeSettings:
    """Get cached settings instance."""
    return BridgeSettings()
