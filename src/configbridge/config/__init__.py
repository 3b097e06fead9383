"""
configbridge configuration system.

Provides layered configuration resolution with:
- JSON/YAML settings files with an environment-named overlay
- Prefix-filtered environment variables
- Environment-dependent secrets (user secrets or Azure Key Vault)
- A lazily built, process-wide merged snapshot with live reload
"""

from configbridge.config.environment import (
    DEFAULT_ENVIRONMENT,
    is_development,
    resolve_environment,
)
from configbridge.config.reload import ChangeToken, ReloadWatcher
from configbridge.config.settings import BridgeSettings, get_settings
from configbridge.config.snapshot import (
    ConfigSection,
    ConfigurationRoot,
    Lazy,
    build_configuration,
    get_configuration,
    reset_configuration,
)
from configbridge.config.sources import (
    ConfigurationSource,
    EnvironmentVariablesSource,
    FileSource,
    MemorySource,
)

__all__ = [
    # Settings
    "BridgeSettings",
    "get_settings",
    # Environment
    "DEFAULT_ENVIRONMENT",
    "resolve_environment",
    "is_development",
    # Sources
    "ConfigurationSource",
    "FileSource",
    "EnvironmentVariablesSource",
    "MemorySource",
    # Snapshot
    "ConfigurationRoot",
    "ConfigSection",
    "Lazy",
    "build_configuration",
    "get_configuration",
    "reset_configuration",
    # Reload
    "ChangeToken",
    "ReloadWatcher",
]
