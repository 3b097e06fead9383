"""In-process model of the legacy section-based configuration host."""

from configbridge.legacy.host import (
    ConfigurationManager,
    LegacyConfigurationBuilder,
    configuration_manager,
)
from configbridge.legacy.sections import (
    AppSettingsSection,
    ConfigurationSection,
    ConnectionStringSettings,
    ConnectionStringsSection,
    KeyValueElement,
)
from configbridge.legacy.store import LiveSettingsStore

__all__ = [
    "ConfigurationManager",
    "LegacyConfigurationBuilder",
    "configuration_manager",
    "ConfigurationSection",
    "AppSettingsSection",
    "ConnectionStringsSection",
    "ConnectionStringSettings",
    "KeyValueElement",
    "LiveSettingsStore",
]
