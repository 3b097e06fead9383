"""
Legacy configuration host.

ConfigurationManager materializes named sections on first access and passes
each one through the registered builders, in order. The processed
appSettings section also seeds the live ``app_settings`` table that the rest
of the application reads.
"""

from __future__ import annotations

import threading
from typing import Callable, Mapping

import structlog

from configbridge.legacy.sections import (
    AppSettingsSection,
    ConfigurationSection,
    ConnectionStringsSection,
)
from configbridge.legacy.store import LiveSettingsStore

logger = structlog.get_logger()


class LegacyConfigurationBuilder:
    """Hook invoked by the host for every section it loads."""

    def process_configuration_section(
        self, section: ConfigurationSection
    ) -> ConfigurationSection:
        return section


class ConfigurationManager:
    """Section host with declared (static) defaults."""

    def __init__(
        self,
        app_settings: Mapping[str, str] | None = None,
        connection_strings: Mapping[str, str | tuple[str, str | None]] | None = None,
        builders: list[LegacyConfigurationBuilder] | None = None,
    ):
        self.builders: list[LegacyConfigurationBuilder] = list(builders or [])
        self.app_settings = LiveSettingsStore()
        self._factories: dict[str, Callable[[], ConfigurationSection]] = {
            AppSettingsSection.section_name: lambda: AppSettingsSection(app_settings),
            ConnectionStringsSection.section_name: lambda: ConnectionStringsSection(
                connection_strings
            ),
        }
        self._sections: dict[str, ConfigurationSection] = {}
        self._lock = threading.Lock()

    def register_section(self, name: str, factory: Callable[[], ConfigurationSection]) -> None:
        self._factories[name] = factory

    def add_builder(self, builder: LegacyConfigurationBuilder) -> None:
        self.builders.append(builder)

    def get_section(self, name: str) -> ConfigurationSection:
        """Load, process and cache a section. Unknown names raise KeyError."""
        with self._lock:
            section = self._sections.get(name)
            if section is not None:
                return section

            section = self._factories[name]()
            for builder in self.builders:
                section = builder.process_configuration_section(section)
            self._sections[name] = section

            if isinstance(section, AppSettingsSection):
                for element in section.settings:
                    self.app_settings.set(element.key, element.value)

            logger.debug("legacy_section_loaded", section=name, builders=len(self.builders))
            return section

    @property
    def connection_strings(self) -> ConnectionStringsSection:
        section = self.get_section(ConnectionStringsSection.section_name)
        if not isinstance(section, ConnectionStringsSection):
            raise TypeError(
                f"connectionStrings builder returned {type(section).__name__}"
            )
        return section

    def load_app_settings(self) -> LiveSettingsStore:
        """Process appSettings (once) and return the live table."""
        self.get_section(AppSettingsSection.section_name)
        return self.app_settings


configuration_manager = ConfigurationManager()
