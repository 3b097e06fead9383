"""
Configuration builder plugged into the legacy host.

The host calls process_configuration_section() for every section it loads.
appSettings and connectionStrings are overlaid with the merged configuration;
anything else goes through the base builder untouched. After appSettings is
projected, a ReloadPropagator keeps the live app settings table in sync.

Usage:
    manager = ConfigurationManager()
    manager.add_builder(DefaultConfigurationBuilder(store=manager.app_settings))
    manager.load_app_settings()["MyConfig"]
"""

from __future__ import annotations

import threading
from typing import Callable

import structlog

from configbridge.config.reload import ChangeToken
from configbridge.config.snapshot import ConfigSection, ConfigurationRoot, get_configuration
from configbridge.legacy.host import LegacyConfigurationBuilder, configuration_manager
from configbridge.legacy.sections import ConfigurationSection
from configbridge.legacy.store import LiveSettingsStore
from configbridge.projection import FlatProjector, projector_for
from configbridge.propagation import ReloadPropagator

logger = structlog.get_logger()


class DefaultConfigurationBuilder(LegacyConfigurationBuilder):
    """Overlays the merged configuration onto legacy sections."""

    def __init__(
        self,
        configuration: Callable[[], ConfigurationRoot] = get_configuration,
        store: LiveSettingsStore | None = None,
        watch: bool = True,
    ):
        self._configuration = configuration
        self.store = store if store is not None else configuration_manager.app_settings
        self.watch = watch
        self.propagators: dict[str, ReloadPropagator] = {}
        self._lock = threading.Lock()

    def process_configuration_section(
        self, section: ConfigurationSection
    ) -> ConfigurationSection:
        projector = projector_for(section)
        if projector is None:
            return super().process_configuration_section(section)

        subtree = self._configuration().get_section(projector.config_key)
        observe = isinstance(projector, FlatProjector) and self.watch
        # taken before the read so a reload during projection still fires it
        token = subtree.get_reload_token() if observe else None

        if subtree.exists():
            section = projector.project(section, subtree)
        else:
            logger.debug("config_subtree_missing", key=projector.config_key)

        if token is not None:
            self._observe(subtree, token)
        return section

    def _observe(self, subtree: ConfigSection, token: ChangeToken) -> None:
        with self._lock:
            if subtree.path.casefold() in self.propagators:
                return
            self.propagators[subtree.path.casefold()] = ReloadPropagator(
                subtree, self.store
            ).start(token)

    def close(self) -> None:
        with self._lock:
            for propagator in self.propagators.values():
                propagator.stop()
            self.propagators.clear()
