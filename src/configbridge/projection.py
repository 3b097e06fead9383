"""
Projection of merged configuration onto legacy sections.

Each projector overlays one subtree of the snapshot onto a legacy section in
place: matching entries are updated, missing ones inserted, nothing is
removed. Internal nodes never produce entries.

    AppSettings:MyConfig = "value"              -> appSettings["MyConfig"]
    ConnectionStrings:Db = "Server=..."         -> connectionStrings["Db"]
    ConnectionStrings:Db:ConnectionString = ... -> connectionStrings["Db"]
    ConnectionStrings:Db:ProviderName = ...     -> connectionStrings["Db"].provider_name
"""

from __future__ import annotations

from typing import Generic, TypeVar

import structlog

from configbridge.config.snapshot import ConfigSection
from configbridge.legacy.sections import (
    AppSettingsSection,
    ConfigurationSection,
    ConnectionStringSettings,
    ConnectionStringsSection,
)

logger = structlog.get_logger()

S = TypeVar("S", bound=ConfigurationSection)

CONNECTION_STRING_KEY = "ConnectionString"
PROVIDER_NAME_KEY = "ProviderName"


class SectionProjector(Generic[S]):
    """Overlay for one legacy section shape."""

    section_type: type[ConfigurationSection] = ConfigurationSection
    config_key: str = ""

    def project(self, section: S, subtree: ConfigSection) -> S:
        raise NotImplementedError


class FlatProjector(SectionProjector[AppSettingsSection]):
    """AppSettings: one string per key."""

    section_type = AppSettingsSection
    config_key = "AppSettings"

    def project(self, section: AppSettingsSection, subtree: ConfigSection) -> AppSettingsSection:
        updated = inserted = 0
        for setting in subtree.get_children():
            # keys that only group subsections have no value
            if setting.value is None:
                continue

            existing = section.settings.get(setting.key)
            if existing is not None:
                existing.value = setting.value
                updated += 1
            else:
                section.settings.add(setting.key, setting.value)
                inserted += 1

        logger.debug("app_settings_projected", updated=updated, inserted=inserted)
        return section


class CompositeProjector(SectionProjector[ConnectionStringsSection]):
    """ConnectionStrings: a connection string plus an optional provider name.

    An entry is either a plain value or a node with ``ConnectionString``
    (required) and ``ProviderName`` (optional) children. Nodes without a
    connection string are skipped. An existing provider name is never
    cleared by an entry that omits it.
    """

    section_type = ConnectionStringsSection
    config_key = "ConnectionStrings"

    def project(
        self, section: ConnectionStringsSection, subtree: ConfigSection
    ) -> ConnectionStringsSection:
        collection = section.connection_strings

        for setting in subtree.get_children():
            provider_name: str | None = None
            if setting.value is None:
                value = setting.get(CONNECTION_STRING_KEY)
                provider_name = setting.get(PROVIDER_NAME_KEY)
            else:
                value = setting.value

            if value is None:
                logger.debug("connection_string_skipped", name=setting.key)
                continue

            existing = collection.get(setting.key)
            if existing is not None:
                existing.connection_string = value
                if provider_name is not None:
                    existing.provider_name = provider_name
            else:
                collection.add(ConnectionStringSettings(setting.key, value, provider_name))

        return section


PROJECTORS: tuple[SectionProjector, ...] = (FlatProjector(), CompositeProjector())


def projector_for(section: ConfigurationSection) -> SectionProjector | None:
    for projector in PROJECTORS:
        if isinstance(section, projector.section_type):
            return projector
    return None
