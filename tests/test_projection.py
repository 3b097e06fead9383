"""Tests for projection.py.

Tests for overlaying merged configuration onto appSettings and
connectionStrings sections.
"""

import pytest

from configbridge.config.snapshot import ConfigurationRoot
from configbridge.config.sources import MemorySource
from configbridge.legacy.sections import (
    AppSettingsSection,
    ConfigurationSection,
    ConnectionStringsSection,
)
from configbridge.projection import CompositeProjector, FlatProjector, projector_for


def _subtree(data, key):
    return ConfigurationRoot([MemorySource(data)]).get_section(key)


class TestFlatProjector:
    """Tests for FlatProjector."""

    def test_updates_existing_and_inserts_new(self):
        section = AppSettingsSection({"MyConfig": "static", "Untouched": "kept"})
        subtree = _subtree(
            {"AppSettings:MyConfig": "override", "AppSettings:NewKey": "added"}, "AppSettings"
        )

        FlatProjector().project(section, subtree)

        assert section.settings.as_dict() == {
            "MyConfig": "override",
            "Untouched": "kept",
            "NewKey": "added",
        }

    def test_match_is_case_insensitive(self):
        section = AppSettingsSection({"myconfig": "static"})
        subtree = _subtree({"AppSettings:MyConfig": "override"}, "AppSettings")

        FlatProjector().project(section, subtree)

        assert len(section.settings) == 1
        assert section.settings["MYCONFIG"].value == "override"

    def test_internal_nodes_are_skipped(self):
        section = AppSettingsSection()
        subtree = _subtree(
            {"AppSettings:Feature:Enabled": "true", "AppSettings:Name": "demo"}, "AppSettings"
        )

        FlatProjector().project(section, subtree)

        assert section.settings.keys() == ["Name"]

    def test_empty_string_value_is_projected(self):
        section = AppSettingsSection({"MyConfig": "static"})
        subtree = _subtree({"AppSettings:MyConfig": ""}, "AppSettings")

        FlatProjector().project(section, subtree)

        assert section.settings["MyConfig"].value == ""

    def test_projecting_twice_matches_projecting_once(self):
        subtree = _subtree(
            {"AppSettings:MyConfig": "override", "AppSettings:NewKey": "added"}, "AppSettings"
        )
        once = FlatProjector().project(AppSettingsSection({"MyConfig": "static"}), subtree)
        twice = FlatProjector().project(AppSettingsSection({"MyConfig": "static"}), subtree)
        FlatProjector().project(twice, subtree)

        assert twice.settings.as_dict() == once.settings.as_dict()
        assert len(twice.settings) == len(once.settings) == 2

    def test_returns_same_section(self):
        section = AppSettingsSection()

        assert FlatProjector().project(section, _subtree({"AppSettings:A": "1"}, "AppSettings")) is section


class TestCompositeProjector:
    """Tests for CompositeProjector."""

    def test_plain_value_entry(self):
        section = ConnectionStringsSection()
        subtree = _subtree({"ConnectionStrings:Db": "Server=db"}, "ConnectionStrings")

        CompositeProjector().project(section, subtree)

        entry = section.connection_strings["Db"]
        assert entry.connection_string == "Server=db"
        assert entry.provider_name is None

    def test_node_with_provider(self):
        section = ConnectionStringsSection()
        subtree = _subtree(
            {
                "ConnectionStrings:Db:ConnectionString": "Server=db",
                "ConnectionStrings:Db:ProviderName": "System.Data.SqlClient",
            },
            "ConnectionStrings",
        )

        CompositeProjector().project(section, subtree)

        entry = section.connection_strings["db"]
        assert entry.connection_string == "Server=db"
        assert entry.provider_name == "System.Data.SqlClient"

    def test_missing_provider_keeps_existing(self):
        section = ConnectionStringsSection({"Db": ("Server=old", "Npgsql")})
        subtree = _subtree({"ConnectionStrings:Db:ConnectionString": "Server=new"}, "ConnectionStrings")

        CompositeProjector().project(section, subtree)

        entry = section.connection_strings["Db"]
        assert entry.connection_string == "Server=new"
        assert entry.provider_name == "Npgsql"

    def test_provider_replaced_when_given(self):
        section = ConnectionStringsSection({"Db": ("Server=old", "Npgsql")})
        subtree = _subtree(
            {
                "ConnectionStrings:Db:ConnectionString": "Server=new",
                "ConnectionStrings:Db:ProviderName": "MySql",
            },
            "ConnectionStrings",
        )

        CompositeProjector().project(section, subtree)

        assert section.connection_strings["Db"].provider_name == "MySql"

    def test_node_without_connection_string_is_skipped(self):
        section = ConnectionStringsSection({"Db": "Server=old"})
        subtree = _subtree(
            {
                "ConnectionStrings:Db:ProviderName": "Npgsql",
                "ConnectionStrings:Cache:ProviderName": "Redis",
            },
            "ConnectionStrings",
        )

        CompositeProjector().project(section, subtree)

        assert len(section.connection_strings) == 1
        assert section.connection_strings["Db"].connection_string == "Server=old"
        assert section.connection_strings["Db"].provider_name is None

    def test_existing_entries_not_in_subtree_are_kept(self):
        section = ConnectionStringsSection({"Legacy": "Server=legacy"})
        subtree = _subtree({"ConnectionStrings:Db": "Server=db"}, "ConnectionStrings")

        CompositeProjector().project(section, subtree)

        assert [entry.name for entry in section.connection_strings] == ["Legacy", "Db"]


class TestProjectorFor:
    """Tests for projector_for."""

    @pytest.mark.parametrize(
        "section, projector_type",
        [
            (AppSettingsSection(), FlatProjector),
            (ConnectionStringsSection(), CompositeProjector),
        ],
    )
    def test_known_sections(self, section, projector_type):
        assert isinstance(projector_for(section), projector_type)

    def test_unknown_section(self):
        class SmtpSection(ConfigurationSection):
            section_name = "smtp"

        assert projector_for(SmtpSection()) is None
