"""
Legacy section model.

Two section shapes are used by the application:
- AppSettingsSection: ordered key -> string
- ConnectionStringsSection: ordered name -> (connection string, provider name)

Lookups are case-insensitive and keep the first-seen casing of the key.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Iterator, Mapping, TypeVar

E = TypeVar("E")


class ConfigurationSection:
    """Base class for sections handed to configuration builders."""

    section_name: str = ""


class _OrderedCollection(Generic[E]):
    def __init__(self) -> None:
        self._items: dict[str, E] = {}

    def _get(self, key: str) -> E | None:
        return self._items.get(key.casefold())

    def _put(self, key: str, element: E) -> None:
        self._items[key.casefold()] = element

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.casefold() in self._items

    def __iter__(self) -> Iterator[E]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)


@dataclass
class KeyValueElement:
    key: str
    value: str


class KeyValueCollection(_OrderedCollection[KeyValueElement]):
    def get(self, key: str) -> KeyValueElement | None:
        return self._get(key)

    def __getitem__(self, key: str) -> KeyValueElement:
        element = self._get(key)
        if element is None:
            raise KeyError(key)
        return element

    def add(self, key: str, value: str) -> KeyValueElement:
        existing = self._get(key)
        if existing is not None:
            raise ValueError(f"Entry '{key}' already exists")
        element = KeyValueElement(key, value)
        self._put(key, element)
        return element

    def keys(self) -> list[str]:
        return [element.key for element in self]

    def as_dict(self) -> dict[str, str]:
        return {element.key: element.value for element in self}


@dataclass
class ConnectionStringSettings:
    name: str
    connection_string: str
    provider_name: str | None = None


class ConnectionStringSettingsCollection(_OrderedCollection[ConnectionStringSettings]):
    def get(self, name: str) -> ConnectionStringSettings | None:
        return self._get(name)

    def __getitem__(self, name: str) -> ConnectionStringSettings:
        settings = self._get(name)
        if settings is None:
            raise KeyError(name)
        return settings

    def add(self, settings: ConnectionStringSettings) -> None:
        if settings.name in self:
            raise ValueError(f"Connection string '{settings.name}' already exists")
        self._put(settings.name, settings)


class AppSettingsSection(ConfigurationSection):
    section_name = "appSettings"

    def __init__(self, settings: Mapping[str, str] | None = None):
        self.settings = KeyValueCollection()
        for key, value in (settings or {}).items():
            self.settings.add(key, value)


class ConnectionStringsSection(ConfigurationSection):
    section_name = "connectionStrings"

    def __init__(self, connection_strings: Mapping[str, str | tuple[str, str | None]] | None = None):
        self.connection_strings = ConnectionStringSettingsCollection()
        for name, entry in (connection_strings or {}).items():
            if isinstance(entry, tuple):
                value, provider = entry
            else:
                value, provider = entry, None
            self.connection_strings.add(ConnectionStringSettings(name, value, provider))
