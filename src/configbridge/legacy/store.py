"""Process-wide live settings table read by the running application."""

from __future__ import annotations

import threading
from typing import Iterator, Mapping


class LiveSettingsStore:
    """Case-insensitive key -> string table.

    Each ``set`` is atomic on its own; there is no multi-key transaction.
    Entries are inserted or updated, never removed by the bridge.
    """

    def __init__(self, initial: Mapping[str, str] | None = None):
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[str, str]] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def set(self, key: str, value: str) -> None:
        folded = key.casefold()
        with self._lock:
            existing = self._entries.get(folded)
            self._entries[folded] = (existing[0] if existing else key, value)

    def get(self, key: str, default: str | None = None) -> str | None:
        entry = self._entries.get(key.casefold())
        return entry[1] if entry is not None else default

    def __getitem__(self, key: str) -> str:
        value = self.get(key)
        if value is None:
            raise KeyError(key)
        return value

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.casefold() in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[str]:
        with self._lock:
            return [key for key, _ in self._entries.values()]

    def as_dict(self) -> dict[str, str]:
        with self._lock:
            return dict(self._entries.values())
