"""
Configuration sources.

Each source yields a flat mapping of ':'-delimited keys to string values.
Sources are composed in a fixed order by ConfigurationRoot; a later source
wins for any key both define.
"""

from __future__ import annotations

import json
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Mapping

import structlog
import yaml

from configbridge.config.keys import KEY_DELIMITER, combine
from configbridge.core.errors import ConfigurationError

logger = structlog.get_logger()

ENV_HIERARCHY_SEPARATOR = "__"


def flatten_document(data: Mapping[str, Any], prefix: str = "") -> dict[str, str]:
    """Flatten a parsed JSON/YAML document into ':'-delimited keys.

    Lists are indexed by position (``Servers:0``, ``Servers:1``) and scalars
    are rendered as strings. Empty mappings and lists produce no keys.
    """
    result: dict[str, str] = {}
    for key, value in data.items():
        path = combine(prefix, str(key))
        if isinstance(value, Mapping):
            result.update(flatten_document(value, path))
        elif isinstance(value, list):
            indexed = {str(i): item for i, item in enumerate(value)}
            result.update(flatten_document(indexed, path))
        else:
            result[path] = _scalar_to_str(value)
    return result


def _scalar_to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ChangeCounter:
    """Tracks changes to a source across reloads.

    Every change bumps ``current``. A load remembers the revision it read and
    the root commits it only after the whole reload succeeded, so a change
    that arrives mid-read, or a reload that fails on another source, stays
    pending.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.current = 0
        self.read = 0
        self.committed = 0

    def bump(self) -> None:
        with self._lock:
            self.current += 1

    def begin_read(self) -> None:
        with self._lock:
            self.read = self.current

    def commit(self) -> None:
        with self._lock:
            self.committed = self.read

    @property
    def pending(self) -> bool:
        return self.current != self.committed


class ConfigurationSource(ABC):
    """Base class for configuration sources."""

    name: str = "source"
    reload_on_change: bool = False

    @abstractmethod
    def load(self) -> dict[str, str]:
        """Read the source and return its flattened keys."""
        pass

    def has_changed(self) -> bool:
        """Whether the underlying data changed since the last committed load."""
        return False

    def mark_loaded(self) -> None:
        """Called once the data returned by the last load() is live."""

    def watched_files(self) -> list["FileSource"]:
        """Files whose edits should trigger a reload of this source."""
        return []

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class FileSource(ConfigurationSource):
    """JSON or YAML settings file.

    Edits are reported by a file watcher through notify_changed(); the
    source itself never polls the file system.
    """

    def __init__(self, path: Path, optional: bool = False, reload_on_change: bool = True):
        self.path = Path(path).absolute()
        self.optional = optional
        self.reload_on_change = reload_on_change
        self.name = self.path.name
        self.changes = ChangeCounter()

    def notify_changed(self) -> None:
        self.changes.bump()

    def load(self) -> dict[str, str]:
        self.changes.begin_read()

        if not self.path.exists():
            if self.optional:
                logger.debug("optional_source_missing", path=str(self.path))
                return {}
            raise ConfigurationError(
                "Required configuration file not found", {"path": str(self.path)}
            )

        try:
            text = self.path.read_text(encoding="utf-8-sig")
            if self.path.suffix.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(text)
            else:
                data = json.loads(text)
        except (OSError, ValueError, RecursionError, yaml.YAMLError) as e:
            raise ConfigurationError(
                "Failed to parse configuration file",
                {"path": str(self.path), "error": str(e)},
            ) from e

        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ConfigurationError(
                "Configuration file must contain a top-level object",
                {"path": str(self.path)},
            )

        flat = flatten_document(data)
        logger.debug("source_loaded", source=self.name, keys=len(flat))
        return flat

    def mark_loaded(self) -> None:
        self.changes.commit()

    def has_changed(self) -> bool:
        return self.reload_on_change and self.changes.pending

    def watched_files(self) -> list["FileSource"]:
        return [self] if self.reload_on_change else []



class EnvironmentVariablesSource(ConfigurationSource):
    """Process environment variables, optionally filtered by prefix.

    The prefix is matched case-insensitively and stripped. A double
    underscore separates hierarchy levels, so ``DEMO_AppSettings__MyConfig``
    becomes ``AppSettings:MyConfig``.
    """

    name = "environment"

    def __init__(self, prefix: str = "", environ: Mapping[str, str] | None = None):
        self.prefix = prefix
        self._environ = environ

    def load(self) -> dict[str, str]:
        environ = self._environ if self._environ is not None else os.environ
        prefix = self.prefix.upper()

        result: dict[str, str] = {}
        for name, value in environ.items():
            if not name.upper().startswith(prefix):
                continue
            key = name[len(prefix) :].replace(ENV_HIERARCHY_SEPARATOR, KEY_DELIMITER)
            if key:
                result[key] = value
        return result


class MemorySource(ConfigurationSource):
    """In-memory keys, used for defaults and tests."""

    name = "memory"
    reload_on_change = True

    def __init__(self, data: Mapping[str, str] | None = None):
        self.data = dict(data or {})
        self.changes = ChangeCounter()

    def set(self, key: str, value: str) -> None:
        self.data[key] = value
        self.changes.bump()

    def load(self) -> dict[str, str]:
        self.changes.begin_read()
        return dict(self.data)

    def mark_loaded(self) -> None:
        self.changes.commit()

    def has_changed(self) -> bool:
        return self.changes.pending
