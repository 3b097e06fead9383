"""
Merged configuration snapshot.

ConfigurationRoot composes sources in order into one case-insensitive view
of ':'-delimited keys. Only leaves carry values; a node that merely groups
children (``AppSettings``) has ``value is None``.

The process-wide root is built lazily, exactly once, by get_configuration().
Concurrent first callers wait on the same construction, and a failed
construction is re-raised to every caller without retrying.

Source order:
1. appsettings.json (required)
2. appsettings.<Environment>.json (optional)
3. DEMO_* environment variables
4. user secrets (Development) or Azure Key Vault (everything else)
"""

from __future__ import annotations

import os
import threading
from typing import Callable, Generic, Iterator, Mapping, Sequence, TypeVar

import structlog

from configbridge.config.environment import resolve_environment
from configbridge.config.keys import child_segment, combine, last_segment, normalize
from configbridge.config.reload import ChangeToken, ReloadWatcher
from configbridge.config.secrets import SecretSource
from configbridge.config.secrets.selector import select_secret_provider
from configbridge.config.settings import BridgeSettings, get_settings
from configbridge.config.sources import (
    ConfigurationSource,
    EnvironmentVariablesSource,
    FileSource,
)
from configbridge.logging import bind_context

logger = structlog.get_logger()

T = TypeVar("T")


class ConfigSection:
    """View of one subtree of a ConfigurationRoot.

    Sections are cheap path handles; they always read the root's current
    data, so a section obtained before a reload sees the reloaded values.
    """

    def __init__(self, root: "ConfigurationRoot", path: str):
        self.root = root
        self.path = path

    @property
    def key(self) -> str:
        return last_segment(self.path)

    @property
    def value(self) -> str | None:
        return self.root.get(self.path)

    @property
    def is_leaf(self) -> bool:
        return self.value is not None

    def exists(self) -> bool:
        return self.value is not None or bool(self.root._child_keys(self.path))

    def get(self, key: str, default: str | None = None) -> str | None:
        return self.root.get(combine(self.path, key), default)

    def __getitem__(self, key: str) -> str:
        return self.root[combine(self.path, key)]

    def get_section(self, key: str) -> "ConfigSection":
        return ConfigSection(self.root, combine(self.path, key))

    def get_children(self) -> list["ConfigSection"]:
        return [ConfigSection(self.root, path) for path in self.root._child_keys(self.path)]

    def get_reload_token(self) -> ChangeToken:
        return self.root.get_reload_token()

    def __repr__(self) -> str:
        return f"ConfigSection(path={self.path!r}, value={self.value!r})"


class ConfigurationRoot:
    """Sources composed in precedence order; later sources win."""

    def __init__(self, sources: Sequence[ConfigurationSource] = (), environment: str | None = None):
        self.environment = environment
        self._lock = threading.RLock()
        self._sources: list[ConfigurationSource] = []
        self._source_data: list[dict[str, str]] = []
        self._data: dict[str, tuple[str, str]] = {}
        self._token = ChangeToken()
        self.watcher: ReloadWatcher | None = None

        for source in sources:
            self.add_source(source)

    @property
    def sources(self) -> list[ConfigurationSource]:
        return list(self._sources)

    def add_source(self, source: ConfigurationSource) -> None:
        """Load ``source`` and layer it on top of the existing sources."""
        data = source.load()
        source.mark_loaded()
        with self._lock:
            self._sources.append(source)
            self._source_data.append(data)
            self._data = self._merge(self._source_data)
        logger.debug("source_added", source=source.name, keys=len(data))

    @staticmethod
    def _merge(layers: Sequence[Mapping[str, str]]) -> dict[str, tuple[str, str]]:
        merged: dict[str, tuple[str, str]] = {}
        for layer in layers:
            for key, value in layer.items():
                merged[normalize(key)] = (key, value)
        return merged

    def reload(self) -> None:
        """Re-read reloadable sources and fire the current change token.

        Environment variables are read once and keep their first values. If
        any source fails to load, the exception propagates, the previous data
        stays in place and every source keeps its pending change.
        """
        with self._lock:
            new_data = [
                source.load() if source.reload_on_change else data
                for source, data in zip(self._sources, self._source_data)
            ]
            for source in self._sources:
                if source.reload_on_change:
                    source.mark_loaded()
            self._source_data = new_data
            self._data = self._merge(new_data)
            previous, self._token = self._token, ChangeToken()

        logger.info("configuration_reloaded", keys=len(self._data))
        previous.fire()

    def get_reload_token(self) -> ChangeToken:
        with self._lock:
            return self._token

    def get(self, key: str, default: str | None = None) -> str | None:
        entry = self._data.get(normalize(key))
        return entry[1] if entry is not None else default

    def __getitem__(self, key: str) -> str:
        value = self.get(key)
        if value is None:
            raise KeyError(key)
        return value

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and normalize(key) in self._data

    def source_of(self, key: str) -> ConfigurationSource | None:
        """The source whose value won for ``key``."""
        wanted = normalize(key)
        with self._lock:
            layers = list(zip(self._sources, self._source_data))
        for source, data in reversed(layers):
            if any(normalize(existing) == wanted for existing in data):
                return source
        return None

    def get_section(self, key: str) -> ConfigSection:
        return ConfigSection(self, key)

    def get_children(self) -> list[ConfigSection]:
        return [ConfigSection(self, path) for path in self._child_keys("")]

    def _child_keys(self, path: str) -> list[str]:
        children: dict[str, str] = {}
        for original, _ in self._data.values():
            segment = child_segment(original, path)
            if segment is not None:
                children.setdefault(normalize(segment), segment)
        return [combine(path, children[name]) for name in sorted(children)]

    def as_dict(self) -> dict[str, str]:
        return {key: value for key, value in self._data.values()}

    def __iter__(self) -> Iterator[str]:
        return iter(self.as_dict())

    def __len__(self) -> int:
        return len(self._data)


def build_configuration(
    settings: BridgeSettings | None = None,
    environ: Mapping[str, str] | None = None,
    watch: bool | None = None,
) -> ConfigurationRoot:
    """Assemble every source for the resolved environment.

    The secret provider is chosen from the configuration built so far
    (files + environment variables), then layered on top.
    """
    settings = settings or get_settings()
    environ = environ if environ is not None else os.environ
    environment = resolve_environment(settings.environment_variables, environ=environ)
    log = bind_context(environment=environment)

    root = ConfigurationRoot(
        [
            FileSource(settings.base_file_path, reload_on_change=settings.reload_on_change),
            FileSource(
                settings.environment_file_path(environment),
                optional=True,
                reload_on_change=settings.reload_on_change,
            ),
            EnvironmentVariablesSource(settings.variable_prefix, environ),
        ],
        environment=environment,
    )

    provider = select_secret_provider(environment, root, settings)
    root.add_source(SecretSource(provider))

    if watch is None:
        watch = settings.reload_on_change
    if watch:
        root.watcher = ReloadWatcher(root, settings.reload_poll_interval).start()

    log.info("snapshot_built", sources=[s.name for s in root.sources], keys=len(root))
    return root


class Lazy(Generic[T]):
    """Thread-safe run-once holder.

    All callers block on the same in-flight construction. The outcome,
    value or exception, is kept for the life of the holder.
    """

    def __init__(self, factory: Callable[[], T]):
        self._factory = factory
        self._lock = threading.Lock()
        self._done = False
        self._value: T | None = None
        self._error: Exception | None = None

    @property
    def is_value_created(self) -> bool:
        return self._done and self._error is None

    def get(self) -> T:
        if not self._done:
            with self._lock:
                if not self._done:
                    try:
                        self._value = self._factory()
                    except Exception as e:
                        self._error = e
                    self._done = True

        if self._error is not None:
            raise self._error
        return self._value  # type: ignore[return-value]


_configuration: Lazy[ConfigurationRoot] = Lazy(build_configuration)


def get_configuration() -> ConfigurationRoot:
    """Process-wide merged configuration, built on first use."""
    return _configuration.get()


def reset_configuration(factory: Callable[[], ConfigurationRoot] | None = None) -> None:
    """Discard the process-wide configuration (tests, CLI overrides)."""
    global _configuration
    previous = _configuration
    if previous.is_value_created:
        watcher = previous.get().watcher
        if watcher is not None:
            watcher.stop()
    _configuration = Lazy(factory or build_configuration)
