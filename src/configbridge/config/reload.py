"""
Change notification for the merged configuration.

ChangeToken is a one-shot handle: it fires at most once, and observers that
want the next change must ask the configuration root for a fresh token.
ReloadWatcher is the change source that fires them: a watchdog observer
reports file edits and a daemon thread reloads the root.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

import structlog
from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from configbridge.core.errors import ConfigBridgeError

if TYPE_CHECKING:
    from configbridge.config.snapshot import ConfigurationRoot
    from configbridge.config.sources import FileSource

logger = structlog.get_logger()

# Opened and closed-without-write events fire on every read of the file.
_CHANGE_EVENTS = (EVENT_TYPE_CREATED, EVENT_TYPE_DELETED, EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED)


class CallbackRegistration:
    """Handle returned by ChangeToken.register_callback."""

    def __init__(self, token: "ChangeToken | None", entry: tuple | None):
        self._token = token
        self._entry = entry

    def dispose(self) -> None:
        if self._token is not None and self._entry is not None:
            self._token._unregister(self._entry)
        self._token = None
        self._entry = None


class ChangeToken:
    """One-shot change notification."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._callbacks: list[tuple[Callable[[Any], None], Any]] = []

    @property
    def has_changed(self) -> bool:
        return self._event.is_set()

    def register_callback(
        self, callback: Callable[[Any], None], state: Any = None
    ) -> CallbackRegistration:
        """Run ``callback(state)`` once when the token fires.

        Registering on a token that already fired runs the callback
        immediately on the calling thread.
        """
        entry = (callback, state)
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(entry)
                return CallbackRegistration(self, entry)
        callback(state)
        return CallbackRegistration(None, None)

    def _unregister(self, entry: tuple) -> None:
        with self._lock:
            if entry in self._callbacks:
                self._callbacks.remove(entry)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the token fires. Returns False on timeout."""
        return self._event.wait(timeout)

    def fire(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []

        for callback, state in callbacks:
            try:
                callback(state)
            except Exception:
                logger.exception("change_callback_failed", callback=repr(callback))


class _FileEventHandler(FileSystemEventHandler):
    """Forwards edits of watched files to their sources."""

    def __init__(self, watcher: "ReloadWatcher"):
        self.watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _CHANGE_EVENTS:
            return
        for raw in (event.src_path, getattr(event, "dest_path", "")):
            if raw:
                self.watcher.file_changed(Path(os.fsdecode(raw)))


class ReloadWatcher:
    """Reloads the root when a source reports a change.

    File edits arrive through a watchdog observer on each watched file's
    directory and wake the reload thread immediately. Sources without a
    change feed (Key Vault refresh) and reloads that failed are checked again
    every ``interval`` seconds.
    """

    def __init__(self, root: "ConfigurationRoot", interval: float = 1.0):
        self.root = root
        self.interval = interval
        self._stop = threading.Event()
        self._wake = threading.Event()
        self._thread: threading.Thread | None = None
        self._observer: BaseObserver | None = None
        self._files: dict[Path, list[FileSource]] = {}

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "ReloadWatcher":
        if self.running:
            return self
        self._stop.clear()
        self._start_observer()
        self._thread = threading.Thread(
            target=self._run, name="configbridge-reload-watcher", daemon=True
        )
        self._thread.start()
        logger.debug("reload_watcher_started", interval=self.interval, files=len(self._files))
        return self

    def _start_observer(self) -> None:
        self._files = {}
        for source in self.root.sources:
            for file in source.watched_files():
                self._files.setdefault(file.path.resolve(), []).append(file)

        directories = {path.parent for path in self._files}
        observer = Observer()
        handler = _FileEventHandler(self)
        for directory in sorted(directories):
            if not directory.is_dir():
                logger.debug("watch_directory_missing", path=str(directory))
                continue
            observer.schedule(handler, str(directory), recursive=False)
        observer.daemon = True
        observer.start()
        self._observer = observer

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        self._wake.set()
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout)
            self._observer = None
        if self._thread is not None:
            self._thread.join(timeout)
        self._thread = None

    def file_changed(self, path: Path) -> None:
        """Mark the sources reading ``path`` as changed and wake the reload thread."""
        sources = self._files.get(path.resolve())
        if not sources:
            return
        for source in sources:
            source.notify_changed()
        self._wake.set()

    def _run(self) -> None:
        while not self._stop.is_set():
            self._wake.wait(self.interval)
            self._wake.clear()
            if self._stop.is_set():
                break
            self.poll()

    def poll(self) -> bool:
        """Check sources once. Returns True when a reload happened.

        Never raises: a failed reload is logged, the previous data stays in
        place and the change is retried on the next check.
        """
        try:
            changed = [
                source.name
                for source in self.root.sources
                if source.reload_on_change and source.has_changed()
            ]
            if not changed:
                return False

            logger.info("configuration_change_detected", sources=changed)
            self.root.reload()
        except ConfigBridgeError as e:
            logger.error("configuration_reload_failed", message=e.message, **e.details)
            return False
        except Exception:
            logger.exception("configuration_reload_failed")
            return False
        return True
