"""
Live propagation of reloaded app settings.

A ReloadPropagator owns one daemon thread that loops:

    take the subtree's change token -> wait for it to fire
    -> take the next token -> write every leaf into the live store

The next token is taken before the writes, so a change that lands while
writes are in progress fires the new token and is applied on the next pass.
Writes go straight to the live store, not through a legacy section, because
the section processed at startup is no longer the one the application reads.
"""

from __future__ import annotations

import threading

import structlog

from configbridge.config.reload import ChangeToken
from configbridge.config.snapshot import ConfigSection
from configbridge.legacy.store import LiveSettingsStore

logger = structlog.get_logger()


class ReloadPropagator:
    """Keeps a LiveSettingsStore in sync with one configuration subtree."""

    def __init__(
        self,
        subtree: ConfigSection,
        store: LiveSettingsStore,
        stop_check_interval: float = 0.5,
    ):
        self.subtree = subtree
        self.store = store
        self.stop_check_interval = stop_check_interval
        self.applications = 0
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def apply(self) -> int:
        """Insert or update every leaf of the subtree. Returns the number written."""
        written = 0
        for setting in self.subtree.get_children():
            if setting.value is None:
                continue
            self.store.set(setting.key, setting.value)
            written += 1
        return written

    def start(self, token: ChangeToken | None = None) -> "ReloadPropagator":
        """Start observing.

        Pass the token taken before the subtree was last read so a reload
        that lands in between is not missed.
        """
        if self.running:
            return self
        self._stop.clear()
        if token is None:
            token = self.subtree.get_reload_token()
        self._thread = threading.Thread(
            target=self._run,
            args=(token,),
            name=f"configbridge-propagator-{self.subtree.path}",
            daemon=True,
        )
        self._thread.start()
        return self

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
        self._thread = None

    def _run(self, token: ChangeToken) -> None:
        while not self._stop.is_set():
            if not token.wait(self.stop_check_interval):
                continue

            token = self.subtree.get_reload_token()
            try:
                written = self.apply()
            except Exception:
                # Keep observing; the next change gets another attempt.
                logger.exception("reload_apply_failed", section=self.subtree.path)
                continue

            self.applications += 1
            logger.info("reload_applied", section=self.subtree.path, settings=written)
