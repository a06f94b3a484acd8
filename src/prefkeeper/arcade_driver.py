from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from .engine import Preferences
from .scheduler import SaveMode

logger = logging.getLogger(__name__)

ScheduleFn = Callable[[Callable[[float], Any], float], Any]
UnscheduleFn = Callable[[Callable[[float], Any]], Any]


class ArcadeTickDriver:
    """Drive a ``Preferences`` instance from the Arcade clock.

    ``start`` schedules ``Preferences.tick`` with ``arcade.schedule``; ``stop``
    unschedules it and flushes any pending change, so a setting changed just
    before the window closes is not lost. The scheduling functions can be
    injected for headless use.
    """

    def __init__(
        self,
        preferences: Preferences,
        interval: float = 0.25,
        schedule: Optional[ScheduleFn] = None,
        unschedule: Optional[UnscheduleFn] = None,
    ) -> None:
        self.preferences = preferences
        self.interval = interval
        self._schedule = schedule
        self._unschedule = unschedule
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def _bind_arcade(self) -> None:
        if self._schedule is not None and self._unschedule is not None:
            return
        import arcade

        self._schedule = self._schedule or arcade.schedule
        self._unschedule = self._unschedule or arcade.unschedule

    def on_update(self, delta_time: float) -> None:
        self.preferences.tick()

    def start(self) -> None:
        """Load preferences if needed and start ticking. Safe to call twice."""
        if self._running:
            logger.debug("ArcadeTickDriver.start() called while already running")
            return
        self._bind_arcade()
        if not self.preferences.loaded:
            self.preferences.load()
        assert self._schedule is not None
        self._schedule(self.on_update, self.interval)
        self._running = True
        logger.info("Preferences ticking every %.2fs", self.interval)

    def stop(self) -> None:
        """Stop ticking and save pending changes."""
        if not self._running:
            return
        assert self._unschedule is not None
        self._unschedule(self.on_update)
        self._running = False
        self.preferences.save(SaveMode.IF_CHANGED)
