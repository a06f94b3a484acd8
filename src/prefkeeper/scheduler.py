"""Debounced save scheduling.

The scheduler owns the single ``SaveState`` of an application::

    Idle --mark_changed--> PendingSave(now + delay)
    PendingSave --mark_changed--> PendingSave(now + delay)   (deadline reset)
    PendingSave --tick, now >= deadline--> Saving --> Idle
    Saving --mark_changed--> Saving (save again once finished)

Rapid changes (a dragged slider) therefore produce one write per quiet
period. The scheduler has no timer of its own; the host advances it with
``tick``.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Executor, Future
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, Optional, TypeVar, Union

from .errors import PreferencesIOError

logger = logging.getLogger(__name__)

DEFAULT_SAVE_DELAY = 1.0

T = TypeVar("T")


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class PendingSave:
    deadline: float


@dataclass(frozen=True)
class Saving:
    pass


SaveState = Union[Idle, PendingSave, Saving]


class SaveMode(Enum):
    # Save only if a change is pending
    IF_CHANGED = "if_changed"
    # Save unconditionally
    ALWAYS = "always"


@dataclass(frozen=True)
class MarkChanged:
    pass


@dataclass(frozen=True)
class SavePreferences:
    mode: SaveMode = SaveMode.IF_CHANGED


Request = Union[MarkChanged, SavePreferences]


class ChangeScheduler(Generic[T]):
    """Coalesce change signals into delayed saves.

    Args:
        prepare: Builds the serialized document. Runs on the caller's timeline,
            since it reads live application values.
        commit: Writes what ``prepare`` returned. It may raise
            ``PreferencesIOError``.
        delay: Quiet period in seconds before a pending save runs.
        clock: Monotonic time source, used when callers pass no ``now``.
        executor: When given, tick-driven saves run on it and the state stays
            ``Saving`` until a later tick collects the result.
    """

    def __init__(
        self,
        prepare: Callable[[], T],
        commit: Callable[[T], None],
        delay: float = DEFAULT_SAVE_DELAY,
        clock: Callable[[], float] = time.monotonic,
        executor: Optional[Executor] = None,
    ) -> None:
        if delay < 0:
            raise ValueError(f"Save delay must be >= 0, got {delay}")
        self._prepare = prepare
        self._commit = commit
        self.delay = delay
        self._clock = clock
        self._executor = executor
        self._state: SaveState = Idle()
        self._queued = False
        self._inflight: Optional[Future[None]] = None

    @property
    def state(self) -> SaveState:
        return self._state

    @property
    def pending(self) -> bool:
        return isinstance(self._state, PendingSave) or self._queued

    def _now(self, now: Optional[float]) -> float:
        return self._clock() if now is None else now

    # ------------------------ Transitions ------------------------
    def mark_changed(self, now: Optional[float] = None) -> None:
        if isinstance(self._state, Saving):
            self._queued = True
            return
        self._state = PendingSave(self._now(now) + self.delay)

    def tick(self, now: Optional[float] = None) -> bool:
        """Advance timers. Returns True when a save completed successfully."""
        now = self._now(now)
        if self._inflight is not None:
            return self._collect(now, wait=False)
        state = self._state
        if isinstance(state, PendingSave) and now >= state.deadline:
            if self._executor is not None:
                payload = self._prepare()
                self._state = Saving()
                self._queued = False
                logger.debug("Starting background preferences save")
                self._inflight = self._executor.submit(self._commit, payload)
                return False
            return self._save_now(now, reraise=False)
        return False

    def force_save(self, mode: SaveMode = SaveMode.IF_CHANGED, now: Optional[float] = None) -> bool:
        """Save right away. Returns True when a save was performed.

        Raises:
            PreferencesIOError: when writing the file fails.
        """
        if self._inflight is not None:
            self._collect(self._now(now), wait=True)
        if isinstance(self._state, Saving):
            # Called from inside a running save: replay it afterwards
            self._queued = True
            return False
        if mode is SaveMode.ALWAYS or self.pending:
            return self._save_now(self._now(now), reraise=True)
        return False

    def dispatch(self, request: Request, now: Optional[float] = None) -> bool:
        if isinstance(request, MarkChanged):
            self.mark_changed(now)
            return False
        if isinstance(request, SavePreferences):
            return self.force_save(request.mode, now)
        raise TypeError(f"Unknown preferences request: {request!r}")

    # ------------------------ Internals ------------------------
    def _settle(self, now: float) -> None:
        if self._queued:
            self._queued = False
            self._state = PendingSave(now + self.delay)
        else:
            self._state = Idle()

    def _save_now(self, now: float, *, reraise: bool) -> bool:
        self._state = Saving()
        self._queued = False
        try:
            self._commit(self._prepare())
        except PreferencesIOError:
            if reraise:
                raise
            logger.exception("Failed to save preferences")
            return False
        finally:
            self._settle(now)
        return True

    def _collect(self, now: float, *, wait: bool) -> bool:
        future = self._inflight
        if future is None or (not wait and not future.done()):
            return False
        self._inflight = None
        try:
            future.result()
        except PreferencesIOError:
            logger.exception("Failed to save preferences")
            return False
        finally:
            self._settle(now)
        return True
