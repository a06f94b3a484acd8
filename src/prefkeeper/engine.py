from __future__ import annotations

import logging
import time
from concurrent.futures import Executor
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from . import bridge
from .config import PreferencesConfig
from .document import PreferencesDocument, merge_documents
from .errors import RegistrationError
from .host import ResourceTable
from .loader import load_preferences
from .registry import PreferenceItem, PreferenceRegistry, Role
from .scheduler import ChangeScheduler, Request, SaveMode, SavePreferences, SaveState
from .storage import atomic_write_bytes

logger = logging.getLogger(__name__)

Leaves = Dict[Tuple[str, ...], Any]


class Preferences:
    """Persist registered application values to a per-user TOML file.

    Typical lifecycle::

        prefs = Preferences(PreferencesConfig("my-game"), host)
        prefs.register(ZoomLevel)            # at setup, before load()
        prefs.load()                          # before app logic reads values
        ...
        prefs.tick()                          # once per frame
        prefs.save(SaveMode.IF_CHANGED)       # on exit

    Every ``tick`` runs a change detection pass over the registered items and
    schedules a debounced save when any value differs from what the previous
    pass, the last save or the load observed.
    """

    def __init__(
        self,
        config: PreferencesConfig,
        host: Optional[ResourceTable] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        executor: Optional[Executor] = None,
    ) -> None:
        self.config = config
        self.host = host if host is not None else ResourceTable()
        self.registry = PreferenceRegistry()
        self.scheduler: ChangeScheduler[bytes] = ChangeScheduler(
            self._prepare,
            self._commit,
            delay=config.save_delay,
            clock=clock,
            executor=executor,
        )
        self._observed: Dict[type, Leaves] = {}

    @property
    def file_path(self) -> Path:
        return self.config.file_path

    @property
    def state(self) -> SaveState:
        return self.scheduler.state

    @property
    def loaded(self) -> bool:
        return self.registry.closed

    # ------------------------ Registration ------------------------
    def register(self, cls: type, *, group: Optional[str] = None,
                 key: Optional[str] = None) -> PreferenceItem:
        """Register a dataclass resource. Raises RegistrationError on conflicts."""
        return self.registry.register(cls, group=group, key=key, role=Role.PLAIN_VALUE)

    def register_state(self, cls: type[Enum], *, group: Optional[str] = None,
                       key: Optional[str] = None) -> PreferenceItem:
        """Register an Enum state; its current value is saved, loads request a transition."""
        return self.registry.register(cls, group=group, key=key, role=Role.STATE_PAIR)

    # ------------------------ Loading ------------------------
    def load(self) -> Optional[PreferencesDocument]:
        """Read the preferences file into the registered items (once)."""
        if self.registry.closed:
            raise RegistrationError("Preferences were already loaded")
        self.registry.close()
        document = load_preferences(self.file_path, self.registry, self.host)
        for item in self.registry:
            self._observed[item.identity] = self._baseline(item, document is not None)
        return document

    def _baseline(self, item: PreferenceItem, from_file: bool) -> Leaves:
        if from_file and item.role is Role.STATE_PAIR:
            slot = self.host.state(item.identity)
            # A transition requested by the load is not a user change
            if slot is not None and slot.next is not None:
                return bridge.extract(slot.next, item.plan, owner=item.name)
        return self._extract(item)

    # ------------------------ Extraction ------------------------
    def _extract(self, item: PreferenceItem) -> Leaves:
        if item.role is Role.STATE_PAIR:
            slot = self.host.state(item.identity)
            if slot is None:
                return {}
            return bridge.extract(slot.current, item.plan, owner=item.name)
        resource = self.host.get(item.identity)
        if resource is None:
            return {}
        return bridge.extract(resource, item.plan, owner=item.name)

    def build_document(self) -> PreferencesDocument:
        """Assemble a fresh document from the current value of every item."""
        fragments: List[Tuple[str, Leaves]] = []
        for item in self.registry:
            leaves = self._extract(item)
            self._observed[item.identity] = leaves
            fragments.append((item.name, leaves))
        return merge_documents(fragments)

    def detect_changes(self, now: Optional[float] = None) -> bool:
        """Mark preferences changed if any item differs from the last pass."""
        changed = False
        for item in self.registry:
            leaves = self._extract(item)
            if leaves != self._observed.get(item.identity, {}):
                logger.debug("Preference %s changed", item.name)
                self._observed[item.identity] = leaves
                changed = True
        if changed:
            self.scheduler.mark_changed(now)
        return changed

    # ------------------------ Saving ------------------------
    def _prepare(self) -> bytes:
        return self.build_document().encode()

    def _commit(self, payload: bytes) -> None:
        atomic_write_bytes(self.file_path, payload)
        logger.info("Preferences saved to %s", self.file_path)

    def mark_changed(self, now: Optional[float] = None) -> None:
        self.scheduler.mark_changed(now)

    def tick(self, now: Optional[float] = None) -> bool:
        """Advance the debounce timer; returns True when a save completed."""
        if not self.registry.closed:
            logger.debug("tick() before load(); ignored")
            return False
        self.detect_changes(now)
        return self.scheduler.tick(now)

    def save(self, mode: SaveMode = SaveMode.IF_CHANGED, now: Optional[float] = None) -> bool:
        """Save immediately (``ALWAYS``) or only when changes are pending (``IF_CHANGED``).

        Raises:
            PreferencesIOError: when the file cannot be written.
        """
        if mode is SaveMode.IF_CHANGED and self.registry.closed:
            self.detect_changes(now)
        return self.scheduler.force_save(mode, now)

    def dispatch(self, request: Request, now: Optional[float] = None) -> bool:
        if isinstance(request, SavePreferences):
            return self.save(request.mode, now)
        return self.scheduler.dispatch(request, now)
