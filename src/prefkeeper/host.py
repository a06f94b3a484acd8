from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=Enum)


class StateSlot(Generic[S]):
    """A state value with a pending transition request.

    ``current`` is the active state. ``request`` only records ``next``; the
    host applies it on its own schedule through ``apply``.
    """

    def __init__(self, initial: S) -> None:
        self.current: S = initial
        self.next: Optional[S] = None

    def request(self, value: S) -> None:
        self.next = value

    def apply(self) -> bool:
        if self.next is None:
            return False
        previous, self.current, self.next = self.current, self.next, None
        logger.debug("State %s: %s -> %s", type(self.current).__name__, previous.name, self.current.name)
        return True


class ResourceTable:
    """In-process store of live application resources, keyed by type.

    Stands in for the host's resource and state facilities: the preferences
    engine only borrows values from it during extraction and injection.
    """

    def __init__(self) -> None:
        self._resources: Dict[type, Any] = {}
        self._states: Dict[type, StateSlot[Any]] = {}

    def insert(self, value: Any) -> None:
        self._resources[type(value)] = value

    def get(self, cls: type) -> Any:
        return self._resources.get(cls)

    def __contains__(self, cls: object) -> bool:
        return cls in self._resources or cls in self._states

    def init_state(self, initial: S) -> StateSlot[S]:
        slot: StateSlot[S] = StateSlot(initial)
        self._states[type(initial)] = slot
        return slot

    def state(self, cls: type) -> Optional[StateSlot[Any]]:
        return self._states.get(cls)

    def apply_transitions(self) -> int:
        """Apply every pending state request. Returns how many states changed."""
        return sum(1 for slot in self._states.values() if slot.apply())
