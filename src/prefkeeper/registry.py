from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

from .errors import RegistrationConflict, RegistrationError
from .schema import (
    MappingPlan,
    Shape,
    StructShape,
    UnsupportedShape,
    WrapperShape,
    build_plan,
    class_group,
    class_key,
    resolve_shape,
)

logger = logging.getLogger(__name__)

Path = Tuple[str, ...]


class Role(Enum):
    PLAIN_VALUE = "plain_value"
    STATE_PAIR = "state_pair"


@dataclass(frozen=True)
class PreferenceItem:
    """One registered unit of persisted state and its mapping plan."""

    identity: type
    role: Role
    group: Optional[str]
    key: Optional[str]
    shape: Shape
    plan: MappingPlan

    @property
    def name(self) -> str:
        return self.identity.__qualname__


class PreferenceRegistry:
    """Closed set of preference items with document path bookkeeping.

    Path collisions between items are detected here, at registration time,
    so a conflicting configuration never reaches a save or a load.
    """

    def __init__(self) -> None:
        self._items: List[PreferenceItem] = []
        self._leaves: Dict[Path, str] = {}
        self._tables: Dict[Path, str] = {}
        self._closed = False

    def __iter__(self) -> Iterator[PreferenceItem]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def get(self, identity: type) -> Optional[PreferenceItem]:
        for item in self._items:
            if item.identity is identity:
                return item
        return None

    def register(self, identity: type, *, group: Optional[str] = None, key: Optional[str] = None,
                 role: Role = Role.PLAIN_VALUE) -> PreferenceItem:
        if self._closed:
            raise RegistrationError(
                f"Cannot register {identity!r}: preferences were already loaded"
            )
        if not isinstance(identity, type):
            raise RegistrationError(f"Preference identity must be a class, got {identity!r}")
        if self.get(identity) is not None:
            raise RegistrationError(f"{identity.__qualname__} is already registered")

        group = group if group is not None else class_group(identity)
        key = key if key is not None else class_key(identity)
        if group is None and key is None:
            raise RegistrationError(
                f"{identity.__qualname__} declares neither a preferences group nor a key"
            )

        if role is Role.STATE_PAIR:
            if not issubclass(identity, Enum):
                raise RegistrationError(f"State preference {identity.__qualname__} must be an Enum")
        elif not dataclasses.is_dataclass(identity):
            raise RegistrationError(f"Preference {identity.__qualname__} must be a dataclass")

        shape = resolve_shape(identity)
        if isinstance(shape, UnsupportedShape):
            raise RegistrationError(f"{identity.__qualname__}: {shape.reason}")
        frozen = _frozen_owner(shape)
        if frozen is not None:
            raise RegistrationError(
                f"{identity.__qualname__}: {frozen.__qualname__} is a frozen dataclass; "
                "loaded values cannot be assigned to it"
            )
        plan = build_plan(shape, group=group, key=key, owner=identity.__qualname__)

        item = PreferenceItem(identity, role, group, key, shape, plan)
        self._claim(item)
        self._items.append(item)
        logger.debug(
            "Registered %s (%s) at %s",
            item.name,
            role.value,
            ", ".join(leaf.dotted for leaf in plan.leaves),
        )
        return item

    def _claim(self, item: PreferenceItem) -> None:
        leaves: Dict[Path, str] = {}
        tables: Dict[Path, str] = {}
        for path in item.plan.paths():
            owner = self._leaves.get(path) or leaves.get(path) or self._tables.get(path) or tables.get(path)
            if owner is not None:
                raise RegistrationConflict(path, owner, item.name)
            for depth in range(1, len(path)):
                prefix = path[:depth]
                owner = self._leaves.get(prefix) or leaves.get(prefix)
                if owner is not None:
                    raise RegistrationConflict(prefix, owner, item.name)
                tables.setdefault(prefix, item.name)
            leaves[path] = item.name
        self._leaves.update(leaves)
        for prefix, name in tables.items():
            self._tables.setdefault(prefix, name)


def _frozen_owner(shape: Shape) -> Optional[type]:
    """Return the first frozen dataclass in ``shape``, if any."""
    if isinstance(shape, WrapperShape):
        if shape.owner.__dataclass_params__.frozen:
            return shape.owner
        return _frozen_owner(shape.field.shape)
    if isinstance(shape, StructShape):
        if shape.owner.__dataclass_params__.frozen:
            return shape.owner
        for f in shape.fields:
            found = _frozen_owner(f.shape)
            if found is not None:
                return found
    return None
