"""Shape descriptors and mapping plans.

A registered type is described once, at registration time, by a closed set of
shape variants:

- ``ScalarShape``: bool, int, float, str or an Enum (stored by member name)
- ``WrapperShape``: a dataclass with a single field and no key on that field;
  it is elided from the document and its field is promoted in its place
- ``StructShape``: a dataclass with several fields, one document key per field
- ``UnsupportedShape``: anything else (lists, optionals, dicts, ...)

``build_plan`` walks a shape depth-first and produces a ``MappingPlan``: the
list of leaves with their document path and the attribute path used to reach
the value on a live instance. Everything downstream switches over these
variants instead of inspecting Python types again.
"""

from __future__ import annotations

import dataclasses
import typing
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Tuple, TypeVar, Union

from .errors import ResolutionError

GROUP_ATTR = "__preferences_group__"
KEY_ATTR = "__preferences_key__"
KEY_METADATA = "preferences_key"

# group -> key -> sub-key -> value
MAX_PATH_DEPTH = 3

T = TypeVar("T")


def preference(group: Optional[str] = None, key: Optional[str] = None) -> Callable[[type[T]], type[T]]:
    """Class decorator declaring where a type lands in the preferences document.

        @preference(group="zoom", key="level")
        @dataclass
        class ZoomLevel:
            value: float = 0.0
    """

    def decorate(cls: type[T]) -> type[T]:
        if group is not None:
            setattr(cls, GROUP_ATTR, group)
        if key is not None:
            setattr(cls, KEY_ATTR, key)
        return cls

    return decorate


def pref_field(*, key: Optional[str] = None, **kwargs: Any) -> Any:
    """``dataclasses.field`` with an explicit document key for the field."""
    metadata = dict(kwargs.pop("metadata", None) or {})
    if key is not None:
        metadata[KEY_METADATA] = key
    return dataclasses.field(metadata=metadata, **kwargs)


def class_group(cls: Any) -> Optional[str]:
    # Read from the class dict so subclasses do not inherit the annotation
    return vars(cls).get(GROUP_ATTR) if isinstance(cls, type) else None


def class_key(cls: Any) -> Optional[str]:
    return vars(cls).get(KEY_ATTR) if isinstance(cls, type) else None


class ScalarKind(Enum):
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STR = "str"
    ENUM = "enum"


@dataclass(frozen=True)
class ScalarShape:
    kind: ScalarKind
    py_type: type


@dataclass(frozen=True)
class UnsupportedShape:
    type_name: str
    reason: str


@dataclass(frozen=True)
class FieldShape:
    name: str
    key: Optional[str]
    shape: "Shape"


@dataclass(frozen=True)
class WrapperShape:
    owner: type
    field: FieldShape


@dataclass(frozen=True)
class StructShape:
    owner: type
    fields: Tuple[FieldShape, ...]


Shape = Union[ScalarShape, WrapperShape, StructShape, UnsupportedShape]

_SCALARS = {
    bool: ScalarKind.BOOL,
    int: ScalarKind.INT,
    float: ScalarKind.FLOAT,
    str: ScalarKind.STR,
}


def _type_name(tp: Any) -> str:
    return getattr(tp, "__qualname__", None) or repr(tp)


def resolve_shape(tp: Any, _seen: Tuple[type, ...] = ()) -> Shape:
    """Describe ``tp`` as one of the shape variants."""
    kind = _SCALARS.get(tp)
    if kind is not None:
        return ScalarShape(kind, tp)
    if typing.get_origin(tp) is not None:
        return UnsupportedShape(repr(tp), "container and optional types are not supported")
    if isinstance(tp, type) and issubclass(tp, Enum):
        return ScalarShape(ScalarKind.ENUM, tp)
    if isinstance(tp, type) and dataclasses.is_dataclass(tp):
        if tp in _seen:
            return UnsupportedShape(_type_name(tp), "recursive dataclass")
        fields = dataclasses.fields(tp)
        if not fields:
            return UnsupportedShape(_type_name(tp), "dataclass without fields")
        try:
            hints = typing.get_type_hints(tp)
        except NameError as exc:
            raise ResolutionError(f"Cannot resolve field types of {_type_name(tp)}: {exc}") from exc
        described = tuple(
            FieldShape(
                name=f.name,
                key=f.metadata.get(KEY_METADATA),
                shape=resolve_shape(hints.get(f.name, f.type), _seen + (tp,)),
            )
            for f in fields
        )
        if len(described) == 1 and described[0].key is None:
            return WrapperShape(tp, described[0])
        return StructShape(tp, described)
    return UnsupportedShape(_type_name(tp), "no document mapping for this type")


@dataclass(frozen=True)
class PlanLeaf:
    path: Tuple[str, ...]
    attrs: Tuple[str, ...]
    shape: Union[ScalarShape, UnsupportedShape]

    @property
    def supported(self) -> bool:
        return isinstance(self.shape, ScalarShape)

    @property
    def dotted(self) -> str:
        return ".".join(self.path)


@dataclass(frozen=True)
class MappingPlan:
    leaves: Tuple[PlanLeaf, ...]

    def supported_leaves(self) -> Tuple[PlanLeaf, ...]:
        return tuple(leaf for leaf in self.leaves if leaf.supported)

    def paths(self) -> Tuple[Tuple[str, ...], ...]:
        return tuple(leaf.path for leaf in self.leaves)

    @property
    def is_root_scalar(self) -> bool:
        return len(self.leaves) == 1 and not self.leaves[0].attrs


def _check_key(key: str, where: str) -> None:
    if not isinstance(key, str) or not key:
        raise ResolutionError(f"Invalid preferences key {key!r} at {where}")


def build_plan(shape: Shape, *, group: Optional[str] = None, key: Optional[str] = None,
               owner: str = "item") -> MappingPlan:
    """Walk ``shape`` and bind every leaf to a document path.

    ``group`` and ``key`` are the item-level annotations. Nested types inherit
    them until a nested class declares its own key annotation.
    """
    segments: Tuple[str, ...] = ()
    if group is not None:
        _check_key(group, owner)
        segments = (group,)
    if key is not None:
        _check_key(key, owner)
    leaves: list[PlanLeaf] = []
    _walk(shape, segments, key, (), leaves, owner)
    return MappingPlan(tuple(leaves))


def _walk(shape: Shape, segments: Tuple[str, ...], pending_key: Optional[str],
          attrs: Tuple[str, ...], leaves: list[PlanLeaf], owner: str) -> None:
    where = ".".join((owner,) + attrs)
    if isinstance(shape, (ScalarShape, UnsupportedShape)):
        if pending_key is None:
            raise ResolutionError(f"No preferences key resolvable for {where}")
        path = segments + (pending_key,)
        if isinstance(shape, ScalarShape) and len(path) > MAX_PATH_DEPTH:
            shape = UnsupportedShape(
                shape.py_type.__name__, f"nested deeper than {MAX_PATH_DEPTH} document levels"
            )
        leaves.append(PlanLeaf(path, attrs, shape))
        return

    if attrs:
        override = class_key(shape.owner)
        if override is not None:
            _check_key(override, where)
            pending_key = override

    if isinstance(shape, WrapperShape):
        _walk(shape.field.shape, segments, pending_key, attrs + (shape.field.name,), leaves, owner)
        return

    if pending_key is not None:
        segments = segments + (pending_key,)
    for f in shape.fields:
        field_key = f.key if f.key is not None else f.name
        _check_key(field_key, f"{where}.{f.name}")
        _walk(f.shape, segments, field_key, attrs + (f.name,), leaves, owner)
