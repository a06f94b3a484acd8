"""Conversion between live values and document leaves.

``extract`` reads every supported leaf of a plan from a live instance.
``inject`` overlays document leaves onto a live instance; leaves missing from
the document keep their current value. Leaves that cannot be converted are
skipped with a warning, never failing the whole item.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Tuple

from .errors import UnsupportedShapeError
from .schema import MappingPlan, PlanLeaf, ScalarKind, ScalarShape

logger = logging.getLogger(__name__)

Path = Tuple[str, ...]

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_MISSING = object()


def to_document(value: Any, shape: ScalarShape) -> Any:
    """Convert a native scalar to its document representation."""
    kind = shape.kind
    if kind is ScalarKind.ENUM:
        if not isinstance(value, shape.py_type):
            raise UnsupportedShapeError(f"expected {shape.py_type.__name__} member, got {value!r}")
        return value.name
    if kind is ScalarKind.BOOL:
        if not isinstance(value, bool):
            raise UnsupportedShapeError(f"expected bool, got {value!r}")
        return value
    if kind is ScalarKind.INT:
        if isinstance(value, bool) or not isinstance(value, int):
            raise UnsupportedShapeError(f"expected int, got {value!r}")
        if not INT64_MIN <= value <= INT64_MAX:
            raise UnsupportedShapeError(f"integer value too large: {value}")
        return int(value)
    if kind is ScalarKind.FLOAT:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise UnsupportedShapeError(f"expected float, got {value!r}")
        return float(value)
    if not isinstance(value, str):
        raise UnsupportedShapeError(f"expected str, got {value!r}")
    return value


def from_document(raw: Any, shape: ScalarShape) -> Any:
    """Convert a document leaf back to the native scalar kind of ``shape``."""
    kind = shape.kind
    if kind is ScalarKind.ENUM:
        if not isinstance(raw, str):
            raise UnsupportedShapeError(f"expected member name, got {raw!r}")
        try:
            return shape.py_type[raw]
        except KeyError as exc:
            raise UnsupportedShapeError(f"{raw!r} is not a member of {shape.py_type.__name__}") from exc
    if kind is ScalarKind.BOOL:
        if not isinstance(raw, bool):
            raise UnsupportedShapeError(f"expected bool, got {raw!r}")
        return raw
    if kind is ScalarKind.INT:
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise UnsupportedShapeError(f"expected integer, got {raw!r}")
        return raw
    if kind is ScalarKind.FLOAT:
        # TOML writes 1.0 as a float, but hand-edited files may contain 1
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise UnsupportedShapeError(f"expected float, got {raw!r}")
        return float(raw)
    if not isinstance(raw, str):
        raise UnsupportedShapeError(f"expected string, got {raw!r}")
    return raw


def _read_attr(instance: Any, attrs: Tuple[str, ...]) -> Any:
    value = instance
    for name in attrs:
        value = getattr(value, name)
    return value


def _warn_skipped(owner: str, leaf: PlanLeaf, reason: object) -> None:
    logger.warning("Preferences: skipping %s (%s): %s", leaf.dotted, owner, reason)


def extract(instance: Any, plan: MappingPlan, owner: str = "item") -> Dict[Path, Any]:
    """Read all supported leaves of ``plan`` from ``instance``."""
    out: Dict[Path, Any] = {}
    for leaf in plan.leaves:
        if not isinstance(leaf.shape, ScalarShape):
            _warn_skipped(owner, leaf, leaf.shape.reason)
            continue
        try:
            out[leaf.path] = to_document(_read_attr(instance, leaf.attrs), leaf.shape)
        except UnsupportedShapeError as exc:
            _warn_skipped(owner, leaf, exc)
    return out


def lookup(document: Mapping[str, Any], path: Path) -> Any:
    """Return the value at ``path`` or a sentinel when any segment is absent."""
    node: Any = document
    for segment in path:
        if not isinstance(node, Mapping) or segment not in node:
            return _MISSING
        node = node[segment]
    return node


def inject(document: Mapping[str, Any], plan: MappingPlan, target: Any, owner: str = "item") -> Any:
    """Overlay the document's leaves onto ``target`` and return the result.

    Attributes are set in place. When the plan's only leaf is the target
    itself (an Enum state), the converted value is returned instead.
    """
    for leaf in plan.leaves:
        raw = lookup(document, leaf.path)
        if raw is _MISSING:
            continue
        if not isinstance(leaf.shape, ScalarShape):
            _warn_skipped(owner, leaf, leaf.shape.reason)
            continue
        try:
            value = from_document(raw, leaf.shape)
        except UnsupportedShapeError as exc:
            _warn_skipped(owner, leaf, exc)
            continue
        if not leaf.attrs:
            target = value
            continue
        parent = _read_attr(target, leaf.attrs[:-1])
        setattr(parent, leaf.attrs[-1], value)
    return target
