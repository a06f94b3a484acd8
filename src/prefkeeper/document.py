from __future__ import annotations

import logging
import tomllib
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple

import tomli_w

from .errors import PreferencesParseError, RegistrationConflict

logger = logging.getLogger(__name__)

Path = Tuple[str, ...]


class PreferencesDocument(Mapping[str, Any]):
    """Tree of TOML tables (group -> key -> value) holding scalar leaves.

    Each path names at most one leaf or one table. Documents are rebuilt for
    every save; ``insert`` is the only mutation and refuses to overwrite a
    leaf claimed by a different owner.
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = data if data is not None else {}
        self._owners: Dict[Path, str] = {}

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"PreferencesDocument({self._data!r})"

    def insert(self, path: Path, value: Any, owner: str) -> None:
        table = self._data
        for depth, segment in enumerate(path[:-1], start=1):
            node = table.setdefault(segment, {})
            if not isinstance(node, dict):
                raise RegistrationConflict(path[:depth], self._owners.get(path[:depth], "?"), owner)
            table = node
        leaf = path[-1]
        previous = self._owners.get(path)
        if isinstance(table.get(leaf), dict) or (previous is not None and previous != owner):
            raise RegistrationConflict(path, previous or "?", owner)
        table[leaf] = value
        self._owners[path] = owner

    def get_path(self, path: Path, default: Any = None) -> Any:
        node: Any = self._data
        for segment in path:
            if not isinstance(node, dict) or segment not in node:
                return default
            node = node[segment]
        return node

    def to_dict(self) -> Dict[str, Any]:
        return self._data

    def dumps(self) -> str:
        return tomli_w.dumps(self._data)

    def encode(self) -> bytes:
        return self.dumps().encode("utf-8")

    @classmethod
    def loads(cls, text: str) -> "PreferencesDocument":
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise PreferencesParseError(f"Invalid preferences TOML: {exc}") from exc
        return cls(data)

    @classmethod
    def decode(cls, raw: bytes) -> "PreferencesDocument":
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise PreferencesParseError(f"Preferences file is not UTF-8: {exc}") from exc
        return cls.loads(text)


def merge_documents(fragments: Iterable[Tuple[str, Mapping[Path, Any]]]) -> PreferencesDocument:
    """Assemble one document from per-item ``(owner, {path: value})`` fragments."""
    document = PreferencesDocument()
    for owner, leaves in fragments:
        for path, value in leaves.items():
            document.insert(path, value, owner)
    return document
