from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from . import bridge
from .document import PreferencesDocument
from .errors import PreferencesIOError, PreferencesParseError
from .host import ResourceTable
from .registry import PreferenceItem, Role
from .storage import read_bytes

logger = logging.getLogger(__name__)


def read_document(path: Path) -> Optional[PreferencesDocument]:
    """Read and parse the preferences file.

    Returns None when the file is missing, unreadable or not valid TOML; a
    broken preferences file never prevents startup.
    """
    try:
        raw = read_bytes(path)
    except PreferencesIOError:
        logger.exception("Failed to read preferences; using defaults")
        return None
    if raw is None:
        logger.debug("No preferences file at %s", path)
        return None
    try:
        return PreferencesDocument.decode(raw)
    except PreferencesParseError as exc:
        logger.error("Discarding preferences file %s: %s", path, exc)
        return None


def apply_document(document: PreferencesDocument, items: Iterable[PreferenceItem],
                   host: ResourceTable) -> None:
    """Inject each item's portion of ``document`` into the host."""
    for item in items:
        if item.role is Role.STATE_PAIR:
            slot = host.state(item.identity)
            if slot is None:
                logger.warning("Preferences: state %s is not initialized; skipped", item.name)
                continue
            requested = bridge.inject(document, item.plan, slot.current, owner=item.name)
            if requested is not slot.current:
                slot.request(requested)
            continue

        resource = host.get(item.identity)
        if resource is None:
            logger.warning("Preferences: resource %s is not present; skipped", item.name)
            continue
        bridge.inject(document, item.plan, resource, owner=item.name)


def load_preferences(path: Path, items: Iterable[PreferenceItem],
                     host: ResourceTable) -> Optional[PreferencesDocument]:
    """Populate registered items from the file at ``path``, if any.

    Must run before application logic that reads those values.
    """
    document = read_document(path)
    if document is None:
        return None
    apply_document(document, items, host)
    logger.info("Preferences loaded from %s", path)
    return document
