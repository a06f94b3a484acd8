"""Preference mapping and persistence engine.

This package provides:
- Registration of annotated dataclasses and Enum states as preferences
- Mapping of their fields into a grouped TOML document, eliding wrappers
- A debounced save scheduler driven by the host's tick
- Crash-safe atomic writes and a tolerant bootstrap loader
"""

from .config import PreferencesConfig
from .document import PreferencesDocument, merge_documents
from .engine import Preferences
from .errors import (
    PreferencesError,
    PreferencesIOError,
    PreferencesParseError,
    RegistrationConflict,
    RegistrationError,
    ResolutionError,
    UnsupportedShapeError,
)
from .host import ResourceTable, StateSlot
from .registry import PreferenceItem, Role
from .scheduler import (
    ChangeScheduler,
    Idle,
    MarkChanged,
    PendingSave,
    SaveMode,
    SavePreferences,
    Saving,
)
from .schema import pref_field, preference

__all__ = [
    "ChangeScheduler",
    "Idle",
    "MarkChanged",
    "PendingSave",
    "PreferenceItem",
    "Preferences",
    "PreferencesConfig",
    "PreferencesDocument",
    "PreferencesError",
    "PreferencesIOError",
    "PreferencesParseError",
    "RegistrationConflict",
    "RegistrationError",
    "ResolutionError",
    "ResourceTable",
    "Role",
    "SaveMode",
    "SavePreferences",
    "Saving",
    "StateSlot",
    "UnsupportedShapeError",
    "merge_documents",
    "pref_field",
    "preference",
]
