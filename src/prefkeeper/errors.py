class PreferencesError(Exception):
    """Base exception for preference mapping and persistence errors."""


class RegistrationError(PreferencesError):
    """Raised when an item cannot be registered (programmer error, fatal at setup)."""


class ResolutionError(RegistrationError):
    """Raised when a leaf of an item's shape has no resolvable key."""


class RegistrationConflict(RegistrationError):
    """Raised when two items map to the same document path."""

    def __init__(self, path: tuple[str, ...], first: str, second: str) -> None:
        self.path = path
        self.first = first
        self.second = second
        super().__init__(
            f"Preference path '{'.'.join(path)}' is claimed by both {first} and {second}"
        )


class UnsupportedShapeError(PreferencesError):
    """Raised when a value shape has no mapping to a document leaf."""


class PreferencesParseError(PreferencesError):
    """Raised when the preferences file is not a valid TOML document."""


class PreferencesIOError(PreferencesError):
    """Raised when creating the directory, writing, or replacing the file fails."""
