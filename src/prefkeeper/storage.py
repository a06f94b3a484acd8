from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from .errors import PreferencesIOError

logger = logging.getLogger(__name__)


def ensure_dir(path: Path) -> Path:
    """Create ``path`` and its parents if needed."""
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise PreferencesIOError(f"Could not create preferences directory {path}: {exc}") from exc
    return path


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Atomically write bytes to a path using a temporary file and replace.

    The temporary file lives next to the target so the final ``os.replace``
    stays on one filesystem: readers see either the old file or the new one.
    """
    ensure_dir(path.parent)
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".new", dir=path.parent)
    except OSError as exc:
        raise PreferencesIOError(f"Could not create temporary file for {path}: {exc}") from exc
    try:
        try:
            f = os.fdopen(fd, "wb")
        except Exception:
            os.close(fd)
            raise
        with f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except OSError as exc:
        raise PreferencesIOError(f"Could not save preferences file {path}: {exc}") from exc
    finally:
        if os.path.exists(tmp_name):
            try:
                os.remove(tmp_name)
            except OSError:
                logger.debug("Could not remove temp file %s", tmp_name, exc_info=True)


def read_bytes(path: Path) -> Optional[bytes]:
    """Return the whole file, or None when it does not exist."""
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise PreferencesIOError(f"Could not read preferences file {path}: {exc}") from exc
