from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from platformdirs import user_config_dir

from .scheduler import DEFAULT_SAVE_DELAY

logger = logging.getLogger(__name__)

DEFAULT_FILE_NAME = "prefs.toml"

# Environment variable overrides (useful for tests and portable installs)
ENV_DIR = "PREFKEEPER_DIR"
ENV_FILE = "PREFKEEPER_FILE"
ENV_SAVE_DELAY = "PREFKEEPER_SAVE_DELAY"


@dataclass(frozen=True)
class PreferencesConfig:
    """Where and how preferences are stored, fixed when the engine is built.

    Attributes:
        folder: Settings folder name; the OS config directory is derived from it.
        file_name: Name of the TOML file inside that directory.
        save_delay: Quiet period in seconds before a change is written.
        directory: Explicit directory, bypassing OS resolution.
    """

    folder: str
    file_name: str = DEFAULT_FILE_NAME
    save_delay: float = DEFAULT_SAVE_DELAY
    directory: Optional[Path] = None
    _resolved_dir: Path = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.folder:
            raise ValueError("Preferences folder name must not be empty")
        if self.save_delay < 0:
            raise ValueError(f"save_delay must be >= 0, got {self.save_delay}")
        if self.directory is not None:
            resolved = Path(self.directory).expanduser().resolve()
        else:
            resolved = Path(user_config_dir(appname=self.folder, appauthor=False))
        object.__setattr__(self, "_resolved_dir", resolved)

    @property
    def preferences_dir(self) -> Path:
        return self._resolved_dir

    @property
    def file_path(self) -> Path:
        return self._resolved_dir / self.file_name

    # ------------------------ Loading & Overrides ------------------------
    @classmethod
    def _deep_merge(cls, base: dict, overlay: dict) -> dict:
        merged = dict(base)
        for k, v in (overlay or {}).items():
            if isinstance(v, dict) and isinstance(base.get(k), dict):
                merged[k] = cls._deep_merge(base[k], v)
            else:
                merged[k] = v
        return merged

    @staticmethod
    def from_yaml_file(path: Path) -> Dict[str, Any]:
        """Read the ``preferences`` section of a YAML file (missing file -> {})."""
        if not path.exists():
            logger.debug("Preferences config file not found: %s", path)
            return {}
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Preferences config {path} must contain a mapping")
        section = data.get("preferences", data)
        if not isinstance(section, dict):
            raise ValueError(f"'preferences' in {path} must be a mapping")
        return section

    @staticmethod
    def from_env(env: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
        env = os.environ if env is None else env
        mapping = {
            ENV_DIR: ("directory", Path),
            ENV_FILE: ("file_name", str),
            ENV_SAVE_DELAY: ("save_delay", float),
        }
        out: Dict[str, Any] = {}
        for env_key, (field_name, caster) in mapping.items():
            if env.get(env_key):
                try:
                    out[field_name] = caster(env[env_key])
                except ValueError as exc:
                    logger.error("Invalid env for %s=%r: %s", env_key, env[env_key], exc)
        return out

    @classmethod
    def from_sources(
        cls,
        folder: str,
        *,
        file_path: Optional[Path | str] = None,
        env: Optional[Mapping[str, str]] = None,
        **overrides: Any,
    ) -> "PreferencesConfig":
        """Build a config from defaults < YAML file < environment < keyword overrides."""
        data: Dict[str, Any] = {"folder": folder}
        if file_path is not None:
            data = cls._deep_merge(data, cls.from_yaml_file(Path(file_path).expanduser()))
        data = cls._deep_merge(data, cls.from_env(env))
        data.update(overrides)
        allowed = {f.name for f in dataclasses.fields(cls) if f.init}
        unknown = set(data) - allowed
        if unknown:
            raise ValueError(f"Unknown preferences config keys: {sorted(unknown)}")
        if data.get("directory") is not None:
            data["directory"] = Path(data["directory"])
        data["save_delay"] = float(data.get("save_delay", DEFAULT_SAVE_DELAY))
        return cls(**data)
