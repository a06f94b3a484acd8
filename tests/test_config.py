from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from prefkeeper.config import PreferencesConfig


def test_default_directory_is_derived_from_folder_name():
    cfg = PreferencesConfig("my-game")
    assert cfg.preferences_dir.name == "my-game"
    assert cfg.file_path == cfg.preferences_dir / "prefs.toml"
    assert cfg.save_delay == 1.0


def test_explicit_directory(tmp_path: Path):
    cfg = PreferencesConfig("my-game", directory=tmp_path / "prefs", file_name="settings.toml")
    assert cfg.file_path == (tmp_path / "prefs" / "settings.toml").resolve()


def test_invalid_values_rejected():
    with pytest.raises(ValueError):
        PreferencesConfig("")
    with pytest.raises(ValueError):
        PreferencesConfig("game", save_delay=-0.5)


def test_yaml_file_overrides(tmp_path: Path):
    fp = tmp_path / "app.yaml"
    fp.write_text(
        textwrap.dedent(
            f"""
            preferences:
              file_name: user.toml
              save_delay: 0.25
              directory: {tmp_path / "from-yaml"}
            """
        ),
        encoding="utf-8",
    )
    cfg = PreferencesConfig.from_sources("game", file_path=fp, env={})
    assert cfg.file_name == "user.toml"
    assert cfg.save_delay == 0.25
    assert cfg.preferences_dir == (tmp_path / "from-yaml").resolve()


def test_missing_yaml_file_uses_defaults(tmp_path: Path):
    cfg = PreferencesConfig.from_sources("game", file_path=tmp_path / "nope.yaml", env={})
    assert cfg.file_name == "prefs.toml"


def test_env_overrides_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    fp = tmp_path / "app.yaml"
    fp.write_text("save_delay: 3\n", encoding="utf-8")
    monkeypatch.setenv("PREFKEEPER_SAVE_DELAY", "0.5")
    monkeypatch.setenv("PREFKEEPER_DIR", str(tmp_path / "env-dir"))
    cfg = PreferencesConfig.from_sources("game", file_path=fp)
    assert cfg.save_delay == 0.5
    assert cfg.preferences_dir == (tmp_path / "env-dir").resolve()


def test_invalid_env_value_is_ignored():
    cfg = PreferencesConfig.from_sources("game", env={"PREFKEEPER_SAVE_DELAY": "soon"})
    assert cfg.save_delay == 1.0


def test_keyword_overrides_win():
    cfg = PreferencesConfig.from_sources("game", env={"PREFKEEPER_FILE": "a.toml"}, file_name="b.toml")
    assert cfg.file_name == "b.toml"


def test_unknown_keys_rejected(tmp_path: Path):
    fp = tmp_path / "app.yaml"
    fp.write_text("preferences:\n  colour: blue\n", encoding="utf-8")
    with pytest.raises(ValueError):
        PreferencesConfig.from_sources("game", file_path=fp, env={})
