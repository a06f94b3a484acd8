import sys
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def prefs_dir(tmp_path: Path) -> Path:
    return tmp_path / "config" / "prefs-test"


@pytest.fixture(autouse=True)
def _clear_prefkeeper_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("PREFKEEPER_DIR", "PREFKEEPER_FILE", "PREFKEEPER_SAVE_DELAY", "PREFKEEPER_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
