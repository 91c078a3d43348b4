import sys
from pathlib import Path

import pytest

# Add the project root to sys.path so tests and app.py can import moyenne
ROOT = Path(__file__).resolve().parent.parent
if ROOT.as_posix() not in sys.path:
    sys.path.insert(0, ROOT.as_posix())

from moyenne.store import StateStore  # noqa: E402


@pytest.fixture
def store(tmp_path: Path) -> StateStore:
    """Store writing to a throwaway directory."""
    return StateStore.for_key(directory=tmp_path)


@pytest.fixture
def moyenne_home(tmp_path: Path, monkeypatch) -> Path:
    """Point MOYENNE_HOME at tmp_path for code that builds its own store."""
    monkeypatch.setenv("MOYENNE_HOME", tmp_path.as_posix())
    return tmp_path
