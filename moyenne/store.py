import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Dict, Mapping, Optional

from moyenne.backend_logic import MarkEntry
from moyenne.catalog import STORAGE_KEY, data_dir

logger = logging.getLogger(__name__)

MARK_KINDS = ("td", "exam")

PersistedState = Dict[str, MarkEntry]


# ------------------------
# JSON decode / encode
# ------------------------
def _as_text(value) -> str:
    return value if isinstance(value, str) else ""


def decode_state(raw) -> PersistedState:
    """
    Strict optional-field decode of {"marks": {id: {"td": str, "exam": str}}}.
    Anything of the wrong shape is dropped rather than raised.
    """
    if not isinstance(raw, dict):
        return {}
    marks = raw.get("marks")
    if not isinstance(marks, dict):
        return {}

    state: PersistedState = {}
    for module_id, fields in marks.items():
        if not isinstance(fields, dict):
            continue
        state[str(module_id)] = MarkEntry(td=_as_text(fields.get("td")), exam=_as_text(fields.get("exam")))
    return state


def encode_state(state: Mapping[str, MarkEntry]) -> dict:
    return {"marks": {module_id: {"td": e.td, "exam": e.exam} for module_id, e in state.items()}}


def update_mark(state: Mapping[str, MarkEntry], module_id: str, kind: str, raw: str) -> PersistedState:
    """Copy of `state` with one input of one module replaced."""
    if kind not in MARK_KINDS:
        raise ValueError(f"kind must be one of {MARK_KINDS} (got {kind!r})")
    updated = dict(state)
    entry = updated.get(module_id, MarkEntry())
    updated[module_id] = replace(entry, **{kind: raw if raw is not None else ""})
    return updated


# ------------------------
# Storage slot
# ------------------------
def slot_filename(key: str) -> str:
    return key.replace(":", "-").replace("/", "-") + ".json"


class StateStore:
    """One namespaced JSON slot on disk holding every mark the user typed."""

    def __init__(self, path: Path):
        self.path = Path(path)

    @classmethod
    def for_key(cls, key: str = STORAGE_KEY, directory: Optional[Path] = None) -> "StateStore":
        directory = Path(directory) if directory is not None else data_dir()
        return cls(directory / slot_filename(key))

    def load(self) -> PersistedState:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable state at {self.path}: {e}")
            return {}
        state = decode_state(raw)
        if not state and raw not in ({}, {"marks": {}}):
            logger.warning(f"Ignoring malformed state at {self.path}")
        return state

    def save(self, state: Mapping[str, MarkEntry]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(encode_state(state)), encoding="utf-8")
        logger.debug(f"Saved {len(state)} module(s) to {self.path}")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
        logger.info(f"Cleared state at {self.path}")
