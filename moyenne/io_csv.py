import logging
from typing import Dict, Mapping, Sequence, Tuple

import numpy as np
import pandas as pd

from moyenne.backend_logic import MarkEntry, compute_module_mark
from moyenne.catalog import DEFAULT_SCALE, DEFAULT_TD_WEIGHT, Module
from moyenne.store import MARK_KINDS, PersistedState, update_mark

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ["Module", "Short", "Coefficient", "TD", "Exam", "Mark", "Mode"]

# {module_id: {kind: raw}} for the mark columns an upload actually has
MarkUpdates = Dict[str, Dict[str, str]]

# ------------------------
# CSV helpers (UI-side)
# ------------------------

def marks_to_frame(
    modules: Sequence[Module],
    state: Mapping[str, MarkEntry],
    td_weight: float = DEFAULT_TD_WEIGHT,
    scale: float = DEFAULT_SCALE,
) -> pd.DataFrame:
    rows = []
    for mod in modules:
        entry = state.get(mod.id, MarkEntry())
        result = compute_module_mark(entry, td_weight, scale)
        rows.append(
            {
                "Module": mod.id,
                "Short": mod.short or "",
                "Coefficient": mod.coef,
                "TD": entry.td,
                "Exam": entry.exam,
                "Mark": result.value if result.value is not None else np.nan,
                "Mode": result.mode,
            }
        )
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def _normalise_cols(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = [str(c).strip().lower() for c in df.columns]
    # allow "module_id" / "id" for the module column
    for alias in ("module_id", "id"):
        if alias in df.columns and "module" not in df.columns:
            df = df.rename(columns={alias: "module"})
    return df


def read_csv_upload(uploaded_file) -> pd.DataFrame:
    # keep "12,5" and leading zeros as typed
    df = pd.read_csv(uploaded_file, dtype=str, keep_default_na=False)
    return _normalise_cols(df)


def validate_marks_csv(df: pd.DataFrame) -> pd.DataFrame:
    if "module" not in df.columns:
        raise ValueError("Missing columns: ['module']. Expected: Module, TD, Exam.")
    if "td" not in df.columns and "exam" not in df.columns:
        raise ValueError("Missing columns: ['exam', 'td']. Expected: Module, TD, Exam.")
    # absent mark columns stay absent so they never overwrite stored marks
    return df[["module"] + [k for k in MARK_KINDS if k in df.columns]].copy()


def _cell_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        return "" if np.isnan(value) else f"{value:g}"
    if isinstance(value, (int, np.integer)):
        return str(int(value))
    return str(value).strip()


def parse_marks(df: pd.DataFrame, modules: Sequence[Module]) -> MarkUpdates:
    """
    Match each row to a catalog module by id or display name (case-insensitive)
    and return {module_id: {kind: raw}} for the mark columns present in `df`.
    Rows naming an unknown module are skipped.
    """
    lookup = {}
    for mod in modules:
        lookup[mod.id.lower()] = mod.id
        lookup[mod.name.lower()] = mod.id
    kinds = [k for k in MARK_KINDS if k in df.columns]

    updates: MarkUpdates = {}
    for _, row in df.iterrows():
        key = _cell_text(row.get("module")).lower()
        module_id = lookup.get(key)
        if module_id is None:
            logger.info(f"Skipping CSV row for unknown module {key!r}")
            continue
        updates[module_id] = {kind: _cell_text(row.get(kind)) for kind in kinds}
    return updates


def merge_marks(state: Mapping[str, MarkEntry], updates: MarkUpdates) -> PersistedState:
    merged = dict(state)
    for module_id, fields in updates.items():
        for kind, raw in fields.items():
            merged = update_mark(merged, module_id, kind, raw)
    return merged


def import_marks_csv(
    uploaded_file,
    state: Mapping[str, MarkEntry],
    modules: Sequence[Module],
) -> Tuple[PersistedState, MarkUpdates]:
    """
    Read an uploaded marks CSV and merge it field by field into `state`.
    Returns (merged state, applied updates); raises ValueError on a bad file.
    """
    updates = parse_marks(validate_marks_csv(read_csv_upload(uploaded_file)), modules)
    logger.info(f"Imported marks for {len(updates)} module(s)")
    return merge_marks(state, updates), updates
