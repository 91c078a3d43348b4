import re
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Mapping, Optional, Sequence

import numpy as np

from moyenne.catalog import DEFAULT_SCALE, DEFAULT_TD_WEIGHT, Module

MODE_TD_EXAM = "td+exam"
MODE_EXAM_ONLY = "exam-only"
MODE_TD_ONLY = "td-only"
MODE_MISSING = "missing"

MISSING_TEXT = "—"

# plain decimals only: hex ("0x10"), "inf" and "1_0" are rejected
_DECIMAL_RE = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


@dataclass(frozen=True)
class MarkEntry:
    """Raw text of the two inputs of one module row."""

    td: str = ""
    exam: str = ""


@dataclass(frozen=True)
class ComputedMark:
    value: Optional[float]
    mode: str
    valid: bool


@dataclass(frozen=True)
class OverallAverage:
    average: Optional[float]
    coefficient_sum: int
    module_count: int


@dataclass(frozen=True)
class RowView:
    module: Module
    td: str
    exam: str
    computed: ComputedMark
    text: str
    status: str  # "missing", "bad" or "ok"


@dataclass(frozen=True)
class RenderModel:
    rows: List[RowView]
    average: OverallAverage
    average_text: str
    average_meta: str


# ------------------------
# Parsing
# ------------------------
def parse_mark(raw) -> Optional[float]:
    """
    Turn a typed mark into a float, accepting "," as decimal separator.
    Empty or non-numeric input is simply absent (None), never an error.
    """
    if raw is None:
        return None
    text = str(raw).strip().replace(",", ".", 1)
    if not text or not _DECIMAL_RE.fullmatch(text):
        return None
    value = float(text)
    if not np.isfinite(value):
        return None
    return value


def within_scale(value: Optional[float], scale: float) -> bool:
    return value is not None and bool(np.isfinite(value)) and 0 <= value <= scale


# ------------------------
# Core logic
# ------------------------
def round_2dp_half_up(x: float) -> float:
    return float(Decimal(str(x)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def format_mark(x: float) -> str:
    """Two-decimal display value without trailing zeros: 12, 12.5, 12.35."""
    text = f"{round_2dp_half_up(x):.2f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def compute_module_mark(
    entry: MarkEntry,
    td_weight: float = DEFAULT_TD_WEIGHT,
    scale: float = DEFAULT_SCALE,
) -> ComputedMark:
    td = parse_mark(entry.td)
    exam = parse_mark(entry.exam)
    has_td = within_scale(td, scale)
    has_exam = within_scale(exam, scale)

    if has_td and has_exam:
        exam_weight = 100 - td_weight
        mark = (td * td_weight + exam * exam_weight) / 100
        # out of scale only when td_weight is outside [0, 100]
        return ComputedMark(mark, MODE_TD_EXAM, within_scale(mark, scale))

    if has_exam:
        return ComputedMark(exam, MODE_EXAM_ONLY, True)
    if has_td:
        return ComputedMark(td, MODE_TD_ONLY, True)

    return ComputedMark(None, MODE_MISSING, False)


def compute_overall_average(
    modules: Sequence[Module],
    marks: Mapping[str, MarkEntry],
    td_weight: float = DEFAULT_TD_WEIGHT,
    scale: float = DEFAULT_SCALE,
) -> OverallAverage:
    """
    Coefficient-weighted mean over the modules whose mark lies in [0, scale].
    Returns average=None when no module counts.
    """
    values = []
    coefs = []
    for mod in modules:
        result = compute_module_mark(marks.get(mod.id, MarkEntry()), td_weight, scale)
        if result.valid:
            values.append(result.value)
            coefs.append(mod.coef)

    coefficient_sum = int(sum(coefs))
    if coefficient_sum == 0:
        return OverallAverage(None, 0, 0)

    average = float(np.dot(np.asarray(values, dtype=float), np.asarray(coefs, dtype=float)) / coefficient_sum)
    return OverallAverage(average, coefficient_sum, len(values))


# ------------------------
# Render model
# ------------------------
def build_render_model(
    state: Mapping[str, MarkEntry],
    modules: Sequence[Module],
    td_weight: float = DEFAULT_TD_WEIGHT,
    scale: float = DEFAULT_SCALE,
) -> RenderModel:
    rows: List[RowView] = []
    scale_text = format_mark(scale)

    for mod in modules:
        entry = state.get(mod.id, MarkEntry())
        computed = compute_module_mark(entry, td_weight, scale)
        if computed.value is None:
            text, status = MISSING_TEXT, "missing"
        else:
            text = f"{format_mark(computed.value)} / {scale_text}"
            status = "ok" if computed.valid else "bad"
        rows.append(RowView(mod, entry.td, entry.exam, computed, text, status))

    overall = compute_overall_average(modules, state, td_weight, scale)
    if overall.average is None:
        average_text = MISSING_TEXT
        average_meta = "Fill at least one module."
    else:
        average_text = f"{format_mark(overall.average)} / {scale_text}"
        average_meta = f"Calculated from {overall.module_count} module(s)."

    return RenderModel(rows, overall, average_text, average_meta)

