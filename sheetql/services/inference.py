from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import datetime
from enum import Enum

from ..models.analysis import ColumnType
from ..models.cell import Cell, CellKind

"""Column type inference.

Only the first ``sample_size`` values of a column are examined. This keeps
analysis cost bounded, at the price of misclassifying a column whose value
distribution changes after the sampled prefix.

Every non-empty cell is counted in exactly one category, in the order
numeric -> date -> boolean -> other. A category wins when it covers at least
80% of the non-empty sampled cells (checked in the same order).
"""

__all__ = [
    "CellCategory",
    "DEFAULT_SAMPLE_SIZE",
    "parse_date_string",
    "is_date_string",
    "parse_numeric_string",
    "classify_cell",
    "meets_threshold",
    "infer_column_type",
]

DEFAULT_SAMPLE_SIZE = 100

_TIME_SUFFIX = r"(?:[ T](?P<H>\d{1,2}):(?P<M>\d{2})(?::(?P<S>\d{2}))?)?"
# (pattern, 年/月/日 のグループ順)
_DATE_PATTERNS = [
    re.compile(r"^(?P<Y>\d{4})-(?P<m>\d{1,2})-(?P<d>\d{1,2})" + _TIME_SUFFIX + r"$"),
    re.compile(r"^(?P<d>\d{1,2})/(?P<m>\d{1,2})/(?P<Y>\d{4})" + _TIME_SUFFIX + r"$"),
    re.compile(r"^(?P<Y>\d{4})/(?P<m>\d{1,2})/(?P<d>\d{1,2})" + _TIME_SUFFIX + r"$"),
    re.compile(r"^(?P<d>\d{1,2})-(?P<m>\d{1,2})-(?P<Y>\d{4})" + _TIME_SUFFIX + r"$"),
]
_NUMERIC = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
_BOOLEAN_TEXT = frozenset({"true", "false"})


class CellCategory(Enum):
    EMPTY = "empty"
    NUMERIC = "numeric"
    DATE = "date"
    BOOLEAN = "boolean"
    OTHER = "other"


def parse_date_string(text: str) -> datetime | None:
    """Parse ``text`` against the fixed date pattern set.

    Returns None unless the text matches a pattern AND names a real calendar
    date/time (e.g. "2024-02-30" is rejected).
    """
    s = text.strip()
    for pattern in _DATE_PATTERNS:
        m = pattern.match(s)
        if m is None:
            continue
        try:
            return datetime(
                int(m.group("Y")),
                int(m.group("m")),
                int(m.group("d")),
                int(m.group("H") or 0),
                int(m.group("M") or 0),
                int(m.group("S") or 0),
            )
        except ValueError:
            # パターン一致だが暦として不正 -> 他パターンも試す
            continue
    return None


def is_date_string(text: str) -> bool:
    return parse_date_string(text) is not None


def parse_numeric_string(text: str) -> float | None:
    s = text.strip()
    if not _NUMERIC.match(s):
        return None
    return float(s)


def classify_cell(cell: Cell) -> CellCategory:
    kind = cell.kind
    if kind is CellKind.EMPTY:
        return CellCategory.EMPTY
    if kind is CellKind.INTEGER or kind is CellKind.FLOAT:
        return CellCategory.NUMERIC
    if kind is CellKind.DATETIME:
        return CellCategory.DATE
    if kind is CellKind.BOOLEAN:
        return CellCategory.BOOLEAN
    if kind is CellKind.TEXT:
        text = cell.value
        if parse_numeric_string(text) is not None:
            return CellCategory.NUMERIC
        if is_date_string(text):
            return CellCategory.DATE
        if text.strip().lower() in _BOOLEAN_TEXT:
            return CellCategory.BOOLEAN
        return CellCategory.OTHER
    raise ValueError(f"unknown cell kind: {kind!r}")


def meets_threshold(count: int, total: int) -> bool:
    """count >= 80% of total, in integer arithmetic (no float rounding at the cut)."""
    return total > 0 and 5 * count >= 4 * total


def infer_column_type(values: Sequence[Cell], sample_size: int = DEFAULT_SAMPLE_SIZE) -> ColumnType:
    counts = {category: 0 for category in CellCategory}
    for cell in values[:sample_size]:
        counts[classify_cell(cell)] += 1

    total = sum(counts.values()) - counts[CellCategory.EMPTY]
    if total == 0:
        return ColumnType.EMPTY
    if meets_threshold(counts[CellCategory.NUMERIC], total):
        return ColumnType.NUMERIC
    if meets_threshold(counts[CellCategory.DATE], total):
        return ColumnType.DATE
    if meets_threshold(counts[CellCategory.BOOLEAN], total):
        return ColumnType.BOOLEAN
    return ColumnType.STRING
