from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime

import numpy as np
import pandas as pd

from ..errors import EmptyAfterCleaning, SchemaBuildFailure
from ..excel.headers import normalize_column_names
from ..models.analysis import ColumnType
from ..models.cell import EMPTY_CELL, Cell, CellKind
from .inference import (
    DEFAULT_SAMPLE_SIZE,
    infer_column_type,
    meets_threshold,
    parse_date_string,
    parse_numeric_string,
)

"""Typed frame construction and cleaning.

Two passes:
1. build: per column coercion driven by infer_column_type
   - numeric -> float64 (NaN for non-numeric cells)
   - date    -> Int64 epoch seconds (<NA> for non-date cells)
   - other   -> text renderings (object)
2. after cleaning, text columns whose values are mostly date strings are
   re-detected and recast to datetime64[ns]. Cleaning changes which rows the
   sampler sees, so detection runs again on the cleaned frame.
"""

__all__ = [
    "epoch_seconds",
    "build_frame",
    "clean_frame",
    "detect_date_columns",
    "normalize_date_columns",
    "prepare_frame",
]

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1)
_US_PER_SECOND = 1_000_000


def epoch_seconds(value: datetime) -> int:
    """Seconds since 1970-01-01T00:00:00 UTC, truncated toward zero.

    Naive datetimes are taken as UTC. Integer arithmetic on microseconds
    keeps the conversion exact.
    """
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    delta = value - _EPOCH
    total_us = (delta.days * 86400 + delta.seconds) * _US_PER_SECOND + delta.microseconds
    seconds, remainder = divmod(total_us, _US_PER_SECOND)
    if seconds < 0 and remainder:
        # divmod は床除算なのでゼロ方向へ補正
        seconds += 1
    return seconds


def _numeric_value(cell: Cell) -> float:
    kind = cell.kind
    if kind is CellKind.INTEGER or kind is CellKind.FLOAT:
        return float(cell.value)
    if kind is CellKind.TEXT:
        parsed = parse_numeric_string(cell.value)
        if parsed is not None:
            return parsed
    return np.nan


def _date_value(cell: Cell) -> int | None:
    kind = cell.kind
    if kind is CellKind.DATETIME:
        return epoch_seconds(cell.value)
    if kind is CellKind.TEXT:
        parsed = parse_date_string(cell.value)
        if parsed is not None:
            return epoch_seconds(parsed)
    return None


def build_frame(
    rows: Sequence[Sequence[Cell]],
    headers: Sequence[str],
    sample_size: int = DEFAULT_SAMPLE_SIZE,
) -> pd.DataFrame:
    """Build a typed frame from a grid whose first row is the header row.

    Raises:
        SchemaBuildFailure: no rows or no headers
    """
    if not rows or not headers:
        raise SchemaBuildFailure("Empty data or headers")

    data = rows[1:]
    columns: dict[str, pd.Series] = {}
    for idx, header in enumerate(headers):
        values = [row[idx] if idx < len(row) else EMPTY_CELL for row in data]
        data_type = infer_column_type(values, sample_size)
        if data_type is ColumnType.NUMERIC:
            series = pd.Series([_numeric_value(c) for c in values], dtype="float64")
        elif data_type is ColumnType.DATE:
            series = pd.Series(pd.array([_date_value(c) for c in values], dtype="Int64"))
        else:
            series = pd.Series([c.text() for c in values], dtype=object)
        columns[header] = series
    try:
        return pd.DataFrame(columns)
    except ValueError as e:
        raise SchemaBuildFailure(f"Failed to create DataFrame: {e}") from e


def _is_text(series: pd.Series) -> bool:
    # object 列と pandas の文字列 dtype ("str" / "string") の両方
    return series.dtype == object or isinstance(series.dtype, pd.StringDtype)


def _empty_mask(series: pd.Series) -> pd.Series:
    mask = series.isna()
    if _is_text(series):
        mask = mask | series.map(lambda v: isinstance(v, str) and v == "")
    return mask


def clean_frame(frame: pd.DataFrame) -> pd.DataFrame | None:
    """Drop all-empty rows then all-empty columns; None when nothing remains."""
    if frame.shape[0] == 0 or frame.shape[1] == 0:
        return None
    empty = pd.DataFrame({name: _empty_mask(frame[name]) for name in frame.columns})
    kept = frame.loc[~empty.all(axis=1)]
    kept_empty = empty.loc[kept.index]
    kept = kept.loc[:, ~kept_empty.all(axis=0)]
    if kept.shape[0] == 0 or kept.shape[1] == 0:
        return None
    return kept.reset_index(drop=True)


def detect_date_columns(frame: pd.DataFrame, sample_size: int = DEFAULT_SAMPLE_SIZE) -> list[str]:
    detected: list[str] = []
    for name in frame.columns:
        series = frame[name]
        if not _is_text(series):
            continue
        sample = [v for v in series if isinstance(v, str) and v.strip() != ""][:sample_size]
        hits = sum(1 for v in sample if parse_date_string(v) is not None)
        if meets_threshold(hits, len(sample)):
            detected.append(name)
    return detected


def _to_timestamp(value: object) -> datetime | None:
    if not isinstance(value, str):
        return None
    parsed = parse_date_string(value)
    # datetime64[ns] の表現範囲外は NaT
    if parsed is None or not (pd.Timestamp.min <= parsed <= pd.Timestamp.max):
        return None
    return parsed


def normalize_date_columns(frame: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    if not columns:
        return frame
    frame = frame.copy()
    for name in columns:
        parsed = [_to_timestamp(v) for v in frame[name]]
        frame[name] = pd.Series(
            pd.to_datetime(parsed, errors="coerce"), index=frame.index
        ).astype("datetime64[ns]")
    return frame


def prepare_frame(
    rows: Sequence[Sequence[Cell]], sample_size: int = DEFAULT_SAMPLE_SIZE
) -> pd.DataFrame:
    """headers -> build -> clean -> re-detect dates -> normalize.

    Raises:
        SchemaBuildFailure: no rows / headers
        EmptyAfterCleaning: zero rows or columns after cleaning
    """
    headers = normalize_column_names(cell.text() for cell in rows[0]) if rows else []
    frame = build_frame(rows, headers, sample_size)
    cleaned = clean_frame(frame)
    if cleaned is None:
        raise EmptyAfterCleaning("DataFrame is empty after cleaning")
    date_columns = detect_date_columns(cleaned, sample_size)
    if date_columns:
        logger.debug("date columns detected after cleaning: %s", date_columns)
    return normalize_date_columns(cleaned, date_columns)
