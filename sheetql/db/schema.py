from __future__ import annotations

import math
from collections.abc import Iterator, Sequence
from datetime import datetime
from typing import Any

import numpy as np
import pandas as pd
from pandas.api import types as ptypes

from ..services.frame_builder import epoch_seconds

"""DDL / DML derivation and value conversion for the SQLite store.

Column SQL types:
- bool / integer / datetime -> INTEGER (datetime stored as epoch seconds)
- float                     -> REAL
- everything else           -> TEXT
"""

__all__ = [
    "quote_identifier",
    "sql_type_for",
    "create_table_sql",
    "drop_table_sql",
    "insert_sql",
    "to_sql_value",
    "frame_to_rows",
    "render_sql_literal",
]

_NS_PER_SECOND = 1_000_000_000


def quote_identifier(name: str) -> str:
    return '"' + str(name).replace('"', '""') + '"'


def sql_type_for(dtype: Any) -> str:
    if ptypes.is_bool_dtype(dtype):
        return "INTEGER"
    if ptypes.is_integer_dtype(dtype):
        return "INTEGER"
    if ptypes.is_datetime64_any_dtype(dtype):
        return "INTEGER"
    if ptypes.is_float_dtype(dtype):
        return "REAL"
    return "TEXT"


def drop_table_sql(table: str) -> str:
    return f"DROP TABLE IF EXISTS {quote_identifier(table)}"


def create_table_sql(table: str, frame: pd.DataFrame) -> str:
    cols = ", ".join(
        f"{quote_identifier(name)} {sql_type_for(frame[name].dtype)}" for name in frame.columns
    )
    return f"CREATE TABLE {quote_identifier(table)} ({cols})"


def insert_sql(table: str, columns: Sequence[str]) -> str:
    cols_sql = ", ".join(quote_identifier(c) for c in columns)
    placeholders = ", ".join("?" for _ in columns)
    return f"INSERT INTO {quote_identifier(table)} ({cols_sql}) VALUES ({placeholders})"


def _timestamp_seconds(ts: pd.Timestamp) -> int:
    # Timestamp.value は UTC 基準の ns (naive も UTC 扱い)
    seconds, remainder = divmod(ts.value, _NS_PER_SECOND)
    if seconds < 0 and remainder:
        seconds += 1
    return seconds


def to_sql_value(value: Any) -> Any:
    """Convert one frame value into a sqlite3-bindable Python value."""
    if value is None or value is pd.NA or value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        return _timestamp_seconds(value)
    if isinstance(value, datetime):
        return epoch_seconds(value)
    if isinstance(value, np.datetime64):
        if np.isnat(value):
            return None
        return _timestamp_seconds(pd.Timestamp(value))
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def frame_to_rows(frame: pd.DataFrame) -> Iterator[tuple[Any, ...]]:
    for row in frame.itertuples(index=False, name=None):
        yield tuple(to_sql_value(v) for v in row)


def render_sql_literal(value: Any) -> str:
    """SQL-literal style rendering used by the schema description."""
    if value is None:
        return "NULL"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "X'" + bytes(value).hex().upper() + "'"
    if isinstance(value, str):
        return "'" + value.replace("'", "''") + "'"
    return str(value)
