from __future__ import annotations

from collections.abc import Iterable, Sequence
from concurrent.futures import Executor
from dataclasses import dataclass

from ..models.analysis import ColumnInfo, ColumnType
from ..models.cell import Cell
from .parallel import split_apply_combine

"""Column statistics (null count / distinct renderings / lexicographic min-max).

ColumnStats.merge is associative and commutative with EMPTY_STATS as the
identity, so any chunking of a column folds to the same result.

min/max compare the textual renderings, also for numeric and date columns
("100" < "99"). Kept as-is because the analysis consumer sees these values.
"""

__all__ = [
    "ColumnStats",
    "EMPTY_STATS",
    "merge_min_max",
    "fold_values",
    "compute_column_stats",
    "sample_values",
    "summarize_column",
]

SAMPLE_VALUES = 3
DEFAULT_CHUNK_SIZE = 256


def _pick(a: str | None, b: str | None, smaller: bool) -> str | None:
    # None は吸収的単位元 (片方のみ値がある場合はその値)
    if a is None:
        return b
    if b is None:
        return a
    if smaller:
        return a if a <= b else b
    return a if a >= b else b


def merge_min_max(
    a: tuple[str | None, str | None], b: tuple[str | None, str | None]
) -> tuple[str | None, str | None]:
    return _pick(a[0], b[0], smaller=True), _pick(a[1], b[1], smaller=False)


@dataclass(frozen=True)
class ColumnStats:
    null_count: int = 0
    distinct: frozenset[str] = frozenset()
    min_value: str | None = None
    max_value: str | None = None
    value_count: int = 0

    @property
    def unique_count(self) -> int:
        return len(self.distinct)

    @property
    def has_duplicates(self) -> bool:
        return self.unique_count < self.value_count - self.null_count

    def merge(self, other: ColumnStats) -> ColumnStats:
        lo, hi = merge_min_max((self.min_value, self.max_value), (other.min_value, other.max_value))
        return ColumnStats(
            null_count=self.null_count + other.null_count,
            distinct=self.distinct | other.distinct,
            min_value=lo,
            max_value=hi,
            value_count=self.value_count + other.value_count,
        )


EMPTY_STATS = ColumnStats()


def fold_values(values: Iterable[Cell]) -> ColumnStats:
    """Sequential fold over one chunk."""
    nulls = 0
    count = 0
    seen: set[str] = set()
    lo: str | None = None
    hi: str | None = None
    for cell in values:
        count += 1
        if cell.is_empty:
            nulls += 1
            continue
        text = cell.text()
        seen.add(text)
        if lo is None or text < lo:
            lo = text
        if hi is None or text > hi:
            hi = text
    return ColumnStats(nulls, frozenset(seen), lo, hi, count)


def _merge(a: ColumnStats, b: ColumnStats) -> ColumnStats:
    return a.merge(b)


def compute_column_stats(
    values: Sequence[Cell],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    executor: Executor | None = None,
) -> ColumnStats:
    return split_apply_combine(values, fold_values, _merge, EMPTY_STATS, chunk_size, executor)


def sample_values(values: Sequence[Cell], limit: int = SAMPLE_VALUES) -> tuple[str, ...]:
    """First ``limit`` renderings in order; empty cells render as ""."""
    return tuple(cell.text() for cell in values[:limit])


def summarize_column(
    name: str,
    values: Sequence[Cell],
    data_type: ColumnType,
    *,
    sample_limit: int = SAMPLE_VALUES,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    executor: Executor | None = None,
) -> ColumnInfo:
    stats = compute_column_stats(values, chunk_size, executor)
    return ColumnInfo(
        name=name,
        data_type=data_type,
        sample_values=sample_values(values, sample_limit),
        null_count=stats.null_count,
        unique_count=stats.unique_count,
        min_value=stats.min_value,
        max_value=stats.max_value,
        has_duplicates=stats.has_duplicates,
    )
