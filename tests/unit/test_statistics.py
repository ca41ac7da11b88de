from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from sheetql.models.analysis import ColumnType
from sheetql.models.cell import Cell
from sheetql.services.statistics import (
    EMPTY_STATS,
    ColumnStats,
    compute_column_stats,
    fold_values,
    merge_min_max,
    sample_values,
    summarize_column,
)


def cells(*values):
    return [Cell.from_value(v) for v in values]


MIXED = cells("pear", None, "apple", 100, 99, "", "apple", 3.0, True, "zebra", None, "3")


def test_fold_values_basic():
    stats = fold_values(cells("b", "a", None, "b"))
    assert stats.null_count == 1
    assert stats.unique_count == 2
    assert stats.min_value == "a"
    assert stats.max_value == "b"
    assert stats.value_count == 4
    assert stats.has_duplicates


def test_min_max_are_lexicographic():
    stats = fold_values(cells(100, 99, 5))
    assert stats.min_value == "100"
    assert stats.max_value == "99"


def test_all_null_column():
    stats = fold_values(cells(None, None))
    assert stats.null_count == 2
    assert stats.unique_count == 0
    assert stats.min_value is None and stats.max_value is None
    assert not stats.has_duplicates


def test_merge_min_max_none_is_identity():
    assert merge_min_max((None, None), ("a", "b")) == ("a", "b")
    assert merge_min_max(("a", "b"), (None, None)) == ("a", "b")
    assert merge_min_max(("b", "c"), ("a", "bb")) == ("a", "c")


def test_merge_is_commutative_and_has_identity():
    a = fold_values(MIXED[:5])
    b = fold_values(MIXED[5:])
    assert a.merge(b) == b.merge(a)
    assert a.merge(EMPTY_STATS) == a
    assert EMPTY_STATS.merge(a) == a


def test_merge_is_associative():
    a, b, c = fold_values(MIXED[:3]), fold_values(MIXED[3:7]), fold_values(MIXED[7:])
    assert a.merge(b).merge(c) == a.merge(b.merge(c))


@pytest.mark.parametrize("chunk_size", range(1, len(MIXED) + 2))
def test_any_chunking_gives_the_whole_column_result(chunk_size):
    whole = fold_values(MIXED)
    assert compute_column_stats(MIXED, chunk_size=chunk_size) == whole
    with ThreadPoolExecutor(max_workers=3) as pool:
        assert compute_column_stats(MIXED, chunk_size=chunk_size, executor=pool) == whole


def test_compute_column_stats_empty_input():
    assert compute_column_stats([], chunk_size=4) == ColumnStats()


def test_sample_values_cap_and_empty_rendering():
    assert sample_values(cells(None, "a", 1, "b", "c")) == ("", "a", "1")
    assert sample_values(cells("only")) == ("only",)
    assert len(sample_values(cells(*range(1000)))) == 3


@pytest.mark.parametrize(
    "values",
    [
        cells(1, 2, 3),
        cells(1, 1, None),
        cells(None, None, None),
        cells("a", "a", "a", "b"),
        MIXED,
    ],
)
def test_has_duplicates_consistency(values):
    info = summarize_column("c", values, ColumnType.STRING)
    total = len(values)
    assert info.has_duplicates == (info.unique_count < total - info.null_count)
    assert info.null_count + info.unique_count <= total
    assert len(info.sample_values) <= 3


def test_summarize_column_fields():
    info = summarize_column("score", cells(10.5, 7, 7, None, 99), ColumnType.NUMERIC, chunk_size=2)
    assert info.name == "score"
    assert info.data_type is ColumnType.NUMERIC
    assert info.sample_values == ("10.5", "7", "7")
    assert info.null_count == 1
    assert info.unique_count == 3
    assert info.min_value == "10.5"
    assert info.max_value == "99"
    assert info.has_duplicates
