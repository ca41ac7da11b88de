from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from sheetql.errors import DecodeFailure, NoSheets
from sheetql.models.analysis import ColumnType
from sheetql.models.cell import Cell
from sheetql.models.config_models import AnalysisSettings
from sheetql.services.analyzer import SheetAnalyzer


def grid(rows):
    return [[Cell.from_value(v) for v in row] for row in rows]


def test_analyze_first_sheet(make_workbook, customers_rows):
    payload = make_workbook({"Customers": customers_rows, "Other": [["x"], [1]]})
    analysis = SheetAnalyzer().analyze(payload)

    assert analysis.sheet_names == ["Customers", "Other"]
    assert analysis.row_count == 7  # ヘッダ行込み
    assert analysis.column_count == 5
    assert [c.name for c in analysis.column_info] == ["id", "name", "joined", "active", "score"]
    types = {c.name: c.data_type for c in analysis.column_info}
    assert types == {
        "id": ColumnType.NUMERIC,
        "name": ColumnType.STRING,
        "joined": ColumnType.DATE,
        "active": ColumnType.BOOLEAN,
        "score": ColumnType.NUMERIC,
    }
    assert analysis.numeric_columns == ["id", "score"]
    assert analysis.date_columns == ["joined"]
    assert analysis.text_columns == ["name"]
    # boolean 列はどのカテゴリにも入らない
    assert "active" not in analysis.numeric_columns + analysis.date_columns + analysis.text_columns


def test_column_statistics(make_workbook, customers_rows):
    analysis = SheetAnalyzer().analyze(make_workbook({"S": customers_rows}))
    by_name = {c.name: c for c in analysis.column_info}

    name = by_name["name"]
    assert name.sample_values == ("Alice", "Bob", "Carol")
    assert name.unique_count == 5
    assert name.has_duplicates

    score = by_name["score"]
    assert score.null_count == 1
    assert score.min_value == "10.5"
    assert score.max_value == "99"

    for info in analysis.column_info:
        assert info.has_duplicates == (info.unique_count < 6 - info.null_count)


def test_sample_data_includes_header_and_is_capped(make_workbook, customers_rows):
    analysis = SheetAnalyzer().analyze(make_workbook({"S": customers_rows}))
    assert len(analysis.sample_data) == 5
    assert analysis.sample_data[0] == ["ID", "Name", "Joined", "Active", "Score"]
    assert analysis.sample_data[1] == ["1", "Alice", "2024-01-01 09:30:00", "true", "10.5"]


def test_sample_caps_hold_for_large_sheets(make_workbook):
    rows = [["n", "t"]] + [[i, f"v{i}"] for i in range(300)]
    analysis = SheetAnalyzer().analyze(make_workbook({"S": rows}))
    assert len(analysis.sample_data) <= 5
    assert all(len(c.sample_values) <= 3 for c in analysis.column_info)


def test_row_window_bounds_analysis():
    rows = grid([["n"]] + [[i] for i in range(50)])
    analyzer = SheetAnalyzer(AnalysisSettings(row_window=10))
    analysis = analyzer.analyze_rows(["S"], rows)
    assert analysis.row_count == 10
    assert analysis.column_info[0].unique_count == 9


def test_worker_count_does_not_change_result(customers_rows):
    rows = grid(customers_rows)
    one = SheetAnalyzer(AnalysisSettings(max_workers=1, stats_chunk_size=1)).analyze_rows(["S"], rows)
    many = SheetAnalyzer(AnalysisSettings(max_workers=8, stats_chunk_size=256)).analyze_rows(["S"], rows)
    assert one == many


def test_duplicate_headers_are_normalized():
    analysis = SheetAnalyzer().analyze_rows(["S"], grid([["Name", "name", "NAME"], ["a", "b", "c"]]))
    assert [c.name for c in analysis.column_info] == ["name", "name_1", "name_2"]


def test_empty_grid():
    analysis = SheetAnalyzer().analyze_rows(["S"], [])
    assert analysis.row_count == 0
    assert analysis.column_count == 0
    assert analysis.column_info == []
    assert analysis.sample_data == []


def test_short_rows_are_padded():
    analysis = SheetAnalyzer().analyze_rows(["S"], grid([["a", "b"], [1], [2, "x"]]))
    b = analysis.column_info[1]
    assert b.null_count == 1
    assert b.sample_values == ("", "x")


def test_no_sheets():
    reader = MagicMock()
    reader.sheet_names = []
    with pytest.raises(NoSheets):
        SheetAnalyzer().analyze_workbook(reader)


def test_decode_failure():
    with pytest.raises(DecodeFailure):
        SheetAnalyzer().analyze(b"\x00\x01garbage")


@pytest.mark.asyncio
async def test_analyze_async(make_workbook, customers_rows):
    analysis = await SheetAnalyzer().analyze_async(make_workbook({"S": customers_rows}))
    assert analysis.column_count == 5
