from __future__ import annotations

from sheetql.excel.headers import (
    is_normalized_table_name,
    normalize_column_names,
    normalize_table_name,
)


def _is_identifier(name: str) -> bool:
    return name[:1].isalpha() and all(c.isalnum() or c == "_" for c in name)


def test_basic_normalization():
    assert normalize_column_names(["Name", "First Name", "1st", "a-b", "Total (USD)"]) == [
        "name",
        "first_name",
        "col_1st",
        "a_b",
        "total__usd_",
    ]


def test_duplicates_get_numeric_suffix_in_first_seen_order():
    assert normalize_column_names(["id", "ID", "Id", "name"]) == ["id", "id_1", "id_2", "name"]


def test_generated_suffix_never_collides_with_literal_header():
    names = normalize_column_names(["a", "a", "a_1"])
    assert names == ["a", "a_1", "a_1_1"]
    assert len(set(names)) == 3


def test_empty_inputs():
    assert normalize_column_names([]) == []
    assert normalize_column_names([""]) == ["col_"]
    assert normalize_column_names(["", ""]) == ["col_", "col__1"]


def test_non_ascii_letters_are_kept():
    assert normalize_column_names(["名前", "年齢", "Café", "Straße Nr."]) == [
        "名前",
        "年齢",
        "café",
        "straße_nr_",
    ]
    # 数字始まりは全角数字でも col_ 付き
    assert normalize_column_names(["１月"]) == ["col_１月"]


def test_non_ascii_duplicates_are_suffixed():
    assert normalize_column_names(["売上", "売上", "売 上"]) == ["売上", "売上_1", "売_上"]


def test_uniqueness_and_identifier_validity_for_awkward_headers():
    raw = ["", "", "1", "1", "_x", "_x", "Café", "日本", "日本", "a b", "a_b", "a-b", "A B", "col_1", "İd"]
    names = normalize_column_names(raw)
    assert len(names) == len(raw)
    assert len(set(names)) == len(names)
    for n in names:
        assert _is_identifier(n), n


def test_table_name_variant_has_no_dedup():
    assert normalize_table_name("Sales 2024") == "sales_2024"
    assert normalize_table_name("2024") == "tbl_2024"
    assert normalize_table_name("") == "tbl_"
    assert normalize_table_name("Sheet1") == normalize_table_name("sheet1")


def test_table_name_keeps_non_ascii_letters():
    assert normalize_table_name("売上") == "売上"
    assert normalize_table_name("在庫") == "在庫"
    assert normalize_table_name("Données 2024") == "données_2024"
    assert normalize_table_name("売上") != normalize_table_name("在庫")


def test_is_normalized_table_name():
    assert is_normalized_table_name("excel_sheet1_1700000000")
    assert is_normalized_table_name(normalize_table_name("Weird Name!"))
    assert is_normalized_table_name("excel_売上_1700000000")
    assert is_normalized_table_name(normalize_table_name("Données"))
    assert not is_normalized_table_name("")
    assert not is_normalized_table_name("Bad Name")
    assert not is_normalized_table_name("Café")
    assert not is_normalized_table_name("1abc")
    assert not is_normalized_table_name('t"; DROP TABLE x; --')
