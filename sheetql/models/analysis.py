from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

"""Analysis report models (ColumnInfo / SheetAnalysis).

Both are request-scoped and immutable. ``to_dict`` renders the JSON object
handed to the analysis consumer.
"""

__all__ = [
    "ColumnType",
    "ColumnInfo",
    "SheetAnalysis",
]


class ColumnType(str, Enum):
    """Inferred logical type of a column."""
    NUMERIC = "numeric"
    DATE = "date"
    BOOLEAN = "boolean"
    STRING = "string"
    EMPTY = "empty"


@dataclass(frozen=True)
class ColumnInfo:
    """Per-column summary.

    min_value / max_value are compared as strings ("100" < "99"), also for
    numeric and date columns.
    """
    name: str
    data_type: ColumnType
    sample_values: tuple[str, ...]
    null_count: int
    unique_count: int
    min_value: str | None
    max_value: str | None
    has_duplicates: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "data_type": self.data_type.value,
            "sample_values": list(self.sample_values),
            "null_count": self.null_count,
            "unique_count": self.unique_count,
            "min_value": self.min_value,
            "max_value": self.max_value,
            "has_duplicates": self.has_duplicates,
        }


@dataclass(frozen=True)
class SheetAnalysis:
    """Read-only analysis of the first sheet of a workbook.

    row_count counts the analysed window including the header row.
    Boolean / empty columns are present in column_info but in none of the
    three category lists.
    """
    sheet_names: list[str]
    row_count: int
    column_count: int
    sample_data: list[list[str]]
    column_info: list[ColumnInfo]
    date_columns: list[str] = field(default_factory=list)
    numeric_columns: list[str] = field(default_factory=list)
    text_columns: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        columns = [info.to_dict() for info in self.column_info]
        return {
            "sheet_names": list(self.sheet_names),
            "row_count": self.row_count,
            "column_count": self.column_count,
            "sample_data": [list(row) for row in self.sample_data],
            "column_analysis": columns,
            # 旧レスポンス互換キー
            "column_info": columns,
            "date_columns": list(self.date_columns),
            "numeric_columns": list(self.numeric_columns),
            "text_columns": list(self.text_columns),
        }
