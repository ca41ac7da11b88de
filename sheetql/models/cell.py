from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Any

"""Cell model: one decoded spreadsheet value with a runtime type tag.

The variant set is closed (CellKind). Consumers branch on ``cell.kind``
exhaustively instead of dispatching on the payload's Python type.
"""

__all__ = [
    "CellKind",
    "Cell",
    "EMPTY_CELL",
]


class CellKind(Enum):
    """Type tag of a decoded cell."""
    EMPTY = "empty"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    TEXT = "text"
    DATETIME = "datetime"


@dataclass(frozen=True)
class Cell:
    """Immutable decoded cell (kind + payload).

    Payload by kind:
        EMPTY: None
        INTEGER: int
        FLOAT: float
        BOOLEAN: bool
        TEXT: str (never empty; "" decodes to EMPTY)
        DATETIME: datetime.datetime
    """
    kind: CellKind
    value: Any = None

    @staticmethod
    def from_value(value: Any) -> Cell:
        """Map a raw workbook value (openpyxl ``data_only``) onto a Cell."""
        if value is None:
            return EMPTY_CELL
        # bool は int のサブクラスなので先に判定
        if isinstance(value, bool):
            return Cell(CellKind.BOOLEAN, value)
        if isinstance(value, int):
            return Cell(CellKind.INTEGER, value)
        if isinstance(value, float):
            return Cell(CellKind.FLOAT, value)
        if isinstance(value, datetime):
            return Cell(CellKind.DATETIME, value)
        if isinstance(value, date):
            return Cell(CellKind.DATETIME, datetime.combine(value, time()))
        if isinstance(value, str):
            if value == "":
                return EMPTY_CELL
            return Cell(CellKind.TEXT, value)
        if isinstance(value, time):
            return Cell(CellKind.TEXT, value.isoformat())
        return Cell(CellKind.TEXT, str(value))

    @property
    def is_empty(self) -> bool:
        return self.kind is CellKind.EMPTY

    def text(self) -> str:
        """Raw textual rendering used for samples, statistics and text columns."""
        kind = self.kind
        if kind is CellKind.EMPTY:
            return ""
        if kind is CellKind.INTEGER:
            return str(self.value)
        if kind is CellKind.FLOAT:
            return _format_float(self.value)
        if kind is CellKind.BOOLEAN:
            return "true" if self.value else "false"
        if kind is CellKind.TEXT:
            return self.value
        if kind is CellKind.DATETIME:
            return self.value.isoformat(sep=" ")
        raise ValueError(f"unknown cell kind: {kind!r}")


def _format_float(value: float) -> str:
    # 整数値の float は小数点なしで表示 (3.0 -> "3")
    if math.isfinite(value) and value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)


EMPTY_CELL = Cell(CellKind.EMPTY)
