from __future__ import annotations

import logging
from io import BytesIO
from typing import Any

from openpyxl import load_workbook

from ..errors import DecodeFailure, InvalidInput, SheetReadFailure, UnsupportedFileType
from ..models.cell import EMPTY_CELL, Cell

"""Workbook reader (cell grid decoder).

- xlsx bytes を openpyxl (read_only, data_only) で開く
- シート単位に矩形の Cell グリッドを返す (短い行は EMPTY で右詰め補完)
- 1 行目をヘッダ行として扱うのは呼び出し側 (analyzer / frame_builder)

Decoding failures map onto DecodeFailure, row iteration failures onto
SheetReadFailure.
"""

__all__ = [
    "WorkbookReader",
    "open_workbook",
    "ensure_xlsx",
    "check_payload_size",
]

logger = logging.getLogger(__name__)

_XLSX_MIME = "spreadsheetml.sheet"


def ensure_xlsx(file_type: str) -> None:
    """Reject anything that is not declared as an xlsx workbook.

    ``file_type`` may be an extension ("xlsx", ".XLSX") or a MIME type.
    """
    lowered = (file_type or "").lower()
    if "xlsx" not in lowered and _XLSX_MIME not in lowered:
        raise UnsupportedFileType(
            "Only XLSX files are supported", details={"file_type": file_type}
        )


def check_payload_size(payload: bytes, max_file_size: int) -> None:
    if not payload:
        raise InvalidInput("empty payload")
    if len(payload) > max_file_size:
        raise InvalidInput(
            f"payload too large: {len(payload)} bytes (max {max_file_size})",
            details={"size": len(payload), "max_file_size": max_file_size},
        )


class WorkbookReader:
    """Opened workbook exposing per-sheet cell grids.

    Use as a context manager or call close(); openpyxl read-only workbooks
    keep the underlying archive open until closed.
    """

    def __init__(self, workbook: Any) -> None:
        self._wb = workbook

    @property
    def sheet_names(self) -> list[str]:
        return list(self._wb.sheetnames)

    def read_rows(self, sheet_name: str, max_rows: int | None = None) -> list[list[Cell]]:
        """Return up to ``max_rows`` rows of ``sheet_name`` as a rectangular grid.

        Raises:
            SheetReadFailure: unknown sheet or row iteration failed
        """
        if sheet_name not in self._wb.sheetnames:
            raise SheetReadFailure(f"sheet not found: {sheet_name}", details={"sheet": sheet_name})
        if max_rows is not None and max_rows <= 0:
            return []
        try:
            ws = self._wb[sheet_name]
            rows: list[list[Cell]] = []
            for raw in ws.iter_rows(max_row=max_rows, values_only=True):
                rows.append([Cell.from_value(v) for v in raw])
                if max_rows is not None and len(rows) >= max_rows:
                    break
        except Exception as e:
            raise SheetReadFailure(
                f"failed reading sheet '{sheet_name}': {e}", details={"sheet": sheet_name}
            ) from e

        width = max((len(r) for r in rows), default=0)
        for r in rows:
            if len(r) < width:
                r.extend([EMPTY_CELL] * (width - len(r)))
        logger.debug("read sheet=%s rows=%d cols=%d", sheet_name, len(rows), width)
        return rows

    def close(self) -> None:
        if self._wb is not None:
            self._wb.close()
            self._wb = None

    def __enter__(self) -> WorkbookReader:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


def open_workbook(payload: bytes) -> WorkbookReader:
    """Decode xlsx bytes.

    Raises:
        DecodeFailure: payload is not a readable xlsx workbook
    """
    try:
        wb = load_workbook(BytesIO(payload), read_only=True, data_only=True)
    except Exception as e:
        raise DecodeFailure(f"Failed to open Excel file: {e}") from e
    return WorkbookReader(wb)
