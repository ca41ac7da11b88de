from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

from ..errors import NoSheets
from ..excel.headers import normalize_column_names
from ..excel.reader import WorkbookReader, open_workbook
from ..models.analysis import ColumnInfo, ColumnType, SheetAnalysis
from ..models.cell import EMPTY_CELL, Cell
from ..models.config_models import AnalysisSettings
from .inference import infer_column_type
from .statistics import summarize_column

"""Sheet analyzer: read-only report of the first sheet of a workbook.

Flow:
1. decode payload (DecodeFailure)
2. first sheet (NoSheets when the workbook has none)
3. first ``row_window`` rows, header row included (SheetReadFailure)
4. normalize headers
5. per column (ThreadPoolExecutor): type inference on the first
   ``type_sample_rows`` data values, statistics on the whole window
6. category lists in header order (boolean / empty columns are in none)
"""

__all__ = [
    "SheetAnalyzer",
]

logger = logging.getLogger(__name__)

_CATEGORY_OF = {
    ColumnType.DATE: "date",
    ColumnType.NUMERIC: "numeric",
    ColumnType.STRING: "text",
}


def _column(rows: Sequence[Sequence[Cell]], idx: int) -> list[Cell]:
    return [row[idx] if idx < len(row) else EMPTY_CELL for row in rows]


class SheetAnalyzer:
    def __init__(self, settings: AnalysisSettings | None = None) -> None:
        self.settings = settings or AnalysisSettings()

    def analyze(self, payload: bytes) -> SheetAnalysis:
        start = time.perf_counter()
        logger.info("analysis start bytes=%d", len(payload))
        with open_workbook(payload) as reader:
            result = self.analyze_workbook(reader)
        logger.info(
            "analysis done rows=%d cols=%d elapsed_sec=%.3f",
            result.row_count,
            result.column_count,
            time.perf_counter() - start,
        )
        return result

    def analyze_workbook(self, reader: WorkbookReader) -> SheetAnalysis:
        sheet_names = reader.sheet_names
        if not sheet_names:
            raise NoSheets("No sheets found in workbook")
        rows = reader.read_rows(sheet_names[0], max_rows=self.settings.row_window)
        return self.analyze_rows(sheet_names, rows)

    async def analyze_async(self, payload: bytes) -> SheetAnalysis:
        return await asyncio.to_thread(self.analyze, payload)

    def analyze_rows(self, sheet_names: list[str], rows: Sequence[Sequence[Cell]]) -> SheetAnalysis:
        """Analyze an already-decoded grid (first row = header)."""
        s = self.settings
        window = list(rows[: s.row_window])
        header = window[0] if window else []
        names = normalize_column_names(cell.text() for cell in header)
        data = window[1:]

        def _analyze_column(idx: int) -> ColumnInfo:
            values = _column(data, idx)
            data_type = infer_column_type(values, s.type_sample_rows)
            return summarize_column(
                names[idx],
                values,
                data_type,
                sample_limit=s.sample_values,
                chunk_size=s.stats_chunk_size,
            )

        if names:
            with ThreadPoolExecutor(max_workers=s.max_workers) as pool:
                column_info = list(pool.map(_analyze_column, range(len(names))))
        else:
            column_info = []

        categories: dict[str, list[str]] = {"date": [], "numeric": [], "text": []}
        for info in column_info:
            category = _CATEGORY_OF.get(info.data_type)
            if category is not None:
                categories[category].append(info.name)

        sample_data = [[cell.text() for cell in row] for row in window[: s.sample_rows]]
        return SheetAnalysis(
            sheet_names=list(sheet_names),
            row_count=len(window),
            column_count=len(header),
            sample_data=sample_data,
            column_info=column_info,
            date_columns=categories["date"],
            numeric_columns=categories["numeric"],
            text_columns=categories["text"],
        )
