from __future__ import annotations

import asyncio
import logging
import time
from datetime import UTC, datetime

import pandas as pd

from ..db.loader import RelationalLoader
from ..errors import (
    EmptyAfterCleaning,
    NoDataLoaded,
    NoSheets,
    SchemaBuildFailure,
    SheetIngestError,
    SheetReadFailure,
    StoreFailure,
)
from ..excel.headers import normalize_table_name
from ..excel.reader import WorkbookReader, open_workbook
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.analysis import SheetAnalysis
from ..models.config_models import IngestConfig
from ..models.processing_result import BatchStatsAccumulator, WorkbookLoadResult
from ..models.sheet_process import SheetProcess, SheetStatus
from .analyzer import SheetAnalyzer
from .frame_builder import prepare_frame
from .progress import ProgressTracker

"""Workbook orchestration: every sheet -> its own table.

- decode in a worker thread (DecodeFailure propagates)
- NoSheets for an empty workbook
- per sheet: read rows -> prepare_frame -> loader.load into
  ``excel_<normalized sheet name>_<unix timestamp>``
- sheet-level failures are logged, recorded in the error log (row -1) and
  the sheet is skipped; the error log is flushed once at the end
- NoDataLoaded when not a single sheet was loaded
"""

__all__ = [
    "load_workbook",
    "analyze_and_load",
]

logger = logging.getLogger(__name__)

# 失敗種別ごとのログレベル (読み取り / 空シートは WARN)
_FAILURE_LEVELS: dict[type[SheetIngestError], int] = {
    SheetReadFailure: logging.WARNING,
    EmptyAfterCleaning: logging.WARNING,
    SchemaBuildFailure: logging.ERROR,
    StoreFailure: logging.ERROR,
}


def _unique_table_name(sheet_name: str, stamp: int, used: set[str]) -> str:
    base = f"excel_{normalize_table_name(sheet_name)}_{stamp}"
    name = base
    n = 0
    while name in used:
        n += 1
        name = f"{base}_{n}"
    used.add(name)
    return name


def _read_and_prepare(reader: WorkbookReader, sheet_name: str, sample_size: int) -> pd.DataFrame:
    rows = reader.read_rows(sheet_name)
    logger.info("sheet=%s rows=%d", sheet_name, len(rows))
    return prepare_frame(rows, sample_size)


async def _load_sheet(
    reader: WorkbookReader,
    sheet_name: str,
    table: str,
    loader: RelationalLoader,
    config: IngestConfig,
) -> SheetProcess:
    frame = await asyncio.to_thread(
        _read_and_prepare, reader, sheet_name, config.analysis.type_sample_rows
    )
    accumulator = BatchStatsAccumulator()
    result = await loader.load(
        table, frame, metrics_callback=lambda m: accumulator.add_batch_time(m.elapsed_seconds)
    )
    total_batches, avg_batch, p95_batch = accumulator.get_stats()
    return SheetProcess(
        sheet_name=sheet_name,
        table_name=table,
        status=SheetStatus.LOADED,
        inserted_rows=result.inserted_rows,
        column_count=len(result.column_names),
        total_batches=total_batches,
        avg_batch_seconds=avg_batch,
        p95_batch_seconds=p95_batch,
    )


async def load_workbook(
    payload: bytes,
    loader: RelationalLoader,
    config: IngestConfig | None = None,
    source_name: str = "<upload>",
    error_log: ErrorLogBuffer | None = None,
) -> WorkbookLoadResult:
    """Load every sheet of ``payload`` into its own table.

    Raises:
        DecodeFailure: payload is not a readable workbook
        NoSheets: workbook has zero sheets
        NoDataLoaded: every sheet failed
    """
    cfg = config or IngestConfig()
    errors = error_log if error_log is not None else ErrorLogBuffer(cfg.logs_dir)
    start_time = datetime.now(UTC)
    logger.info("processing workbook %s (%d bytes)", source_name, len(payload))

    reader = await asyncio.to_thread(open_workbook, payload)
    sheets: list[SheetProcess] = []
    try:
        sheet_names = reader.sheet_names
        if not sheet_names:
            raise NoSheets("No sheets found in workbook")
        logger.info("processing %d sheets", len(sheet_names))

        stamp = int(time.time())
        used_tables: set[str] = set()
        loaded = failed = rows = 0
        with ProgressTracker(len(sheet_names)) as progress:
            for sheet_name in sheet_names:
                progress.start_sheet(sheet_name)
                table = _unique_table_name(sheet_name, stamp, used_tables)
                try:
                    outcome = await _load_sheet(reader, sheet_name, table, loader, cfg)
                except SheetIngestError as e:
                    level = _FAILURE_LEVELS.get(type(e), logging.ERROR)
                    logger.log(level, "sheet %s skipped: %s (%s)", sheet_name, e.message, e.error_type)
                    errors.append(
                        ErrorRecord.create(
                            file=source_name,
                            sheet=sheet_name,
                            row=-1,
                            error_type=e.error_type,
                            message=e.message,
                        )
                    )
                    outcome = SheetProcess(
                        sheet_name=sheet_name,
                        table_name=None,
                        status=SheetStatus.FAILED,
                        error_type=e.error_type,
                        error=e.message,
                    )
                sheets.append(outcome)
                if outcome.loaded:
                    loaded += 1
                    rows += outcome.inserted_rows
                else:
                    failed += 1
                progress.finish_sheet(success=outcome.loaded)
                progress.set_postfix(loaded=loaded, failed=failed, rows=rows)
    finally:
        reader.close()

    error_log_path = None
    try:
        flushed = errors.flush()
    except OSError as e:
        logger.error("failed writing error log: %s", e)
    else:
        if flushed is not None:
            error_log_path = str(flushed)

    end_time = datetime.now(UTC)
    elapsed = (end_time - start_time).total_seconds()
    if loaded == 0:
        logger.error("No valid data found in workbook %s after processing all sheets", source_name)
        raise NoDataLoaded(
            "No valid data found in Excel file",
            details={"failed_sheets": failed, "error_log": error_log_path},
        )

    logger.info("successfully processed %d/%d sheets", loaded, len(sheets))
    return WorkbookLoadResult(
        source_name=source_name,
        loaded_sheets=loaded,
        failed_sheets=failed,
        total_inserted_rows=rows,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=elapsed,
        throughput_rows_per_sec=rows / elapsed if elapsed > 0 else 0.0,
        sheets=sheets,
        error_log_path=error_log_path,
    )


async def analyze_and_load(
    payload: bytes,
    loader: RelationalLoader,
    config: IngestConfig | None = None,
    source_name: str = "<upload>",
    error_log: ErrorLogBuffer | None = None,
) -> tuple[SheetAnalysis, WorkbookLoadResult]:
    """Run the read-only analysis and the workbook load concurrently."""
    cfg = config or IngestConfig()
    analyzer = SheetAnalyzer(cfg.analysis)
    analysis, result = await asyncio.gather(
        analyzer.analyze_async(payload),
        load_workbook(payload, loader, cfg, source_name, error_log),
    )
    return analysis, result
