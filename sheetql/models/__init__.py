"""Domain models for sheetql."""

from .analysis import ColumnInfo, ColumnType, SheetAnalysis
from .cell import EMPTY_CELL, Cell, CellKind
from .config_models import AnalysisSettings, IngestConfig, LoaderSettings
from .error_record import ErrorRecord
from .processing_result import BatchStatsAccumulator, WorkbookLoadResult
from .query_result import QueryResult
from .sheet_process import SheetProcess, SheetStatus

__all__ = [
    "AnalysisSettings",
    "BatchStatsAccumulator",
    "Cell",
    "CellKind",
    "ColumnInfo",
    "ColumnType",
    "EMPTY_CELL",
    "ErrorRecord",
    "IngestConfig",
    "LoaderSettings",
    "QueryResult",
    "SheetAnalysis",
    "SheetProcess",
    "SheetStatus",
    "WorkbookLoadResult",
]
