from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""SheetProcess: outcome of loading one sheet of a workbook."""

__all__ = [
    "SheetStatus",
    "SheetProcess",
]


class SheetStatus(str, Enum):
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(frozen=True)
class SheetProcess:
    """Per-sheet processing result.

    table_name is None when the sheet failed before a table name was
    assigned. Batch timing fields stay 0 for failed sheets.
    """
    sheet_name: str
    table_name: str | None
    status: SheetStatus
    inserted_rows: int = 0
    column_count: int = 0
    error_type: str | None = None  # SheetIngestError.error_type
    error: str | None = None
    total_batches: int = 0
    avg_batch_seconds: float = 0.0
    p95_batch_seconds: float = 0.0

    @property
    def loaded(self) -> bool:
        return self.status is SheetStatus.LOADED
