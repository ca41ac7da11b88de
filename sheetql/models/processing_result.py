from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from datetime import datetime

from .sheet_process import SheetProcess

"""Workbook-level result aggregation and batch timing statistics."""

__all__ = [
    "WorkbookLoadResult",
    "BatchStatsAccumulator",
]


@dataclass(frozen=True)
class WorkbookLoadResult:
    """Aggregated result of loading every sheet of one workbook.

    Contains everything needed for the SUMMARY line.
    """
    source_name: str
    loaded_sheets: int
    failed_sheets: int
    total_inserted_rows: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    throughput_rows_per_sec: float
    sheets: list[SheetProcess] = field(default_factory=list)
    error_log_path: str | None = None  # エラーが無い場合 None

    @property
    def total_sheets(self) -> int:
        return self.loaded_sheets + self.failed_sheets

    @property
    def tables(self) -> list[str]:
        return [s.table_name for s in self.sheets if s.loaded and s.table_name is not None]

    @property
    def partial_failure(self) -> bool:
        return self.failed_sheets > 0


class BatchStatsAccumulator:
    """Collects per-batch timings and summarizes them."""

    def __init__(self) -> None:
        self.batch_times: list[float] = []

    def add_batch_time(self, elapsed_seconds: float) -> None:
        self.batch_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Return (total_batches, avg_batch_seconds, p95_batch_seconds)."""
        if not self.batch_times:
            return (0, 0.0, 0.0)

        total_batches = len(self.batch_times)
        avg_batch_seconds = statistics.mean(self.batch_times)
        if total_batches == 1:
            p95_batch_seconds = self.batch_times[0]
        else:
            # 20 分位の 19 番目 = p95
            p95_batch_seconds = statistics.quantiles(
                self.batch_times, n=20, method="inclusive"
            )[18]
        return (total_batches, avg_batch_seconds, p95_batch_seconds)
