from __future__ import annotations

from ..models.processing_result import WorkbookLoadResult

"""SUMMARY line rendering.

Format:
    SUMMARY sheets=<total> loaded=<n> failed=<n> rows=<n> elapsed_sec=<x> throughput_rps=<x>
"""

__all__ = [
    "format_metric",
    "render_summary_line",
]


def format_metric(value: float) -> str:
    """Integral values without a fraction, tiny values without scientific notation."""
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if abs(value) < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return str(round(value, 3))


def render_summary_line(result: WorkbookLoadResult) -> str:
    """Render the SUMMARY line for one workbook load.

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = WorkbookLoadResult(
        ...     source_name="book.xlsx", loaded_sheets=2, failed_sheets=1,
        ...     total_inserted_rows=1000, start_time=start, end_time=end,
        ...     elapsed_seconds=2.0, throughput_rows_per_sec=500.0,
        ... )
        >>> render_summary_line(result)
        'SUMMARY sheets=3 loaded=2 failed=1 rows=1000 elapsed_sec=2 throughput_rps=500'
    """
    return (
        f"SUMMARY sheets={result.total_sheets} "
        f"loaded={result.loaded_sheets} "
        f"failed={result.failed_sheets} "
        f"rows={result.total_inserted_rows} "
        f"elapsed_sec={format_metric(result.elapsed_seconds)} "
        f"throughput_rps={format_metric(result.throughput_rows_per_sec)}"
    )
