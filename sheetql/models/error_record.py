from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

One record per failed sheet. ``row`` is -1 for sheet-level errors where no
specific row can be blamed (the usual case for load failures).
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: workbook name (upload name or path)
        sheet: sheet name within the workbook
        row: 1-based row number, -1 when unknown
        error_type: UPPER_SNAKE code (SheetIngestError.error_type)
        message: human readable description
    """
    timestamp: str  # ISO8601 UTC
    file: str
    sheet: str
    row: int  # 不明な場合 -1
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, sheet: str, row: int, error_type: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            sheet=sheet,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        # asdict 経由なので固定キー以外は出力されない
        return json.dumps(asdict(self), ensure_ascii=False)
