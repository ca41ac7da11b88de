from __future__ import annotations

from typing import Any

"""Error taxonomy for the ingestion pipeline.

Every pipeline error carries:
- error_type: UPPER_SNAKE code, also written to the JSON Lines error log
- http_status: status a boundary layer should answer with (4xx client / 5xx service)

Module-local errors (ConfigError, BatchInsertError) stay next to the code that
raises them and are translated into this taxonomy at the call site.
"""

__all__ = [
    "SheetIngestError",
    "DecodeFailure",
    "NoSheets",
    "SheetReadFailure",
    "EmptyAfterCleaning",
    "SchemaBuildFailure",
    "StoreFailure",
    "NoDataLoaded",
    "InvalidInput",
    "UnsupportedFileType",
    "is_client_error",
]


class SheetIngestError(Exception):
    """Base class for all ingestion / loading errors."""

    error_type: str = "INGEST_ERROR"
    http_status: int = 503

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Structured payload for a boundary layer response."""
        result: dict[str, Any] = {
            "error_type": self.error_type,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class DecodeFailure(SheetIngestError):
    """Payload is not a valid / readable spreadsheet."""

    error_type = "DECODE_FAILURE"


class NoSheets(SheetIngestError):
    """Workbook decoded fine but contains zero sheets."""

    error_type = "NO_SHEETS"


class SheetReadFailure(SheetIngestError):
    """Row range of a located sheet cannot be read."""

    error_type = "SHEET_READ_FAILURE"


class EmptyAfterCleaning(SheetIngestError):
    """Sheet produced zero usable rows or columns."""

    error_type = "EMPTY_AFTER_CLEANING"


class SchemaBuildFailure(SheetIngestError):
    """Typed table could not be constructed (e.g. no rows / empty headers)."""

    error_type = "SCHEMA_BUILD_FAILURE"


class StoreFailure(SheetIngestError):
    """DDL, insert, transaction or query error from the relational engine."""

    error_type = "STORE_FAILURE"


class NoDataLoaded(SheetIngestError):
    """Multi-sheet processing finished without loading a single sheet."""

    error_type = "NO_DATA_LOADED"


class InvalidInput(SheetIngestError):
    """Caller supplied a malformed request."""

    error_type = "INVALID_INPUT"
    http_status = 400


class UnsupportedFileType(InvalidInput):
    """Caller supplied a file that is not an xlsx workbook."""

    error_type = "UNSUPPORTED_FILE_TYPE"


def is_client_error(error: SheetIngestError) -> bool:
    return 400 <= error.http_status < 500
