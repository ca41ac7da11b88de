"""sheetql: spreadsheet ingestion and loading into an embedded SQL store."""

__version__ = "0.1.0"
