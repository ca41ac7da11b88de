# Shared pytest fixtures
from __future__ import annotations

from collections.abc import Callable
from io import BytesIO
from pathlib import Path
from typing import Any

import pytest
from openpyxl import Workbook

from sheetql.logging.init import reset_logging

WorkbookFactory = Callable[[dict[str, list[list[Any]]]], bytes]


@pytest.fixture(autouse=True)
def _fresh_logging():
    # setup_logging は sys.stdout を掴むので capsys ごとに作り直す
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch, tmp_path: Path) -> Path:
    (tmp_path / "config").mkdir()
    monkeypatch.chdir(tmp_path)
    for var in (
        "SHEETQL_DATABASE",
        "SHEETQL_BATCH_SIZE",
        "SHEETQL_CACHE_CAPACITY",
        "SHEETQL_CACHE_TTL_SECONDS",
        "SHEETQL_MAX_WORKERS",
    ):
        monkeypatch.delenv(var, raising=False)
    return tmp_path


def build_workbook(sheets: dict[str, list[list[Any]]]) -> bytes:
    """Build xlsx bytes from {sheet name: rows}; None leaves a cell empty."""
    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(title=name)
        for row in rows:
            ws.append(row)
    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


@pytest.fixture()
def make_workbook() -> WorkbookFactory:
    return build_workbook


@pytest.fixture()
def customers_rows() -> list[list[Any]]:
    from datetime import datetime

    return [
        ["ID", "Name", "Joined", "Active", "Score"],
        [1, "Alice", datetime(2024, 1, 1, 9, 30), True, 10.5],
        [2, "Bob", datetime(2024, 1, 2), False, 7],
        [3, "Carol", datetime(2024, 2, 3), True, 7],
        [4, "Dave", datetime(2024, 3, 4), True, None],
        [5, "Alice", datetime(2024, 4, 5), False, 99],
        [6, "Eve", datetime(2024, 5, 6), True, 100],
    ]


@pytest.fixture()
def write_config(temp_workdir: Path) -> Path:
    """Write a minimal valid config/sheetql.yml and return its path."""
    path = temp_workdir / "config" / "sheetql.yml"
    path.write_text(
        "analysis:\n"
        "  row_window: 500\n"
        "  sample_rows: 4\n"
        "loader:\n"
        "  batch_size: 2\n"
        "  cache_capacity: 3\n"
        "logs_dir: ./logs\n",
        encoding="utf-8",
    )
    return path
