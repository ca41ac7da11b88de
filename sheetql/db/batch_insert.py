from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from itertools import islice
from typing import Any

import aiosqlite

from .schema import insert_sql

"""Batched parameterized INSERT over an aiosqlite connection.

- Rows are sent with executemany in pages of ``page_size``.
- Transaction boundaries belong to the caller (RelationalLoader); this module
  never commits or rolls back.
- metrics_callback receives one BatchMetrics per page.
"""

__all__ = [
    "BatchInsertError",
    "BatchMetrics",
    "InsertResult",
    "batch_insert",
]


class BatchInsertError(Exception):
    pass


@dataclass(frozen=True)
class BatchMetrics:
    """Metrics for a single page insert."""
    batch_size: int  # ページ内の行数
    elapsed_seconds: float  # executemany 所要時間
    start_time: float  # time.time()
    end_time: float  # time.time()
    batch_index: int = 0  # 0 始まりのページ番号


@dataclass(frozen=True)
class InsertResult:
    inserted_rows: int
    batches: int = 0


def _pages(rows: Iterable[Sequence[Any]], page_size: int) -> Iterable[list[Sequence[Any]]]:
    it = iter(rows)
    while True:
        page = list(islice(it, page_size))
        if not page:
            return
        yield page


async def batch_insert(
    conn: aiosqlite.Connection,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    page_size: int = 1000,
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
) -> InsertResult:
    """Insert ``rows`` into ``table`` page by page.

    Parameters
    ----------
    conn: open aiosqlite connection (transaction already begun by the caller)
    table: target table name (already normalized)
    columns: insert column order; each row must have the same arity
    rows: row iterable, consumed lazily page by page
    page_size: rows per executemany call
    metrics_callback: optional callback receiving BatchMetrics per page.
        Not invoked when ``rows`` is empty.

    Raises
    ------
    BatchInsertError: any engine / binding error; the failing page index is
        part of the message.
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be positive: {page_size}")

    sql = insert_sql(table, columns)
    inserted = 0
    batches = 0
    for page in _pages(rows, page_size):
        start_time = time.time()
        try:
            await conn.executemany(sql, page)
        except Exception as e:
            raise BatchInsertError(f"batch {batches} failed: {e}") from e
        finally:
            end_time = time.time()
            if metrics_callback is not None:
                metrics_callback(
                    BatchMetrics(
                        batch_size=len(page),
                        elapsed_seconds=end_time - start_time,
                        start_time=start_time,
                        end_time=end_time,
                        batch_index=batches,
                    )
                )
        inserted += len(page)
        batches += 1
    return InsertResult(inserted_rows=inserted, batches=batches)
