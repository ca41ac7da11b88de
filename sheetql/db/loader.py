from __future__ import annotations

import asyncio
import logging
import math
import sqlite3
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

import aiosqlite
import pandas as pd

from ..errors import InvalidInput, StoreFailure
from ..excel.headers import is_normalized_table_name
from ..models.config_models import LoaderSettings
from ..models.query_result import QueryResult
from .batch_insert import BatchInsertError, BatchMetrics, batch_insert
from .cache import FrameCache
from .schema import (
    create_table_sql,
    drop_table_sql,
    frame_to_rows,
    quote_identifier,
    render_sql_literal,
)

"""Relational loader over one serialized aiosqlite connection.

load() state machine:
    Idle -> Dropping -> SchemaCreating -> Inserting (batched) -> Committed
                                      \\-> RolledBack (any failure)

All store access (DDL, insert batches, queries, schema introspection) runs
under one asyncio.Lock, so multi-statement transactions never interleave.

The loaded-table snapshot (LoaderState) and the frame cache are published
only after COMMIT, while the lock is still held: a failed load publishes
nothing and metadata follows commit order.
"""

__all__ = [
    "NO_DATA_MESSAGE",
    "LoaderState",
    "LoadResult",
    "RelationalLoader",
]

logger = logging.getLogger(__name__)

NO_DATA_MESSAGE = "No data loaded. Please upload an Excel file first."
SAMPLE_ROWS = 3

_PRAGMAS = (
    "PRAGMA journal_mode=MEMORY",
    "PRAGMA synchronous=OFF",
    "PRAGMA temp_store=MEMORY",
    "PRAGMA cache_size=10000",
)
_STORE_ERRORS = (sqlite3.Error, sqlite3.Warning)


@dataclass(frozen=True)
class LoaderState:
    """Snapshot of the most recently committed load. Replaced as a whole."""
    current_table: str | None = None
    column_names: tuple[str, ...] = ()

    @property
    def has_data(self) -> bool:
        return self.current_table is not None and len(self.column_names) > 0


@dataclass(frozen=True)
class LoadResult:
    table: str
    inserted_rows: int
    column_names: tuple[str, ...]
    batches: int
    elapsed_seconds: float


def _json_value(value: Any) -> Any:
    if value is None or isinstance(value, (int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "BLOB"
    return str(value)


class RelationalLoader:
    """Owns the store connection, the loaded-table snapshot and the frame cache.

    The connection is opened lazily on first use. Use ``async with`` or
    await close() when done.
    """

    def __init__(self, settings: LoaderSettings | None = None, cache: FrameCache | None = None) -> None:
        self.settings = settings or LoaderSettings()
        self._cache = cache or FrameCache(
            capacity=self.settings.cache_capacity,
            ttl_seconds=self.settings.cache_ttl_seconds,
        )
        self._lock = asyncio.Lock()
        self._conn: aiosqlite.Connection | None = None
        self._state = LoaderState()

    # -- connection -----------------------------------------------------

    async def _connection(self) -> aiosqlite.Connection:
        """Return the open connection, opening it first if needed. Caller holds the lock."""
        if self._conn is None:
            try:
                conn = await aiosqlite.connect(self.settings.database, isolation_level=None)
                for pragma in _PRAGMAS:
                    await conn.execute(pragma)
            except _STORE_ERRORS as e:
                raise StoreFailure(f"failed to open store: {e}") from e
            self._conn = conn
            logger.debug("store opened database=%s", self.settings.database)
        return self._conn

    @asynccontextmanager
    async def _transaction(self, conn: aiosqlite.Connection) -> AsyncIterator[aiosqlite.Connection]:
        """BEGIN ... COMMIT, or ROLLBACK exactly once on any exit by exception."""
        await conn.execute("BEGIN")
        try:
            yield conn
            await conn.execute("COMMIT")
        except BaseException:
            if conn.in_transaction:
                await conn.execute("ROLLBACK")
                logger.debug("transaction rolled back")
            raise

    async def close(self) -> None:
        """Close the connection. An in-memory store loses its tables here,
        so the loaded-table snapshot and the frame cache are reset with it."""
        async with self._lock:
            if self._conn is not None:
                await self._conn.close()
                self._conn = None
                if self.settings.database == ":memory:":
                    self._state = LoaderState()
                    self._cache.clear()

    async def __aenter__(self) -> RelationalLoader:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # -- state ----------------------------------------------------------

    @property
    def current_table(self) -> str | None:
        return self._state.current_table

    @property
    def column_names(self) -> list[str]:
        return list(self._state.column_names)

    def has_data(self) -> bool:
        return self._state.has_data

    def cached_frame(self, table: str) -> pd.DataFrame | None:
        return self._cache.get(table)

    # -- operations -----------------------------------------------------

    async def load(
        self,
        table: str,
        frame: pd.DataFrame,
        metrics_callback: Callable[[BatchMetrics], None] | None = None,
    ) -> LoadResult:
        """Replace ``table`` with the contents of ``frame`` in one transaction.

        Raises:
            InvalidInput: table name not normalized, or frame without columns
            StoreFailure: any DDL / insert / commit error (rolled back; the
                previous table of the same name is left intact)
        """
        if not is_normalized_table_name(table):
            raise InvalidInput(f"table name is not normalized: {table!r}", details={"table": table})
        if frame.shape[1] == 0:
            raise InvalidInput(f"frame for table {table!r} has no columns", details={"table": table})

        columns = [str(c) for c in frame.columns]
        start = time.perf_counter()
        async with self._lock:
            conn = await self._connection()
            try:
                async with self._transaction(conn):
                    await conn.execute(drop_table_sql(table))
                    await conn.execute(create_table_sql(table, frame))
                    inserted = await batch_insert(
                        conn,
                        table,
                        columns,
                        frame_to_rows(frame),
                        page_size=self.settings.batch_size,
                        metrics_callback=metrics_callback,
                    )
            except BatchInsertError as e:
                raise StoreFailure(f"insert into {table} failed: {e}", details={"table": table}) from e
            except _STORE_ERRORS as e:
                raise StoreFailure(f"load of {table} failed: {e}", details={"table": table}) from e

            self._state = LoaderState(current_table=table, column_names=tuple(columns))
            # 呼び出し側が後で frame を変更しても影響しないようコピーを保持
            self._cache.put(table, frame.copy())

        elapsed = time.perf_counter() - start
        logger.info(
            "loaded table=%s rows=%d batches=%d elapsed_sec=%.3f",
            table,
            inserted.inserted_rows,
            inserted.batches,
            elapsed,
        )
        return LoadResult(
            table=table,
            inserted_rows=inserted.inserted_rows,
            column_names=tuple(columns),
            batches=inserted.batches,
            elapsed_seconds=elapsed,
        )

    async def schema_with_samples(self) -> str:
        """Text description of every table (columns + up to 3 sample rows)."""
        if not self.has_data():
            return NO_DATA_MESSAGE

        blocks: list[str] = []
        async with self._lock:
            conn = await self._connection()
            try:
                async with conn.execute(
                    "SELECT name FROM sqlite_master WHERE type='table' "
                    "AND name NOT LIKE 'sqlite_%' ORDER BY name"
                ) as cursor:
                    tables = [row[0] for row in await cursor.fetchall()]
                for table in tables:
                    quoted = quote_identifier(table)
                    async with conn.execute(f"PRAGMA table_info({quoted})") as cursor:
                        columns = [(row[1], row[2]) for row in await cursor.fetchall()]
                    async with conn.execute(f"SELECT * FROM {quoted} LIMIT {SAMPLE_ROWS}") as cursor:
                        samples = await cursor.fetchall()

                    lines = [f"Table: {table}", "Columns:"]
                    lines.extend(f"  - {name} ({sql_type})" for name, sql_type in columns)
                    lines.append("Sample Data:")
                    for row in samples:
                        lines.append("  (" + ", ".join(render_sql_literal(v) for v in row) + ")")
                    blocks.append("\n".join(lines))
            except _STORE_ERRORS as e:
                raise StoreFailure(f"schema introspection failed: {e}") from e
        return "\n\n".join(blocks)

    async def execute(self, query: str) -> QueryResult:
        """Run arbitrary SQL. No validation or sandboxing happens here.

        Raises:
            StoreFailure: any engine error
        """
        async with self._lock:
            conn = await self._connection()
            try:
                async with conn.execute(query) as cursor:
                    rows = await cursor.fetchall()
                    description = cursor.description or ()
            except _STORE_ERRORS as e:
                raise StoreFailure(f"query failed: {e}", details={"query": query}) from e
        columns = [d[0] for d in description]
        return QueryResult(columns=columns, rows=[[_json_value(v) for v in row] for row in rows])
