from __future__ import annotations

import aiosqlite
import pytest

from sheetql.db.batch_insert import BatchInsertError, BatchMetrics, InsertResult, batch_insert


async def _count(conn: aiosqlite.Connection, table: str) -> int:
    async with conn.execute(f'SELECT COUNT(*) FROM "{table}"') as cur:
        row = await cur.fetchone()
    return row[0]


@pytest.mark.asyncio
async def test_batch_insert_pages_and_metrics():
    captured: list[BatchMetrics] = []
    async with aiosqlite.connect(":memory:") as conn:
        await conn.execute('CREATE TABLE "customers" ("id" INTEGER, "name" TEXT)')
        rows = [(i, f"n{i}") for i in range(5)]
        res = await batch_insert(
            conn, "customers", ["id", "name"], rows, page_size=2, metrics_callback=captured.append
        )
        assert res == InsertResult(inserted_rows=5, batches=3)
        assert await _count(conn, "customers") == 5

    assert [m.batch_size for m in captured] == [2, 2, 1]
    assert [m.batch_index for m in captured] == [0, 1, 2]
    for m in captured:
        assert m.elapsed_seconds >= 0
        assert m.end_time >= m.start_time


@pytest.mark.asyncio
async def test_batch_insert_consumes_generators_lazily():
    async with aiosqlite.connect(":memory:") as conn:
        await conn.execute('CREATE TABLE "t" ("v" INTEGER)')
        res = await batch_insert(conn, "t", ["v"], ((i,) for i in range(2500)), page_size=1000)
        assert res.inserted_rows == 2500
        assert res.batches == 3


@pytest.mark.asyncio
async def test_batch_insert_empty_rows_does_not_touch_connection():
    called = []
    # 接続を触ると AttributeError になるダミー
    res = await batch_insert(object(), "t", ["v"], [], metrics_callback=called.append)  # type: ignore[arg-type]
    assert res == InsertResult(inserted_rows=0, batches=0)
    assert called == []


@pytest.mark.asyncio
async def test_batch_insert_wraps_engine_errors():
    captured: list[BatchMetrics] = []
    async with aiosqlite.connect(":memory:") as conn:
        await conn.execute('CREATE TABLE "t" ("a" INTEGER, "b" INTEGER)')
        with pytest.raises(BatchInsertError) as ei:
            await batch_insert(
                conn, "t", ["a", "b"], [(1, 2), (3, 4), (5,)], page_size=2, metrics_callback=captured.append
            )
    assert "batch 1" in str(ei.value)
    # 失敗したページでも計測は通知される
    assert [m.batch_size for m in captured] == [2, 1]


@pytest.mark.asyncio
async def test_batch_insert_missing_table():
    async with aiosqlite.connect(":memory:") as conn:
        with pytest.raises(BatchInsertError):
            await batch_insert(conn, "nope", ["a"], [(1,)])


@pytest.mark.asyncio
async def test_batch_insert_rejects_bad_page_size():
    with pytest.raises(ValueError):
        await batch_insert(object(), "t", ["v"], [(1,)], page_size=0)  # type: ignore[arg-type]
