from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Sequence

import aiosqlite

logger = logging.getLogger(__name__)


class Database:
    """
    Small async SQLite wrapper around the achievement store.

    Design:
    - One connection per process; reads issued concurrently are queued on it
    - WAL so leaderboard reads don't block fact writes
    - Foreign keys enforced
    - Writes are serialized: execute() and transaction() share one write lock
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._conn: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._db_path

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    @property
    def conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Database connection is not initialized. Call connect() first.")
        return self._conn

    async def connect(self) -> None:
        if self._conn is not None:
            return

        logger.info("Connecting to SQLite: %s", self._db_path)
        self._conn = await aiosqlite.connect(self._db_path.as_posix())

        # row["column"] access
        self._conn.row_factory = aiosqlite.Row

        await self._conn.execute("PRAGMA foreign_keys = ON;")
        await self._conn.execute("PRAGMA journal_mode = WAL;")
        await self._conn.execute("PRAGMA synchronous = NORMAL;")
        await self._conn.execute("PRAGMA busy_timeout = 5000;")  # ms
        await self._conn.commit()

    async def close(self) -> None:
        if self._conn is None:
            return
        logger.info("Closing SQLite connection")
        await self._conn.close()
        self._conn = None

    async def execute(self, sql: str, params: Sequence[Any] | None = None) -> int:
        """
        Execute a single write and commit immediately.

        Returns the affected row count. Use transaction() to batch statements.
        """
        async with self._write_lock:
            cursor = await self.conn.execute(sql, params or ())
            await self.conn.commit()
            return cursor.rowcount

    async def fetchone(self, sql: str, params: Sequence[Any] | None = None) -> aiosqlite.Row | None:
        async with self.conn.execute(sql, params or ()) as cursor:
            return await cursor.fetchone()

    async def fetchall(self, sql: str, params: Sequence[Any] | None = None) -> list[aiosqlite.Row]:
        async with self.conn.execute(sql, params or ()) as cursor:
            rows = await cursor.fetchall()
            return list(rows)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Transaction context manager.

        Commits on success, rolls back and re-raises on any error. Holds the
        write lock throughout; do not call execute() or nest transaction()
        inside the block.
        """
        async with self._write_lock:
            conn = self.conn
            await conn.execute("BEGIN;")
            try:
                yield conn
            except BaseException:
                await conn.rollback()
                raise
            else:
                await conn.commit()
