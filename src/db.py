"""libsql access for the record store.

The synchronous ``libsql`` driver is driven through ``asyncio.to_thread()``.
``connection()`` is the only entry point; it opens one connection per block:

- **Production**: ``TURSO_DATABASE_URL`` + ``TURSO_AUTH_TOKEN`` → remote Turso
- **Dev/test**: no Turso env vars → local SQLite file via ``database_path``

Writes go through :meth:`_AsyncConnection.execute_write` (or
:meth:`_AsyncConnection.execute_batch`), which run the statement and its
commit in a single worker call so a write transaction is never left open
across an ``await``.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import libsql

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable
    from pathlib import Path

from src.config import settings


class _AsyncCursor:
    """Rows of a read query."""

    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor

    async def fetchone(self) -> tuple | None:
        return await asyncio.to_thread(self._cursor.fetchone)

    async def fetchall(self) -> list[tuple]:
        return await asyncio.to_thread(self._cursor.fetchall)


class _AsyncConnection:
    """Async facade over a synchronous libsql connection."""

    def __init__(self, conn: Any) -> None:
        self._conn = conn

    async def execute(self, sql: str, params: tuple = ()) -> _AsyncCursor:
        """Run a read query."""
        cursor = await asyncio.to_thread(self._conn.execute, sql, params)
        return _AsyncCursor(cursor)

    async def execute_write(self, sql: str, params: tuple = ()) -> int:
        """Run one write statement and commit it. Returns the affected row count."""
        return await asyncio.to_thread(self._write, sql, params)

    async def execute_batch(self, statements: Iterable[str]) -> None:
        """Run parameterless statements (schema DDL) and commit once."""
        await asyncio.to_thread(self._write_all, tuple(statements))

    async def close(self) -> None:
        await asyncio.to_thread(self._conn.close)

    def _write(self, sql: str, params: tuple) -> int:
        cursor = self._conn.execute(sql, params)
        self._conn.commit()
        return cursor.rowcount

    def _write_all(self, statements: tuple[str, ...]) -> None:
        for statement in statements:
            self._conn.execute(statement)
        self._conn.commit()


def _open_local(path: str) -> Any:
    """Open a local libsql connection with WAL mode and busy timeout."""
    conn = libsql.connect(path)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA busy_timeout=5000")
    return conn


def _open(local_path: Path | None) -> Any:
    if local_path:
        local_path.parent.mkdir(parents=True, exist_ok=True)
        return _open_local(str(local_path))
    if settings.turso_database_url:
        return libsql.connect(
            database=settings.turso_database_url,
            auth_token=settings.turso_auth_token,
        )
    settings.database_path.parent.mkdir(parents=True, exist_ok=True)
    return _open_local(str(settings.database_path))


@asynccontextmanager
async def connection(local_path_override: Path | None = None) -> AsyncIterator[_AsyncConnection]:
    """Open a connection for the duration of an ``async with`` block.

    *local_path_override* (test isolation) takes priority over settings.
    Otherwise ``TURSO_DATABASE_URL`` selects a remote connection, and
    ``database_path`` is the local fallback.
    """
    db = _AsyncConnection(await asyncio.to_thread(_open, local_path_override))
    try:
        yield db
    finally:
        await db.close()
