"""The single aiosqlite handle shared by migrations and catalog operations."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncIterator, Sequence

import aiosqlite

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"

_PRAGMAS = (
    "PRAGMA journal_mode = WAL",
    "PRAGMA foreign_keys = ON",
    "PRAGMA busy_timeout = 5000",
)


@dataclass(frozen=True)
class WriteResult:
    """Acknowledgement of a mutating statement."""

    inserted_id: int | None
    rows_affected: int


class Database:
    """One long-lived connection to the equipment database.

    *db_path* is a file path or ``":memory:"``.  Statements outside
    :meth:`transaction` autocommit.
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = str(db_path)
        self._conn: aiosqlite.Connection | None = None
        self._tx_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    @property
    def is_file_backed(self) -> bool:
        return self.db_path != MEMORY_PATH

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def initialize(self) -> None:
        """Open the connection, enable WAL mode and foreign keys."""
        if self._conn is not None:
            return
        if self.is_file_backed:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(self.db_path, isolation_level=None)
        conn.row_factory = aiosqlite.Row
        for pragma in _PRAGMAS:
            await conn.execute(pragma)
        self._conn = conn
        logger.debug("Opened database %s", self.db_path)

    async def close(self) -> None:
        """Close the connection.  Calling it twice is a no-op."""
        if self._conn is not None:
            conn, self._conn = self._conn, None
            await conn.close()
            logger.debug("Closed database %s", self.db_path)

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError(f"Database not initialized: {self.db_path}")
        return self._conn

    async def checkpoint(self) -> None:
        """Fold the write-ahead log into the main file.

        After this returns the main database file alone holds every
        committed page, so a plain file copy is a complete snapshot.
        """
        if not self.is_file_backed or self._conn is None:
            return
        await self._conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Run the enclosed statements as one unit; any exception rolls back.

        Callers are serialised on a lock since SQLite cannot nest BEGIN.
        """
        conn = self._require_conn()
        async with self._tx_lock:
            await conn.execute("BEGIN")
            try:
                yield conn
                await conn.commit()
            except BaseException:
                await conn.rollback()
                raise

    async def executescript(self, sql: str) -> None:
        """Run a semicolon-separated script (used for schema migrations)."""
        conn = self._require_conn()
        await conn.executescript(sql)
        await conn.commit()

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> WriteResult:
        """Execute a statement, commit, and report the rowid and change count."""
        conn = self._require_conn()
        cursor = await conn.execute(sql, tuple(params))
        result = WriteResult(inserted_id=cursor.lastrowid, rows_affected=cursor.rowcount)
        await conn.commit()
        return result

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def execute_fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[dict]:
        async with self._require_conn().execute(sql, tuple(params)) as cursor:
            return [dict(row) for row in await cursor.fetchall()]

    async def execute_fetchone(self, sql: str, params: Sequence[Any] = ()) -> dict | None:
        """First row of *sql* as a dict, or ``None`` when it yields nothing."""
        async with self._require_conn().execute(sql, tuple(params)) as cursor:
            row = await cursor.fetchone()
        return dict(row) if row is not None else None

    async def table_columns(self, table: str) -> list[str]:
        """Return the column names of *table* (empty if it does not exist)."""
        rows = await self.execute_fetchall(
            "SELECT name FROM pragma_table_info(?)", (table,)
        )
        return [r["name"] for r in rows]
