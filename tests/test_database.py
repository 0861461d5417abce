"""Tests for the Database class."""

from __future__ import annotations

from pathlib import Path

import pytest

from equiptrack.storage.database import Database, WriteResult


@pytest.fixture
async def db():
    """Create an in-memory database, initialise it, and tear it down after the test."""
    database = Database(":memory:")
    await database.initialize()
    await database.executescript(
        "CREATE TABLE parts (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL);"
    )
    yield database
    await database.close()


@pytest.fixture
async def file_db(tmp_path: Path):
    database = Database(tmp_path / "nested" / "live.db")
    await database.initialize()
    yield database
    await database.close()


# ------------------------------------------------------------------
# Lifecycle
# ------------------------------------------------------------------


async def test_initialize_creates_parent_directory(file_db: Database, tmp_path: Path):
    assert (tmp_path / "nested" / "live.db").exists()
    assert file_db.is_file_backed


async def test_file_database_uses_wal_and_foreign_keys(file_db: Database):
    mode = await file_db.execute_fetchone("PRAGMA journal_mode")
    assert mode["journal_mode"] == "wal"
    fk = await file_db.execute_fetchone("PRAGMA foreign_keys")
    assert fk["foreign_keys"] == 1


async def test_memory_database_is_not_file_backed(db: Database):
    assert not db.is_file_backed
    assert db.is_open


async def test_close_is_idempotent(db: Database):
    await db.close()
    await db.close()
    assert not db.is_open


async def test_query_before_initialize_raises():
    database = Database(":memory:")
    with pytest.raises(RuntimeError, match="not initialized"):
        await database.execute_fetchall("SELECT 1")


# ------------------------------------------------------------------
# Statements
# ------------------------------------------------------------------


async def test_execute_reports_rowid_and_changes(db: Database):
    result = await db.execute("INSERT INTO parts (name) VALUES (?)", ("hook",))
    assert result == WriteResult(inserted_id=1, rows_affected=1)

    await db.execute("INSERT INTO parts (name) VALUES (?)", ("chain",))
    updated = await db.execute("UPDATE parts SET name = upper(name)")
    assert updated.rows_affected == 2


async def test_fetch_helpers_return_dicts(db: Database):
    await db.execute("INSERT INTO parts (name) VALUES (?)", ("hook",))
    rows = await db.execute_fetchall("SELECT id, name FROM parts")
    assert rows == [{"id": 1, "name": "hook"}]
    assert await db.execute_fetchone("SELECT * FROM parts WHERE id = ?", (99,)) is None
    assert await db.execute_fetchall("SELECT * FROM parts WHERE id = ?", (99,)) == []


async def test_table_columns(db: Database):
    assert await db.table_columns("parts") == ["id", "name"]
    assert await db.table_columns("missing") == []


# ------------------------------------------------------------------
# Transactions
# ------------------------------------------------------------------


async def test_transaction_commits(db: Database):
    async with db.transaction() as conn:
        await conn.execute("INSERT INTO parts (name) VALUES ('a')")
        await conn.execute("INSERT INTO parts (name) VALUES ('b')")
    rows = await db.execute_fetchall("SELECT name FROM parts ORDER BY id")
    assert [r["name"] for r in rows] == ["a", "b"]


async def test_transaction_rolls_back_on_error(db: Database):
    with pytest.raises(RuntimeError):
        async with db.transaction() as conn:
            await conn.execute("INSERT INTO parts (name) VALUES ('a')")
            raise RuntimeError("boom")
    assert await db.execute_fetchall("SELECT * FROM parts") == []


# ------------------------------------------------------------------
# Checkpoint
# ------------------------------------------------------------------


async def test_checkpoint_empties_the_wal(file_db: Database):
    await file_db.executescript("CREATE TABLE t (v TEXT);")
    for i in range(20):
        await file_db.execute("INSERT INTO t (v) VALUES (?)", (f"row-{i}",))

    await file_db.checkpoint()

    wal = Path(file_db.db_path + "-wal")
    assert not wal.exists() or wal.stat().st_size == 0


async def test_checkpoint_on_memory_database_is_noop(db: Database):
    await db.checkpoint()
