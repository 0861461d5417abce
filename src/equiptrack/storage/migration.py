"""Versioned schema migrations with file-level backup and rollback.

A startup cycle brings the database from its recorded schema version up to a
target version.  Before the first pending step runs, the live file is copied
into the backup directory; if any step fails, the handle is closed and that
copy is written back over the live file, so the database is either fully
migrated or exactly as it was.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Awaitable, Callable, Iterable, Iterator, Mapping, NoReturn

from equiptrack.logging_config import file_log_sink
from equiptrack.storage.database import Database

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "database-backup-"
BACKUP_SUFFIX = ".db"
DEFAULT_MAX_BACKUPS = 10

_LEDGER_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER PRIMARY KEY,
    name       TEXT,
    applied_at TEXT
)
"""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class MigrationError(Exception):
    """Base error for schema migration and backup handling."""


class LedgerUnavailable(MigrationError):
    """The recorded schema version could not be read; nothing was attempted."""


class BackupCreationFailed(MigrationError):
    """The pre-migration snapshot could not be written; nothing was migrated."""


class MigrationStepFailed(MigrationError):
    """A migration procedure raised.  The cause is chained as ``__cause__``."""

    def __init__(self, version: int, cause: BaseException, rolled_back: bool = False) -> None:
        self.version = version
        self.cause = cause
        self.rolled_back = rolled_back
        super().__init__(f"Migration failed at version {version}: {cause}")


class RollbackFailed(MigrationError):
    """Restoring the snapshot failed; the live file may be inconsistent."""

    def __init__(self, cause: BaseException, backup_path: Path | None = None) -> None:
        self.cause = cause
        self.backup_path = backup_path
        super().__init__(f"Rollback failed: {cause}")


# ---------------------------------------------------------------------------
# Migration set
# ---------------------------------------------------------------------------

MigrationProcedure = Callable[[Database], Awaitable[None]]


@dataclass(frozen=True)
class Migration:
    """One versioned, one-way schema change.

    Exactly one of *sql* (a script run with ``executescript``) or
    *procedure* (an async callable receiving the database) must be given.
    """

    version: int
    name: str
    sql: str | None = None
    procedure: MigrationProcedure | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.version, int) or isinstance(self.version, bool) or self.version < 1:
            raise ValueError(f"Migration version must be a positive integer, got {self.version!r}")
        if (self.sql is None) == (self.procedure is None):
            raise ValueError(f"Migration {self.version} needs exactly one of sql or procedure")

    async def apply(self, db: Database) -> None:
        if self.procedure is not None:
            await self.procedure(db)
        else:
            await db.executescript(self.sql)


class MigrationSet(Mapping[int, Migration]):
    """Immutable mapping of version number to :class:`Migration`.

    Version numbers may be sparse; a gap is a reserved version with no
    procedure and is skipped when migrating.
    """

    def __init__(self, migrations: Mapping[int, Migration]) -> None:
        self._by_version = MappingProxyType(dict(sorted(migrations.items())))

    @classmethod
    def from_migrations(cls, migrations: Iterable[Migration]) -> MigrationSet:
        by_version: dict[int, Migration] = {}
        for migration in migrations:
            if migration.version in by_version:
                raise ValueError(f"Duplicate migration version {migration.version}")
            by_version[migration.version] = migration
        return cls(by_version)

    def __getitem__(self, version: int) -> Migration:
        return self._by_version[version]

    def __iter__(self) -> Iterator[int]:
        return iter(self._by_version)

    def __len__(self) -> int:
        return len(self._by_version)

    @property
    def versions(self) -> list[int]:
        return list(self._by_version)

    @property
    def latest_version(self) -> int:
        return max(self._by_version, default=0)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class MigrationResult:
    """Outcome of one :meth:`MigrationManager.run_migrations` cycle."""

    success: bool
    backup_path: Path | None = None
    error: str | None = None
    exception: MigrationError | None = None
    from_version: int = 0
    to_version: int = 0
    applied: list[int] = field(default_factory=list)

    def raise_for_status(self) -> None:
        """Re-raise the typed migration error of a failed cycle."""
        if not self.success and self.exception is not None:
            raise self.exception


@dataclass(frozen=True)
class BackupInfo:
    name: str
    path: Path
    size: int
    created: datetime


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------


class MigrationManager:
    """Apply sequential schema migrations with snapshot/restore protection.

    The ``schema_version`` table records every version that has been applied;
    its maximum is the current schema version.  The manager exclusively owns
    *backup_dir*.

    Parameters
    ----------
    db_path:
        Path of the live database file (``":memory:"`` disables snapshots).
    backup_dir:
        Directory holding ``database-backup-<timestamp>.db`` snapshots.
    log_path:
        Append-only migration log.  ``None`` logs to the console only.
    """

    def __init__(
        self,
        db_path: str | Path,
        backup_dir: str | Path,
        log_path: str | Path | None = None,
    ) -> None:
        self.db_path = Path(db_path)
        self.backup_dir = Path(backup_dir)
        self.log_path = Path(log_path) if log_path is not None else None
        self.backup_dir.mkdir(parents=True, exist_ok=True)

    @property
    def _has_live_file(self) -> bool:
        return str(self.db_path) != ":memory:" and self.db_path.is_file()

    # ------------------------------------------------------------------
    # Version ledger
    # ------------------------------------------------------------------

    async def ensure_ledger(self, db: Database) -> None:
        await db.executescript(_LEDGER_SQL)

    async def get_current_version(self, db: Database) -> int:
        """Return the highest applied version, or 0 if none is recorded."""
        await self.ensure_ledger(db)
        row = await db.execute_fetchone(
            "SELECT MAX(version) AS version FROM schema_version"
        )
        return row["version"] if row and row["version"] is not None else 0

    async def _record_version(self, db: Database, migration: Migration) -> None:
        await db.execute(
            "INSERT OR REPLACE INTO schema_version (version, name, applied_at) "
            "VALUES (?, ?, ?)",
            (migration.version, migration.name, _utcnow().isoformat()),
        )

    # ------------------------------------------------------------------
    # Migration cycle
    # ------------------------------------------------------------------

    async def run_migrations(
        self,
        db: Database,
        migrations: MigrationSet | Mapping[int, Migration],
        target_version: int,
    ) -> MigrationResult:
        """Bring *db* up to *target_version*.

        Returns a :class:`MigrationResult`; failures are reported through it
        rather than raised, and :meth:`MigrationResult.raise_for_status`
        re-raises the typed error.  After a failed cycle that had a
        snapshot, *db* is closed and the live file has been restored.
        """
        if target_version < 0:
            raise ValueError(f"target_version must be >= 0, got {target_version}")
        if not isinstance(migrations, MigrationSet):
            migrations = MigrationSet(migrations)

        with file_log_sink(logger, self.log_path):
            result = MigrationResult(success=False)
            try:
                await self._migrate(db, migrations, target_version, result)
            except MigrationError as exc:
                result.success = False
                result.error = str(exc)
                result.exception = exc
                if isinstance(exc, RollbackFailed):
                    logger.critical(
                        "Migration process failed and the database could not be restored "
                        "from %s: %s", exc.backup_path, exc.cause,
                    )
                else:
                    logger.error("Migration process failed: %s", exc)
            return result

    async def _migrate(
        self,
        db: Database,
        migrations: MigrationSet,
        target_version: int,
        result: MigrationResult,
    ) -> None:
        try:
            current = await self.get_current_version(db)
        except (sqlite3.Error, RuntimeError) as exc:
            raise LedgerUnavailable(f"Cannot read schema version: {exc}") from exc
        result.from_version = result.to_version = current
        logger.info("Current schema version: %d, Target version: %d", current, target_version)

        if current >= target_version:
            logger.info("Database is already up to date")
            result.success = True
            return

        try:
            await db.checkpoint()
        except sqlite3.Error as exc:
            raise BackupCreationFailed(f"WAL checkpoint failed: {exc}") from exc
        result.backup_path = await self.create_backup()

        for version in range(current + 1, target_version + 1):
            migration = migrations.get(version)
            if migration is None:
                logger.info("No migration registered for version %d, skipping", version)
                continue

            logger.info("Starting migration %d (%s)", version, migration.name)
            try:
                await migration.apply(db)
                await self._record_version(db, migration)
            except Exception as exc:
                logger.error("Migration %d failed: %s", version, exc)
                await self._abort(db, version, exc, result.backup_path)

            result.applied.append(version)
            result.to_version = version
            logger.info("Migration %d completed successfully", version)
            logger.info("Schema version updated to %d", version)

        result.success = True
        logger.info("All migrations completed successfully")

    async def _abort(
        self,
        db: Database,
        version: int,
        cause: Exception,
        backup_path: Path | None,
    ) -> NoReturn:
        """Roll back to *backup_path* (if any) and raise MigrationStepFailed."""
        if backup_path is None:
            logger.warning(
                "Migration %d failed and no backup exists; nothing to roll back", version
            )
            raise MigrationStepFailed(version, cause) from cause

        logger.info("Migration %d failed, initiating rollback", version)
        try:
            await db.close()
        except Exception as close_exc:
            logger.warning("Error closing database before rollback: %s", close_exc)

        await self.restore_backup(backup_path)
        logger.info("Rollback completed")
        raise MigrationStepFailed(version, cause, rolled_back=True) from cause

    # ------------------------------------------------------------------
    # Backups
    # ------------------------------------------------------------------

    def _new_backup_path(self) -> Path:
        now = _utcnow()
        while True:
            stamp = now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond // 1000:03d}Z"
            path = self.backup_dir / f"{BACKUP_PREFIX}{stamp}{BACKUP_SUFFIX}"
            if not path.exists():
                return path
            # Two cycles in the same millisecond; never overwrite a snapshot.
            now += timedelta(milliseconds=1)

    async def create_backup(self) -> Path | None:
        """Copy the live database file into the backup directory.

        Returns the new backup path, or ``None`` when there is no live file
        yet (fresh install).  Raises :class:`BackupCreationFailed` if the
        copy fails.
        """
        if not self._has_live_file:
            logger.info("No existing database found, skipping backup")
            return None

        backup_path = self._new_backup_path()
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(shutil.copyfile, self.db_path, backup_path)
        except OSError as exc:
            logger.error("Failed to create backup: %s", exc)
            raise BackupCreationFailed(f"Backup creation failed: {exc}") from exc

        logger.info("Database backup created: %s", backup_path)
        return backup_path

    async def restore_backup(self, backup_path: str | Path) -> None:
        """Overwrite the live database file with *backup_path*.

        The caller must have closed every handle on the live file.  Stale
        write-ahead-log sidecars are removed first so SQLite does not replay
        them over the restored pages.
        """
        backup_path = Path(backup_path)
        if not backup_path.is_file():
            exc = FileNotFoundError(f"Backup file not found for rollback: {backup_path}")
            logger.error("Rollback failed: %s", exc)
            raise RollbackFailed(exc, backup_path) from exc

        try:
            for suffix in ("-wal", "-shm"):
                sidecar = self.db_path.with_name(self.db_path.name + suffix)
                sidecar.unlink(missing_ok=True)
            await asyncio.to_thread(shutil.copyfile, backup_path, self.db_path)
        except OSError as exc:
            logger.error("Rollback failed: %s", exc)
            raise RollbackFailed(exc, backup_path) from exc

        logger.info("Database rolled back from: %s", backup_path)

    def _list_backups(self) -> list[tuple[Path, float, int]]:
        entries = []
        for path in self.backup_dir.glob(f"{BACKUP_PREFIX}*{BACKUP_SUFFIX}"):
            if not path.is_file():
                continue
            stat = path.stat()
            entries.append((path, stat.st_mtime, stat.st_size))
        entries.sort(key=lambda entry: entry[1], reverse=True)
        return entries

    def cleanup_old_backups(self, max_backups: int = DEFAULT_MAX_BACKUPS) -> list[Path]:
        """Delete every backup beyond the *max_backups* most recent ones.

        Best-effort: a file that cannot be deleted is logged and skipped.
        Returns the paths that were removed.
        """
        if max_backups < 0:
            raise ValueError(f"max_backups must be >= 0, got {max_backups}")

        deleted: list[Path] = []
        with file_log_sink(logger, self.log_path):
            try:
                backups = self._list_backups()
            except OSError as exc:
                logger.error("Failed to cleanup old backups: %s", exc)
                return deleted

            for path, _mtime, _size in backups[max_backups:]:
                try:
                    path.unlink()
                except OSError as exc:
                    logger.error("Failed to delete old backup %s: %s", path.name, exc)
                    continue
                deleted.append(path)
                logger.info("Deleted old backup: %s", path.name)
        return deleted

    def get_backup_info(self) -> list[BackupInfo]:
        """List backups newest-first.  Read-only."""
        try:
            backups = self._list_backups()
        except OSError as exc:
            logger.error("Failed to get backup info: %s", exc)
            return []
        return [
            BackupInfo(
                name=path.name,
                path=path,
                size=size,
                created=datetime.fromtimestamp(mtime, tz=timezone.utc),
            )
            for path, mtime, size in backups
        ]
