"""equiptrack storage core. Startup wiring and maintenance CLI."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import shutil
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Sequence

from equiptrack.config_loader import AppConfig, load_config
from equiptrack.logging_config import setup_logging
from equiptrack.registry.errors import RegistryError
from equiptrack.registry.executor import OperationExecutor
from equiptrack.registry.operations import CATALOG
from equiptrack.registry.validators import ValidationContext
from equiptrack.storage.database import Database, WriteResult
from equiptrack.storage.migration import (
    MigrationError,
    MigrationManager,
    MigrationResult,
    MigrationSet,
    RollbackFailed,
)
from equiptrack.storage.schema import MIGRATIONS

logger = logging.getLogger(__name__)

SQLITE_HEADER = b"SQLite format 3\x00"


class DatabaseImportFailed(Exception):
    """Copying an imported file over the live database failed.

    *snapshot* is the backup taken of the replaced file, if any.
    """

    def __init__(self, source: Path, snapshot: Path | None, cause: BaseException) -> None:
        self.source = source
        self.snapshot = snapshot
        self.cause = cause
        super().__init__(f"Could not import {source}: {cause}")


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------


class Storage:
    """The opened, migrated storage core handed to the rest of the host."""

    def __init__(
        self,
        config: AppConfig,
        db: Database,
        migration_manager: MigrationManager,
        executor: OperationExecutor,
        migration_result: MigrationResult,
    ) -> None:
        self.config = config
        self.db = db
        self.migration_manager = migration_manager
        self.executor = executor
        self.migration_result = migration_result

    async def close(self) -> None:
        await self.db.close()


def _migration_manager(config: AppConfig) -> MigrationManager:
    return MigrationManager(config.db_path, config.backup_dir, config.log_path)


async def open_storage(
    config: AppConfig,
    migrations: MigrationSet = MIGRATIONS,
    target_version: int | None = None,
) -> Storage:
    """Open the database, migrate it, prune snapshots and build the executor.

    The executor only exists once migrations have succeeded.

    Raises
    ------
    MigrationError
        If the migration cycle failed.  The handle is closed and, when a
        snapshot existed, the live file has been restored from it.
    """
    if target_version is None:
        target_version = migrations.latest_version

    db = Database(config.db_path)
    await db.initialize()
    manager = _migration_manager(config)

    result = await manager.run_migrations(db, migrations, target_version)
    if not result.success:
        await db.close()
        result.raise_for_status()

    manager.cleanup_old_backups(config.storage.max_backups)

    config.documents_dir.mkdir(parents=True, exist_ok=True)
    context = ValidationContext(
        documents_dir=config.documents_dir,
        require_managed=config.documents.require_managed,
    )
    executor = OperationExecutor(db, CATALOG, context)
    logger.info("Storage ready at schema version %d", result.to_version)
    return Storage(config, db, manager, executor, result)


# ---------------------------------------------------------------------------
# File-level maintenance
# ---------------------------------------------------------------------------


def is_sqlite_file(path: Path) -> bool:
    """True if *path* starts with the SQLite 3 file header."""
    try:
        with open(path, "rb") as f:
            return f.read(len(SQLITE_HEADER)) == SQLITE_HEADER
    except OSError:
        return False


async def _checkpoint_live_file(config: AppConfig) -> None:
    if not config.db_path.is_file():
        return
    db = Database(config.db_path)
    await db.initialize()
    try:
        await db.checkpoint()
    finally:
        await db.close()


async def export_database(config: AppConfig, destination: Path) -> Path:
    """Copy the live database file to *destination*."""
    if not config.db_path.is_file():
        raise FileNotFoundError(f"No database at {config.db_path}")
    await _checkpoint_live_file(config)
    destination.parent.mkdir(parents=True, exist_ok=True)
    await asyncio.to_thread(shutil.copyfile, config.db_path, destination)
    logger.info("Database exported to %s", destination)
    return destination


async def import_database(config: AppConfig, source: Path) -> Path | None:
    """Replace the live database with *source*, snapshotting the current file first.

    Returns the path of the snapshot taken of the replaced file, if any.
    """
    if not is_sqlite_file(source):
        raise ValueError(f"Not an SQLite database: {source}")

    manager = _migration_manager(config)
    await _checkpoint_live_file(config)
    snapshot = await manager.create_backup()
    try:
        await manager.restore_backup(source)
    except RollbackFailed as exc:
        logger.error("Import from %s failed: %s", source, exc.cause)
        raise DatabaseImportFailed(source, snapshot, exc.cause) from exc
    logger.info("Database imported from %s", source)
    return snapshot


# ---------------------------------------------------------------------------
# CLI commands
# ---------------------------------------------------------------------------


def _json_default(value: Any) -> Any:
    if isinstance(value, WriteResult):
        return asdict(value)
    return str(value)


def _print_json(value: Any) -> None:
    print(json.dumps(value, indent=2, default=_json_default))


async def _cmd_migrate(config: AppConfig, args: argparse.Namespace) -> None:
    storage = await open_storage(config, target_version=args.target)
    try:
        result = storage.migration_result
        if result.applied:
            print(f"Migrated {result.from_version} -> {result.to_version} "
                  f"(applied: {', '.join(map(str, result.applied))})")
        else:
            print(f"Schema version {result.to_version}, nothing to apply")
        if result.backup_path:
            print(f"Backup: {result.backup_path}")
    finally:
        await storage.close()


async def _cmd_status(config: AppConfig, args: argparse.Namespace) -> None:
    manager = _migration_manager(config)
    current = 0
    if config.db_path.is_file():
        db = Database(config.db_path)
        await db.initialize()
        try:
            current = await manager.get_current_version(db)
        finally:
            await db.close()

    print(f"Database:       {config.db_path}")
    print(f"Schema version: {current}")
    print(f"Target version: {MIGRATIONS.latest_version}")
    print(f"Backups:        {len(manager.get_backup_info())} (keep {config.storage.max_backups})")


def _cmd_backups(config: AppConfig, args: argparse.Namespace) -> None:
    backups = _migration_manager(config).get_backup_info()
    if not backups:
        print("No backups")
        return
    for info in backups:
        print(f"{info.created.isoformat()}  {info.size:>10}  {info.name}")


def _cmd_cleanup(config: AppConfig, args: argparse.Namespace) -> None:
    keep = args.keep if args.keep is not None else config.storage.max_backups
    deleted = _migration_manager(config).cleanup_old_backups(keep)
    print(f"Deleted {len(deleted)} backup(s)")


def _cmd_operations(config: AppConfig, args: argparse.Namespace) -> None:
    domains = [args.domain] if args.domain else CATALOG.domains()
    for domain in domains:
        specs = CATALOG.operations(domain)
        if not specs:
            print(f"Unknown domain: {domain}", file=sys.stderr)
            raise SystemExit(2)
        for spec in specs:
            params = ", ".join(spec.parameter_names)
            print(f"{spec.key} ({spec.result_shape}) [{params}]")


async def _cmd_op(config: AppConfig, args: argparse.Namespace) -> None:
    try:
        op_args = json.loads(args.args) if args.args else {}
    except json.JSONDecodeError as exc:
        print(f"Invalid --args JSON: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc
    if not isinstance(op_args, dict):
        print("--args must be a JSON object", file=sys.stderr)
        raise SystemExit(2)

    storage = await open_storage(config)
    try:
        result = await storage.executor.execute(args.domain, args.operation, op_args)
    finally:
        await storage.close()
    _print_json(result)


async def _cmd_backup(config: AppConfig, args: argparse.Namespace) -> None:
    path = await export_database(config, Path(args.to).expanduser())
    print(f"Exported to {path}")


async def _cmd_restore(config: AppConfig, args: argparse.Namespace) -> None:
    snapshot = await import_database(config, Path(args.source).expanduser())
    if snapshot:
        print(f"Previous database saved to {snapshot}")
    storage = await open_storage(config)
    try:
        print(f"Restored; schema version {storage.migration_result.to_version}")
    finally:
        await storage.close()


_ASYNC_COMMANDS = {
    "migrate": _cmd_migrate,
    "status": _cmd_status,
    "op": _cmd_op,
    "backup": _cmd_backup,
    "restore": _cmd_restore,
}

_SYNC_COMMANDS = {
    "backups": _cmd_backups,
    "cleanup": _cmd_cleanup,
    "operations": _cmd_operations,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="equiptrack", description="equiptrack storage maintenance",
    )
    parser.add_argument("--config", default=None, help="Path to equiptrack.yaml")
    sub = parser.add_subparsers(dest="command", help="Available commands")

    migrate_parser = sub.add_parser("migrate", help="Bring the schema up to date")
    migrate_parser.add_argument("--target", type=int, default=None, help="Target version")

    sub.add_parser("status", help="Show schema version and backup count")
    sub.add_parser("backups", help="List pre-migration backups")

    backup_parser = sub.add_parser("backup", help="Export the database file")
    backup_parser.add_argument("--to", required=True, help="Destination file")

    restore_parser = sub.add_parser("restore", help="Replace the database with a file")
    restore_parser.add_argument("--from", dest="source", required=True, help="Source file")

    cleanup_parser = sub.add_parser("cleanup", help="Delete old backups")
    cleanup_parser.add_argument("--keep", type=int, default=None, help="Backups to keep")

    op_parser = sub.add_parser("op", help="Run one catalog operation")
    op_parser.add_argument("domain")
    op_parser.add_argument("operation")
    op_parser.add_argument("--args", default=None, help="Arguments as a JSON object")

    ops_parser = sub.add_parser("operations", help="List catalog operations")
    ops_parser.add_argument("domain", nargs="?", default=None)

    return parser


def cli_main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        raise SystemExit(2)

    try:
        config = load_config(Path(args.config) if args.config else None)
    except (FileNotFoundError, ValueError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    setup_logging(config.logging.format, config.logging.level)

    try:
        if args.command in _SYNC_COMMANDS:
            _SYNC_COMMANDS[args.command](config, args)
        else:
            asyncio.run(_ASYNC_COMMANDS[args.command](config, args))
    except DatabaseImportFailed as exc:
        print(f"Restore failed: {exc}", file=sys.stderr)
        if exc.snapshot:
            print(f"Previous database saved to {exc.snapshot}", file=sys.stderr)
        raise SystemExit(1) from exc
    except MigrationError as exc:
        logger.critical("Migration failed: %s", exc)
        raise SystemExit(1) from exc
    except RegistryError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc
    except (FileNotFoundError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc


if __name__ == "__main__":
    cli_main()
