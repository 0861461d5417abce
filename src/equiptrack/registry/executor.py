"""Execute catalog operations against the shared database handle."""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Mapping, Sequence

import aiosqlite

from equiptrack.registry.catalog import Catalog, OperationSpec, ResultShape
from equiptrack.registry.errors import (
    ExecutionFailed,
    FailureKind,
    UnknownOperation,
    ValidationFailed,
)
from equiptrack.registry.operations import CATALOG
from equiptrack.registry.validators import ValidationContext
from equiptrack.storage.database import Database, WriteResult

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Driver error classification
# ---------------------------------------------------------------------------

_ERRORNAME_KINDS = {
    "SQLITE_CONSTRAINT_UNIQUE": FailureKind.UNIQUE,
    "SQLITE_CONSTRAINT_PRIMARYKEY": FailureKind.UNIQUE,
    "SQLITE_CONSTRAINT_FOREIGNKEY": FailureKind.FOREIGN_KEY,
    "SQLITE_CONSTRAINT_NOTNULL": FailureKind.NOT_NULL,
    "SQLITE_CONSTRAINT_CHECK": FailureKind.CHECK,
    "SQLITE_BUSY": FailureKind.CONNECTIVITY,
    "SQLITE_LOCKED": FailureKind.CONNECTIVITY,
    "SQLITE_CANTOPEN": FailureKind.CONNECTIVITY,
    "SQLITE_NOTADB": FailureKind.CONNECTIVITY,
    "SQLITE_READONLY": FailureKind.CONNECTIVITY,
}

_MESSAGE_KINDS = (
    ("unique constraint failed", FailureKind.UNIQUE),
    ("foreign key constraint failed", FailureKind.FOREIGN_KEY),
    ("not null constraint failed", FailureKind.NOT_NULL),
    ("check constraint failed", FailureKind.CHECK),
    ("syntax error", FailureKind.SYNTAX),
    ("no such table", FailureKind.SYNTAX),
    ("no such column", FailureKind.SYNTAX),
    ("database is locked", FailureKind.CONNECTIVITY),
    ("unable to open database", FailureKind.CONNECTIVITY),
    ("disk i/o error", FailureKind.CONNECTIVITY),
)


def classify_error(exc: BaseException) -> FailureKind:
    """Map a driver exception onto a :class:`FailureKind`."""
    name = getattr(exc, "sqlite_errorname", None) or ""
    if name in _ERRORNAME_KINDS:
        return _ERRORNAME_KINDS[name]
    if name.startswith("SQLITE_IOERR"):
        return FailureKind.CONNECTIVITY

    message = str(exc).lower()
    for needle, kind in _MESSAGE_KINDS:
        if needle in message:
            return kind
    return FailureKind.OTHER


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------


class OperationExecutor:
    """Look up, validate, bind and run named operations.

    Parameters
    ----------
    db:
        The open, migrated database handle.
    catalog:
        Operations this executor may run.  Defaults to the application catalog.
    context:
        Path policy handed to validators.
    """

    def __init__(
        self,
        db: Database,
        catalog: Catalog = CATALOG,
        context: ValidationContext | None = None,
    ) -> None:
        self._db = db
        self._catalog = catalog
        self._context = context or ValidationContext()

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    def _resolve(self, domain: str, operation: str) -> OperationSpec:
        spec = self._catalog.lookup(domain, operation)
        if spec is None:
            logger.warning("Unknown operation requested: %s.%s", domain, operation)
            raise UnknownOperation(domain, operation)
        return spec

    def _check(self, spec: OperationSpec, args: Mapping[str, Any]) -> None:
        if not spec.validate(args, self._context):
            logger.warning("Validation failed for %s", spec.key)
            raise ValidationFailed(spec.domain, spec.name, args)

    def _failed(self, spec: OperationSpec, exc: BaseException) -> ExecutionFailed:
        kind = classify_error(exc)
        logger.error("Operation %s failed (%s): %s", spec.key, kind, exc)
        return ExecutionFailed(spec.domain, spec.name, kind, str(exc))

    def _require_open(self, spec: OperationSpec) -> None:
        if not self._db.is_open:
            logger.error("Operation %s failed: database is not open", spec.key)
            raise ExecutionFailed(
                spec.domain, spec.name, FailureKind.CONNECTIVITY, "database is not open"
            )

    async def execute(
        self,
        domain: str,
        operation: str,
        args: Mapping[str, Any] | None = None,
    ) -> Any:
        """Run one catalog operation.

        Returns a list of row dicts (``many``), a row dict or ``None``
        (``one``), a single value or ``None`` (``scalar``) or a
        :class:`WriteResult` (``write``).

        Raises
        ------
        UnknownOperation
            No such ``(domain, operation)`` in the catalog.
        ValidationFailed
            The validator rejected *args*; nothing was sent to the database.
        ExecutionFailed
            The database rejected the statement.
        """
        args = args or {}
        spec = self._resolve(domain, operation)
        self._check(spec, args)
        params = spec.bind(args)
        self._require_open(spec)

        try:
            if spec.result_shape == ResultShape.WRITE:
                return await self._db.execute(spec.statement, params)
            if spec.result_shape == ResultShape.MANY:
                return await self._db.execute_fetchall(spec.statement, params)
            row = await self._db.execute_fetchone(spec.statement, params)
        except (sqlite3.Error, OverflowError) as exc:
            raise self._failed(spec, exc) from exc

        if spec.result_shape == ResultShape.ONE or row is None:
            return row
        return next(iter(row.values()), None)

    async def execute_many(
        self,
        domain: str,
        operation: str,
        arg_list: Sequence[Mapping[str, Any]],
    ) -> list[Any]:
        """Run the same operation once per argument bag, all-or-nothing.

        Every bag is validated before the first statement runs.  The calls
        share one transaction; if any fails, none of them persist.
        """
        spec = self._resolve(domain, operation)
        for args in arg_list:
            self._check(spec, args)
        self._require_open(spec)

        results: list[Any] = []
        try:
            async with self._db.transaction() as conn:
                for args in arg_list:
                    cursor = await conn.execute(spec.statement, spec.bind(args))
                    results.append(await _shape(cursor, spec.result_shape))
        except (sqlite3.Error, OverflowError) as exc:
            raise self._failed(spec, exc) from exc
        return results


async def _shape(cursor: aiosqlite.Cursor, shape: ResultShape) -> Any:
    if shape == ResultShape.WRITE:
        return WriteResult(inserted_id=cursor.lastrowid, rows_affected=cursor.rowcount)
    if shape == ResultShape.MANY:
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]
    row = await cursor.fetchone()
    if row is None:
        return None
    if shape == ResultShape.ONE:
        return dict(row)
    return row[0]
