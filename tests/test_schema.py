"""Tests for the application schema migrations."""

from __future__ import annotations

import sqlite3

import pytest

from equiptrack.registry.operations import CATALOG
from equiptrack.storage.schema import MIGRATIONS, TARGET_VERSION


EXPECTED_TABLES = {
    "equipment", "inspections", "documents", "scheduled_inspections",
    "compliance_standards", "equipment_type_compliance", "inspection_templates",
    "inspection_items", "deficiencies", "signatures", "work_orders", "pm_templates",
    "pm_schedules", "meter_readings", "load_tests", "calibrations", "credentials",
    "template_items", "users", "audit_log", "certificates", "schema_version",
}


def test_versions_are_contiguous():
    assert MIGRATIONS.versions == list(range(1, TARGET_VERSION + 1))
    assert TARGET_VERSION == 5


async def test_all_tables_created(storage):
    rows = await storage.db.execute_fetchall(
        "SELECT name FROM sqlite_master WHERE type='table'"
    )
    names = {r["name"] for r in rows}
    assert EXPECTED_TABLES.issubset(names), f"Missing tables: {EXPECTED_TABLES - names}"


async def test_later_versions_extend_earlier_tables(storage):
    equipment = await storage.db.table_columns("equipment")
    for column in ("parent_id", "site", "building", "bay", "tagged_out"):
        assert column in equipment
    documents = await storage.db.table_columns("documents")
    for column in ("hash", "size", "uploaded_by", "uploaded_at"):
        assert column in documents
    assert "work_order_id" in await storage.db.table_columns("deficiencies")


async def test_every_statement_compiles_against_schema(storage):
    """Preparing each catalog statement fails if it names a missing table or column."""
    broken: dict[str, str] = {}
    for spec in CATALOG.values():
        params = (None,) * len(spec.parameter_names)
        try:
            await storage.db.execute_fetchall("EXPLAIN " + spec.statement, params)
        except sqlite3.Error as exc:
            broken[spec.key] = str(exc)
    assert broken == {}


async def test_check_constraints_guard_enums(storage, crane):
    with pytest.raises(sqlite3.IntegrityError):
        await storage.db.execute(
            "INSERT INTO deficiencies (equipment_id, severity, description) VALUES (?, ?, ?)",
            (crane, "cosmetic", "scratch"),
        )
