"""Tests for the OperationExecutor."""

from __future__ import annotations

import sqlite3

import pytest

from equiptrack.registry.catalog import Catalog, OperationSpec, ResultShape
from equiptrack.registry.errors import (
    ExecutionFailed,
    FailureKind,
    UnknownOperation,
    ValidationFailed,
)
from equiptrack.registry.executor import OperationExecutor, classify_error
from equiptrack.registry.validators import ValidationContext
from equiptrack.storage.database import Database, WriteResult


VALID_DOCUMENT = {
    "file_name": "load-chart.pdf",
    "file_path": "/abs/safe/path.pdf",
    "hash": "9f86d081884c7d65",
    "size": 2048,
    "uploaded_by": "J. Ortiz",
}


async def _count(executor: OperationExecutor) -> int:
    return await executor.execute("equipment", "get_count")


# ------------------------------------------------------------------
# Lookup and validation
# ------------------------------------------------------------------


async def test_unknown_operation(executor: OperationExecutor):
    with pytest.raises(UnknownOperation) as exc_info:
        await executor.execute("equipment", "drop_table")
    assert exc_info.value.domain == "equipment"
    assert exc_info.value.operation == "drop_table"


async def test_invalid_status_is_rejected_without_mutation(executor: OperationExecutor):
    before = await _count(executor)
    bad = {"equipment_id": "CR-009", "type": "Hoist", "manufacturer": "CM", "status": "retired"}

    with pytest.raises(ValidationFailed) as exc_info:
        await executor.execute("equipment", "create", bad)

    assert exc_info.value.arguments == bad
    assert await _count(executor) == before


async def test_traversal_path_rejected(executor: OperationExecutor, crane: int):
    args = {**VALID_DOCUMENT, "equipment_id": crane, "file_path": "../../etc/passwd"}
    with pytest.raises(ValidationFailed):
        await executor.execute("documents", "create", args)
    assert await executor.execute("documents", "get_by_equipment_id", {"equipment_id": crane}) == []


async def test_safe_path_accepted(executor: OperationExecutor, crane: int):
    result = await executor.execute(
        "documents", "create", {**VALID_DOCUMENT, "equipment_id": crane},
    )
    assert result.rows_affected == 1
    docs = await executor.execute("documents", "get_by_equipment_id", {"equipment_id": crane})
    assert docs[0]["file_path"] == "/abs/safe/path.pdf"
    assert docs[0]["uploaded_at"]


async def test_managed_documents_policy(storage, crane: int):
    strict = OperationExecutor(
        storage.db,
        context=ValidationContext(documents_dir=storage.config.documents_dir, require_managed=True),
    )
    with pytest.raises(ValidationFailed):
        await strict.execute("documents", "create", {**VALID_DOCUMENT, "equipment_id": crane})

    inside = str(storage.config.documents_dir / "CR-001" / "load-chart.pdf")
    result = await strict.execute(
        "documents", "create", {**VALID_DOCUMENT, "equipment_id": crane, "file_path": inside},
    )
    assert result.inserted_id is not None


# ------------------------------------------------------------------
# Result shapes
# ------------------------------------------------------------------


async def test_result_shapes(executor: OperationExecutor, crane: int):
    many = await executor.execute("equipment", "get_all")
    assert isinstance(many, list) and many[0]["equipment_id"] == "CR-001"

    one = await executor.execute("equipment", "get_by_id", {"id": crane})
    assert one["manufacturer"] == "Demag"
    assert await executor.execute("equipment", "get_by_id", {"id": 9999}) is None

    assert await executor.execute("equipment", "get_count") == 1

    write = await executor.execute("equipment", "update", {
        "id": crane, "manufacturer": "Konecranes", "status": "under maintenance",
    })
    assert isinstance(write, WriteResult)
    assert write.rows_affected == 1


async def test_inspection_date_is_normalised(executor: OperationExecutor, crane: int):
    await executor.execute("inspections", "create", {
        "equipment_id": crane, "inspector": "J. Ortiz", "inspection_date": "2025-03-01",
        "findings": "Hook latch worn",
    })
    rows = await executor.execute("inspections", "get_by_date_range", {
        "start_date": "2025-01-01", "end_date": "2025-12-31",
    })
    assert [r["inspection_date_date"] for r in rows] == ["2025-03-01"]


async def test_workflow_across_domains(executor: OperationExecutor, crane: int):
    inspection = await executor.execute("inspections", "create", {
        "equipment_id": crane, "inspector": "J. Ortiz", "inspection_date": "2025-03-01",
    })
    item = await executor.execute("inspection_items", "create", {
        "inspection_id": inspection.inserted_id, "item_text": "Hook throat opening",
        "critical": 1, "result": "fail",
    })
    deficiency = await executor.execute("deficiencies", "create_from_inspection_item", {
        "equipment_id": crane, "inspection_item_id": item.inserted_id,
        "severity": "critical", "description": "Hook throat opened beyond 5%",
    })
    work_order = await executor.execute("work_orders", "create", {
        "equipment_id": crane, "wo_number": "WO-0001", "title": "Replace hook",
        "work_type": "corrective", "priority": "high", "created_by": "supervisor",
        "deficiency_id": deficiency.inserted_id,
    })
    await executor.execute("deficiencies", "link_to_work_order", {
        "id": deficiency.inserted_id, "work_order_id": work_order.inserted_id,
    })

    open_critical = await executor.execute("deficiencies", "get_open_critical")
    assert [d["work_order_id"] for d in open_critical] == [work_order.inserted_id]
    failures = await executor.execute("inspection_items", "get_critical_failures")
    assert failures[0]["equipment_identifier"] == "CR-001"

    await executor.execute("deficiencies", "close", {
        "id": deficiency.inserted_id, "verification_signature": "sig",
    })
    assert await executor.execute("deficiencies", "get_open_critical") == []


# ------------------------------------------------------------------
# Execution failures
# ------------------------------------------------------------------


async def test_unique_violation(executor: OperationExecutor, crane: int):
    with pytest.raises(ExecutionFailed) as exc_info:
        await executor.execute("equipment", "create", {
            "equipment_id": "CR-001", "type": "Hoist", "manufacturer": "CM", "status": "active",
        })
    assert exc_info.value.kind == FailureKind.UNIQUE
    assert isinstance(exc_info.value.__cause__, sqlite3.IntegrityError)


async def test_foreign_key_violation(executor: OperationExecutor):
    with pytest.raises(ExecutionFailed) as exc_info:
        await executor.execute("inspections", "create", {
            "equipment_id": 424242, "inspector": "J. Ortiz", "inspection_date": "2025-03-01",
        })
    assert exc_info.value.kind == FailureKind.FOREIGN_KEY
    assert exc_info.value.domain == "inspections"
    assert exc_info.value.operation == "create"


async def test_closed_handle_is_connectivity_failure(storage):
    await storage.db.close()
    with pytest.raises(ExecutionFailed) as exc_info:
        await storage.executor.execute("equipment", "get_all")
    assert exc_info.value.kind == FailureKind.CONNECTIVITY


async def test_syntax_error_classified():
    db = Database(":memory:")
    await db.initialize()
    try:
        catalog = Catalog.from_specs([
            OperationSpec("debug", "broken", "SELEC 1", (), ResultShape.SCALAR),
        ])
        with pytest.raises(ExecutionFailed) as exc_info:
            await OperationExecutor(db, catalog).execute("debug", "broken")
        assert exc_info.value.kind == FailureKind.SYNTAX
    finally:
        await db.close()


async def test_oversized_capacity_rejected_by_validator(executor: OperationExecutor):
    args = {"equipment_id": "CR-010", "type": "Hoist", "manufacturer": "CM",
            "status": "active", "capacity": 10**30}
    with pytest.raises(ValidationFailed):
        await executor.execute("equipment", "create", args)
    assert await _count(executor) == 0


async def test_unbindable_integer_becomes_execution_failure():
    db = Database(":memory:")
    await db.initialize()
    try:
        await db.executescript("CREATE TABLE readings (value INTEGER)")
        catalog = Catalog.from_specs([
            OperationSpec("debug", "echo", "SELECT ?", ("value",), ResultShape.SCALAR),
            OperationSpec("debug", "store", "INSERT INTO readings (value) VALUES (?)",
                          ("value",), ResultShape.WRITE),
        ])
        executor = OperationExecutor(db, catalog)

        with pytest.raises(ExecutionFailed) as exc_info:
            await executor.execute("debug", "echo", {"value": 10**30})
        assert exc_info.value.kind == FailureKind.OTHER
        assert isinstance(exc_info.value.__cause__, OverflowError)

        with pytest.raises(ExecutionFailed) as exc_info:
            await executor.execute_many("debug", "store", [{"value": 1}, {"value": 10**30}])
        assert exc_info.value.kind == FailureKind.OTHER
        assert await db.execute_fetchall("SELECT value FROM readings") == []
    finally:
        await db.close()


@pytest.mark.parametrize("message,kind", [
    ("UNIQUE constraint failed: equipment.equipment_id", FailureKind.UNIQUE),
    ("FOREIGN KEY constraint failed", FailureKind.FOREIGN_KEY),
    ("NOT NULL constraint failed: work_orders.title", FailureKind.NOT_NULL),
    ("CHECK constraint failed: severity", FailureKind.CHECK),
    ("database is locked", FailureKind.CONNECTIVITY),
    ("something unexpected", FailureKind.OTHER),
])
def test_classify_by_message(message, kind):
    assert classify_error(sqlite3.OperationalError(message)) == kind


# ------------------------------------------------------------------
# Batches
# ------------------------------------------------------------------


async def test_execute_many_is_all_or_nothing(executor: OperationExecutor):
    saved = await executor.execute("templates", "save", {"name": "Monthly", "fields": "[]"})
    template_id = saved.inserted_id

    items = [
        {"template_id": template_id, "item_order": 1, "item_text": "Check hook"},
        {"template_id": template_id, "item_order": 2, "item_text": "Check chain"},
        {"template_id": template_id, "item_order": 3, "item_text": "Check brake",
         "standard_id": 999},
    ]
    with pytest.raises(ExecutionFailed) as exc_info:
        await executor.execute_many("template_items", "create", items)
    assert exc_info.value.kind == FailureKind.FOREIGN_KEY
    assert await executor.execute(
        "template_items", "get_by_template_id", {"template_id": template_id},
    ) == []

    results = await executor.execute_many("template_items", "create", items[:2])
    assert [r.rows_affected for r in results] == [1, 1]
    rows = await executor.execute(
        "template_items", "get_by_template_id", {"template_id": template_id},
    )
    assert [r["item_text"] for r in rows] == ["Check hook", "Check chain"]


async def test_execute_many_validates_before_writing(executor: OperationExecutor):
    saved = await executor.execute("templates", "save", {"name": "Weekly", "fields": "[]"})
    items = [
        {"template_id": saved.inserted_id, "item_order": 1, "item_text": "Check hook"},
        {"template_id": saved.inserted_id, "item_order": 0, "item_text": "Bad order"},
    ]
    with pytest.raises(ValidationFailed):
        await executor.execute_many("template_items", "create", items)
    assert await executor.execute(
        "template_items", "get_by_template_id", {"template_id": saved.inserted_id},
    ) == []
