"""Tests for the operation catalog."""

from __future__ import annotations

import pytest

from equiptrack.registry.catalog import (
    Catalog,
    OperationSpec,
    ResultShape,
    count_placeholders,
)
from equiptrack.registry.errors import CatalogError
from equiptrack.registry.operations import CATALOG


EXPECTED_DOMAINS = {
    "equipment", "inspections", "documents", "scheduled_inspections", "compliance",
    "templates", "inspection_items", "deficiencies", "signatures", "work_orders",
    "pm_templates", "pm_schedules", "load_tests", "calibrations", "credentials",
    "users", "audit_log", "certificates", "meter_readings", "template_items",
}


def test_catalog_covers_every_domain():
    assert set(CATALOG.domains()) == EXPECTED_DOMAINS


@pytest.mark.parametrize("spec", list(CATALOG.values()), ids=lambda s: s.key)
def test_placeholder_parity(spec: OperationSpec):
    assert count_placeholders(spec.statement) == len(spec.parameter_names)


def test_writes_are_write_shaped():
    for spec in CATALOG.values():
        verb = spec.statement.split(None, 1)[0].upper()
        if verb in ("INSERT", "UPDATE", "DELETE"):
            assert spec.result_shape == ResultShape.WRITE, spec.key
        else:
            assert spec.result_shape != ResultShape.WRITE, spec.key


def test_placeholders_in_literals_are_ignored():
    assert count_placeholders("SELECT * FROM t WHERE a = ? AND b = 'what?'") == 1
    assert count_placeholders('SELECT "odd?col" FROM t WHERE x IN (?, ?)') == 2


def test_mismatched_entry_rejected():
    with pytest.raises(CatalogError, match="2 placeholders but 1 parameter names"):
        OperationSpec("equipment", "broken", "SELECT * FROM t WHERE a = ? AND b = ?", ("a",))


def test_duplicate_operation_rejected():
    spec = OperationSpec("equipment", "get_all", "SELECT * FROM equipment")
    with pytest.raises(CatalogError, match="Duplicate operation equipment.get_all"):
        Catalog.from_specs([spec, spec])


def test_catalog_is_read_only():
    with pytest.raises(TypeError):
        CATALOG[("equipment", "drop_all")] = None  # type: ignore[index]
    with pytest.raises(TypeError):
        CATALOG._specs[("equipment", "drop_all")] = None  # type: ignore[index]


def test_lookup_and_operations():
    spec = CATALOG.lookup("equipment", "get_by_id")
    assert spec is not None
    assert spec.key == "equipment.get_by_id"
    assert spec.result_shape == ResultShape.ONE
    assert CATALOG.lookup("equipment", "nope") is None
    names = {s.name for s in CATALOG.operations("templates")}
    assert names == {"get_all", "save", "delete"}


def test_bind_projects_in_order_and_fills_missing():
    spec = CATALOG[("inspections", "create")]
    params = spec.bind({
        "equipment_id": 1,
        "inspector": "J. Ortiz",
        "inspection_date": "2025-03-01",
    })
    assert params[:3] == (1, "J. Ortiz", "2025-03-01")
    assert params[3:8] == (None,) * 5
    assert params[8] == "2025-03-01"
