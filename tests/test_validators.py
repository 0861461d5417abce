"""Tests for argument validators."""

from __future__ import annotations

from pathlib import Path

import pytest

from equiptrack.registry.validators import (
    SQLITE_MAX_INTEGER,
    EquipmentStatus,
    ValidationContext,
    all_of,
    is_number,
    is_one_of,
    is_positive_int,
    one_of,
    optional_date,
    optional_number,
    positive_int,
    required,
    safe_path,
    validate_date,
    validate_file_path,
    validate_identifier,
)


CTX = ValidationContext()


# ------------------------------------------------------------------
# File paths
# ------------------------------------------------------------------


@pytest.mark.parametrize("path", [
    "../../etc/passwd",
    "/srv/docs/../../etc/passwd",
    "~/secrets.pdf",
    "/home/user/~backup/a.pdf",
    "relative/path.pdf",
    "",
    None,
    42,
    "/etc/shadow",
    "/ETC/shadow",
    "/usr/bin/env",
    "/sbin/init",
])
def test_unsafe_paths_rejected(path):
    assert not validate_file_path(path)


@pytest.mark.parametrize("path", [
    "/abs/safe/path.pdf",
    "/srv/equiptrack/documents/cert.pdf",
    "/srv//docs/./manual.pdf",
    "/etcetera/notes.pdf",
])
def test_safe_paths_accepted(path):
    assert validate_file_path(path)


def test_managed_directory_always_accepted(tmp_path: Path):
    managed = tmp_path / "documents"
    inside = str(managed / "sub" / "report.pdf")
    assert validate_file_path(inside, managed, require_managed=True)


def test_require_managed_rejects_outside_paths(tmp_path: Path):
    managed = tmp_path / "documents"
    assert not validate_file_path("/abs/safe/path.pdf", managed, require_managed=True)
    assert not validate_file_path(str(tmp_path / "documents-old" / "a.pdf"), managed,
                                  require_managed=True)


def test_managed_directory_bypasses_denylist():
    assert validate_file_path("/etc/equiptrack/documents/a.pdf", "/etc/equiptrack/documents")


def test_safe_path_rule_uses_context(tmp_path: Path):
    rule = safe_path("file_path")
    strict = ValidationContext(documents_dir=tmp_path, require_managed=True)
    assert rule({"file_path": str(tmp_path / "a.pdf")}, strict)
    assert not rule({"file_path": "/abs/safe/path.pdf"}, strict)
    assert rule({"file_path": "/abs/safe/path.pdf"}, CTX)


# ------------------------------------------------------------------
# Values
# ------------------------------------------------------------------


@pytest.mark.parametrize("value,expected", [
    ("2024-02-29", True),
    ("2023-02-29", False),
    ("2024-13-01", False),
    ("2024-1-01", False),
    ("2024-01-01T00:00:00", False),
    ("", False),
    (None, False),
])
def test_validate_date(value, expected):
    assert validate_date(value) is expected


def test_positive_int_excludes_bools_and_floats():
    assert is_positive_int(1)
    assert not is_positive_int(0)
    assert not is_positive_int(-3)
    assert not is_positive_int(True)
    assert not is_positive_int(1.0)
    assert not is_positive_int("1")


def test_is_number():
    assert is_number(3)
    assert is_number(2.5)
    assert not is_number(False)
    assert not is_number("3")


def test_integers_outside_sqlite_range_rejected():
    assert is_number(SQLITE_MAX_INTEGER)
    assert is_number(-SQLITE_MAX_INTEGER - 1)
    assert not is_number(SQLITE_MAX_INTEGER + 1)
    assert not is_positive_int(10**30)
    assert is_number(1e30)


def test_optional_number_bounds():
    rule = optional_number("capacity", minimum=0)
    assert rule({}, CTX)
    assert rule({"capacity": None}, CTX)
    assert rule({"capacity": 5000}, CTX)
    assert not rule({"capacity": -1}, CTX)
    assert not rule({"capacity": "heavy"}, CTX)
    assert not rule({"capacity": 10**30}, CTX)


def test_identifier_requires_non_empty_string():
    assert validate_identifier("CR-001")
    assert not validate_identifier("")
    assert not validate_identifier(7)


def test_enum_membership():
    assert is_one_of("out of service", EquipmentStatus)
    assert not is_one_of("retired", EquipmentStatus)
    assert not is_one_of(None, EquipmentStatus)


# ------------------------------------------------------------------
# Rule factories
# ------------------------------------------------------------------


def test_all_of_requires_every_rule():
    rule = all_of(positive_int("id"), one_of("status", EquipmentStatus))
    assert rule({"id": 3, "status": "active"}, CTX)
    assert not rule({"id": 3, "status": "broken"}, CTX)
    assert not rule({"id": 0, "status": "active"}, CTX)


def test_required_uses_truthiness():
    rule = required("size")
    assert rule({"size": 10}, CTX)
    assert not rule({"size": 0}, CTX)
    assert not rule({}, CTX)


def test_optional_date():
    rule = optional_date("due_date")
    assert rule({}, CTX)
    assert rule({"due_date": "2025-06-30"}, CTX)
    assert not rule({"due_date": "30/06/2025"}, CTX)
