"""Argument validators for catalog operations.

Everything here is a pure predicate: no I/O, no database access.  The
per-operation validators in :mod:`equiptrack.registry.operations` are
assembled from the small rule factories at the bottom of this module, e.g.::

    all_of(positive_int("equipment_id"), text("inspector"), date("inspection_date"))
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping


# ---------------------------------------------------------------------------
# Domain enumerations
# ---------------------------------------------------------------------------


class EquipmentStatus(StrEnum):
    ACTIVE = "active"
    OUT_OF_SERVICE = "out of service"
    UNDER_MAINTENANCE = "under maintenance"


class ScheduledInspectionStatus(StrEnum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ItemResult(StrEnum):
    PASS = "pass"
    FAIL = "fail"
    NA = "na"


class DeficiencySeverity(StrEnum):
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"


class DeficiencyStatus(StrEnum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    VERIFIED = "verified"
    CLOSED = "closed"


class SignatureEntity(StrEnum):
    INSPECTION = "inspection"
    DEFICIENCY = "deficiency"
    WORK_ORDER = "work_order"


class SignatureType(StrEnum):
    INSPECTOR = "inspector"
    SUPERVISOR = "supervisor"
    VERIFICATION = "verification"


class WorkOrderType(StrEnum):
    PREVENTIVE = "preventive"
    CORRECTIVE = "corrective"
    EMERGENCY = "emergency"
    PROJECT = "project"


class WorkOrderPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class WorkOrderStatus(StrEnum):
    DRAFT = "draft"
    APPROVED = "approved"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class FrequencyType(StrEnum):
    CALENDAR = "calendar"
    USAGE = "usage"
    CONDITION = "condition"


class LoadTestType(StrEnum):
    ANNUAL = "annual"
    PERIODIC = "periodic"
    INITIAL = "initial"
    AFTER_REPAIR = "after_repair"


class LoadTestResult(StrEnum):
    PASS = "pass"
    FAIL = "fail"


class CalibrationResult(StrEnum):
    PASS = "pass"
    FAIL = "fail"
    LIMITED = "limited"


class CredentialStatus(StrEnum):
    ACTIVE = "active"
    EXPIRED = "expired"
    SUSPENDED = "suspended"
    REVOKED = "revoked"


class UserRole(StrEnum):
    ADMIN = "admin"
    INSPECTOR = "inspector"
    REVIEWER = "reviewer"
    VIEWER = "viewer"


class CertificateType(StrEnum):
    INSPECTION = "inspection"
    LOAD_TEST = "load_test"
    CALIBRATION = "calibration"


class CertificateStatus(StrEnum):
    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"


# ---------------------------------------------------------------------------
# Validation context
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ValidationContext:
    """Host-supplied policy consulted by path validators.

    Parameters
    ----------
    documents_dir:
        The managed-documents directory.  Paths inside it are always
        accepted.
    require_managed:
        When set, paths outside *documents_dir* are rejected outright.
    """

    documents_dir: Path | None = None
    require_managed: bool = False


# ---------------------------------------------------------------------------
# Primitive predicates
# ---------------------------------------------------------------------------

SYSTEM_PATH_PREFIXES = (
    "/etc/",
    "/bin/",
    "/sbin/",
    "/usr/bin/",
    "/usr/sbin/",
    "C:\\Windows\\",
    "C:\\System32\\",
    "C:\\Program Files\\",
)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _has_shorthand(path: str) -> bool:
    return ".." in path or "~" in path


def _is_inside(path: str, directory: str | Path) -> bool:
    base = os.path.normpath(str(directory))
    try:
        relative = os.path.relpath(path, base)
    except ValueError:
        # Different drives on Windows.
        return False
    return not relative.startswith("..") and not os.path.isabs(relative)


def validate_file_path(
    file_path: Any,
    managed_dir: str | Path | None = None,
    *,
    require_managed: bool = False,
) -> bool:
    """Return True if *file_path* is safe to store as a document location.

    Rejects non-strings, parent-directory (``..``) and home-directory (``~``)
    shorthand, relative paths and anything under a system directory.  A path
    inside *managed_dir* is accepted without the denylist check; with
    *require_managed* it is the only kind of path accepted.
    """
    if not isinstance(file_path, str) or not file_path:
        return False
    if _has_shorthand(file_path):
        return False

    normalized = os.path.normpath(file_path)
    if _has_shorthand(normalized):
        return False
    if not os.path.isabs(normalized):
        return False

    if managed_dir is not None and _is_inside(normalized, managed_dir):
        return True
    if require_managed:
        return False

    lowered = normalized.lower()
    return not any(lowered.startswith(prefix.lower()) for prefix in SYSTEM_PATH_PREFIXES)


def validate_identifier(value: Any) -> bool:
    """Non-empty string (equipment identifiers, usernames, certificate numbers)."""
    return isinstance(value, str) and len(value) > 0


def validate_person_name(value: Any) -> bool:
    return isinstance(value, str) and len(value) > 0


def validate_date(value: Any) -> bool:
    """``YYYY-MM-DD`` that also names a real calendar day."""
    if not isinstance(value, str) or not _DATE_RE.match(value):
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


SQLITE_MAX_INTEGER = 2**63 - 1


def _fits_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and (
        -SQLITE_MAX_INTEGER - 1 <= value <= SQLITE_MAX_INTEGER
    )


def is_positive_int(value: Any) -> bool:
    return _fits_integer(value) and value > 0


def is_number(value: Any) -> bool:
    """An int SQLite can store as INTEGER, or any float."""
    if isinstance(value, float):
        return True
    return _fits_integer(value)


def is_one_of(value: Any, choices: Iterable[str]) -> bool:
    return isinstance(value, str) and value in {str(c) for c in choices}


# ---------------------------------------------------------------------------
# Rule factories
# ---------------------------------------------------------------------------

Rule = Callable[[Mapping[str, Any], ValidationContext], bool]


def always(args: Mapping[str, Any], context: ValidationContext) -> bool:
    return True


def positive_int(name: str) -> Rule:
    def rule(args: Mapping[str, Any], context: ValidationContext) -> bool:
        return is_positive_int(args.get(name))
    return rule


def required(name: str) -> Rule:
    """The argument is present and truthy (``0`` and ``""`` do not count)."""
    def rule(args: Mapping[str, Any], context: ValidationContext) -> bool:
        return bool(args.get(name))
    return rule


def text(name: str) -> Rule:
    def rule(args: Mapping[str, Any], context: ValidationContext) -> bool:
        return validate_identifier(args.get(name))
    return rule


def date(name: str) -> Rule:
    def rule(args: Mapping[str, Any], context: ValidationContext) -> bool:
        return validate_date(args.get(name))
    return rule


def optional_date(name: str) -> Rule:
    def rule(args: Mapping[str, Any], context: ValidationContext) -> bool:
        value = args.get(name)
        return value is None or validate_date(value)
    return rule


def one_of(name: str, choices: Iterable[str]) -> Rule:
    allowed = frozenset(str(c) for c in choices)

    def rule(args: Mapping[str, Any], context: ValidationContext) -> bool:
        value = args.get(name)
        return isinstance(value, str) and value in allowed
    return rule


def number(name: str) -> Rule:
    def rule(args: Mapping[str, Any], context: ValidationContext) -> bool:
        return is_number(args.get(name))
    return rule


def optional_number(name: str, minimum: float | None = None) -> Rule:
    def rule(args: Mapping[str, Any], context: ValidationContext) -> bool:
        value = args.get(name)
        if value is None:
            return True
        return is_number(value) and (minimum is None or value >= minimum)
    return rule


def safe_path(name: str) -> Rule:
    def rule(args: Mapping[str, Any], context: ValidationContext) -> bool:
        return validate_file_path(
            args.get(name),
            context.documents_dir,
            require_managed=context.require_managed,
        )
    return rule


def all_of(*rules: Rule) -> Rule:
    def rule(args: Mapping[str, Any], context: ValidationContext) -> bool:
        return all(r(args, context) for r in rules)
    return rule
