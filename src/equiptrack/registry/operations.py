"""The application's operation catalog.

Built once at import.  Every statement binds its values through ``?``
placeholders; :class:`~equiptrack.registry.catalog.OperationSpec` checks
the placeholder count against the parameter list when each entry is
constructed, so a mismatched entry fails the import.
"""

from __future__ import annotations

from textwrap import dedent
from typing import Iterable

from equiptrack.registry.catalog import Catalog, OperationSpec, ResultShape
from equiptrack.registry.validators import (
    CalibrationResult,
    CertificateStatus,
    CertificateType,
    CredentialStatus,
    DeficiencySeverity,
    DeficiencyStatus,
    EquipmentStatus,
    FrequencyType,
    ItemResult,
    LoadTestResult,
    LoadTestType,
    Rule,
    ScheduledInspectionStatus,
    SignatureEntity,
    SignatureType,
    UserRole,
    WorkOrderPriority,
    WorkOrderStatus,
    WorkOrderType,
    all_of,
    always,
    date,
    number,
    one_of,
    optional_number,
    positive_int,
    required,
    safe_path,
    text,
)

MANY = ResultShape.MANY
ONE = ResultShape.ONE
SCALAR = ResultShape.SCALAR
WRITE = ResultShape.WRITE


def _domain(domain: str, *entries: tuple) -> list[OperationSpec]:
    """Expand ``(name, sql, params, shape[, validate])`` tuples into specs."""
    specs = []
    for name, sql, params, shape, *rest in entries:
        validate: Rule = rest[0] if rest else always
        specs.append(OperationSpec(
            domain=domain,
            name=name,
            statement=dedent(sql).strip(),
            parameter_names=tuple(params),
            result_shape=shape,
            validate=validate,
        ))
    return specs


_ID = positive_int("id")
_EQUIPMENT_ID = positive_int("equipment_id")


# ---------------------------------------------------------------------------
# Core registry: equipment, inspections, documents, schedules
# ---------------------------------------------------------------------------

EQUIPMENT = _domain(
    "equipment",
    ("get_all", "SELECT * FROM equipment ORDER BY equipment_id", (), MANY),
    ("get_by_id", "SELECT * FROM equipment WHERE id = ?", ("id",), ONE, _ID),
    (
        "get_by_equipment_id",
        "SELECT * FROM equipment WHERE equipment_id = ?",
        ("equipment_id",), ONE, text("equipment_id"),
    ),
    (
        "create",
        """
        INSERT INTO equipment (equipment_id, type, manufacturer, model, serial_number,
                               capacity, installation_date, location, status, qr_code_data)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        ("equipment_id", "type", "manufacturer", "model", "serial_number",
         "capacity", "installation_date", "location", "status", "qr_code_data"),
        WRITE,
        all_of(
            text("equipment_id"),
            required("type"),
            required("manufacturer"),
            one_of("status", EquipmentStatus),
            optional_number("capacity", minimum=0),
        ),
    ),
    (
        "update",
        """
        UPDATE equipment SET manufacturer = ?, model = ?, serial_number = ?, capacity = ?,
                             installation_date = ?, location = ?, status = ?
        WHERE id = ?
        """,
        ("manufacturer", "model", "serial_number", "capacity",
         "installation_date", "location", "status", "id"),
        WRITE,
        all_of(
            _ID,
            one_of("status", EquipmentStatus),
            optional_number("capacity", minimum=0),
        ),
    ),
    ("delete", "DELETE FROM equipment WHERE id = ?", ("id",), WRITE, _ID),
    (
        "get_distinct_types",
        "SELECT DISTINCT type FROM equipment WHERE type IS NOT NULL ORDER BY type",
        (), MANY,
    ),
    (
        "get_status_counts",
        "SELECT status, COUNT(*) AS count FROM equipment GROUP BY status",
        (), MANY,
    ),
    ("get_count", "SELECT COUNT(*) AS count FROM equipment", (), SCALAR),
)

_INSPECTION_INSERT = """
    INSERT INTO inspections (equipment_id, inspector, inspection_date, findings,
                             corrective_actions, summary_comments, signature,
                             scheduled_inspection_id, inspection_date_date)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, date(?))
"""
_INSPECTION_INSERT_PARAMS = (
    "equipment_id", "inspector", "inspection_date", "findings", "corrective_actions",
    "summary_comments", "signature", "scheduled_inspection_id", "inspection_date",
)
_INSPECTION_CREATE_RULES = (_EQUIPMENT_ID, text("inspector"), date("inspection_date"))

INSPECTIONS = _domain(
    "inspections",
    ("get_all", "SELECT * FROM inspections ORDER BY inspection_date DESC", (), MANY),
    (
        "get_by_equipment_id",
        "SELECT * FROM inspections WHERE equipment_id = ? ORDER BY inspection_date DESC",
        ("equipment_id",), MANY, _EQUIPMENT_ID,
    ),
    (
        "create", _INSPECTION_INSERT, _INSPECTION_INSERT_PARAMS, WRITE,
        all_of(*_INSPECTION_CREATE_RULES),
    ),
    (
        "create_from_scheduled", _INSPECTION_INSERT, _INSPECTION_INSERT_PARAMS, WRITE,
        all_of(*_INSPECTION_CREATE_RULES, positive_int("scheduled_inspection_id")),
    ),
    (
        "get_by_scheduled_id",
        "SELECT * FROM inspections WHERE scheduled_inspection_id = ?",
        ("scheduled_inspection_id",), ONE, positive_int("scheduled_inspection_id"),
    ),
    (
        "get_by_date_range",
        """
        SELECT * FROM inspections
        WHERE inspection_date_date BETWEEN ? AND ?
        ORDER BY inspection_date_date DESC
        """,
        ("start_date", "end_date"), MANY,
        all_of(date("start_date"), date("end_date")),
    ),
    ("get_count", "SELECT COUNT(*) AS count FROM inspections", (), SCALAR),
    (
        "get_per_month",
        """
        SELECT strftime('%Y-%m', inspection_date_date) AS month, COUNT(*) AS count
        FROM inspections
        WHERE inspection_date_date IS NOT NULL
        GROUP BY strftime('%Y-%m', inspection_date_date)
        ORDER BY month DESC
        """,
        (), MANY,
    ),
    (
        "get_last_inspection_by_equipment",
        """
        SELECT equipment_id, MAX(inspection_date_date) AS last_inspection_date
        FROM inspections
        WHERE inspection_date_date IS NOT NULL
        GROUP BY equipment_id
        """,
        (), MANY,
    ),
    (
        "get_recent_failures",
        """
        SELECT e.equipment_id, i.inspection_date_date
        FROM inspections i
        JOIN equipment e ON i.equipment_id = e.id
        WHERE i.findings LIKE '%fail%' OR i.findings LIKE '%defect%'
        ORDER BY i.inspection_date_date DESC
        LIMIT 10
        """,
        (), MANY,
    ),
    (
        "get_compliance_status",
        """
        SELECT
            e.id AS equipment_id,
            e.equipment_id AS equipment_identifier,
            e.type,
            MAX(i.inspection_date_date) AS last_inspection_date,
            COUNT(CASE WHEN ii.critical = 1 AND ii.result = 'fail' THEN 1 END)
                AS critical_failures,
            COUNT(CASE WHEN d.severity = 'critical' AND d.status IN ('open', 'in_progress')
                       THEN 1 END) AS open_critical_deficiencies
        FROM equipment e
        LEFT JOIN inspections i ON e.id = i.equipment_id
        LEFT JOIN inspection_items ii ON i.id = ii.inspection_id
        LEFT JOIN deficiencies d ON e.id = d.equipment_id
        GROUP BY e.id, e.equipment_id, e.type
        ORDER BY e.equipment_id
        """,
        (), MANY,
    ),
    (
        "get_overdue",
        """
        SELECT i.*, e.equipment_id AS equipment_identifier
        FROM inspections i
        JOIN equipment e ON i.equipment_id = e.id
        WHERE i.inspection_date_date < date('now', '-1 year')
          AND i.id IN (SELECT MAX(id) FROM inspections GROUP BY equipment_id)
        ORDER BY i.inspection_date_date ASC
        """,
        (), MANY,
    ),
)

DOCUMENTS = _domain(
    "documents",
    (
        "get_by_equipment_id",
        "SELECT * FROM documents WHERE equipment_id = ? ORDER BY file_name",
        ("equipment_id",), MANY, _EQUIPMENT_ID,
    ),
    (
        "create",
        """
        INSERT INTO documents (equipment_id, file_name, file_path, hash, size, uploaded_by,
                               uploaded_at)
        VALUES (?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
        """,
        ("equipment_id", "file_name", "file_path", "hash", "size", "uploaded_by"),
        WRITE,
        all_of(
            _EQUIPMENT_ID,
            required("file_name"),
            safe_path("file_path"),
            required("hash"),
            required("size"),
        ),
    ),
    (
        "check_existing",
        "SELECT id FROM documents WHERE equipment_id = ? AND file_name = ?",
        ("equipment_id", "file_name"), ONE,
        all_of(_EQUIPMENT_ID, required("file_name")),
    ),
)

SCHEDULED_INSPECTIONS = _domain(
    "scheduled_inspections",
    (
        "get_all",
        """
        SELECT si.*, e.equipment_id AS equipment_identifier
        FROM scheduled_inspections si
        JOIN equipment e ON si.equipment_id = e.id
        ORDER BY si.scheduled_date
        """,
        (), MANY,
    ),
    (
        "get_upcoming",
        """
        SELECT e.equipment_id, s.scheduled_date
        FROM scheduled_inspections s
        JOIN equipment e ON s.equipment_id = e.id
        WHERE s.scheduled_date >= ? AND s.status != 'completed'
        ORDER BY s.scheduled_date
        LIMIT 10
        """,
        ("from_date",), MANY, date("from_date"),
    ),
    (
        "get_today_and_later",
        "SELECT * FROM scheduled_inspections WHERE scheduled_date >= ?",
        ("today",), MANY, date("today"),
    ),
    (
        "create",
        """
        INSERT INTO scheduled_inspections (equipment_id, scheduled_date, assigned_inspector, status)
        VALUES (?, ?, ?, ?)
        """,
        ("equipment_id", "scheduled_date", "assigned_inspector", "status"),
        WRITE,
        all_of(_EQUIPMENT_ID, date("scheduled_date"), text("assigned_inspector")),
    ),
    (
        "update",
        """
        UPDATE scheduled_inspections SET equipment_id = ?, scheduled_date = ?,
                                         assigned_inspector = ?
        WHERE id = ?
        """,
        ("equipment_id", "scheduled_date", "assigned_inspector", "id"),
        WRITE,
        all_of(_EQUIPMENT_ID, date("scheduled_date"), text("assigned_inspector"), _ID),
    ),
    (
        "update_status",
        "UPDATE scheduled_inspections SET status = ? WHERE id = ?",
        ("status", "id"), WRITE,
        all_of(one_of("status", ScheduledInspectionStatus), _ID),
    ),
    ("delete", "DELETE FROM scheduled_inspections WHERE id = ?", ("id",), WRITE, _ID),
)

COMPLIANCE = _domain(
    "compliance",
    ("get_all_standards", "SELECT * FROM compliance_standards ORDER BY name", (), MANY),
    (
        "create_standard",
        "INSERT INTO compliance_standards (name, description, authority) VALUES (?, ?, ?)",
        ("name", "description", "authority"), WRITE,
        all_of(required("name"), required("description"), required("authority")),
    ),
    ("delete_standard", "DELETE FROM compliance_standards WHERE id = ?", ("id",), WRITE, _ID),
    (
        "get_assigned_standards",
        """
        SELECT cs.id, cs.name FROM compliance_standards cs
        JOIN equipment_type_compliance etc ON cs.id = etc.standard_id
        WHERE etc.equipment_type = ?
        """,
        ("equipment_type",), MANY, text("equipment_type"),
    ),
    (
        "assign_standard",
        """
        INSERT OR IGNORE INTO equipment_type_compliance (equipment_type, standard_id)
        VALUES (?, ?)
        """,
        ("equipment_type", "standard_id"), WRITE,
        all_of(required("equipment_type"), positive_int("standard_id")),
    ),
    (
        "unassign_standard",
        "DELETE FROM equipment_type_compliance WHERE equipment_type = ? AND standard_id = ?",
        ("equipment_type", "standard_id"), WRITE,
        all_of(required("equipment_type"), positive_int("standard_id")),
    ),
    (
        "get_compliance_report",
        """
        SELECT etc.equipment_type, cs.name AS standard_name, cs.id AS standard_id
        FROM equipment_type_compliance etc
        JOIN compliance_standards cs ON etc.standard_id = cs.id
        ORDER BY etc.equipment_type, cs.name
        """,
        (), MANY,
    ),
)

TEMPLATES = _domain(
    "templates",
    ("get_all", "SELECT id, name, fields FROM inspection_templates ORDER BY name", (), MANY),
    (
        "save",
        """
        INSERT INTO inspection_templates (name, fields) VALUES (?, ?)
        ON CONFLICT(name) DO UPDATE SET fields = excluded.fields
        """,
        ("name", "fields"), WRITE,
        all_of(required("name"), required("fields")),
    ),
    ("delete", "DELETE FROM inspection_templates WHERE id = ?", ("id",), WRITE, _ID),
)


# ---------------------------------------------------------------------------
# Inspection workflow: items, deficiencies, signatures
# ---------------------------------------------------------------------------

INSPECTION_ITEMS = _domain(
    "inspection_items",
    (
        "get_by_inspection_id",
        "SELECT * FROM inspection_items WHERE inspection_id = ? ORDER BY id",
        ("inspection_id",), MANY, positive_int("inspection_id"),
    ),
    (
        "create",
        """
        INSERT INTO inspection_items (inspection_id, standard_ref, item_text, critical,
                                      result, notes, photos, component, priority)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        ("inspection_id", "standard_ref", "item_text", "critical", "result",
         "notes", "photos", "component", "priority"),
        WRITE,
        all_of(positive_int("inspection_id"), required("item_text"), one_of("result", ItemResult)),
    ),
    (
        "update",
        """
        UPDATE inspection_items SET standard_ref = ?, item_text = ?, critical = ?, result = ?,
                                    notes = ?, photos = ?, component = ?, priority = ?
        WHERE id = ?
        """,
        ("standard_ref", "item_text", "critical", "result", "notes",
         "photos", "component", "priority", "id"),
        WRITE,
        all_of(_ID, required("item_text"), one_of("result", ItemResult)),
    ),
    ("delete", "DELETE FROM inspection_items WHERE id = ?", ("id",), WRITE, _ID),
    (
        "get_critical_failures",
        """
        SELECT ii.*, i.equipment_id, e.equipment_id AS equipment_identifier
        FROM inspection_items ii
        JOIN inspections i ON ii.inspection_id = i.id
        JOIN equipment e ON i.equipment_id = e.id
        WHERE ii.critical = 1 AND ii.result = 'fail'
        ORDER BY i.inspection_date DESC
        """,
        (), MANY,
    ),
)

_DEFICIENCY_WITH_EQUIPMENT = """
    SELECT d.*, e.equipment_id AS equipment_identifier
    FROM deficiencies d
    JOIN equipment e ON d.equipment_id = e.id
"""

DEFICIENCIES = _domain(
    "deficiencies",
    ("get_all", _DEFICIENCY_WITH_EQUIPMENT + "ORDER BY d.created_at DESC", (), MANY),
    (
        "get_by_equipment_id",
        "SELECT * FROM deficiencies WHERE equipment_id = ? ORDER BY created_at DESC",
        ("equipment_id",), MANY, _EQUIPMENT_ID,
    ),
    (
        "get_by_status",
        _DEFICIENCY_WITH_EQUIPMENT + "WHERE d.status = ?\nORDER BY d.created_at DESC",
        ("status",), MANY, one_of("status", DeficiencyStatus),
    ),
    (
        "create",
        """
        INSERT INTO deficiencies (equipment_id, inspection_item_id, severity, remove_from_service,
                                  description, component, corrective_action, due_date, status)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        ("equipment_id", "inspection_item_id", "severity", "remove_from_service",
         "description", "component", "corrective_action", "due_date", "status"),
        WRITE,
        all_of(
            _EQUIPMENT_ID,
            one_of("severity", DeficiencySeverity),
            required("description"),
            one_of("status", DeficiencyStatus),
        ),
    ),
    (
        "update",
        """
        UPDATE deficiencies SET severity = ?, remove_from_service = ?, description = ?,
                                component = ?, corrective_action = ?, due_date = ?, status = ?,
                                updated_at = CURRENT_TIMESTAMP
        WHERE id = ?
        """,
        ("severity", "remove_from_service", "description", "component",
         "corrective_action", "due_date", "status", "id"),
        WRITE,
        all_of(
            _ID,
            one_of("severity", DeficiencySeverity),
            required("description"),
            one_of("status", DeficiencyStatus),
        ),
    ),
    (
        "close",
        """
        UPDATE deficiencies SET status = 'closed', closed_at = CURRENT_TIMESTAMP,
                                verification_signature = ?,
                                verification_timestamp = CURRENT_TIMESTAMP,
                                updated_at = CURRENT_TIMESTAMP
        WHERE id = ?
        """,
        ("verification_signature", "id"), WRITE, _ID,
    ),
    (
        "get_open_critical",
        _DEFICIENCY_WITH_EQUIPMENT + """
        WHERE d.severity = 'critical' AND d.status IN ('open', 'in_progress')
        ORDER BY d.created_at DESC
        """,
        (), MANY,
    ),
    (
        "get_overdue",
        _DEFICIENCY_WITH_EQUIPMENT + """
        WHERE d.due_date < date('now') AND d.status IN ('open', 'in_progress')
        ORDER BY d.due_date ASC
        """,
        (), MANY,
    ),
    (
        "create_from_inspection_item",
        """
        INSERT INTO deficiencies (equipment_id, inspection_item_id, severity, remove_from_service,
                                  description, component, corrective_action, due_date, status)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, 'open')
        """,
        ("equipment_id", "inspection_item_id", "severity", "remove_from_service",
         "description", "component", "corrective_action", "due_date"),
        WRITE,
        all_of(
            _EQUIPMENT_ID,
            positive_int("inspection_item_id"),
            one_of("severity", DeficiencySeverity),
            required("description"),
        ),
    ),
    (
        "link_to_work_order",
        """
        UPDATE deficiencies SET work_order_id = ?, updated_at = CURRENT_TIMESTAMP
        WHERE id = ?
        """,
        ("work_order_id", "id"), WRITE,
        all_of(_ID, positive_int("work_order_id")),
    ),
)

SIGNATURES = _domain(
    "signatures",
    (
        "get_by_entity",
        """
        SELECT * FROM signatures WHERE entity_type = ? AND entity_id = ?
        ORDER BY timestamp DESC
        """,
        ("entity_type", "entity_id"), MANY,
        all_of(one_of("entity_type", SignatureEntity), positive_int("entity_id")),
    ),
    (
        "create",
        """
        INSERT INTO signatures (entity_type, entity_id, signature_type, signatory_name,
                                signature_data)
        VALUES (?, ?, ?, ?, ?)
        """,
        ("entity_type", "entity_id", "signature_type", "signatory_name", "signature_data"),
        WRITE,
        all_of(
            one_of("entity_type", SignatureEntity),
            positive_int("entity_id"),
            one_of("signature_type", SignatureType),
            text("signatory_name"),
            required("signature_data"),
        ),
    ),
    ("delete", "DELETE FROM signatures WHERE id = ?", ("id",), WRITE, _ID),
)


# ---------------------------------------------------------------------------
# Maintenance: work orders, preventive maintenance, meters
# ---------------------------------------------------------------------------

_WORK_ORDER_WITH_EQUIPMENT = """
    SELECT wo.*, e.equipment_id AS equipment_identifier
    FROM work_orders wo
    JOIN equipment e ON wo.equipment_id = e.id
"""

WORK_ORDERS = _domain(
    "work_orders",
    ("get_all", _WORK_ORDER_WITH_EQUIPMENT + "ORDER BY wo.created_at DESC", (), MANY),
    (
        "get_by_status",
        _WORK_ORDER_WITH_EQUIPMENT + "WHERE wo.status = ?\nORDER BY wo.created_at DESC",
        ("status",), MANY, one_of("status", WorkOrderStatus),
    ),
    (
        "get_by_equipment_id",
        "SELECT * FROM work_orders WHERE equipment_id = ? ORDER BY created_at DESC",
        ("equipment_id",), MANY, _EQUIPMENT_ID,
    ),
    (
        "create",
        """
        INSERT INTO work_orders (equipment_id, wo_number, title, description, work_type,
                                 priority, assigned_to, estimated_hours, created_by,
                                 scheduled_date, deficiency_id)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        ("equipment_id", "wo_number", "title", "description", "work_type", "priority",
         "assigned_to", "estimated_hours", "created_by", "scheduled_date", "deficiency_id"),
        WRITE,
        all_of(
            _EQUIPMENT_ID,
            required("wo_number"),
            required("title"),
            one_of("work_type", WorkOrderType),
            one_of("priority", WorkOrderPriority),
            required("created_by"),
        ),
    ),
    (
        "update",
        """
        UPDATE work_orders SET title = ?, description = ?, work_type = ?, priority = ?,
                               assigned_to = ?, estimated_hours = ?, scheduled_date = ?
        WHERE id = ?
        """,
        ("title", "description", "work_type", "priority", "assigned_to",
         "estimated_hours", "scheduled_date", "id"),
        WRITE,
        all_of(
            _ID,
            required("title"),
            one_of("work_type", WorkOrderType),
            one_of("priority", WorkOrderPriority),
        ),
    ),
    (
        "update_status",
        """
        UPDATE work_orders SET status = ?, started_at = ?, completed_at = ?, closed_at = ?
        WHERE id = ?
        """,
        ("status", "started_at", "completed_at", "closed_at", "id"), WRITE,
        all_of(_ID, one_of("status", WorkOrderStatus)),
    ),
    (
        "complete",
        """
        UPDATE work_orders SET status = 'completed', completed_at = CURRENT_TIMESTAMP,
                               actual_hours = ?, parts_cost = ?, labor_cost = ?,
                               completion_notes = ?
        WHERE id = ?
        """,
        ("actual_hours", "parts_cost", "labor_cost", "completion_notes", "id"), WRITE, _ID,
    ),
    (
        "get_due_today",
        _WORK_ORDER_WITH_EQUIPMENT + """
        WHERE wo.scheduled_date = date('now') AND wo.status IN ('approved', 'assigned')
        ORDER BY wo.priority DESC
        """,
        (), MANY,
    ),
    (
        "get_overdue",
        _WORK_ORDER_WITH_EQUIPMENT + """
        WHERE wo.scheduled_date < date('now')
          AND wo.status IN ('approved', 'assigned', 'in_progress')
        ORDER BY wo.scheduled_date ASC
        """,
        (), MANY,
    ),
)

_PM_TEMPLATE_RULES = (
    required("name"),
    required("equipment_type"),
    one_of("frequency_type", FrequencyType),
    positive_int("frequency_value"),
)

PM_TEMPLATES = _domain(
    "pm_templates",
    ("get_all", "SELECT * FROM pm_templates WHERE active = 1 ORDER BY name", (), MANY),
    (
        "get_by_equipment_type",
        "SELECT * FROM pm_templates WHERE equipment_type = ? AND active = 1 ORDER BY name",
        ("equipment_type",), MANY, text("equipment_type"),
    ),
    (
        "create",
        """
        INSERT INTO pm_templates (name, equipment_type, description, frequency_type,
                                  frequency_value, frequency_unit, estimated_duration,
                                  instructions, required_skills, required_parts, safety_notes)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        ("name", "equipment_type", "description", "frequency_type", "frequency_value",
         "frequency_unit", "estimated_duration", "instructions", "required_skills",
         "required_parts", "safety_notes"),
        WRITE,
        all_of(*_PM_TEMPLATE_RULES),
    ),
    (
        "update",
        """
        UPDATE pm_templates SET name = ?, equipment_type = ?, description = ?,
                                frequency_type = ?, frequency_value = ?, frequency_unit = ?,
                                estimated_duration = ?, instructions = ?, required_skills = ?,
                                required_parts = ?, safety_notes = ?,
                                updated_at = CURRENT_TIMESTAMP
        WHERE id = ?
        """,
        ("name", "equipment_type", "description", "frequency_type", "frequency_value",
         "frequency_unit", "estimated_duration", "instructions", "required_skills",
         "required_parts", "safety_notes", "id"),
        WRITE,
        all_of(_ID, *_PM_TEMPLATE_RULES),
    ),
    (
        "deactivate",
        "UPDATE pm_templates SET active = 0, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
        ("id",), WRITE, _ID,
    ),
)

_PM_SCHEDULE_DUE = """
    SELECT ps.*, pt.name AS template_name, e.equipment_id AS equipment_identifier
    FROM pm_schedules ps
    JOIN pm_templates pt ON ps.pm_template_id = pt.id
    JOIN equipment e ON ps.equipment_id = e.id
"""

PM_SCHEDULES = _domain(
    "pm_schedules",
    (
        "get_by_equipment_id",
        """
        SELECT ps.*, pt.name AS template_name, pt.frequency_type, pt.frequency_value,
               pt.frequency_unit
        FROM pm_schedules ps
        JOIN pm_templates pt ON ps.pm_template_id = pt.id
        WHERE ps.equipment_id = ? AND ps.active = 1
        ORDER BY ps.next_due_date
        """,
        ("equipment_id",), MANY, _EQUIPMENT_ID,
    ),
    (
        "get_due",
        _PM_SCHEDULE_DUE + """
        WHERE ps.next_due_date <= ? AND ps.active = 1
        ORDER BY ps.next_due_date
        """,
        ("due_date",), MANY, date("due_date"),
    ),
    (
        "create",
        """
        INSERT INTO pm_schedules (equipment_id, pm_template_id, next_due_date, next_due_usage)
        VALUES (?, ?, ?, ?)
        """,
        ("equipment_id", "pm_template_id", "next_due_date", "next_due_usage"), WRITE,
        all_of(_EQUIPMENT_ID, positive_int("pm_template_id")),
    ),
    (
        "update_due",
        """
        UPDATE pm_schedules SET next_due_date = ?, next_due_usage = ?,
                                last_completed_date = ?, last_completed_usage = ?
        WHERE id = ?
        """,
        ("next_due_date", "next_due_usage", "last_completed_date", "last_completed_usage", "id"),
        WRITE, _ID,
    ),
    ("get_total", "SELECT COUNT(*) AS count FROM pm_schedules WHERE active = 1", (), SCALAR),
    (
        "get_overdue",
        _PM_SCHEDULE_DUE + """
        WHERE ps.next_due_date < date('now') AND ps.active = 1
        ORDER BY ps.next_due_date ASC
        """,
        (), MANY,
    ),
)

METER_READINGS = _domain(
    "meter_readings",
    (
        "get_by_equipment_id",
        "SELECT * FROM meter_readings WHERE equipment_id = ? ORDER BY reading_date DESC",
        ("equipment_id",), MANY, _EQUIPMENT_ID,
    ),
    (
        "get_latest_by_equipment",
        """
        SELECT equipment_id, meter_type, MAX(reading_value) AS latest_reading,
               MAX(reading_date) AS latest_date
        FROM meter_readings
        GROUP BY equipment_id, meter_type
        """,
        (), MANY,
    ),
    (
        "create",
        """
        INSERT INTO meter_readings (equipment_id, meter_type, reading_value, reading_date,
                                    recorded_by, notes)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        ("equipment_id", "meter_type", "reading_value", "reading_date", "recorded_by", "notes"),
        WRITE,
        all_of(
            _EQUIPMENT_ID,
            required("meter_type"),
            number("reading_value"),
            date("reading_date"),
            required("recorded_by"),
        ),
    ),
)


# ---------------------------------------------------------------------------
# Testing and qualification: load tests, calibrations, credentials
# ---------------------------------------------------------------------------

LOAD_TESTS = _domain(
    "load_tests",
    (
        "get_by_equipment_id",
        "SELECT * FROM load_tests WHERE equipment_id = ? ORDER BY test_date DESC",
        ("equipment_id",), MANY, _EQUIPMENT_ID,
    ),
    (
        "get_due",
        """
        SELECT lt.*, e.equipment_id AS equipment_identifier
        FROM load_tests lt
        JOIN equipment e ON lt.equipment_id = e.id
        WHERE lt.next_test_due <= ? AND lt.test_results = 'pass'
        ORDER BY lt.next_test_due
        """,
        ("due_date",), MANY, date("due_date"),
    ),
    (
        "create",
        """
        INSERT INTO load_tests (equipment_id, test_date, test_type, test_load_percentage,
                                rated_capacity, test_load, test_duration, inspector,
                                test_results, deficiencies_found, corrective_actions,
                                next_test_due, certificate_number, notes)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        ("equipment_id", "test_date", "test_type", "test_load_percentage", "rated_capacity",
         "test_load", "test_duration", "inspector", "test_results", "deficiencies_found",
         "corrective_actions", "next_test_due", "certificate_number", "notes"),
        WRITE,
        all_of(
            _EQUIPMENT_ID,
            date("test_date"),
            one_of("test_type", LoadTestType),
            one_of("test_results", LoadTestResult),
            text("inspector"),
        ),
    ),
    (
        "get_last_by_equipment",
        """
        SELECT equipment_id, MAX(test_date) AS last_test_date, test_results
        FROM load_tests
        GROUP BY equipment_id
        """,
        (), MANY,
    ),
    ("get_total", "SELECT COUNT(*) AS count FROM load_tests", (), SCALAR),
    (
        "get_overdue",
        """
        SELECT lt.*, e.equipment_id AS equipment_identifier
        FROM load_tests lt
        JOIN equipment e ON lt.equipment_id = e.id
        WHERE lt.next_test_due < date('now') AND lt.test_results = 'pass'
        ORDER BY lt.next_test_due ASC
        """,
        (), MANY,
    ),
)

CALIBRATIONS = _domain(
    "calibrations",
    (
        "get_by_equipment_id",
        "SELECT * FROM calibrations WHERE equipment_id = ? ORDER BY calibration_date DESC",
        ("equipment_id",), MANY, _EQUIPMENT_ID,
    ),
    (
        "get_due",
        """
        SELECT c.*, e.equipment_id AS equipment_identifier
        FROM calibrations c
        JOIN equipment e ON c.equipment_id = e.id
        WHERE c.calibration_due_date <= ?
        ORDER BY c.calibration_due_date
        """,
        ("due_date",), MANY, date("due_date"),
    ),
    (
        "create",
        """
        INSERT INTO calibrations (equipment_id, instrument_type, calibration_date,
                                  calibration_due_date, calibrated_by, calibration_agency,
                                  certificate_number, calibration_results, accuracy_tolerance,
                                  actual_accuracy, adjustments_made, notes)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        ("equipment_id", "instrument_type", "calibration_date", "calibration_due_date",
         "calibrated_by", "calibration_agency", "certificate_number", "calibration_results",
         "accuracy_tolerance", "actual_accuracy", "adjustments_made", "notes"),
        WRITE,
        all_of(
            _EQUIPMENT_ID,
            required("instrument_type"),
            date("calibration_date"),
            date("calibration_due_date"),
            required("calibrated_by"),
            one_of("calibration_results", CalibrationResult),
        ),
    ),
    ("get_total", "SELECT COUNT(*) AS count FROM calibrations", (), SCALAR),
    (
        "get_overdue",
        """
        SELECT c.*, e.equipment_id AS equipment_identifier
        FROM calibrations c
        JOIN equipment e ON c.equipment_id = e.id
        WHERE c.calibration_due_date < date('now')
        ORDER BY c.calibration_due_date ASC
        """,
        (), MANY,
    ),
)

CREDENTIALS = _domain(
    "credentials",
    (
        "get_all",
        "SELECT * FROM credentials ORDER BY person_name, credential_type",
        (), MANY,
    ),
    (
        "get_by_person",
        "SELECT * FROM credentials WHERE person_name = ? ORDER BY credential_type",
        ("person_name",), MANY, text("person_name"),
    ),
    (
        "get_expiring",
        """
        SELECT * FROM credentials
        WHERE expiration_date <= ? AND status = 'active'
        ORDER BY expiration_date
        """,
        ("expiration_date",), MANY, date("expiration_date"),
    ),
    (
        "create",
        """
        INSERT INTO credentials (person_name, credential_type, equipment_types,
                                 certification_body, certificate_number, issue_date,
                                 expiration_date, renewal_required, notes)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        ("person_name", "credential_type", "equipment_types", "certification_body",
         "certificate_number", "issue_date", "expiration_date", "renewal_required", "notes"),
        WRITE,
        all_of(
            required("person_name"),
            required("credential_type"),
            date("issue_date"),
            date("expiration_date"),
        ),
    ),
    (
        "update_status",
        "UPDATE credentials SET status = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
        ("status", "id"), WRITE,
        all_of(_ID, one_of("status", CredentialStatus)),
    ),
    ("get_total", "SELECT COUNT(*) AS count FROM credentials", (), SCALAR),
)

TEMPLATE_ITEMS = _domain(
    "template_items",
    (
        "get_by_template_id",
        "SELECT * FROM template_items WHERE template_id = ? ORDER BY item_order",
        ("template_id",), MANY, positive_int("template_id"),
    ),
    (
        "create",
        """
        INSERT INTO template_items (template_id, standard_id, item_order, standard_ref,
                                    item_text, critical, component, inspection_method,
                                    acceptance_criteria, notes)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        ("template_id", "standard_id", "item_order", "standard_ref", "item_text",
         "critical", "component", "inspection_method", "acceptance_criteria", "notes"),
        WRITE,
        all_of(positive_int("template_id"), positive_int("item_order"), required("item_text")),
    ),
    (
        "update",
        """
        UPDATE template_items SET standard_id = ?, item_order = ?, standard_ref = ?,
                                  item_text = ?, critical = ?, component = ?,
                                  inspection_method = ?, acceptance_criteria = ?, notes = ?
        WHERE id = ?
        """,
        ("standard_id", "item_order", "standard_ref", "item_text", "critical",
         "component", "inspection_method", "acceptance_criteria", "notes", "id"),
        WRITE,
        all_of(_ID, positive_int("item_order"), required("item_text")),
    ),
    ("delete", "DELETE FROM template_items WHERE id = ?", ("id",), WRITE, _ID),
)


# ---------------------------------------------------------------------------
# Accountability: users, audit trail, certificates
# ---------------------------------------------------------------------------

USERS = _domain(
    "users",
    ("get_all", "SELECT * FROM users WHERE active = 1 ORDER BY full_name", (), MANY),
    (
        "get_by_username",
        "SELECT * FROM users WHERE username = ? AND active = 1",
        ("username",), ONE, text("username"),
    ),
    (
        "create",
        "INSERT INTO users (username, full_name, email, role) VALUES (?, ?, ?, ?)",
        ("username", "full_name", "email", "role"), WRITE,
        all_of(required("username"), required("full_name"), one_of("role", UserRole)),
    ),
    (
        "update_last_login",
        "UPDATE users SET last_login = CURRENT_TIMESTAMP WHERE id = ?",
        ("id",), WRITE, _ID,
    ),
)

AUDIT_LOG = _domain(
    "audit_log",
    (
        "create",
        """
        INSERT INTO audit_log (user_id, username, action, entity_type, entity_id,
                               old_values, new_values, ip_address, user_agent)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        ("user_id", "username", "action", "entity_type", "entity_id",
         "old_values", "new_values", "ip_address", "user_agent"),
        WRITE,
        all_of(
            required("username"),
            required("action"),
            required("entity_type"),
            positive_int("entity_id"),
        ),
    ),
    (
        "get_by_entity",
        """
        SELECT * FROM audit_log
        WHERE entity_type = ? AND entity_id = ?
        ORDER BY timestamp DESC
        """,
        ("entity_type", "entity_id"), MANY,
        all_of(required("entity_type"), positive_int("entity_id")),
    ),
    (
        "get_recent",
        "SELECT * FROM audit_log ORDER BY timestamp DESC LIMIT ?",
        ("limit",), MANY, positive_int("limit"),
    ),
)

CERTIFICATES = _domain(
    "certificates",
    (
        "get_by_equipment_id",
        "SELECT * FROM certificates WHERE equipment_id = ? ORDER BY issue_date DESC",
        ("equipment_id",), MANY, _EQUIPMENT_ID,
    ),
    (
        "get_by_certificate_number",
        "SELECT * FROM certificates WHERE certificate_number = ?",
        ("certificate_number",), ONE, text("certificate_number"),
    ),
    (
        "get_expiring",
        """
        SELECT c.*, e.equipment_id AS equipment_identifier
        FROM certificates c
        JOIN equipment e ON c.equipment_id = e.id
        WHERE c.expiration_date <= ? AND c.status = 'active'
        ORDER BY c.expiration_date
        """,
        ("expiration_date",), MANY, date("expiration_date"),
    ),
    (
        "create",
        """
        INSERT INTO certificates (certificate_number, certificate_type, equipment_id, entity_id,
                                  issue_date, expiration_date, issued_by, qr_code_data,
                                  certificate_hash)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        ("certificate_number", "certificate_type", "equipment_id", "entity_id", "issue_date",
         "expiration_date", "issued_by", "qr_code_data", "certificate_hash"),
        WRITE,
        all_of(
            required("certificate_number"),
            one_of("certificate_type", CertificateType),
            _EQUIPMENT_ID,
            positive_int("entity_id"),
            date("issue_date"),
            required("issued_by"),
        ),
    ),
    (
        "update_status",
        "UPDATE certificates SET status = ? WHERE id = ?",
        ("status", "id"), WRITE,
        all_of(_ID, one_of("status", CertificateStatus)),
    ),
    ("get_total", "SELECT COUNT(*) AS count FROM certificates", (), SCALAR),
)


def build_catalog(*groups: Iterable[OperationSpec]) -> Catalog:
    return Catalog.from_specs(spec for group in groups for spec in group)


CATALOG = build_catalog(
    EQUIPMENT,
    INSPECTIONS,
    DOCUMENTS,
    SCHEDULED_INSPECTIONS,
    COMPLIANCE,
    TEMPLATES,
    INSPECTION_ITEMS,
    DEFICIENCIES,
    SIGNATURES,
    WORK_ORDERS,
    PM_TEMPLATES,
    PM_SCHEDULES,
    METER_READINGS,
    LOAD_TESTS,
    CALIBRATIONS,
    CREDENTIALS,
    TEMPLATE_ITEMS,
    USERS,
    AUDIT_LOG,
    CERTIFICATES,
)
