"""Application schema, expressed as the ordered migration set.

Migrations are append-only: once a version has shipped its script is never
edited.  Schema changes go into a new entry at the end of the list.
"""

from __future__ import annotations

from equiptrack.storage.migration import Migration, MigrationSet


_BASELINE = """
CREATE TABLE IF NOT EXISTS equipment (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    equipment_id      TEXT UNIQUE,
    type              TEXT,
    manufacturer      TEXT,
    model             TEXT,
    serial_number     TEXT,
    capacity          REAL,
    installation_date TEXT,
    location          TEXT,
    status            TEXT,
    qr_code_data      TEXT
);

CREATE TABLE IF NOT EXISTS inspections (
    id                 INTEGER PRIMARY KEY AUTOINCREMENT,
    equipment_id       INTEGER,
    inspector          TEXT,
    inspection_date    TEXT,
    findings           TEXT,
    corrective_actions TEXT,
    FOREIGN KEY (equipment_id) REFERENCES equipment (id)
);

CREATE TABLE IF NOT EXISTS documents (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    equipment_id INTEGER,
    file_name    TEXT,
    file_path    TEXT,
    FOREIGN KEY (equipment_id) REFERENCES equipment (id)
);

CREATE TABLE IF NOT EXISTS scheduled_inspections (
    id                 INTEGER PRIMARY KEY AUTOINCREMENT,
    equipment_id       INTEGER,
    scheduled_date     TEXT,
    assigned_inspector TEXT,
    status             TEXT,
    FOREIGN KEY (equipment_id) REFERENCES equipment (id)
);

CREATE TABLE IF NOT EXISTS compliance_standards (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT,
    description TEXT,
    authority   TEXT
);

CREATE TABLE IF NOT EXISTS equipment_type_compliance (
    equipment_type TEXT,
    standard_id    INTEGER,
    PRIMARY KEY (equipment_type, standard_id),
    FOREIGN KEY (standard_id) REFERENCES compliance_standards (id)
);

CREATE TABLE IF NOT EXISTS inspection_templates (
    id     INTEGER PRIMARY KEY AUTOINCREMENT,
    name   TEXT UNIQUE,
    fields TEXT
);

CREATE INDEX IF NOT EXISTS idx_equipment_id ON equipment (equipment_id);
CREATE INDEX IF NOT EXISTS idx_inspections_equipment_id ON inspections (equipment_id);
CREATE INDEX IF NOT EXISTS idx_inspections_date ON inspections (inspection_date);
CREATE INDEX IF NOT EXISTS idx_documents_equipment_id ON documents (equipment_id);
CREATE INDEX IF NOT EXISTS idx_scheduled_inspections_equipment_id ON scheduled_inspections (equipment_id);
"""


_INSPECTION_WORKFLOW = """
ALTER TABLE inspections ADD COLUMN summary_comments TEXT;
ALTER TABLE inspections ADD COLUMN signature TEXT;
ALTER TABLE inspections ADD COLUMN scheduled_inspection_id INTEGER REFERENCES scheduled_inspections (id);
ALTER TABLE inspections ADD COLUMN inspection_date_date TEXT;
UPDATE inspections SET inspection_date_date = date(inspection_date)
    WHERE inspection_date IS NOT NULL;

ALTER TABLE documents ADD COLUMN hash TEXT;
ALTER TABLE documents ADD COLUMN size INTEGER;
ALTER TABLE documents ADD COLUMN uploaded_by TEXT;
ALTER TABLE documents ADD COLUMN uploaded_at TEXT;

CREATE TABLE IF NOT EXISTS inspection_items (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    inspection_id INTEGER NOT NULL REFERENCES inspections (id) ON DELETE CASCADE,
    standard_ref  TEXT,
    item_text     TEXT NOT NULL,
    critical      INTEGER DEFAULT 0,
    result        TEXT CHECK (result IN ('pass', 'fail', 'na')),
    notes         TEXT,
    photos        TEXT,
    component     TEXT,
    priority      TEXT,
    created_at    TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS deficiencies (
    id                     INTEGER PRIMARY KEY AUTOINCREMENT,
    equipment_id           INTEGER NOT NULL REFERENCES equipment (id),
    inspection_item_id     INTEGER REFERENCES inspection_items (id),
    severity               TEXT NOT NULL CHECK (severity IN ('critical', 'major', 'minor')),
    remove_from_service    INTEGER DEFAULT 0,
    description            TEXT NOT NULL,
    component              TEXT,
    corrective_action      TEXT,
    due_date               TEXT,
    status                 TEXT NOT NULL DEFAULT 'open'
                           CHECK (status IN ('open', 'in_progress', 'verified', 'closed')),
    verification_signature TEXT,
    verification_timestamp TEXT,
    created_at             TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at             TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    closed_at              TEXT
);

CREATE TABLE IF NOT EXISTS signatures (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    entity_type    TEXT NOT NULL CHECK (entity_type IN ('inspection', 'deficiency', 'work_order')),
    entity_id      INTEGER NOT NULL,
    signature_type TEXT NOT NULL CHECK (signature_type IN ('inspector', 'supervisor', 'verification')),
    signatory_name TEXT NOT NULL,
    signature_data TEXT NOT NULL,
    timestamp      TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_inspections_date_date ON inspections (inspection_date_date);
CREATE INDEX IF NOT EXISTS idx_inspections_scheduled_id ON inspections (scheduled_inspection_id);
CREATE INDEX IF NOT EXISTS idx_inspection_items_inspection_id ON inspection_items (inspection_id);
CREATE INDEX IF NOT EXISTS idx_deficiencies_equipment_id ON deficiencies (equipment_id);
CREATE INDEX IF NOT EXISTS idx_deficiencies_status ON deficiencies (status, severity);
CREATE INDEX IF NOT EXISTS idx_signatures_entity ON signatures (entity_type, entity_id);
"""


_MAINTENANCE = """
ALTER TABLE equipment ADD COLUMN parent_id INTEGER REFERENCES equipment (id);
ALTER TABLE equipment ADD COLUMN site TEXT;
ALTER TABLE equipment ADD COLUMN building TEXT;
ALTER TABLE equipment ADD COLUMN bay TEXT;
ALTER TABLE equipment ADD COLUMN tagged_out INTEGER NOT NULL DEFAULT 0;

CREATE TABLE IF NOT EXISTS work_orders (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    equipment_id     INTEGER NOT NULL REFERENCES equipment (id),
    wo_number        TEXT NOT NULL UNIQUE,
    title            TEXT NOT NULL,
    description      TEXT,
    work_type        TEXT NOT NULL
                     CHECK (work_type IN ('preventive', 'corrective', 'emergency', 'project')),
    priority         TEXT NOT NULL DEFAULT 'medium'
                     CHECK (priority IN ('low', 'medium', 'high', 'critical')),
    status           TEXT NOT NULL DEFAULT 'draft'
                     CHECK (status IN ('draft', 'approved', 'assigned', 'in_progress',
                                       'completed', 'closed', 'cancelled')),
    assigned_to      TEXT,
    estimated_hours  REAL,
    actual_hours     REAL,
    parts_cost       REAL,
    labor_cost       REAL,
    completion_notes TEXT,
    created_by       TEXT NOT NULL,
    created_at       TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    scheduled_date   TEXT,
    started_at       TEXT,
    completed_at     TEXT,
    closed_at        TEXT,
    deficiency_id    INTEGER REFERENCES deficiencies (id)
);

CREATE TABLE IF NOT EXISTS pm_templates (
    id                 INTEGER PRIMARY KEY AUTOINCREMENT,
    name               TEXT NOT NULL,
    equipment_type     TEXT NOT NULL,
    description        TEXT,
    frequency_type     TEXT NOT NULL CHECK (frequency_type IN ('calendar', 'usage', 'condition')),
    frequency_value    INTEGER NOT NULL CHECK (frequency_value > 0),
    frequency_unit     TEXT,
    estimated_duration REAL,
    instructions       TEXT,
    required_skills    TEXT,
    required_parts     TEXT,
    safety_notes       TEXT,
    active             INTEGER NOT NULL DEFAULT 1,
    created_at         TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at         TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS pm_schedules (
    id                   INTEGER PRIMARY KEY AUTOINCREMENT,
    equipment_id         INTEGER NOT NULL REFERENCES equipment (id),
    pm_template_id       INTEGER NOT NULL REFERENCES pm_templates (id),
    next_due_date        TEXT,
    next_due_usage       REAL,
    last_completed_date  TEXT,
    last_completed_usage REAL,
    active               INTEGER NOT NULL DEFAULT 1,
    created_at           TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS meter_readings (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    equipment_id  INTEGER NOT NULL REFERENCES equipment (id),
    meter_type    TEXT NOT NULL,
    reading_value REAL NOT NULL,
    reading_date  TEXT NOT NULL,
    recorded_by   TEXT NOT NULL,
    notes         TEXT,
    created_at    TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

ALTER TABLE deficiencies ADD COLUMN work_order_id INTEGER REFERENCES work_orders (id);

CREATE INDEX IF NOT EXISTS idx_equipment_parent_id ON equipment (parent_id);
CREATE INDEX IF NOT EXISTS idx_work_orders_equipment_id ON work_orders (equipment_id);
CREATE INDEX IF NOT EXISTS idx_work_orders_status ON work_orders (status);
CREATE INDEX IF NOT EXISTS idx_work_orders_scheduled_date ON work_orders (scheduled_date);
CREATE INDEX IF NOT EXISTS idx_pm_templates_equipment_type ON pm_templates (equipment_type, active);
CREATE INDEX IF NOT EXISTS idx_pm_schedules_equipment_id ON pm_schedules (equipment_id);
CREATE INDEX IF NOT EXISTS idx_pm_schedules_next_due ON pm_schedules (next_due_date, active);
CREATE INDEX IF NOT EXISTS idx_meter_readings_equipment_id ON meter_readings (equipment_id, meter_type);
"""


_TESTING_AND_QUALIFICATION = """
CREATE TABLE IF NOT EXISTS load_tests (
    id                   INTEGER PRIMARY KEY AUTOINCREMENT,
    equipment_id         INTEGER NOT NULL REFERENCES equipment (id),
    test_date            TEXT NOT NULL,
    test_type            TEXT NOT NULL
                         CHECK (test_type IN ('annual', 'periodic', 'initial', 'after_repair')),
    test_load_percentage REAL,
    rated_capacity       REAL,
    test_load            REAL,
    test_duration        INTEGER,
    inspector            TEXT NOT NULL,
    test_results         TEXT NOT NULL CHECK (test_results IN ('pass', 'fail')),
    deficiencies_found   TEXT,
    corrective_actions   TEXT,
    next_test_due        TEXT,
    certificate_number   TEXT,
    notes                TEXT,
    created_at           TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS calibrations (
    id                   INTEGER PRIMARY KEY AUTOINCREMENT,
    equipment_id         INTEGER NOT NULL REFERENCES equipment (id),
    instrument_type      TEXT NOT NULL,
    calibration_date     TEXT NOT NULL,
    calibration_due_date TEXT NOT NULL,
    calibrated_by        TEXT NOT NULL,
    calibration_agency   TEXT,
    certificate_number   TEXT,
    calibration_results  TEXT NOT NULL
                         CHECK (calibration_results IN ('pass', 'fail', 'limited')),
    accuracy_tolerance   TEXT,
    actual_accuracy      TEXT,
    adjustments_made     TEXT,
    notes                TEXT,
    created_at           TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS credentials (
    id                 INTEGER PRIMARY KEY AUTOINCREMENT,
    person_name        TEXT NOT NULL,
    credential_type    TEXT NOT NULL,
    equipment_types    TEXT,
    certification_body TEXT,
    certificate_number TEXT,
    issue_date         TEXT NOT NULL,
    expiration_date    TEXT NOT NULL,
    renewal_required   INTEGER DEFAULT 1,
    status             TEXT NOT NULL DEFAULT 'active'
                       CHECK (status IN ('active', 'expired', 'suspended', 'revoked')),
    notes              TEXT,
    created_at         TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at         TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS template_items (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    template_id         INTEGER NOT NULL REFERENCES inspection_templates (id) ON DELETE CASCADE,
    standard_id         INTEGER REFERENCES compliance_standards (id),
    item_order          INTEGER NOT NULL,
    standard_ref        TEXT,
    item_text           TEXT NOT NULL,
    critical            INTEGER DEFAULT 0,
    component           TEXT,
    inspection_method   TEXT,
    acceptance_criteria TEXT,
    notes               TEXT
);

CREATE INDEX IF NOT EXISTS idx_load_tests_equipment_id ON load_tests (equipment_id);
CREATE INDEX IF NOT EXISTS idx_load_tests_next_due ON load_tests (next_test_due);
CREATE INDEX IF NOT EXISTS idx_calibrations_equipment_id ON calibrations (equipment_id);
CREATE INDEX IF NOT EXISTS idx_calibrations_due_date ON calibrations (calibration_due_date);
CREATE INDEX IF NOT EXISTS idx_credentials_person_name ON credentials (person_name);
CREATE INDEX IF NOT EXISTS idx_credentials_expiration ON credentials (expiration_date, status);
CREATE INDEX IF NOT EXISTS idx_template_items_template_id ON template_items (template_id, item_order);
"""


_ACCOUNTABILITY = """
CREATE TABLE IF NOT EXISTS users (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    username   TEXT NOT NULL UNIQUE,
    full_name  TEXT NOT NULL,
    email      TEXT,
    role       TEXT NOT NULL CHECK (role IN ('admin', 'inspector', 'reviewer', 'viewer')),
    active     INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    last_login TEXT
);

CREATE TABLE IF NOT EXISTS audit_log (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id     INTEGER REFERENCES users (id),
    username    TEXT NOT NULL,
    action      TEXT NOT NULL,
    entity_type TEXT NOT NULL,
    entity_id   INTEGER NOT NULL,
    old_values  TEXT,
    new_values  TEXT,
    ip_address  TEXT,
    user_agent  TEXT,
    timestamp   TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS certificates (
    id                 INTEGER PRIMARY KEY AUTOINCREMENT,
    certificate_number TEXT NOT NULL UNIQUE,
    certificate_type   TEXT NOT NULL
                       CHECK (certificate_type IN ('inspection', 'load_test', 'calibration')),
    equipment_id       INTEGER NOT NULL REFERENCES equipment (id),
    entity_id          INTEGER NOT NULL,
    issue_date         TEXT NOT NULL,
    expiration_date    TEXT,
    issued_by          TEXT NOT NULL,
    qr_code_data       TEXT,
    certificate_hash   TEXT,
    status             TEXT NOT NULL DEFAULT 'active'
                       CHECK (status IN ('active', 'expired', 'revoked')),
    created_at         TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_users_username ON users (username);
CREATE INDEX IF NOT EXISTS idx_audit_log_entity ON audit_log (entity_type, entity_id);
CREATE INDEX IF NOT EXISTS idx_audit_log_timestamp ON audit_log (timestamp);
CREATE INDEX IF NOT EXISTS idx_certificates_equipment_id ON certificates (equipment_id);
CREATE INDEX IF NOT EXISTS idx_certificates_expiration ON certificates (expiration_date, status);
"""


MIGRATIONS = MigrationSet.from_migrations([
    Migration(1, "baseline", sql=_BASELINE),
    Migration(2, "inspection_workflow", sql=_INSPECTION_WORKFLOW),
    Migration(3, "maintenance", sql=_MAINTENANCE),
    Migration(4, "testing_and_qualification", sql=_TESTING_AND_QUALIFICATION),
    Migration(5, "accountability", sql=_ACCOUNTABILITY),
])

TARGET_VERSION = MIGRATIONS.latest_version
