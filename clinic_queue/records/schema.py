"""
Clinic Queue Database Schema
Supports patients, visits moving through the stage pipeline, inventory, and
audit logs for stage changes and stock movements.
"""

SCHEMA = """
-- =============================================================================
-- 1. PATIENTS - Patient identity plus append-only clinical history
-- =============================================================================
CREATE TABLE IF NOT EXISTS patients (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    phone TEXT,

    -- JSON array of one-line visit summaries, newest first
    history TEXT NOT NULL DEFAULT '[]',
    last_visit TEXT,

    -- Metadata
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_patients_name ON patients(name);


-- =============================================================================
-- 2. VISITS - One episode of care, moved through the stage pipeline
-- =============================================================================
CREATE TABLE IF NOT EXISTS visits (
    id TEXT PRIMARY KEY,
    patient_id TEXT NOT NULL,
    patient_name TEXT NOT NULL,

    -- Pipeline position
    stage TEXT NOT NULL,
    stage_start_time TEXT NOT NULL,
    start_time TEXT NOT NULL,
    queue_number INTEGER NOT NULL,
    priority TEXT NOT NULL DEFAULT 'Normal',

    -- Clinical data
    vitals TEXT,             -- JSON object or NULL when vitals were skipped
    chief_complaint TEXT,
    diagnosis TEXT,
    doctor_notes TEXT,
    lab_orders TEXT NOT NULL DEFAULT '[]',
    prescription TEXT NOT NULL DEFAULT '[]',
    medications_dispensed INTEGER DEFAULT 0,

    -- Billing
    consultation_fee REAL NOT NULL DEFAULT 0,
    total_bill REAL NOT NULL DEFAULT 0,
    payment_status TEXT NOT NULL DEFAULT 'Pending',

    -- Free-form extras (insurance details, payment reference)
    metadata TEXT NOT NULL DEFAULT '{}',

    updated_at TEXT DEFAULT CURRENT_TIMESTAMP,

    FOREIGN KEY (patient_id) REFERENCES patients(id)
);

CREATE INDEX IF NOT EXISTS idx_visits_patient ON visits(patient_id);
CREATE INDEX IF NOT EXISTS idx_visits_stage ON visits(stage);


-- =============================================================================
-- 3. VISIT_STAGE_LOG - Audit trail for stage changes
-- =============================================================================
CREATE TABLE IF NOT EXISTS visit_stage_log (
    id TEXT PRIMARY KEY,
    visit_id TEXT NOT NULL,
    from_stage TEXT,
    to_stage TEXT NOT NULL,
    changed_at TEXT DEFAULT CURRENT_TIMESTAMP,
    changed_by TEXT,
    FOREIGN KEY (visit_id) REFERENCES visits(id)
);

CREATE INDEX IF NOT EXISTS idx_stage_log_visit ON visit_stage_log(visit_id);


-- =============================================================================
-- 4. INVENTORY_ITEMS - Medicines and supplies dispensed at the pharmacy
-- =============================================================================
CREATE TABLE IF NOT EXISTS inventory_items (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    stock INTEGER NOT NULL DEFAULT 0,
    min_stock_level INTEGER NOT NULL DEFAULT 0,  -- reorder point
    unit TEXT,
    category TEXT DEFAULT 'Medicine',
    price REAL NOT NULL DEFAULT 0,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);


-- =============================================================================
-- 5. INVENTORY_LOG - Audit trail for stock movements
-- =============================================================================
CREATE TABLE IF NOT EXISTS inventory_log (
    id TEXT PRIMARY KEY,
    item_id TEXT NOT NULL,
    action TEXT NOT NULL,          -- Created, Updated, Dispensed
    quantity_change INTEGER,
    notes TEXT,
    changed_at TEXT DEFAULT CURRENT_TIMESTAMP,
    changed_by TEXT,
    FOREIGN KEY (item_id) REFERENCES inventory_items(id)
);

CREATE INDEX IF NOT EXISTS idx_inventory_log_item ON inventory_log(item_id);
"""
