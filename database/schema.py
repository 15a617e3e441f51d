"""
Database schema definitions.
Table creation, overlap triggers, and indexes.
"""


def drop_tables(db):
    """Drop all existing tables."""
    # Disable foreign key constraints before dropping
    db.execute('PRAGMA foreign_keys = OFF')

    tables = [
        'audit_log',
        'reservation_status_history',
        'cool_cell_reservations',
        'facility_day_blocks',
        'cool_cells',
    ]

    for table in tables:
        db.execute(f'DROP TABLE IF EXISTS {table}')

    # Re-enable foreign key constraints
    db.execute('PRAGMA foreign_keys = ON')


def create_tables(db):
    """Create all database tables and triggers."""

    # 1. Cells
    db.execute('''
        CREATE TABLE cool_cells (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            facility_id TEXT NOT NULL,
            label TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'FREE'
                CHECK (status IN ('FREE', 'RESERVED', 'OCCUPIED', 'OUT_OF_SERVICE')),
            out_of_service_note TEXT,
            active INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # 2. Facility day blocks (force majeure)
    db.execute('''
        CREATE TABLE facility_day_blocks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            facility_id TEXT NOT NULL,
            block_date DATE NOT NULL,
            reason TEXT NOT NULL,
            created_by TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(facility_id, block_date)
        )
    ''')

    # 3. Reservations
    db.execute('''
        CREATE TABLE cool_cell_reservations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            cool_cell_id INTEGER NOT NULL REFERENCES cool_cells(id),
            facility_id TEXT NOT NULL,
            case_ref TEXT NOT NULL,
            start_at TIMESTAMP NOT NULL,
            end_at TIMESTAMP NOT NULL,
            status TEXT NOT NULL DEFAULT 'PENDING'
                CHECK (status IN ('PENDING', 'CONFIRMED', 'OCCUPIED', 'CANCELLED')),
            note TEXT,
            created_by TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            CHECK (start_at < end_at)
        )
    ''')

    # Half-open overlap guard: [a, b) and [c, d) overlap iff a < d AND c < b.
    # Back-to-back bookings on the exact boundary pass.
    db.execute('''
        CREATE TRIGGER trg_cool_cell_reservations_no_overlap_insert
        BEFORE INSERT ON cool_cell_reservations
        WHEN NEW.status != 'CANCELLED' AND EXISTS (
            SELECT 1 FROM cool_cell_reservations r
            WHERE r.cool_cell_id = NEW.cool_cell_id
              AND r.status != 'CANCELLED'
              AND r.start_at < NEW.end_at
              AND NEW.start_at < r.end_at
        )
        BEGIN
            SELECT RAISE(ABORT, 'cool_cell_reservation_overlap');
        END
    ''')

    db.execute('''
        CREATE TRIGGER trg_cool_cell_reservations_no_overlap_update
        BEFORE UPDATE OF cool_cell_id, start_at, end_at, status ON cool_cell_reservations
        WHEN NEW.status != 'CANCELLED' AND EXISTS (
            SELECT 1 FROM cool_cell_reservations r
            WHERE r.cool_cell_id = NEW.cool_cell_id
              AND r.id != NEW.id
              AND r.status != 'CANCELLED'
              AND r.start_at < NEW.end_at
              AND NEW.start_at < r.end_at
        )
        BEGIN
            SELECT RAISE(ABORT, 'cool_cell_reservation_overlap');
        END
    ''')

    # 4. Reservation status history
    db.execute('''
        CREATE TABLE reservation_status_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            reservation_id INTEGER NOT NULL REFERENCES cool_cell_reservations(id) ON DELETE CASCADE,
            old_status TEXT,
            new_status TEXT NOT NULL,
            changed_by TEXT,
            notes TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # 5. Audit log
    db.execute('''
        CREATE TABLE audit_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            action TEXT NOT NULL,
            entity_type TEXT NOT NULL,
            entity_id INTEGER,
            facility_id TEXT,
            actor TEXT,
            changes TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')


def create_indexes(db):
    """Create performance indexes."""

    # Cell indexes
    db.execute('CREATE INDEX idx_cool_cells_facility ON cool_cells(facility_id, active, label)')

    # Reservation indexes
    db.execute('CREATE INDEX idx_reservations_cell_interval ON cool_cell_reservations(cool_cell_id, start_at, end_at)')
    db.execute('CREATE INDEX idx_reservations_facility_interval ON cool_cell_reservations(facility_id, start_at, end_at)')
    db.execute('CREATE INDEX idx_reservations_case ON cool_cell_reservations(case_ref)')

    # History / audit indexes
    db.execute('CREATE INDEX idx_status_history_reservation ON reservation_status_history(reservation_id, created_at)')
    db.execute('CREATE INDEX idx_audit_log_entity ON audit_log(entity_type, entity_id)')
    db.execute('CREATE INDEX idx_audit_log_facility ON audit_log(facility_id, created_at)')
