"""
Database seed data.
Demo facility with a handful of cells for fresh installations.
"""

DEMO_FACILITY_ID = 'demo-mortuarium'


def seed_database(db):
    """Insert initial seed data."""

    # 1. Cells for the demo facility
    for i in range(1, 7):
        db.execute('''
            INSERT INTO cool_cells (facility_id, label, status)
            VALUES (?, ?, 'FREE')
        ''', (DEMO_FACILITY_ID, f'Koelcel {i}'))

    # 2. One cell out of service so the calendars show every state
    db.execute('''
        UPDATE cool_cells
        SET status = 'OUT_OF_SERVICE', out_of_service_note = ?
        WHERE facility_id = ? AND label = 'Koelcel 6'
    ''', ('Compressor in onderhoud', DEMO_FACILITY_ID))
