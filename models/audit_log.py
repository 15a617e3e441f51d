"""
Audit Log model and data access functions.
Handles audit log creation and filtered retrieval.
"""

import json
from datetime import date

from database import get_db
from utils.datetime_helpers import get_now, range_bounds


# =============================================================================
# READ OPERATIONS
# =============================================================================

def _decode(row) -> dict:
    entry = dict(row)
    if entry.get('changes'):
        entry['changes'] = json.loads(entry['changes'])
    return entry


def get_audit_logs(
    entity_type: str = None,
    entity_id: int = None,
    facility_id: str = None,
    action: str = None,
    date_from: date = None,
    date_to: date = None,
    limit: int = 100,
    offset: int = 0
) -> list:
    """
    Get audit logs with optional filtering, newest first.

    Args:
        entity_type: Filter by entity type (cool_cell, reservation, day_block)
        entity_id: Filter by specific entity ID
        facility_id: Filter by facility
        action: Filter by action type (CREATE, UPDATE, DELETE, STATUS_CHANGE)
        date_from: Filter logs from this date (inclusive)
        date_to: Filter logs until this date (inclusive)
        limit: Maximum number of records to return (default 100)
        offset: Number of records to skip for pagination

    Returns:
        List of audit log dicts with decoded changes
    """
    query = 'SELECT * FROM audit_log WHERE 1=1'
    params = []

    if entity_type:
        query += ' AND entity_type = ?'
        params.append(entity_type)

    if entity_id is not None:
        query += ' AND entity_id = ?'
        params.append(entity_id)

    if facility_id:
        query += ' AND facility_id = ?'
        params.append(facility_id)

    if action:
        query += ' AND action = ?'
        params.append(action)

    lower, upper = range_bounds(date_from, date_to)
    if lower is not None:
        query += ' AND created_at >= ?'
        params.append(lower)
    if upper is not None:
        query += ' AND created_at < ?'
        params.append(upper)

    query += ' ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?'
    params.extend([limit, offset])

    rows = get_db().execute(query, params).fetchall()
    return [_decode(row) for row in rows]


# =============================================================================
# CREATE OPERATIONS
# =============================================================================

def create_audit_log(
    action: str,
    entity_type: str,
    entity_id: int = None,
    facility_id: str = None,
    actor: str = None,
    changes: dict = None
) -> int:
    """
    Create a new audit log entry.

    Args:
        action: Action type (CREATE, UPDATE, DELETE, STATUS_CHANGE)
        entity_type: Entity type
        entity_id: ID of the affected entity
        facility_id: Facility the entity belongs to
        actor: Acting user (None for system actions)
        changes: Dict with before/after values, stored as JSON

    Returns:
        New audit log ID
    """
    db = get_db()
    changes_json = json.dumps(changes, default=str) if changes is not None else None
    cursor = db.execute('''
        INSERT INTO audit_log (action, entity_type, entity_id, facility_id, actor, changes, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
    ''', (action, entity_type, entity_id, facility_id, actor, changes_json, get_now()))
    db.commit()
    return cursor.lastrowid
