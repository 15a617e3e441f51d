"""
Cool cell data access functions.
Handles cell CRUD, batch creation, and administrative status overrides.
"""

import logging

from flask import current_app

from database import get_db, immediate_transaction
from utils.datetime_helpers import get_now
from utils.messages import get_message
from .events import cell_created, cell_status_changed, cell_deleted
from .exceptions import ValidationError, NotFoundError, ConflictError

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

CELL_STATUSES = ('FREE', 'RESERVED', 'OCCUPIED', 'OUT_OF_SERVICE')

DEFAULT_BATCH_MAX = 50


# =============================================================================
# READ OPERATIONS
# =============================================================================

def get_cool_cell(cell_id: int) -> dict:
    """
    Get an active cell by ID.

    Args:
        cell_id: Cell ID

    Returns:
        Cell dict

    Raises:
        NotFoundError: If the cell does not exist or was deleted
    """
    row = get_db().execute('''
        SELECT * FROM cool_cells
        WHERE id = ? AND active = 1
    ''', (cell_id,)).fetchone()
    if not row:
        raise NotFoundError(get_message('cell_not_found'), entity='cool_cell', id=cell_id)
    return dict(row)


def get_cool_cells(facility_id: str) -> list:
    """
    Get all active cells of a facility ordered by label.

    Args:
        facility_id: Facility ID

    Returns:
        List of cell dicts
    """
    rows = get_db().execute('''
        SELECT * FROM cool_cells
        WHERE facility_id = ? AND active = 1
        ORDER BY label, id
    ''', (facility_id,)).fetchall()
    return [dict(row) for row in rows]


# =============================================================================
# CREATE
# =============================================================================

def _clean_label(label) -> str:
    label = (label or '').strip()
    if not label:
        raise ValidationError(get_message('label_required'), field='label')
    return label


def _insert_cell(db, facility_id: str, label: str) -> dict:
    now = get_now()
    cursor = db.execute('''
        INSERT INTO cool_cells (facility_id, label, status, created_at, updated_at)
        VALUES (?, ?, 'FREE', ?, ?)
    ''', (facility_id, label, now, now))
    row = db.execute('SELECT * FROM cool_cells WHERE id = ?', (cursor.lastrowid,)).fetchone()
    return dict(row)


def create_cool_cell(facility_id: str, label: str, created_by: str = None) -> dict:
    """
    Create a single cell with status FREE.

    Args:
        facility_id: Owning facility
        label: Human-readable label
        created_by: Acting user

    Returns:
        Created cell dict

    Raises:
        ValidationError: If the label is empty
    """
    label = _clean_label(label)
    if not facility_id:
        raise ValidationError(get_message('field_required', field='facility_id'), field='facility_id')

    with immediate_transaction() as db:
        cell = _insert_cell(db, facility_id, label)

    logger.info('Cool cell %s (%s) created for facility %s', cell['id'], label, facility_id)
    cell_created.send('cool_cell', cell=cell, actor=created_by)
    return cell


def create_cool_cell_batch(facility_id: str, prefix: str, count: int, created_by: str = None) -> list:
    """
    Create a numbered batch of cells: "{prefix} 1" .. "{prefix} {count}".

    Args:
        facility_id: Owning facility
        prefix: Label prefix
        count: Number of cells (1..COOL_CELL_BATCH_MAX)
        created_by: Acting user

    Returns:
        List of created cell dicts

    Raises:
        ValidationError: If prefix is empty or count is out of bounds
    """
    prefix = (prefix or '').strip()
    if not prefix:
        raise ValidationError(get_message('prefix_required'), field='prefix')
    if not facility_id:
        raise ValidationError(get_message('field_required', field='facility_id'), field='facility_id')

    maximum = current_app.config.get('COOL_CELL_BATCH_MAX', DEFAULT_BATCH_MAX)
    if isinstance(count, bool) or not isinstance(count, int) or not 1 <= count <= maximum:
        raise ValidationError(
            get_message('batch_count_invalid', maximum=maximum),
            field='count', minimum=1, maximum=maximum
        )

    with immediate_transaction() as db:
        cells = [_insert_cell(db, facility_id, f'{prefix} {i}') for i in range(1, count + 1)]

    logger.info('Created %d cool cells with prefix %r for facility %s', count, prefix, facility_id)
    for cell in cells:
        cell_created.send('cool_cell', cell=cell, actor=created_by)
    return cells


# =============================================================================
# UPDATE
# =============================================================================

def rename_cool_cell(cell_id: int, label: str) -> dict:
    """
    Change the label of a cell.

    Raises:
        ValidationError: If the label is empty
        NotFoundError: If the cell does not exist
    """
    label = _clean_label(label)

    with immediate_transaction() as db:
        get_cool_cell(cell_id)
        db.execute('''
            UPDATE cool_cells SET label = ?, updated_at = ?
            WHERE id = ?
        ''', (label, get_now(), cell_id))
        return get_cool_cell(cell_id)


def set_cool_cell_status(cell_id: int, status: str, note: str = None, changed_by: str = None) -> dict:
    """
    Manually override the administrative status of a cell.

    Any status may be set from any status, including OUT_OF_SERVICE while a
    reservation is running. Active reservations and day blocks still take
    precedence when the effective status is resolved.

    Args:
        cell_id: Cell ID
        status: One of CELL_STATUSES
        note: Out-of-service note (kept only for OUT_OF_SERVICE)
        changed_by: Acting user

    Returns:
        Updated cell dict

    Raises:
        ValidationError: If the status is unknown
        NotFoundError: If the cell does not exist
    """
    if status not in CELL_STATUSES:
        raise ValidationError(
            get_message('invalid_cell_status', status=status),
            field='status', allowed=list(CELL_STATUSES)
        )

    note = (note or '').strip() or None
    if status != 'OUT_OF_SERVICE':
        note = None

    with immediate_transaction() as db:
        old_status = get_cool_cell(cell_id)['status']
        db.execute('''
            UPDATE cool_cells
            SET status = ?, out_of_service_note = ?, updated_at = ?
            WHERE id = ?
        ''', (status, note, get_now(), cell_id))
        cell = get_cool_cell(cell_id)

    logger.info('Cool cell %s status %s -> %s by %s', cell_id, old_status, status, changed_by)
    cell_status_changed.send('cool_cell', cell=cell, old_status=old_status, actor=changed_by)
    return cell


# =============================================================================
# DELETE
# =============================================================================

def delete_cool_cell(cell_id: int, deleted_by: str = None) -> None:
    """
    Soft delete a cell (set active = 0).
    Only allowed when no non-cancelled reservation on the cell ends in the future.

    Args:
        cell_id: Cell ID
        deleted_by: Acting user

    Raises:
        NotFoundError: If the cell does not exist
        ConflictError: If future reservations reference the cell
    """
    with immediate_transaction() as db:
        cell = get_cool_cell(cell_id)

        rows = db.execute('''
            SELECT id FROM cool_cell_reservations
            WHERE cool_cell_id = ?
              AND status != 'CANCELLED'
              AND end_at > ?
            ORDER BY start_at, id
        ''', (cell_id, get_now())).fetchall()

        if rows:
            blocking_ids = [row['id'] for row in rows]
            logger.warning('Refused to delete cool cell %s: reservations %s', cell_id, blocking_ids)
            raise ConflictError(
                get_message('cell_has_reservations'),
                code='cell_has_reservations',
                cell_id=cell_id,
                conflicting_ids=blocking_ids
            )

        db.execute('''
            UPDATE cool_cells SET active = 0, updated_at = ?
            WHERE id = ?
        ''', (get_now(), cell_id))

    logger.info('Cool cell %s deleted by %s', cell_id, deleted_by)
    cell_deleted.send('cool_cell', cell=cell, actor=deleted_by)
