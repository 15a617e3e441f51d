"""
Reservation data access functions.
Handles reservation creation, lifecycle transitions, rescheduling and listing.

Every write runs inside immediate_transaction(), so the overlap check and the
insert/update that follows it are atomic with respect to all other writers.
The overlap triggers in the schema are the database-level guard behind it.
"""

import logging
import sqlite3
from datetime import date, datetime, timedelta

from database import get_db, immediate_transaction
from utils.datetime_helpers import get_now, parse_datetime, range_bounds
from utils.messages import get_message
from .cool_cell import get_cool_cell
from .day_block import list_day_blocks
from .events import (
    reservation_created, reservation_status_changed, reservation_cancelled, reservation_rescheduled
)
from .exceptions import ValidationError, NotFoundError, ConflictError, InvalidStateTransitionError
from .reservation_state import (
    RESCHEDULABLE_STATUSES,
    validate_transition,
    record_status_change,
    get_status_history,
)
from .status_resolution import resolve_status

logger = logging.getLogger(__name__)

OVERLAP_TRIGGER_MESSAGE = 'cool_cell_reservation_overlap'

__all__ = [
    'get_reservation',
    'create_reservation',
    'advance_reservation_status',
    'cancel_reservation',
    'reschedule_reservation',
    'list_reservations_for_cell',
    'list_reservations_for_facility',
    'list_reservations_for_case',
    'find_overlapping_reservations',
    'check_bookable',
    'get_status_history',
]


# =============================================================================
# HELPERS
# =============================================================================

def _validate_interval(start_at, end_at) -> tuple:
    start_at = parse_datetime(start_at)
    end_at = parse_datetime(end_at)
    if not start_at < end_at:
        raise ValidationError(get_message('invalid_interval'), field='end_at')
    return start_at, end_at


def _overlap_error(conflicting_ids: list) -> ConflictError:
    return ConflictError(
        get_message('reservation_overlap'),
        code='reservation_overlap',
        conflicting_ids=conflicting_ids
    )


def _is_overlap_abort(error: sqlite3.IntegrityError) -> bool:
    return OVERLAP_TRIGGER_MESSAGE in str(error)


def _get_bookable_cell(cell_id: int, facility_id: str) -> dict:
    # Must run under the write lock so a concurrent delete cannot interleave
    cell = get_cool_cell(cell_id)
    if cell['facility_id'] != facility_id:
        raise ValidationError(
            get_message('facility_mismatch', cell_id=cell_id, facility_id=facility_id),
            field='facility_id'
        )
    return cell


def check_bookable(cell: dict, start_at: datetime, end_at: datetime) -> None:
    """
    Reject an interval that touches a blocked day or an out-of-service cell.

    Each calendar day in [start_at, end_at) is resolved at day grain without
    reservations, so only day blocks and the administrative status count.
    A cell manually marked OCCUPIED stays bookable.

    Raises:
        ConflictError: code day_blocked (with block_id) or cell_out_of_service
    """
    first_day = start_at.date()
    last_day = (end_at - timedelta(microseconds=1)).date()
    blocks = list_day_blocks(cell['facility_id'], first_day, last_day)

    day = first_day
    while day <= last_day:
        resolved = resolve_status(cell, (), blocks, day)
        if resolved['status'] == 'BLOCKED':
            block = resolved['block']
            raise ConflictError(
                get_message('day_blocked_for_booking', date=block['block_date'].isoformat()),
                code='day_blocked',
                block_id=block['id'],
                block_date=block['block_date']
            )
        if resolved['status'] == 'OUT_OF_SERVICE':
            raise ConflictError(
                get_message('cell_out_of_service', label=cell['label']),
                code='cell_out_of_service',
                cell_id=cell['id']
            )
        day += timedelta(days=1)


def find_overlapping_reservations(db, cell_id: int, start_at: datetime, end_at: datetime,
                                  exclude_id: int = None) -> list:
    """
    Find non-cancelled reservations on a cell overlapping [start_at, end_at).

    Half-open test: existing.start < end AND start < existing.end, so
    back-to-back reservations do not conflict.

    Args:
        db: Connection (usually the one holding the write lock)
        cell_id: Cell ID
        start_at: Interval start
        end_at: Interval end
        exclude_id: Reservation to ignore (the one being rescheduled)

    Returns:
        List of conflicting reservation IDs ordered by start
    """
    query = '''
        SELECT id FROM cool_cell_reservations
        WHERE cool_cell_id = ?
          AND status != 'CANCELLED'
          AND start_at < ?
          AND ? < end_at
    '''
    params = [cell_id, end_at, start_at]

    if exclude_id is not None:
        query += ' AND id != ?'
        params.append(exclude_id)

    query += ' ORDER BY start_at, id'
    return [row['id'] for row in db.execute(query, params).fetchall()]


# =============================================================================
# READ
# =============================================================================

def get_reservation(reservation_id: int) -> dict:
    """
    Get a reservation by ID.

    Raises:
        NotFoundError: If the reservation does not exist
    """
    row = get_db().execute(
        'SELECT * FROM cool_cell_reservations WHERE id = ?', (reservation_id,)
    ).fetchone()
    if not row:
        raise NotFoundError(
            get_message('reservation_not_found'), entity='reservation', id=reservation_id
        )
    return dict(row)


def _list_reservations(column: str, value, date_from: date = None, date_to: date = None,
                       include_cancelled: bool = True) -> list:
    lower, upper = range_bounds(date_from, date_to)

    query = f'SELECT * FROM cool_cell_reservations WHERE {column} = ?'
    params = [value]

    if not include_cancelled:
        query += " AND status != 'CANCELLED'"
    # Overlap with [lower, upper): end after the lower bound, start before the upper
    if lower is not None:
        query += ' AND end_at > ?'
        params.append(lower)
    if upper is not None:
        query += ' AND start_at < ?'
        params.append(upper)

    query += ' ORDER BY start_at, id'
    rows = get_db().execute(query, params).fetchall()
    return [dict(row) for row in rows]


def list_reservations_for_cell(cell_id: int, date_from: date = None, date_to: date = None,
                               include_cancelled: bool = True) -> list:
    """
    List the reservations of a cell overlapping an inclusive date range.

    Args:
        cell_id: Cell ID
        date_from: First day (inclusive), optional
        date_to: Last day (inclusive), optional
        include_cancelled: Include CANCELLED reservations

    Returns:
        List of reservation dicts ordered by start, then id
    """
    return _list_reservations('cool_cell_id', cell_id, date_from, date_to, include_cancelled)


def list_reservations_for_facility(facility_id: str, date_from: date = None, date_to: date = None,
                                   include_cancelled: bool = True) -> list:
    """
    List the reservations of a facility overlapping an inclusive date range.

    Args:
        facility_id: Facility ID
        date_from: First day (inclusive), optional
        date_to: Last day (inclusive), optional
        include_cancelled: Include CANCELLED reservations

    Returns:
        List of reservation dicts ordered by start, then id
    """
    return _list_reservations('facility_id', facility_id, date_from, date_to, include_cancelled)


def list_reservations_for_case(case_ref: str) -> list:
    """List every reservation made for a dossier, oldest first."""
    rows = get_db().execute('''
        SELECT * FROM cool_cell_reservations
        WHERE case_ref = ?
        ORDER BY start_at, id
    ''', (case_ref,)).fetchall()
    return [dict(row) for row in rows]


# =============================================================================
# CREATE
# =============================================================================

def create_reservation(cell_id: int, facility_id: str, case_ref: str, start_at, end_at,
                       note: str = None, created_by: str = None) -> dict:
    """
    Reserve a cell for [start_at, end_at).

    Args:
        cell_id: Cell ID
        facility_id: Facility of the cell
        case_ref: Dossier reference
        start_at: Start (datetime or ISO string)
        end_at: End (datetime or ISO string)
        note: Optional note
        created_by: Acting user

    Returns:
        Created reservation dict (status PENDING)

    Raises:
        ValidationError: Bad interval, empty case_ref, or facility mismatch
        NotFoundError: If the cell does not exist
        ConflictError: If a day is blocked, the cell is out of service,
            or the interval overlaps an active reservation
    """
    start_at, end_at = _validate_interval(start_at, end_at)

    case_ref = (case_ref or '').strip()
    if not case_ref:
        raise ValidationError(get_message('case_ref_required'), field='case_ref')

    note = (note or '').strip() or None

    try:
        with immediate_transaction() as db:
            cell = _get_bookable_cell(cell_id, facility_id)
            check_bookable(cell, start_at, end_at)

            conflicts = find_overlapping_reservations(db, cell_id, start_at, end_at)
            if conflicts:
                raise _overlap_error(conflicts)

            now = get_now()
            cursor = db.execute('''
                INSERT INTO cool_cell_reservations
                (cool_cell_id, facility_id, case_ref, start_at, end_at, status,
                 note, created_by, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, 'PENDING', ?, ?, ?, ?)
            ''', (cell_id, facility_id, case_ref, start_at, end_at, note, created_by, now, now))
            reservation_id = cursor.lastrowid

            record_status_change(db, reservation_id, None, 'PENDING', created_by)
            reservation = get_reservation(reservation_id)
    except ConflictError as e:
        logger.warning('Reservation refused on cell %s [%s, %s): %s', cell_id, start_at, end_at, e.code)
        raise
    except sqlite3.IntegrityError as e:
        if not _is_overlap_abort(e):
            raise
        logger.warning('Overlap trigger fired on cell %s [%s, %s)', cell_id, start_at, end_at)
        raise _overlap_error(
            find_overlapping_reservations(get_db(), cell_id, start_at, end_at)
        ) from None

    logger.info('Reservation %s created on cell %s for case %s [%s, %s)',
                reservation_id, cell_id, case_ref, start_at, end_at)
    reservation_created.send('reservation', reservation=reservation, actor=created_by)
    return reservation


# =============================================================================
# STATUS TRANSITIONS
# =============================================================================

def advance_reservation_status(reservation_id: int, target_status: str,
                               changed_by: str = None, notes: str = '') -> dict:
    """
    Move a reservation one step along its lifecycle.

    Legal moves: PENDING -> CONFIRMED -> OCCUPIED, and CANCELLED from
    PENDING or CONFIRMED.

    Args:
        reservation_id: Reservation ID
        target_status: Requested status
        changed_by: Acting user
        notes: Optional notes for the history row

    Returns:
        Updated reservation dict

    Raises:
        ValidationError: If target_status is unknown
        NotFoundError: If the reservation does not exist
        InvalidStateTransitionError: If the move is not allowed
    """
    with immediate_transaction() as db:
        current = get_reservation(reservation_id)
        old_status = current['status']

        try:
            validate_transition(old_status, target_status)
        except InvalidStateTransitionError:
            logger.warning('Refused transition %s -> %s on reservation %s',
                           old_status, target_status, reservation_id)
            raise

        db.execute('''
            UPDATE cool_cell_reservations
            SET status = ?, updated_at = ?
            WHERE id = ?
        ''', (target_status, get_now(), reservation_id))
        record_status_change(db, reservation_id, old_status, target_status, changed_by, notes)
        reservation = get_reservation(reservation_id)

    logger.info('Reservation %s status %s -> %s by %s',
                reservation_id, old_status, target_status, changed_by)
    reservation_status_changed.send(
        'reservation', reservation=reservation, old_status=old_status, actor=changed_by
    )
    if target_status == 'CANCELLED':
        reservation_cancelled.send('reservation', reservation=reservation, actor=changed_by)
    return reservation


def cancel_reservation(reservation_id: int, cancelled_by: str = None, notes: str = '') -> dict:
    """Cancel a PENDING or CONFIRMED reservation, releasing its interval."""
    return advance_reservation_status(reservation_id, 'CANCELLED', cancelled_by, notes)


# =============================================================================
# RESCHEDULE
# =============================================================================

def reschedule_reservation(reservation_id: int, start_at, end_at, changed_by: str = None) -> dict:
    """
    Change the interval of a PENDING reservation.

    Once confirmed the interval is fixed; cancel and create a new reservation
    instead.

    Raises:
        ValidationError: If the interval is invalid
        NotFoundError: If the reservation does not exist
        InvalidStateTransitionError: If the reservation is not PENDING
        ConflictError: If a day is blocked, the cell is out of service,
            or the new interval overlaps another reservation
    """
    start_at, end_at = _validate_interval(start_at, end_at)

    try:
        with immediate_transaction() as db:
            current = get_reservation(reservation_id)
            if current['status'] not in RESCHEDULABLE_STATUSES:
                raise InvalidStateTransitionError(
                    current['status'], current['status'], [],
                    message=get_message('interval_locked', status=current['status'])
                )

            cell = get_cool_cell(current['cool_cell_id'])
            check_bookable(cell, start_at, end_at)

            conflicts = find_overlapping_reservations(
                db, current['cool_cell_id'], start_at, end_at, exclude_id=reservation_id
            )
            if conflicts:
                raise _overlap_error(conflicts)

            db.execute('''
                UPDATE cool_cell_reservations
                SET start_at = ?, end_at = ?, updated_at = ?
                WHERE id = ?
            ''', (start_at, end_at, get_now(), reservation_id))
            reservation = get_reservation(reservation_id)
    except sqlite3.IntegrityError as e:
        if not _is_overlap_abort(e):
            raise
        raise _overlap_error(
            find_overlapping_reservations(
                get_db(), current['cool_cell_id'], start_at, end_at, exclude_id=reservation_id
            )
        ) from None

    logger.info('Reservation %s rescheduled to [%s, %s) by %s',
                reservation_id, start_at, end_at, changed_by)
    reservation_rescheduled.send(
        'reservation', reservation=reservation,
        old_start_at=current['start_at'], old_end_at=current['end_at'], actor=changed_by
    )
    return reservation
