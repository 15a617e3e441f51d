"""
Effective status resolution for a cell.

Pure functions over already-loaded data; nothing here touches the database.
Every view (day grid, week grid, counters) goes through resolve_status so the
views cannot disagree about a cell.

Precedence, first match wins:
    1. facility day block on the date          -> BLOCKED
    2. cell administratively OUT_OF_SERVICE     -> OUT_OF_SERVICE
    3. active reservation covering the moment  -> reservation status
    4. cell administratively OCCUPIED           -> OCCUPIED
    5. otherwise                                -> FREE
"""

from datetime import date, datetime

from utils.datetime_helpers import day_bounds

SOURCE_DAY_BLOCK = 'day_block'
SOURCE_CELL = 'cell'
SOURCE_RESERVATION = 'reservation'
SOURCE_DEFAULT = 'default'

EFFECTIVE_STATUSES = ('BLOCKED', 'OUT_OF_SERVICE', 'PENDING', 'CONFIRMED', 'OCCUPIED', 'FREE')


def _result(status: str, source: str, reservation: dict = None, block: dict = None) -> dict:
    return {
        'status': status,
        'source': source,
        'reservation': reservation,
        'block': block,
    }


def _reservation_key(reservation: dict) -> tuple:
    return reservation['start_at'], reservation['id']


def find_day_block(facility_id: str, day_blocks, target_date: date):
    """Return the block of this facility on target_date, or None."""
    for block in day_blocks:
        if block['facility_id'] == facility_id and block['block_date'] == target_date:
            return block
    return None


def reservations_for_cell(cell_id: int, reservations) -> list:
    """Non-cancelled reservations of one cell, ordered by start then id."""
    return sorted(
        (r for r in reservations
         if r['cool_cell_id'] == cell_id and r['status'] != 'CANCELLED'),
        key=_reservation_key
    )


def reservation_at(cell_id: int, reservations, at: datetime):
    """The active reservation covering instant `at` (start <= at < end), or None."""
    for reservation in reservations_for_cell(cell_id, reservations):
        if reservation['start_at'] <= at < reservation['end_at']:
            return reservation
    return None


def reservations_on_day(cell_id: int, reservations, target_date: date) -> list:
    """Active reservations of a cell overlapping the calendar day, earliest first."""
    day_start, day_end = day_bounds(target_date)
    return [
        r for r in reservations_for_cell(cell_id, reservations)
        if r['start_at'] < day_end and day_start < r['end_at']
    ]


def resolve_status(cell: dict, reservations, day_blocks, at) -> dict:
    """
    Resolve the effective status of a cell at an instant or on a day.

    Args:
        cell: Cell dict
        reservations: Reservations snapshot (other cells are ignored)
        day_blocks: Day block snapshot (other facilities are ignored)
        at: datetime for instant grain, date for day grain

    Returns:
        dict with status, source, reservation and block
    """
    if isinstance(at, datetime):
        target_date = at.date()
    elif isinstance(at, date):
        target_date = at
    else:
        raise TypeError(f'at must be a date or datetime, got {type(at).__name__}')

    block = find_day_block(cell['facility_id'], day_blocks, target_date)
    if block is not None:
        return _result('BLOCKED', SOURCE_DAY_BLOCK, block=block)

    if cell['status'] == 'OUT_OF_SERVICE':
        return _result('OUT_OF_SERVICE', SOURCE_CELL)

    if isinstance(at, datetime):
        reservation = reservation_at(cell['id'], reservations, at)
    else:
        on_day = reservations_on_day(cell['id'], reservations, target_date)
        reservation = on_day[0] if on_day else None

    if reservation is not None:
        return _result(reservation['status'], SOURCE_RESERVATION, reservation=reservation)

    if cell['status'] == 'OCCUPIED':
        return _result('OCCUPIED', SOURCE_CELL)

    return _result('FREE', SOURCE_DEFAULT)
