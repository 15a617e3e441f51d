"""
Availability projections for the day and week calendar views.

Pure transformations over a snapshot the caller already fetched (cells,
reservations, day blocks). All statuses come from resolve_status, so the
day grid, the week grid and the counters always agree.
"""

from datetime import date, datetime, time, timedelta

from utils.messages import get_message
from .exceptions import ValidationError
from .status_resolution import (
    EFFECTIVE_STATUSES,
    find_day_block,
    reservations_for_cell,
    reservations_on_day,
    resolve_status,
)

DAYS_PER_WEEK = 7


# =============================================================================
# HELPERS
# =============================================================================

def snapshot(rows) -> tuple:
    """Copy rows into an immutable tuple of dicts."""
    return tuple(dict(row) for row in rows)


def validate_window(window_start: int, window_end: int) -> None:
    """
    Check a visible hour window.

    Raises:
        ValidationError: Unless 0 <= window_start < window_end <= 24
    """
    valid = (
        isinstance(window_start, int) and isinstance(window_end, int)
        and 0 <= window_start < window_end <= 24
    )
    if not valid:
        raise ValidationError(
            get_message('invalid_window', start=window_start, end=window_end),
            field='window', window_start=window_start, window_end=window_end
        )


def week_start_for(any_date: date, first_weekday: int = 0) -> date:
    """
    Align a date to the start of its week.

    Args:
        any_date: Any date in the week
        first_weekday: 0 = Monday ... 6 = Sunday

    Returns:
        The first day of the week containing any_date
    """
    offset = (any_date.weekday() - first_weekday) % DAYS_PER_WEEK
    return any_date - timedelta(days=offset)


def _hours(delta: timedelta) -> float:
    return delta.total_seconds() / 3600


def _segment(reservation: dict, window_from: datetime, window_to: datetime, span: int) -> dict:
    seg_start = max(reservation['start_at'], window_from)
    seg_end = min(reservation['end_at'], window_to)
    return {
        'reservation_id': reservation['id'],
        'case_ref': reservation['case_ref'],
        'status': reservation['status'],
        'start_at': seg_start,
        'end_at': seg_end,
        'left': _hours(seg_start - window_from) / span,
        'width': _hours(seg_end - seg_start) / span,
        'continues_before': reservation['start_at'] < window_from,
        'continues_after': reservation['end_at'] > window_to,
    }


def _id_or_none(entity):
    return entity['id'] if entity else None


# =============================================================================
# DAY VIEW
# =============================================================================

def project_day(cells, reservations, day_blocks, target_date: date,
                window_start: int = 8, window_end: int = 24) -> dict:
    """
    Build the hourly grid of one day.

    Each cell gets one slot per hour in [window_start, window_end), resolved
    at the slot start, plus the reservation segments that intersect the
    window. Segments are clipped to the window, so left and width are ratios
    within [0, 1].

    Args:
        cells: Cells to show
        reservations: Reservations snapshot
        day_blocks: Day blocks snapshot
        target_date: Day to project
        window_start: First visible hour
        window_end: End of the visible window (24 = midnight)

    Returns:
        dict with date, window, hours, block and one row per cell
    """
    validate_window(window_start, window_end)

    cells = snapshot(cells)
    reservations = snapshot(reservations)
    day_blocks = snapshot(day_blocks)

    midnight = datetime.combine(target_date, time.min)
    window_from = midnight + timedelta(hours=window_start)
    window_to = midnight + timedelta(hours=window_end)
    span = window_end - window_start
    hours = list(range(window_start, window_end))

    rows = []
    for cell in cells:
        slots = []
        for hour in hours:
            at = midnight + timedelta(hours=hour)
            resolution = resolve_status(cell, reservations, day_blocks, at)
            slots.append({
                'hour': hour,
                'at': at,
                'status': resolution['status'],
                'source': resolution['source'],
                'reservation_id': _id_or_none(resolution['reservation']),
            })

        segments = [
            _segment(r, window_from, window_to, span)
            for r in reservations_for_cell(cell['id'], reservations)
            if r['start_at'] < window_to and window_from < r['end_at']
        ]

        rows.append({'cell': cell, 'slots': slots, 'segments': segments})

    facility_ids = {cell['facility_id'] for cell in cells}
    block = None
    if len(facility_ids) == 1:
        block = find_day_block(facility_ids.pop(), day_blocks, target_date)

    return {
        'date': target_date,
        'window_start': window_start,
        'window_end': window_end,
        'hours': hours,
        'block': block,
        'cells': rows,
    }


# =============================================================================
# WEEK VIEW
# =============================================================================

def project_week(cells, reservations, day_blocks, week_start: date) -> dict:
    """
    Build the 7-day grid starting at week_start.

    Each cell/day carries the day-grain resolution: the representative
    reservation is the earliest-starting one overlapping the day (ties by id).

    Args:
        cells: Cells to show
        reservations: Reservations snapshot
        day_blocks: Day blocks snapshot
        week_start: First day of the grid

    Returns:
        dict with week_start, days and one row per cell
    """
    cells = snapshot(cells)
    reservations = snapshot(reservations)
    day_blocks = snapshot(day_blocks)

    days = [week_start + timedelta(days=i) for i in range(DAYS_PER_WEEK)]

    rows = []
    for cell in cells:
        cell_days = []
        for day in days:
            resolution = resolve_status(cell, reservations, day_blocks, day)
            cell_days.append({
                'date': day,
                'status': resolution['status'],
                'source': resolution['source'],
                'reservation': resolution['reservation'],
                'block_id': _id_or_none(resolution['block']),
                'reservation_count': len(reservations_on_day(cell['id'], reservations, day)),
            })
        rows.append({'cell': cell, 'days': cell_days})

    return {
        'week_start': week_start,
        'week_end': days[-1],
        'days': days,
        'cells': rows,
    }


# =============================================================================
# COUNTERS
# =============================================================================

def summarize_day(cells, reservations, day_blocks, at: datetime) -> dict:
    """
    Count cells per effective status at an instant.

    Returns:
        dict with one count per status plus total and available (FREE)
    """
    cells = snapshot(cells)
    counts = {status: 0 for status in EFFECTIVE_STATUSES}
    for cell in cells:
        counts[resolve_status(cell, reservations, day_blocks, at)['status']] += 1

    counts['total'] = len(cells)
    counts['available'] = counts['FREE']
    return counts
