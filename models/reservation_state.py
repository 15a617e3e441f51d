"""
Reservation state management functions.
Handles the transition matrix and the status history.
"""

from database import get_db
from utils.datetime_helpers import get_now
from utils.messages import get_message
from .exceptions import ValidationError, InvalidStateTransitionError


# =============================================================================
# CONSTANTS
# =============================================================================

RESERVATION_STATUSES = ('PENDING', 'CONFIRMED', 'OCCUPIED', 'CANCELLED')

VALID_TRANSITIONS = {
    'PENDING': ('CONFIRMED', 'CANCELLED'),
    'CONFIRMED': ('OCCUPIED', 'CANCELLED'),
    'OCCUPIED': (),
    'CANCELLED': (),
}

# Only a PENDING reservation may change its interval
RESCHEDULABLE_STATUSES = ('PENDING',)


# =============================================================================
# TRANSITIONS
# =============================================================================

def get_allowed_transitions(current_status: str) -> list:
    """Get the statuses reachable from current_status in one step."""
    return list(VALID_TRANSITIONS.get(current_status, ()))


def validate_status_name(status: str) -> str:
    """
    Check a status name against the known reservation statuses.

    Raises:
        ValidationError: If the name is unknown
    """
    if status not in RESERVATION_STATUSES:
        raise ValidationError(
            get_message('invalid_reservation_status', status=status),
            field='status', allowed=list(RESERVATION_STATUSES)
        )
    return status


def validate_transition(current_status: str, target_status: str) -> None:
    """
    Validate a single status transition.

    Same-state moves, skips and anything out of a terminal status are illegal.

    Args:
        current_status: Stored status
        target_status: Requested status

    Raises:
        ValidationError: If target_status is not a known status
        InvalidStateTransitionError: If the move is not in the matrix
    """
    validate_status_name(target_status)
    allowed = get_allowed_transitions(current_status)
    if target_status not in allowed:
        raise InvalidStateTransitionError(current_status, target_status, allowed)


# =============================================================================
# HISTORY
# =============================================================================

def record_status_change(db, reservation_id: int, old_status, new_status: str,
                         changed_by: str = None, notes: str = '') -> None:
    """
    Append a row to the status history.

    Runs on the caller's connection so it shares the caller's transaction.
    """
    db.execute('''
        INSERT INTO reservation_status_history
        (reservation_id, old_status, new_status, changed_by, notes, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
    ''', (reservation_id, old_status, new_status, changed_by, notes or None, get_now()))


def get_status_history(reservation_id: int) -> list:
    """
    Get the status history of a reservation, oldest first.

    Args:
        reservation_id: Reservation ID

    Returns:
        List of history dicts
    """
    rows = get_db().execute('''
        SELECT * FROM reservation_status_history
        WHERE reservation_id = ?
        ORDER BY created_at, id
    ''', (reservation_id,)).fetchall()
    return [dict(row) for row in rows]
