"""
Audit logging for scheduler events.
Subscribes to the domain signals and writes one audit_log row per event.
"""

import logging

from flask_login import current_user

from models.events import (
    cell_created,
    cell_status_changed,
    cell_deleted,
    reservation_created,
    reservation_status_changed,
    reservation_rescheduled,
    day_blocked,
    day_unblocked,
)

# Configure logger for audit operations
logger = logging.getLogger(__name__)


def _current_actor():
    try:
        if current_user and current_user.is_authenticated:
            return current_user.id
    except RuntimeError:
        # Outside request context (CLI commands)
        pass
    return None


def log_audit(
    action: str,
    entity_type: str,
    entity_id: int = None,
    facility_id: str = None,
    before: dict = None,
    after: dict = None,
    actor: str = None
) -> int:
    """
    Log an audit entry.

    Args:
        action: Action type (CREATE, UPDATE, DELETE, STATUS_CHANGE)
        entity_type: Entity type (cool_cell, reservation, day_block)
        entity_id: ID of the affected entity
        facility_id: Facility the entity belongs to
        before: Entity state before the change
        after: Entity state after the change
        actor: Acting user (defaults to current_user.id)

    Returns:
        New audit log ID, or None if logging failed
    """
    try:
        from models.audit_log import create_audit_log

        if actor is None:
            actor = _current_actor()

        changes = None
        if before is not None or after is not None:
            changes = {'before': before, 'after': after}

        return create_audit_log(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            facility_id=facility_id,
            actor=actor,
            changes=changes
        )

    except Exception as e:
        # Audit logging should never fail the main operation
        logger.error(f"Failed to log audit entry: {e}", exc_info=True)
        return None


# =============================================================================
# SIGNAL SUBSCRIBERS
# =============================================================================

def on_cell_created(sender, cell, actor=None, **extra):
    log_audit('CREATE', 'cool_cell', cell['id'], cell['facility_id'], after=cell, actor=actor)


def on_cell_status_changed(sender, cell, old_status=None, actor=None, **extra):
    log_audit('STATUS_CHANGE', 'cool_cell', cell['id'], cell['facility_id'],
              before={'status': old_status},
              after={'status': cell['status'], 'out_of_service_note': cell['out_of_service_note']},
              actor=actor)


def on_cell_deleted(sender, cell, actor=None, **extra):
    log_audit('DELETE', 'cool_cell', cell['id'], cell['facility_id'], before=cell, actor=actor)


def on_reservation_created(sender, reservation, actor=None, **extra):
    log_audit('CREATE', 'reservation', reservation['id'], reservation['facility_id'],
              after=reservation, actor=actor)


def on_reservation_status_changed(sender, reservation, old_status=None, actor=None, **extra):
    log_audit('STATUS_CHANGE', 'reservation', reservation['id'], reservation['facility_id'],
              before={'status': old_status}, after={'status': reservation['status']},
              actor=actor)


def on_reservation_rescheduled(sender, reservation, old_start_at=None, old_end_at=None,
                                actor=None, **extra):
    log_audit('UPDATE', 'reservation', reservation['id'], reservation['facility_id'],
              before={'start_at': old_start_at, 'end_at': old_end_at},
              after={'start_at': reservation['start_at'], 'end_at': reservation['end_at']},
              actor=actor)


def on_day_blocked(sender, block, actor=None, **extra):
    log_audit('CREATE', 'day_block', block['id'], block['facility_id'], after=block, actor=actor)


def on_day_unblocked(sender, block, actor=None, **extra):
    log_audit('DELETE', 'day_block', block['id'], block['facility_id'], before=block, actor=actor)


AUDIT_SUBSCRIBERS = (
    (cell_created, on_cell_created),
    (cell_status_changed, on_cell_status_changed),
    (cell_deleted, on_cell_deleted),
    (reservation_created, on_reservation_created),
    (reservation_status_changed, on_reservation_status_changed),
    (reservation_rescheduled, on_reservation_rescheduled),
    (day_blocked, on_day_blocked),
    (day_unblocked, on_day_unblocked),
)


def register_audit_subscribers() -> None:
    """Connect the audit writers to the domain signals. Safe to call repeatedly."""
    for signal, receiver in AUDIT_SUBSCRIBERS:
        signal.connect(receiver)
