"""
Error taxonomy for the cool cell scheduler.

Every error raised by the registries and the reservation store derives from
CoolCellError and carries a stable code plus structured details (which
invariant, which conflicting entity) so the API can render a precise message.
"""

from utils.messages import get_message


class CoolCellError(Exception):
    """Base class for all scheduler errors."""

    status_code = 400
    default_code = 'error'

    def __init__(self, message: str, code: str = None, **details):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details

    def to_dict(self) -> dict:
        """Serialize for the API error envelope."""
        return {'code': self.code, **self.details}


class ValidationError(CoolCellError, ValueError):
    """Malformed input. Recoverable by the caller correcting the input."""

    status_code = 400
    default_code = 'validation_error'


class NotFoundError(CoolCellError):
    """Referenced cell, reservation or block does not exist (or was deleted)."""

    status_code = 404
    default_code = 'not_found'


class ConflictError(CoolCellError):
    """A write would violate non-overlap, uniqueness or a deletion guard."""

    status_code = 409
    default_code = 'conflict'


class InvalidStateTransitionError(CoolCellError):
    """Illegal reservation status transition."""

    status_code = 409
    default_code = 'invalid_state_transition'

    def __init__(self, current: str, target: str, allowed: list, message: str = None):
        if message is None:
            message = get_message(
                'invalid_transition',
                current=current,
                target=target,
                allowed=', '.join(allowed) if allowed else 'geen'
            )
        super().__init__(message, current=current, target=target, allowed=list(allowed))
