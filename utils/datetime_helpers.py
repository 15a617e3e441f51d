"""
Timezone-aware date/time helpers for the cool cell scheduler.

All timestamps are handled as naive wall time in the facility timezone.
Aware input is converted to that timezone first, then made naive.
"""

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from flask import current_app

from models.exceptions import ValidationError
from utils.messages import get_message


def get_timezone() -> ZoneInfo:
    """Get the configured timezone."""
    tz_name = current_app.config.get('TIMEZONE', 'Europe/Brussels')
    return ZoneInfo(tz_name)


def get_today() -> date:
    """Get today's date in the configured timezone."""
    return datetime.now(get_timezone()).date()


def get_now() -> datetime:
    """Get current wall-clock time in the configured timezone (naive, seconds precision)."""
    return datetime.now(get_timezone()).replace(tzinfo=None, microsecond=0)


def to_facility_time(value: datetime, tz: ZoneInfo = None) -> datetime:
    """
    Normalize a datetime to naive facility wall time.

    Args:
        value: Naive (already facility time) or aware datetime
        tz: Target timezone (default: configured timezone)

    Returns:
        datetime: Naive datetime without microseconds
    """
    if value.tzinfo is not None:
        value = value.astimezone(tz or get_timezone()).replace(tzinfo=None)
    return value.replace(microsecond=0)


def parse_datetime(value) -> datetime:
    """
    Parse an ISO-8601 timestamp into naive facility wall time.

    Args:
        value: datetime or ISO string ('2025-01-10T08:00', '2025-01-10 08:00:00+01:00', ...)

    Returns:
        datetime

    Raises:
        ValidationError: If the value is not a valid timestamp
    """
    if isinstance(value, datetime):
        return to_facility_time(value)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(get_message('invalid_datetime', value=value), field='datetime')
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(get_message('invalid_datetime', value=value), field='datetime') from None
    return to_facility_time(parsed)


def parse_date(value) -> date:
    """
    Parse a calendar date (YYYY-MM-DD).

    Raises:
        ValidationError: If the value is not a valid calendar date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError(get_message('invalid_date', value=value), field='date') from None


def day_bounds(target_date: date) -> tuple:
    """Return the half-open [start, end) datetimes covering a calendar day."""
    start = datetime.combine(target_date, time.min)
    return start, start + timedelta(days=1)


def range_bounds(date_from: date = None, date_to: date = None) -> tuple:
    """
    Convert an inclusive date range into half-open datetime bounds.

    Either side may be None (unbounded).
    """
    lower = datetime.combine(date_from, time.min) if date_from else None
    upper = datetime.combine(date_to + timedelta(days=1), time.min) if date_to else None
    if lower and upper and upper <= lower:
        raise ValidationError(get_message('invalid_date_range'), field='to')
    return lower, upper
