"""
Input validation helper functions.
Parses and checks request values, raising ValidationError with the field name.
"""

from models.exceptions import ValidationError
from utils.datetime_helpers import parse_date
from utils.messages import get_message


def require_fields(data: dict, *fields) -> None:
    """
    Check that every field is present and not blank.

    Raises:
        ValidationError: Naming the first missing field
    """
    for field in fields:
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(get_message('field_required', field=field), field=field)


def parse_int(value, field: str, default: int = None) -> int:
    """
    Parse an integer from a query string or JSON value.

    Args:
        value: Raw value (None returns default)
        field: Field name for the error
        default: Value when missing

    Raises:
        ValidationError: If the value is not an integer (fractional numbers included)
    """
    if value is None or value == '':
        return default
    # bool is an int subclass; fractional JSON numbers must not be truncated
    if (isinstance(value, bool) or not isinstance(value, (int, float, str))
            or (isinstance(value, float) and not value.is_integer())):
        raise ValidationError(get_message('invalid_integer', field=field, value=value), field=field)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(
            get_message('invalid_integer', field=field, value=value), field=field
        ) from None


def parse_optional_date(value, field: str):
    """Parse a YYYY-MM-DD value, returning None when missing."""
    if value is None or value == '':
        return None
    try:
        return parse_date(value)
    except ValidationError as e:
        e.details['field'] = field
        raise


def parse_text(value, field: str) -> str:
    """
    Check that a JSON value is a string and return it stripped.

    Raises:
        ValidationError: If the value is not a string
    """
    if not isinstance(value, str):
        raise ValidationError(get_message('invalid_text', field=field), field=field)
    return value.strip()
