"""
Route decorators for the JSON API.
"""

from functools import wraps

from flask import request
from flask_login import login_required, current_user

from models.exceptions import ValidationError
from utils.messages import get_message


def json_body_required(func):
    """
    Decorator that rejects requests without a JSON object body.

    Usage:
        @bp.route('/cells', methods=['POST'])
        @login_required
        @json_body_required
        def create_cell():
            data = request.get_json()
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError(get_message('data_required'), code='data_required')
        return func(*args, **kwargs)
    return wrapper


def acting_user():
    """Identifier of the acting user, or None for anonymous reads."""
    if current_user and current_user.is_authenticated:
        return current_user.id
    return None


# Re-export login_required for convenience
__all__ = ['login_required', 'json_body_required', 'acting_user']
