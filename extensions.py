"""
Flask extensions initialization.
Extensions are initialized here and then initialized with the app in app.py.
"""

from flask_login import LoginManager, UserMixin

from utils.api_response import api_error
from utils.messages import get_message

# Initialize Flask-Login
login_manager = LoginManager()

USER_HEADER = 'X-User-Id'


class ApiUser(UserMixin):
    """
    Acting user identified by the upstream identity layer.

    The scheduler trusts the header; authentication happens in front of it.
    """

    def __init__(self, user_id: str):
        self.id = user_id

    def __repr__(self):
        return f'<ApiUser {self.id}>'


@login_manager.request_loader
def load_user_from_request(request):
    """
    Load the acting user from the X-User-Id header.

    Args:
        request: Current Flask request

    Returns:
        ApiUser or None if the header is missing or blank
    """
    user_id = (request.headers.get(USER_HEADER) or '').strip()
    if user_id:
        return ApiUser(user_id)
    return None


@login_manager.unauthorized_handler
def unauthorized():
    """Return a JSON 401 instead of redirecting to a login page."""
    return api_error(get_message('login_required'), status=401, code='unauthorized')
