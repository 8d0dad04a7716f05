from functools import wraps

from flask import request, session, g

from extensions import db
from models import User
from ledger.errors import Forbidden, Unauthorized, ValidationError


def current_session_user():
    """User for session['user_id'], or None. Clears a session pointing at a deleted user."""
    user_id = session.get("user_id")
    if not user_id:
        return None
    user = db.session.get(User, user_id)
    if user is None:
        session.clear()
    return user


def login_required_json(f):
    """
    Decorator for JSON routes.
    - 401 when there is no session or the user no longer exists.
    - Puts the user on g.current_user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = current_session_user()
        if user is None:
            raise Unauthorized("Unauthorized")
        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def admin_required(f):
    """
    Decorator to restrict access to admin-only routes.
    - Checks that 'user_id' exists in session.
    - Fetches the user from the database (to get the current role).
    - 403 if not an admin.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = current_session_user()
        if user is None:
            raise Unauthorized("Unauthorized")
        if not user.is_admin:
            raise Forbidden("Admin access required")
        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Invalid or missing JSON body")
    return data


def int_arg(name, default):
    value = request.args.get(name)
    if value in (None, ""):
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")
