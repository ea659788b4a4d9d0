"""
Authentication and authorization utilities.

Provides decorators and helpers for protecting API routes with role-based
access control and for resolving the caller's workspace.
"""

from functools import wraps
from flask import jsonify
from flask_login import login_required, current_user

from services.errors import NotFoundError


def admin_required(f):
    """
    Decorator to protect routes requiring admin privileges.

    Ensures:
    1. User is authenticated (via login_required)
    2. User is active
    3. User has the admin role

    Returns 403 Forbidden if user doesn't have admin privileges.
    """
    @wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        if not current_user.active:
            return jsonify({
                'success': False,
                'message': 'Account is inactive'
            }), 403

        if not current_user.is_admin:
            return jsonify({
                'success': False,
                'message': 'Admin privileges required'
            }), 403

        return f(*args, **kwargs)

    return decorated_function


def current_workspace_id() -> str:
    """Workspace of the logged-in user; every board query is scoped by it."""
    workspace_id = getattr(current_user, 'workspace_id', None)
    if not workspace_id:
        raise NotFoundError("No workspace is associated with this account")
    return workspace_id


def current_user_id():
    return getattr(current_user, 'id', None)
