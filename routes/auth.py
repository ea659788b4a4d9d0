"""
Authentication Routes
Session login/logout for the JSON API (Flask-Login).
"""

import logging
from flask import Blueprint, request, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from sqlalchemy import select, func

from models import db, User

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


@auth_bp.route('/login', methods=['POST'])
def login():
    """Log in with email (or username) and password."""
    data = request.get_json(silent=True) or {}
    identifier = (data.get('email') or data.get('username') or '').strip()
    password = data.get('password') or ''

    if not identifier or not password:
        return jsonify({'success': False, 'message': 'Email and password are required'}), 400

    user = db.session.execute(
        select(User).where(
            (func.lower(User.email) == identifier.lower()) | (User.username == identifier)
        )
    ).scalar_one_or_none()

    if user is None or not user.check_password(password):
        logger.info(f"Failed login attempt for {identifier}")
        return jsonify({'success': False, 'message': 'Invalid email or password'}), 401

    if not user.active:
        return jsonify({'success': False, 'message': 'Account is inactive'}), 403

    login_user(user, remember=bool(data.get('remember')))
    logger.info(f"User {user.id} logged in")
    return jsonify({'success': True, 'user': user.to_dict()})


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    user_id = current_user.id
    logout_user()
    logger.info(f"User {user_id} logged out")
    return jsonify({'success': True, 'message': 'Logged out'})


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify({'success': True, 'user': current_user.to_dict()})
