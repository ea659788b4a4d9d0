"""
Priorities API Routes
Admins manage the workspace priority list; reordering sends the full ordering.
"""

from flask import Blueprint, request, jsonify
from flask_login import login_required

from services import priority_service
from services.errors import ValidationError
from utils.auth import admin_required, current_workspace_id, current_user_id

priorities_bp = Blueprint('priorities', __name__, url_prefix='/api/priorities')


@priorities_bp.route('', methods=['GET'])
@login_required
def list_priorities():
    priorities = priority_service.list_priorities(current_workspace_id())
    return jsonify({'success': True, 'priorities': [p.to_dict() for p in priorities]})


@priorities_bp.route('', methods=['POST'])
@admin_required
def create_priority():
    """Body: {priority, color?}"""
    data = request.get_json(silent=True) or {}
    priority = priority_service.create_priority(current_workspace_id(), data.get('priority'),
                                                color=data.get('color'), user_id=current_user_id())
    return jsonify({'success': True, 'priority': priority.to_dict()}), 201


@priorities_bp.route('/reorder', methods=['PUT'])
@admin_required
def reorder_priorities():
    """Body: {priorities: [{id}, ...]} or {order: [id, ...]} in the new order."""
    data = request.get_json(silent=True) or {}
    items = data.get('priorities', data.get('order'))
    if not isinstance(items, list):
        raise ValidationError("priorities must be an array")
    try:
        ordered_ids = [int(item['id'] if isinstance(item, dict) else item) for item in items]
    except (KeyError, TypeError, ValueError):
        raise ValidationError("Every priority entry needs an integer id")

    priorities = priority_service.reorder_priorities(current_workspace_id(), ordered_ids,
                                                     user_id=current_user_id())
    return jsonify({'success': True, 'priorities': [p.to_dict() for p in priorities]})


@priorities_bp.route('/<int:priority_id>/set-default', methods=['PUT'])
@admin_required
def set_default_priority(priority_id):
    priority = priority_service.set_default_priority(current_workspace_id(), priority_id,
                                                     user_id=current_user_id())
    return jsonify({'success': True, 'priority': priority.to_dict()})


@priorities_bp.route('/<int:priority_id>', methods=['DELETE'])
@admin_required
def delete_priority(priority_id):
    priority_service.delete_priority(current_workspace_id(), priority_id, user_id=current_user_id())
    return jsonify({'success': True, 'message': 'Priority deleted'})
