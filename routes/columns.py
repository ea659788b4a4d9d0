"""
Columns API Routes
Column CRUD, drag-and-drop ordering within a board, and position repair.
"""

import logging
from flask import Blueprint, request, jsonify
from flask_login import login_required

from services import column_service
from services.updates import ColumnUpdate, parse_position
from services.errors import ValidationError
from utils.auth import current_workspace_id, current_user_id

logger = logging.getLogger(__name__)

columns_bp = Blueprint('columns', __name__, url_prefix='/api/columns')


def _require(data: dict, key: str):
    value = data.get(key)
    if not value:
        raise ValidationError(f"{key} is required")
    return value


@columns_bp.route('', methods=['POST'])
@login_required
def create_column():
    """Body: {title, boardId, position?}"""
    data = request.get_json(silent=True) or {}
    position = data.get('position')
    column = column_service.create_column(
        current_workspace_id(),
        _require(data, 'boardId'),
        data.get('title'),
        position=parse_position(position, 'position') if position is not None else None,
        user_id=current_user_id(),
    )
    return jsonify({'success': True, 'column': column.to_dict()}), 201


@columns_bp.route('/<column_id>', methods=['PUT'])
@login_required
def update_column(column_id):
    """Body: {title?, is_finished?, is_archived?}"""
    update = ColumnUpdate.from_payload(request.get_json(silent=True))
    column = column_service.update_column(current_workspace_id(), column_id, update, user_id=current_user_id())
    return jsonify({'success': True, 'column': column.to_dict()})


@columns_bp.route('/<column_id>', methods=['DELETE'])
@login_required
def delete_column(column_id):
    column_service.delete_column(current_workspace_id(), column_id, user_id=current_user_id())
    return jsonify({'success': True, 'message': 'Column deleted successfully'})


@columns_bp.route('/reorder', methods=['POST'])
@login_required
def reorder_column():
    """Body: {columnId, newPosition, boardId}"""
    data = request.get_json(silent=True) or {}
    change = column_service.reorder_column(
        current_workspace_id(),
        _require(data, 'columnId'),
        parse_position(data.get('newPosition')),
        _require(data, 'boardId'),
        user_id=current_user_id(),
    )
    return jsonify({'success': True, 'message': 'Column reordered successfully', 'change': change.to_dict()})


@columns_bp.route('/renumber', methods=['POST'])
@login_required
def renumber_columns():
    """Body: {boardId} - rewrites column positions to 0..n-1."""
    data = request.get_json(silent=True) or {}
    changed = column_service.renumber_columns(current_workspace_id(), _require(data, 'boardId'),
                                              user_id=current_user_id())
    return jsonify({'success': True, 'changed': changed})
