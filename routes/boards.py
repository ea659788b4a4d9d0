"""
Boards API Routes
Board CRUD and drag-and-drop ordering within the workspace.
"""

import logging
from flask import Blueprint, request, jsonify
from flask_login import login_required

from services import board_service, column_service
from services.updates import parse_position
from services.errors import ValidationError
from utils.auth import current_workspace_id, current_user_id

logger = logging.getLogger(__name__)

boards_bp = Blueprint('boards', __name__, url_prefix='/api/boards')


@boards_bp.route('', methods=['GET'])
@login_required
def list_boards():
    """Boards of the workspace in display order, with their columns."""
    boards = board_service.list_boards(current_workspace_id())
    return jsonify({
        'success': True,
        'boards': [b.to_dict(include_columns=True) for b in boards],
    })


@boards_bp.route('', methods=['POST'])
@login_required
def create_board():
    data = request.get_json(silent=True) or {}
    board = board_service.create_board(current_workspace_id(), data.get('title'), user_id=current_user_id())
    return jsonify({'success': True, 'board': board.to_dict()}), 201


@boards_bp.route('/<board_id>', methods=['PUT'])
@login_required
def rename_board(board_id):
    data = request.get_json(silent=True) or {}
    board = board_service.rename_board(current_workspace_id(), board_id, data.get('title'),
                                       user_id=current_user_id())
    return jsonify({'success': True, 'board': board.to_dict()})


@boards_bp.route('/<board_id>', methods=['DELETE'])
@login_required
def delete_board(board_id):
    board_service.delete_board(current_workspace_id(), board_id, user_id=current_user_id())
    return jsonify({'success': True, 'message': 'Board deleted successfully'})


@boards_bp.route('/reorder', methods=['POST'])
@login_required
def reorder_board():
    """Body: {boardId, newPosition}"""
    data = request.get_json(silent=True) or {}
    board_id = data.get('boardId')
    if not board_id:
        raise ValidationError("boardId is required")
    change = board_service.reorder_board(
        current_workspace_id(), board_id, parse_position(data.get('newPosition')),
        user_id=current_user_id(),
    )
    return jsonify({'success': True, 'message': 'Board reordered successfully', 'change': change.to_dict()})


@boards_bp.route('/<board_id>/columns', methods=['GET'])
@login_required
def list_board_columns(board_id):
    columns = column_service.list_columns(current_workspace_id(), board_id)
    return jsonify({'success': True, 'columns': [c.to_dict() for c in columns]})
