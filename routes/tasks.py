"""
Tasks API Routes
REST API endpoints for task CRUD, drag-and-drop ordering, cross-board moves,
attachments metadata, tags, watchers and collaborators.
"""

import logging
from flask import Blueprint, request, jsonify
from flask_login import login_required

from services import task_service
from services.updates import TaskUpdate, parse_position
from services.errors import ValidationError
from utils.auth import current_workspace_id, current_user_id

logger = logging.getLogger(__name__)

api_tasks_bp = Blueprint('api_tasks', __name__, url_prefix='/api/tasks')


def _require(data: dict, key: str):
    value = data.get(key)
    if not value:
        raise ValidationError(f"{key} is required")
    return value


@api_tasks_bp.route('/by-board/<board_id>', methods=['GET'])
@login_required
def list_tasks_by_board(board_id):
    """Tasks of a board ordered by column, then position."""
    tasks = task_service.list_tasks_by_board(current_workspace_id(), board_id)
    return jsonify({'success': True, 'tasks': [t.to_dict() for t in tasks]})


@api_tasks_bp.route('/<task_id>', methods=['GET'])
@login_required
def get_task(task_id):
    task = task_service.get_task(current_workspace_id(), task_id, with_relationships=True)
    return jsonify({'success': True, 'task': task.to_dict(include_relationships=True)})


@api_tasks_bp.route('', methods=['POST'])
@login_required
def create_task():
    """Append a task to the end of its column."""
    task = task_service.create_task(current_workspace_id(), request.get_json(silent=True) or {},
                                    user_id=current_user_id())
    return jsonify({'success': True, 'task': task.to_dict()}), 201


@api_tasks_bp.route('/add-at-top', methods=['POST'])
@login_required
def add_task_at_top():
    """Insert a task at position 0, shifting the column down."""
    task = task_service.create_task(current_workspace_id(), request.get_json(silent=True) or {},
                                    user_id=current_user_id(), at_top=True)
    return jsonify({'success': True, 'task': task.to_dict()}), 201


@api_tasks_bp.route('/<task_id>', methods=['PUT', 'PATCH'])
@login_required
def update_task(task_id):
    update = TaskUpdate.from_payload(request.get_json(silent=True))
    task = task_service.update_task(current_workspace_id(), task_id, update, user_id=current_user_id())
    return jsonify({'success': True, 'task': task.to_dict()})


@api_tasks_bp.route('/<task_id>', methods=['DELETE'])
@login_required
def delete_task(task_id):
    task_service.delete_task(current_workspace_id(), task_id, user_id=current_user_id())
    return jsonify({'success': True, 'message': 'Task deleted successfully'})


@api_tasks_bp.route('/reorder', methods=['POST'])
@login_required
def reorder_task():
    """Body: {taskId, newPosition, columnId, currentPosition?}"""
    data = request.get_json(silent=True) or {}
    current_position = data.get('currentPosition')
    change = task_service.reorder_task(
        current_workspace_id(),
        _require(data, 'taskId'),
        parse_position(data.get('newPosition')),
        column_id=data.get('columnId'),
        current_position=parse_position(current_position, 'currentPosition') if current_position is not None else None,
        user_id=current_user_id(),
    )
    return jsonify({'success': True, 'message': 'Task reordered successfully', 'change': change.to_dict()})


@api_tasks_bp.route('/move-to-board', methods=['POST'])
@login_required
def move_task_to_board():
    """Body: {taskId, targetBoardId}"""
    data = request.get_json(silent=True) or {}
    task = task_service.move_task_to_board(
        current_workspace_id(),
        _require(data, 'taskId'),
        _require(data, 'targetBoardId'),
        user_id=current_user_id(),
    )
    return jsonify({
        'success': True,
        'message': 'Task moved successfully',
        'newTaskId': task.id,
        'targetColumnId': task.column_id,
        'targetBoardId': task.board_id,
    })


@api_tasks_bp.route('/<task_id>/attachments', methods=['GET'])
@login_required
def list_attachments(task_id):
    attachments = task_service.list_attachments(current_workspace_id(), task_id)
    return jsonify({'success': True, 'attachments': [a.to_dict() for a in attachments]})


@api_tasks_bp.route('/<task_id>/attachments', methods=['POST'])
@login_required
def add_attachment(task_id):
    """Body: {name, url, type, size}"""
    attachment = task_service.add_attachment(current_workspace_id(), task_id, request.get_json(silent=True) or {})
    return jsonify({'success': True, 'attachment': attachment.to_dict()}), 201


@api_tasks_bp.route('/<task_id>/tags/<int:tag_id>', methods=['POST'])
@login_required
def add_tag(task_id, tag_id):
    added = task_service.add_tag(current_workspace_id(), task_id, tag_id, user_id=current_user_id())
    return jsonify({'success': True, 'added': added})


@api_tasks_bp.route('/<task_id>/tags/<int:tag_id>', methods=['DELETE'])
@login_required
def remove_tag(task_id, tag_id):
    task_service.remove_tag(current_workspace_id(), task_id, tag_id, user_id=current_user_id())
    return jsonify({'success': True, 'message': 'Tag removed'})


@api_tasks_bp.route('/<task_id>/<any(watchers, collaborators):relation>/<int:user_id>', methods=['POST'])
@login_required
def add_person(task_id, relation, user_id):
    added = task_service.add_person(current_workspace_id(), task_id, relation, user_id)
    return jsonify({'success': True, 'added': added})


@api_tasks_bp.route('/<task_id>/<any(watchers, collaborators):relation>/<int:user_id>', methods=['DELETE'])
@login_required
def remove_person(task_id, relation, user_id):
    task_service.remove_person(current_workspace_id(), task_id, relation, user_id)
    return jsonify({'success': True, 'message': f'Removed from {relation}'})
