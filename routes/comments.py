"""
Comments API Routes
Task discussion threads; only the author or an admin can edit or delete.
"""

from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user

from services import task_service
from utils.auth import current_workspace_id

comments_bp = Blueprint("comments", __name__, url_prefix="/api")


@comments_bp.get("/tasks/<task_id>/comments")
@login_required
def list_comments(task_id):
    comments = task_service.list_comments(current_workspace_id(), task_id)
    return jsonify({'success': True, 'comments': [c.to_dict() for c in comments]})


@comments_bp.post("/tasks/<task_id>/comments")
@login_required
def add_comment(task_id):
    """Body: {text, attachments?: [{name, url, type, size}]}"""
    b = request.get_json(silent=True) or {}
    c = task_service.add_comment(current_workspace_id(), task_id, b.get("text"),
                                 author_id=current_user.id, attachments=b.get("attachments"))
    return jsonify({'success': True, 'comment': c.to_dict()}), 201


@comments_bp.put("/comments/<comment_id>")
@login_required
def update_comment(comment_id):
    b = request.get_json(silent=True) or {}
    c = task_service.update_comment(current_workspace_id(), comment_id, b.get("text"), user=current_user)
    return jsonify({'success': True, 'comment': c.to_dict()})


@comments_bp.delete("/comments/<comment_id>")
@login_required
def delete_comment(comment_id):
    task_service.delete_comment(current_workspace_id(), comment_id, user=current_user)
    return jsonify({'success': True, 'message': 'Comment deleted'})
