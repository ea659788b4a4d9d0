"""
Tags API Routes
Anyone in the workspace can read tags; admins create and delete them.
"""

from flask import Blueprint, request, jsonify
from flask_login import login_required

from services import tag_service
from utils.auth import admin_required, current_workspace_id

tags_bp = Blueprint('tags', __name__, url_prefix='/api/tags')


@tags_bp.route('', methods=['GET'])
@login_required
def list_tags():
    tags = tag_service.list_tags(current_workspace_id())
    return jsonify({'success': True, 'tags': [t.to_dict() for t in tags]})


@tags_bp.route('', methods=['POST'])
@admin_required
def create_tag():
    """Body: {tag, description?, color?}"""
    data = request.get_json(silent=True) or {}
    tag = tag_service.create_tag(current_workspace_id(), data.get('tag'),
                                 description=data.get('description'), color=data.get('color'))
    return jsonify({'success': True, 'tag': tag.to_dict()}), 201


@tags_bp.route('/<int:tag_id>', methods=['DELETE'])
@admin_required
def delete_tag(tag_id):
    tag_service.delete_tag(current_workspace_id(), tag_id)
    return jsonify({'success': True, 'message': 'Tag deleted'})
