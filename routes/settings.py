"""
Settings API Routes
Reads go through the settings cache; admin writes invalidate it.
"""

from flask import Blueprint, request, jsonify
from flask_login import login_required

from services.activity_logger import record_activity
from services.errors import ValidationError
from services.settings_service import get_settings_cache, update_setting
from utils.auth import admin_required, current_workspace_id, current_user_id

settings_bp = Blueprint('settings', __name__, url_prefix='/api')


@settings_bp.route('/settings', methods=['GET'])
@login_required
def get_settings():
    return jsonify({'success': True, 'settings': get_settings_cache().get(current_workspace_id())})


@settings_bp.route('/admin/settings', methods=['PUT'])
@admin_required
def put_setting():
    """Body: {key, value}"""
    data = request.get_json(silent=True) or {}
    if 'key' not in data:
        raise ValidationError("key is required")
    workspace_id = current_workspace_id()
    setting = update_setting(workspace_id, data.get('key'), data.get('value'))
    record_activity('update_setting', 'setting', None, workspace_id=workspace_id,
                    user_id=current_user_id(), details={'key': setting.key})
    return jsonify({'success': True, 'setting': setting.to_dict()})
