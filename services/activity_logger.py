"""
Activity Logger

Records "what happened" rows (task moved, column reordered, ...) and
publishes the matching board notification. Called only after the mutating
transaction has committed; any failure here is logged and never reaches
the caller.
"""

import logging
from typing import Optional

from models import db, ActivityLog
from services.errors import KanbanError
from services.notification_service import notifier
from utils.db import atomic

logger = logging.getLogger(__name__)

# action -> notification event
ACTION_EVENTS = {
    'create_task': 'task-created',
    'update_task': 'task-updated',
    'delete_task': 'task-deleted',
    'move_task': 'task-moved',
    'copy_task': 'task-copied',
    'reorder_task': 'task-reordered',
    'add_comment': 'comment-created',
    'update_comment': 'comment-updated',
    'delete_comment': 'comment-deleted',
    'add_tag': 'task-tag-added',
    'remove_tag': 'task-tag-removed',
    'create_column': 'column-created',
    'update_column': 'column-updated',
    'delete_column': 'column-deleted',
    'reorder_column': 'column-reordered',
    'renumber_column': 'column-renumbered',
    'create_board': 'board-created',
    'update_board': 'board-updated',
    'delete_board': 'board-deleted',
    'reorder_board': 'board-reordered',
    'create_priority': 'priority-created',
    'delete_priority': 'priority-deleted',
    'reorder_priority': 'priority-reordered',
    'set_default_priority': 'priority-default-changed',
    'update_setting': 'settings-updated',
}


def record_activity(action: str, entity_type: str, entity_id=None, *,
                    workspace_id: Optional[str] = None,
                    user_id: Optional[int] = None,
                    board_id: Optional[str] = None,
                    column_id: Optional[str] = None,
                    details: Optional[dict] = None) -> Optional[ActivityLog]:
    """Persist an activity row and publish its notification. Returns the row or None on failure."""
    entry = None
    try:
        with atomic():
            entry = ActivityLog(
                workspace_id=workspace_id,
                user_id=user_id,
                action=action,
                entity_type=entity_type,
                entity_id=str(entity_id) if entity_id is not None else None,
                board_id=board_id,
                column_id=column_id,
                details=details or {},
            )
            db.session.add(entry)
    except KanbanError as e:
        logger.error(f"Failed to record activity {action} for {entity_type} {entity_id}: {e.message}")
        entry = None

    event = ACTION_EVENTS.get(action, action.replace('_', '-'))
    payload = {
        'entity_type': entity_type,
        'entity_id': str(entity_id) if entity_id is not None else None,
        'board_id': board_id,
        'column_id': column_id,
        'user_id': user_id,
        'details': details or {},
    }
    try:
        notifier.publish(workspace_id, event, payload)
    except Exception as e:
        logger.error(f"Failed to emit {event} notification: {e}")

    return entry


def record_position_change(action: str, entity_type: str, change, *,
                           workspace_id: Optional[str] = None,
                           user_id: Optional[int] = None,
                           board_id: Optional[str] = None,
                           column_id: Optional[str] = None,
                           extra: Optional[dict] = None):
    """Activity for a services.ordering.PositionChange; unchanged positions are not recorded."""
    if not change.moved:
        return None
    details = change.to_dict()
    if extra:
        details.update(extra)
    return record_activity(
        action, entity_type, change.item_id,
        workspace_id=workspace_id, user_id=user_id,
        board_id=board_id, column_id=column_id, details=details,
    )
