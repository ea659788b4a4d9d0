"""
Priority Service
Priorities are ordered within the workspace and reordered as a full list.
The first priority created becomes the default one.
"""

import logging
from typing import List, Optional, Sequence

from sqlalchemy import select, update, func

from models import db, Priority, Task, Board
from services.activity_logger import record_activity
from services.errors import NotFoundError, ValidationError
from services.ordering import PRIORITIES_IN_WORKSPACE
from utils.db import atomic, retry_on_conflict

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 64


def list_priorities(workspace_id: str) -> List[Priority]:
    stmt = (
        select(Priority)
        .where(Priority.workspace_id == workspace_id)
        .order_by(Priority.position, Priority.id)
    )
    return list(db.session.execute(stmt).scalars())


def get_priority(workspace_id: str, priority_id: int) -> Priority:
    priority = db.session.get(Priority, priority_id)
    if priority is None or priority.workspace_id != workspace_id:
        raise NotFoundError("Priority not found", details={'priority_id': priority_id})
    return priority


def default_priority(workspace_id: str) -> Optional[Priority]:
    stmt = select(Priority).where(Priority.workspace_id == workspace_id, Priority.initial.is_(True))
    return db.session.execute(stmt).scalars().first()


def resolve_priority_id(workspace_id: str, priority_id: Optional[int] = None,
                        name: Optional[str] = None) -> Optional[int]:
    """Priority for a task: explicit id, then name (case-insensitive), then the default."""
    if priority_id is not None:
        return get_priority(workspace_id, priority_id).id
    if name:
        stmt = select(Priority.id).where(
            Priority.workspace_id == workspace_id,
            func.lower(Priority.priority) == name.strip().lower(),
        )
        found = db.session.execute(stmt).scalar_one_or_none()
        if found is None:
            raise ValidationError(f"Unknown priority '{name}'")
        return found
    fallback = default_priority(workspace_id)
    return fallback.id if fallback else None


@retry_on_conflict
def create_priority(workspace_id: str, name, color: Optional[str] = None,
                    user_id: Optional[int] = None) -> Priority:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Priority name is required")
    name = name.strip()
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Priority name must be at most {MAX_NAME_LENGTH} characters")

    with atomic():
        PRIORITIES_IN_WORKSPACE.lock_scope(workspace_id)
        duplicate = db.session.execute(
            select(Priority.id).where(
                Priority.workspace_id == workspace_id,
                func.lower(Priority.priority) == name.lower(),
            )
        ).first()
        if duplicate is not None:
            raise ValidationError("Priority already exists")

        priority = Priority(priority=name)
        if color:
            priority.color = color
        priority.initial = PRIORITIES_IN_WORKSPACE.count(workspace_id) == 0
        PRIORITIES_IN_WORKSPACE.insert_at_end(priority, workspace_id)
        priority_id = priority.id

    record_activity('create_priority', 'priority', priority_id, workspace_id=workspace_id,
                    user_id=user_id, details={'priority': name})
    return priority


@retry_on_conflict
def reorder_priorities(workspace_id: str, ordered_ids: Sequence[int], user_id: Optional[int] = None):
    with atomic():
        changes = PRIORITIES_IN_WORKSPACE.reorder_all(workspace_id, ordered_ids)

    if changes:
        record_activity('reorder_priority', 'priority', None, workspace_id=workspace_id, user_id=user_id,
                        details={'order': list(ordered_ids), 'moved': len(changes)})
    return list_priorities(workspace_id)


@retry_on_conflict
def set_default_priority(workspace_id: str, priority_id: int, user_id: Optional[int] = None) -> Priority:
    with atomic():
        PRIORITIES_IN_WORKSPACE.lock_scope(workspace_id)
        priority = get_priority(workspace_id, priority_id)
        db.session.execute(
            update(Priority)
            .where(Priority.workspace_id == workspace_id, Priority.id != priority_id)
            .values(initial=False)
            .execution_options(synchronize_session="fetch")
        )
        priority.initial = True

    record_activity('set_default_priority', 'priority', priority_id, workspace_id=workspace_id,
                    user_id=user_id)
    return priority


def priority_usage(workspace_id: str, priority_id: int) -> int:
    stmt = (
        select(func.count(Task.id))
        .join(Board, Board.id == Task.board_id)
        .where(Board.workspace_id == workspace_id, Task.priority_id == priority_id)
    )
    return db.session.execute(stmt).scalar_one()


@retry_on_conflict
def delete_priority(workspace_id: str, priority_id: int, user_id: Optional[int] = None) -> int:
    """Delete an unused, non-default priority and close the gap."""
    with atomic():
        PRIORITIES_IN_WORKSPACE.lock_scope(workspace_id)
        priority = get_priority(workspace_id, priority_id)
        if priority.initial:
            raise ValidationError("Cannot delete the default priority")
        in_use = priority_usage(workspace_id, priority_id)
        if in_use:
            raise ValidationError(
                "Priority is used by existing tasks",
                details={'task_count': in_use},
            )
        old_position = PRIORITIES_IN_WORKSPACE.delete_item(priority_id, workspace_id)

    record_activity('delete_priority', 'priority', priority_id, workspace_id=workspace_id,
                    user_id=user_id, details={'position': old_position})
    return old_position
