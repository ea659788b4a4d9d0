"""
Task Service

Tasks are ordered within their column (TASKS_IN_COLUMN). Moves between
columns of one board re-parent the task in place; moves to another board
clone the task, with its comments, attachments, tags, watchers and
collaborators, under a new id at the top of the destination column and
delete the source.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from models import (
    db, Board, BoardColumn, Task, TaskComment, Attachment,
    TaskTag, TaskWatcher, TaskCollaborator, User,
)
from services.activity_logger import record_activity, record_position_change
from services.board_service import get_board
from services.column_service import get_column
from services.errors import NotFoundError, ValidationError, PermissionDeniedError
from services.identifiers import next_task_ticket
from services.ordering import TASKS_IN_COLUMN
from services.priority_service import resolve_priority_id
from services.tag_service import get_tag
from services.updates import TaskUpdate, UNSET
from utils.db import atomic, retry_on_conflict

logger = logging.getLogger(__name__)

MAX_ATTACHMENT_NAME = 255


# ----------------------------------------------------------------------
# Lookups
# ----------------------------------------------------------------------

def get_task(workspace_id: str, task_id: str, with_relationships: bool = False) -> Task:
    stmt = (
        select(Task)
        .join(Board, Board.id == Task.board_id)
        .where(Task.id == task_id, Board.workspace_id == workspace_id)
    )
    if with_relationships:
        stmt = stmt.options(
            selectinload(Task.comments).selectinload(TaskComment.attachments),
            selectinload(Task.attachments),
            selectinload(Task.task_tags),
            selectinload(Task.watchers),
            selectinload(Task.collaborators),
        )
    task = db.session.execute(stmt).scalar_one_or_none()
    if task is None:
        raise NotFoundError("Task not found", details={'task_id': task_id})
    return task


def list_tasks_by_board(workspace_id: str, board_id: str) -> List[Task]:
    get_board(workspace_id, board_id)
    stmt = (
        select(Task)
        .join(BoardColumn, BoardColumn.id == Task.column_id)
        .where(Task.board_id == board_id)
        .order_by(BoardColumn.position, Task.position, Task.id)
    )
    return list(db.session.execute(stmt).scalars())


def _ensure_member(workspace_id: str, user_id: Optional[int], field: str):
    if user_id is None:
        return
    user = db.session.get(User, user_id)
    if user is None or user.workspace_id != workspace_id:
        raise ValidationError(f"Invalid {field}", details={field: user_id})


def _apply_fields(workspace_id: str, task: Task, update: TaskUpdate):
    """Copy the enumerated scalar fields of `update` onto `task`."""
    changes = update.changes()
    if 'member_id' in changes:
        _ensure_member(workspace_id, changes['member_id'], 'member_id')
    if 'requester_id' in changes:
        _ensure_member(workspace_id, changes['requester_id'], 'requester_id')
    if update.priority_id is not UNSET or update.priority is not UNSET:
        priority_id = update.priority_id if update.priority_id is not UNSET else None
        name = update.priority if update.priority is not UNSET else None
        if priority_id is not None or name:
            changes['priority_id'] = resolve_priority_id(workspace_id, priority_id, name)
        else:
            changes['priority_id'] = None

    for field in TaskUpdate.SCALAR_FIELDS:
        if field in changes:
            setattr(task, field, changes[field])


def _json_changes(update: TaskUpdate) -> dict:
    return {
        k: (v.isoformat() if hasattr(v, 'isoformat') else v)
        for k, v in update.changes().items()
    }


# ----------------------------------------------------------------------
# Create / update / delete
# ----------------------------------------------------------------------

@retry_on_conflict
def create_task(workspace_id: str, payload: dict, user_id: Optional[int] = None,
                at_top: bool = False) -> Task:
    """Create a task with a fresh ticket, appended to its column or inserted at the top."""
    update = TaskUpdate.from_payload(payload)
    if update.title is UNSET:
        raise ValidationError("Title is required")
    if not update.column_id:
        raise ValidationError("columnId is required")

    with atomic():
        column = get_column(workspace_id, update.column_id)
        TASKS_IN_COLUMN.lock_scope(column.id)

        task = Task(board_id=column.board_id, requester_id=user_id)
        _apply_fields(workspace_id, task, update)
        if update.priority_id is UNSET and update.priority is UNSET:
            task.priority_id = resolve_priority_id(workspace_id)
        task.ticket = next_task_ticket(workspace_id)

        if at_top:
            TASKS_IN_COLUMN.insert_at_top(task, column.id)
        else:
            TASKS_IN_COLUMN.insert_at_end(task, column.id)
        task_id, ticket, board_id, column_id = task.id, task.ticket, task.board_id, task.column_id

    logger.info(f"Task {task_id} ({ticket}) created in column {column_id}")
    record_activity('create_task', 'task', task_id, workspace_id=workspace_id, user_id=user_id,
                    board_id=board_id, column_id=column_id,
                    details={'ticket': ticket, 'title': task.title, 'at_top': at_top})
    return task


@retry_on_conflict
def update_task(workspace_id: str, task_id: str, update: TaskUpdate, user_id: Optional[int] = None) -> Task:
    """
    Apply a partial update. A new column_id in the same board moves the task
    to the top of that column; other boards go through move_task_to_board.
    """
    if update.is_empty():
        raise ValidationError("No updatable fields provided")

    change = None
    with atomic():
        task = get_task(workspace_id, task_id)
        _apply_fields(workspace_id, task, update)

        if update.column_id is not UNSET and update.column_id != task.column_id:
            if update.column_id is None:
                raise ValidationError("columnId cannot be empty")
            destination = get_column(workspace_id, update.column_id)
            if destination.board_id != task.board_id:
                raise ValidationError("Use move-to-board to move a task to another board")
            change = TASKS_IN_COLUMN.move_across_parent(task_id, task.column_id, destination.id, 0)
        board_id, column_id = task.board_id, task.column_id

    record_activity('update_task', 'task', task_id, workspace_id=workspace_id, user_id=user_id,
                    board_id=board_id, column_id=column_id, details=_json_changes(update))
    if change is not None:
        record_position_change('move_task', 'task', change, workspace_id=workspace_id,
                               user_id=user_id, board_id=board_id, column_id=column_id)
    return task


@retry_on_conflict
def delete_task(workspace_id: str, task_id: str, user_id: Optional[int] = None) -> int:
    """Delete a task and close the gap it leaves in its column."""
    with atomic():
        task = get_task(workspace_id, task_id)
        board_id, column_id, ticket = task.board_id, task.column_id, task.ticket
        old_position = TASKS_IN_COLUMN.delete_item(task_id, column_id)

    record_activity('delete_task', 'task', task_id, workspace_id=workspace_id, user_id=user_id,
                    board_id=board_id, column_id=column_id,
                    details={'ticket': ticket, 'position': old_position})
    return old_position


# ----------------------------------------------------------------------
# Ordering
# ----------------------------------------------------------------------

@retry_on_conflict
def reorder_task(workspace_id: str, task_id: str, new_position: int, column_id: Optional[str] = None,
                 current_position: Optional[int] = None, user_id: Optional[int] = None):
    """
    Drag-and-drop: reorder inside the task's column, or move it to
    `new_position` of another column of the same board.
    """
    with atomic():
        task = get_task(workspace_id, task_id)
        source_column_id = task.column_id
        board_id = task.board_id

        if column_id is None or column_id == source_column_id:
            change = TASKS_IN_COLUMN.reorder_within_parent(
                task_id, new_position, source_column_id, current_position=current_position,
            )
        else:
            destination = get_column(workspace_id, column_id)
            if destination.board_id != board_id:
                raise ValidationError("Use move-to-board to move a task to another board")
            change = TASKS_IN_COLUMN.move_across_parent(
                task_id, source_column_id, destination.id, new_position, current_position=current_position,
            )

    action = 'move_task' if change.from_scope != change.to_scope else 'reorder_task'
    record_position_change(action, 'task', change, workspace_id=workspace_id, user_id=user_id,
                           board_id=board_id, column_id=change.to_scope)
    return change


def _pick_destination_column(source_title: Optional[str], target_board_id: str) -> BoardColumn:
    """Column with the source column's title (case-insensitive), else the first column."""
    columns = list(db.session.execute(
        select(BoardColumn)
        .where(BoardColumn.board_id == target_board_id)
        .order_by(BoardColumn.position, BoardColumn.id)
    ).scalars())
    if not columns:
        raise NotFoundError("Target board has no columns", details={'board_id': target_board_id})
    if source_title:
        for column in columns:
            if column.title.lower() == source_title.lower():
                return column
    return columns[0]


def _clone_task(task: Task, target_board_id: str) -> Task:
    clone = Task(
        ticket=task.ticket,
        title=task.title,
        description=task.description,
        member_id=task.member_id,
        requester_id=task.requester_id,
        start_date=task.start_date,
        due_date=task.due_date,
        effort=task.effort,
        priority_id=task.priority_id,
        board_id=target_board_id,
        pre_board_id=task.board_id,
        pre_column_id=task.column_id,
        created_at=task.created_at,
    )
    for comment in task.comments:
        comment_copy = TaskComment(
            author_id=comment.author_id,
            text=comment.text,
            created_at=comment.created_at,
        )
        for attachment in comment.attachments:
            comment_copy.attachments.append(Attachment(
                name=attachment.name, url=attachment.url, type=attachment.type, size=attachment.size,
            ))
        clone.comments.append(comment_copy)
    for attachment in task.attachments:
        clone.attachments.append(Attachment(
            name=attachment.name, url=attachment.url, type=attachment.type, size=attachment.size,
        ))
    clone.task_tags = [TaskTag(tag_id=link.tag_id) for link in task.task_tags]
    clone.watchers = [TaskWatcher(user_id=w.user_id) for w in task.watchers]
    clone.collaborators = [TaskCollaborator(user_id=c.user_id) for c in task.collaborators]
    return clone


@retry_on_conflict
def move_task_to_board(workspace_id: str, task_id: str, target_board_id: str,
                       user_id: Optional[int] = None) -> Task:
    """
    Move a task to another board.

    The destination gets a copy under a new id at position 0 of the column
    matching the source column's title (or the board's first column). The
    ticket is kept and pre_board_id/pre_column_id point back at the origin.
    The source task is deleted and its column renumbered.
    """
    with atomic():
        task = get_task(workspace_id, task_id, with_relationships=True)
        if task.board_id == target_board_id:
            raise ValidationError("Task is already on this board")
        get_board(workspace_id, target_board_id)

        source_column = db.session.get(BoardColumn, task.column_id)
        destination = _pick_destination_column(source_column.title if source_column else None, target_board_id)

        # fixed lock order so opposite moves cannot deadlock
        for column_id in sorted((task.column_id, destination.id)):
            TASKS_IN_COLUMN.lock_scope(column_id)

        clone = _clone_task(task, target_board_id)
        source_board_id, source_column_id = task.board_id, task.column_id
        TASKS_IN_COLUMN.insert_at_top(clone, destination.id)
        TASKS_IN_COLUMN.delete_item(task_id, source_column_id)
        new_task_id = clone.id

    logger.info(
        f"[MOVE] Task {task_id} -> {new_task_id}: board {source_board_id} -> {target_board_id} "
        f"(column {destination.id})"
    )
    details = {
        'old_task_id': task_id,
        'from_board_id': source_board_id,
        'from_column_id': source_column_id,
        'to_board_id': target_board_id,
        'to_column_id': destination.id,
    }
    record_activity('move_task', 'task', new_task_id, workspace_id=workspace_id, user_id=user_id,
                    board_id=target_board_id, column_id=destination.id, details=details)
    return clone


# ----------------------------------------------------------------------
# Comments and attachments
# ----------------------------------------------------------------------

def _parse_text(text) -> str:
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("Comment text is required")
    return text


def _build_attachment(meta) -> Attachment:
    if not isinstance(meta, dict):
        raise ValidationError("Attachment must be an object")
    name, url = meta.get('name'), meta.get('url')
    if not isinstance(name, str) or not name.strip() or not isinstance(url, str) or not url.strip():
        raise ValidationError("Attachment name and url are required")
    size = meta.get('size')
    if size is not None and (isinstance(size, bool) or not isinstance(size, int) or size < 0):
        raise ValidationError("Attachment size must be a non-negative integer")
    return Attachment(name=name.strip()[:MAX_ATTACHMENT_NAME], url=url.strip(), type=meta.get('type'), size=size)


def list_comments(workspace_id: str, task_id: str) -> List[TaskComment]:
    task = get_task(workspace_id, task_id)
    return list(task.comments)


def _get_comment(workspace_id: str, comment_id: str) -> TaskComment:
    stmt = (
        select(TaskComment)
        .join(Task, Task.id == TaskComment.task_id)
        .join(Board, Board.id == Task.board_id)
        .where(TaskComment.id == comment_id, Board.workspace_id == workspace_id)
    )
    comment = db.session.execute(stmt).scalar_one_or_none()
    if comment is None:
        raise NotFoundError("Comment not found", details={'comment_id': comment_id})
    return comment


def _check_comment_owner(comment: TaskComment, user: Optional[User]):
    if user is None:
        return
    if comment.author_id != user.id and not user.is_admin:
        raise PermissionDeniedError("Only the author or an admin can change this comment")


@retry_on_conflict
def add_comment(workspace_id: str, task_id: str, text, author_id: Optional[int] = None,
                attachments: Optional[list] = None) -> TaskComment:
    text = _parse_text(text)
    with atomic():
        task = get_task(workspace_id, task_id)
        comment = TaskComment(task_id=task.id, author_id=author_id, text=text)
        for meta in attachments or []:
            comment.attachments.append(_build_attachment(meta))
        db.session.add(comment)
        board_id, column_id = task.board_id, task.column_id

    record_activity('add_comment', 'task', task_id, workspace_id=workspace_id, user_id=author_id,
                    board_id=board_id, column_id=column_id, details={'comment_id': comment.id})
    return comment


@retry_on_conflict
def update_comment(workspace_id: str, comment_id: str, text, user: Optional[User] = None) -> TaskComment:
    text = _parse_text(text)
    with atomic():
        comment = _get_comment(workspace_id, comment_id)
        _check_comment_owner(comment, user)
        comment.text = text
        task_id = comment.task_id

    record_activity('update_comment', 'task', task_id, workspace_id=workspace_id,
                    user_id=user.id if user else None, details={'comment_id': comment_id})
    return comment


@retry_on_conflict
def delete_comment(workspace_id: str, comment_id: str, user: Optional[User] = None):
    with atomic():
        comment = _get_comment(workspace_id, comment_id)
        _check_comment_owner(comment, user)
        task_id = comment.task_id
        db.session.delete(comment)

    record_activity('delete_comment', 'task', task_id, workspace_id=workspace_id,
                    user_id=user.id if user else None, details={'comment_id': comment_id})


def list_attachments(workspace_id: str, task_id: str) -> List[Attachment]:
    return list(get_task(workspace_id, task_id).attachments)


@retry_on_conflict
def add_attachment(workspace_id: str, task_id: str, meta: dict) -> Attachment:
    """Record attachment metadata; the file itself is stored elsewhere."""
    with atomic():
        task = get_task(workspace_id, task_id)
        attachment = _build_attachment(meta)
        attachment.task_id = task.id
        db.session.add(attachment)
    return attachment


# ----------------------------------------------------------------------
# Tags, watchers, collaborators
# ----------------------------------------------------------------------

@retry_on_conflict
def add_tag(workspace_id: str, task_id: str, tag_id: int, user_id: Optional[int] = None) -> bool:
    """Link a tag to a task. Returns False when it was already linked."""
    with atomic():
        task = get_task(workspace_id, task_id)
        get_tag(workspace_id, tag_id)
        if any(link.tag_id == tag_id for link in task.task_tags):
            return False
        task.task_tags.append(TaskTag(tag_id=tag_id))
        board_id = task.board_id

    record_activity('add_tag', 'task', task_id, workspace_id=workspace_id, user_id=user_id,
                    board_id=board_id, details={'tag_id': tag_id})
    return True


@retry_on_conflict
def remove_tag(workspace_id: str, task_id: str, tag_id: int, user_id: Optional[int] = None):
    with atomic():
        task = get_task(workspace_id, task_id)
        link = next((link for link in task.task_tags if link.tag_id == tag_id), None)
        if link is None:
            raise NotFoundError("Tag is not attached to this task", details={'tag_id': tag_id})
        task.task_tags.remove(link)
        board_id = task.board_id

    record_activity('remove_tag', 'task', task_id, workspace_id=workspace_id, user_id=user_id,
                    board_id=board_id, details={'tag_id': tag_id})


_PEOPLE_LINKS = {
    'watchers': TaskWatcher,
    'collaborators': TaskCollaborator,
}


@retry_on_conflict
def add_person(workspace_id: str, task_id: str, relation: str, user_id: int) -> bool:
    """Add a watcher or collaborator. Returns False when already present."""
    link_model = _PEOPLE_LINKS[relation]
    with atomic():
        task = get_task(workspace_id, task_id)
        _ensure_member(workspace_id, user_id, 'user_id')
        links = getattr(task, relation)
        if any(link.user_id == user_id for link in links):
            return False
        links.append(link_model(user_id=user_id))
    return True


@retry_on_conflict
def remove_person(workspace_id: str, task_id: str, relation: str, user_id: int):
    with atomic():
        task = get_task(workspace_id, task_id)
        links = getattr(task, relation)
        link = next((link for link in links if link.user_id == user_id), None)
        if link is None:
            raise NotFoundError(f"User is not in {relation} of this task", details={'user_id': user_id})
        links.remove(link)
