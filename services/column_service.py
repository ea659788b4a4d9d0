"""
Column Service
Columns are ordered within their board. A column whose title matches one of
the workspace's DEFAULT_FINISHED_COLUMN_NAMES is flagged finished; a column
titled "Archive" is flagged archived. Archived columns are never finished.
"""

import logging
from typing import List, Optional

from sqlalchemy import select, func

from models import db, Board, BoardColumn
from services.activity_logger import record_activity, record_position_change
from services.board_service import get_board
from services.errors import NotFoundError, ValidationError
from services.ordering import COLUMNS_IN_BOARD
from services.settings_service import get_json_setting
from services.updates import ColumnUpdate, UNSET, parse_title
from utils.db import atomic, retry_on_conflict

logger = logging.getLogger(__name__)

ARCHIVE_COLUMN_TITLE = 'archive'
FALLBACK_FINISHED_NAMES = ['Done', 'Completed', 'Finished']


def finished_column_names(workspace_id: str) -> List[str]:
    names = get_json_setting(workspace_id, 'DEFAULT_FINISHED_COLUMN_NAMES', FALLBACK_FINISHED_NAMES)
    if not isinstance(names, list):
        return FALLBACK_FINISHED_NAMES
    return [str(name) for name in names]


def detect_flags(workspace_id: str, title: str):
    """(is_finished, is_archived) implied by a column title."""
    lowered = title.lower()
    is_archived = lowered == ARCHIVE_COLUMN_TITLE
    is_finished = not is_archived and any(name.lower() == lowered for name in finished_column_names(workspace_id))
    return is_finished, is_archived


def list_columns(workspace_id: str, board_id: str) -> List[BoardColumn]:
    get_board(workspace_id, board_id)
    stmt = (
        select(BoardColumn)
        .where(BoardColumn.board_id == board_id)
        .order_by(BoardColumn.position, BoardColumn.id)
    )
    return list(db.session.execute(stmt).scalars())


def get_column(workspace_id: str, column_id: str) -> BoardColumn:
    stmt = (
        select(BoardColumn)
        .join(Board, Board.id == BoardColumn.board_id)
        .where(BoardColumn.id == column_id, Board.workspace_id == workspace_id)
    )
    column = db.session.execute(stmt).scalar_one_or_none()
    if column is None:
        raise NotFoundError("Column not found", details={'column_id': column_id})
    return column


def _ensure_unique_title(board_id: str, title: str, exclude_id: Optional[str] = None):
    stmt = select(BoardColumn.id).where(
        BoardColumn.board_id == board_id,
        func.lower(BoardColumn.title) == title.lower(),
    )
    if exclude_id is not None:
        stmt = stmt.where(BoardColumn.id != exclude_id)
    if db.session.execute(stmt).first() is not None:
        raise ValidationError("A column with this name already exists in the board")


@retry_on_conflict
def create_column(workspace_id: str, board_id: str, title, position: Optional[int] = None,
                  user_id: Optional[int] = None) -> BoardColumn:
    """Create a column at `position` (shifting the rest right) or at the end."""
    title = parse_title(title)
    is_finished, is_archived = detect_flags(workspace_id, title)

    with atomic():
        get_board(workspace_id, board_id)
        COLUMNS_IN_BOARD.lock_scope(board_id)
        _ensure_unique_title(board_id, title)
        column = BoardColumn(title=title, is_finished=is_finished, is_archived=is_archived)
        if position is None:
            COLUMNS_IN_BOARD.insert_at_end(column, board_id)
        else:
            COLUMNS_IN_BOARD.insert_at(column, board_id, position)
        column_id = column.id
        final_position = column.position

    logger.info(f"Column {column_id} created in board {board_id} at {final_position}")
    record_activity('create_column', 'column', column_id, workspace_id=workspace_id, user_id=user_id,
                    board_id=board_id, column_id=column_id,
                    details={'title': title, 'position': final_position})
    return column


@retry_on_conflict
def update_column(workspace_id: str, column_id: str, update: ColumnUpdate,
                  user_id: Optional[int] = None) -> BoardColumn:
    """Rename a column and/or change its flags. Position is never touched here."""
    changes = update.changes()
    if not changes:
        raise ValidationError("No updatable fields provided")

    with atomic():
        column = get_column(workspace_id, column_id)
        is_finished, is_archived = column.is_finished, column.is_archived

        if update.title is not UNSET:
            _ensure_unique_title(column.board_id, update.title, exclude_id=column_id)
            column.title = update.title
            is_finished, is_archived = detect_flags(workspace_id, update.title)

        if update.is_finished is not UNSET:
            is_finished = update.is_finished
        if update.is_archived is not UNSET:
            is_archived = update.is_archived

        column.is_archived = is_archived
        column.is_finished = False if is_archived else is_finished
        board_id = column.board_id

    record_activity('update_column', 'column', column_id, workspace_id=workspace_id, user_id=user_id,
                    board_id=board_id, column_id=column_id,
                    details=changes)
    return column


@retry_on_conflict
def delete_column(workspace_id: str, column_id: str, user_id: Optional[int] = None) -> int:
    """Delete a column and its tasks, closing the gap in the board."""
    with atomic():
        column = get_column(workspace_id, column_id)
        board_id = column.board_id
        old_position = COLUMNS_IN_BOARD.delete_item(column_id, board_id)

    record_activity('delete_column', 'column', column_id, workspace_id=workspace_id, user_id=user_id,
                    board_id=board_id, column_id=column_id, details={'position': old_position})
    return old_position


@retry_on_conflict
def reorder_column(workspace_id: str, column_id: str, new_position: int, board_id: str,
                   user_id: Optional[int] = None):
    with atomic():
        get_board(workspace_id, board_id)
        change = COLUMNS_IN_BOARD.reorder_within_parent(column_id, new_position, board_id)

    record_position_change('reorder_column', 'column', change, workspace_id=workspace_id,
                           user_id=user_id, board_id=board_id, column_id=column_id)
    return change


@retry_on_conflict
def renumber_columns(workspace_id: str, board_id: str, user_id: Optional[int] = None) -> int:
    with atomic():
        get_board(workspace_id, board_id)
        changed = COLUMNS_IN_BOARD.renumber(board_id)

    if changed:
        record_activity('renumber_column', 'board', board_id, workspace_id=workspace_id,
                        user_id=user_id, board_id=board_id, details={'changed': changed})
    return changed
