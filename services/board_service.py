"""
Board Service
Boards are ordered within their workspace and carry a PROJ-nnnnn identifier.
"""

import logging
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.orm import selectinload

from models import db, Board
from services.activity_logger import record_activity, record_position_change
from services.errors import NotFoundError, ValidationError
from services.identifiers import next_project_identifier
from services.ordering import BOARDS_IN_WORKSPACE
from services.updates import parse_title
from utils.db import atomic, retry_on_conflict

logger = logging.getLogger(__name__)


def list_boards(workspace_id: str) -> List[Board]:
    stmt = (
        select(Board)
        .where(Board.workspace_id == workspace_id)
        .options(selectinload(Board.columns))
        .order_by(Board.position, Board.id)
    )
    return list(db.session.execute(stmt).scalars())


def get_board(workspace_id: str, board_id: str) -> Board:
    board = db.session.get(Board, board_id)
    if board is None or board.workspace_id != workspace_id:
        raise NotFoundError("Board not found", details={'board_id': board_id})
    return board


def _ensure_unique_title(workspace_id: str, title: str, exclude_id: Optional[str] = None):
    stmt = select(Board.id).where(
        Board.workspace_id == workspace_id,
        func.lower(Board.title) == title.lower(),
    )
    if exclude_id is not None:
        stmt = stmt.where(Board.id != exclude_id)
    if db.session.execute(stmt).first() is not None:
        raise ValidationError("A board with this name already exists")


@retry_on_conflict
def create_board(workspace_id: str, title, user_id: Optional[int] = None) -> Board:
    title = parse_title(title)
    with atomic():
        BOARDS_IN_WORKSPACE.lock_scope(workspace_id)
        _ensure_unique_title(workspace_id, title)
        board = Board(
            workspace_id=workspace_id,
            title=title,
            project=next_project_identifier(workspace_id),
        )
        BOARDS_IN_WORKSPACE.insert_at_end(board, workspace_id)
        board_id = board.id

    logger.info(f"Board {board_id} created in workspace {workspace_id}")
    record_activity('create_board', 'board', board_id, workspace_id=workspace_id,
                    user_id=user_id, board_id=board_id, details={'title': title})
    return board


@retry_on_conflict
def rename_board(workspace_id: str, board_id: str, title, user_id: Optional[int] = None) -> Board:
    title = parse_title(title)
    with atomic():
        BOARDS_IN_WORKSPACE.lock_scope(workspace_id)
        board = get_board(workspace_id, board_id)
        _ensure_unique_title(workspace_id, title, exclude_id=board_id)
        old_title = board.title
        board.title = title

    record_activity('update_board', 'board', board_id, workspace_id=workspace_id,
                    user_id=user_id, board_id=board_id,
                    details={'old_title': old_title, 'title': title})
    return board


@retry_on_conflict
def delete_board(workspace_id: str, board_id: str, user_id: Optional[int] = None) -> int:
    """Delete a board with its columns and tasks, closing the gap in the workspace."""
    with atomic():
        get_board(workspace_id, board_id)
        old_position = BOARDS_IN_WORKSPACE.delete_item(board_id, workspace_id)

    record_activity('delete_board', 'board', board_id, workspace_id=workspace_id,
                    user_id=user_id, board_id=board_id, details={'position': old_position})
    return old_position


@retry_on_conflict
def reorder_board(workspace_id: str, board_id: str, new_position: int, user_id: Optional[int] = None):
    with atomic():
        change = BOARDS_IN_WORKSPACE.reorder_within_parent(board_id, new_position, workspace_id)

    record_position_change('reorder_board', 'board', change, workspace_id=workspace_id,
                           user_id=user_id, board_id=board_id)
    return change
