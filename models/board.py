"""
Board and Column Models
Boards are ordered within their workspace; columns are ordered within their board.
Both carry a plain integer `position` kept dense by services.ordering.
"""

from typing import List, Optional, TYPE_CHECKING
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Integer, DateTime, Boolean, ForeignKey, func, Index
from .base import Base, new_id

if TYPE_CHECKING:
    from .workspace import Workspace
    from .task import Task


class Board(Base):
    __tablename__ = "boards"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    workspace_id: Mapped[str] = mapped_column(ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False)
    workspace: Mapped["Workspace"] = relationship(back_populates="boards")

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    project: Mapped[Optional[str]] = mapped_column(String(32))  # PROJ-00001

    # Display order within the workspace
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    columns: Mapped[List["BoardColumn"]] = relationship(
        back_populates="board",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="BoardColumn.position",
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    # Non-unique on purpose: shift statements pass through transient duplicates
    __table_args__ = (
        Index('ix_boards_workspace_position', 'workspace_id', 'position'),
    )

    def __repr__(self):
        return f'<Board {self.id}: {self.title}>'

    def to_dict(self, include_columns: bool = False):
        data = {
            'id': self.id,
            'title': self.title,
            'project': self.project,
            'position': self.position,
            'workspace_id': self.workspace_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if include_columns:
            data['columns'] = [c.to_dict() for c in self.columns]
        return data


class BoardColumn(Base):
    __tablename__ = "columns"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    board_id: Mapped[str] = mapped_column(ForeignKey("boards.id", ondelete="CASCADE"), nullable=False)
    board: Mapped["Board"] = relationship(back_populates="columns")

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Column semantics
    is_finished: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    tasks: Mapped[List["Task"]] = relationship(
        back_populates="column",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Task.position",
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index('ix_columns_board_position', 'board_id', 'position'),
    )

    def __repr__(self):
        return f'<BoardColumn {self.id}: {self.title}>'

    def to_dict(self):
        return {
            'id': self.id,
            'board_id': self.board_id,
            'title': self.title,
            'position': self.position,
            'is_finished': self.is_finished,
            'is_archived': self.is_archived,
        }
