"""
Task Model and task junction tables
Tasks are ordered within their column. Tags, watchers and collaborators are
many-to-many links that travel with a task when it is cloned to another board.
"""

from typing import List, Optional, TYPE_CHECKING
from datetime import datetime, date
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Integer, DateTime, Date, Text, Float, ForeignKey, func, Index
from .base import Base, new_id

if TYPE_CHECKING:
    from .board import BoardColumn
    from .task_comment import TaskComment
    from .attachment import Attachment
    from .priority import Priority
    from .tag import Tag
    from .user import User


class TaskTag(Base):
    """Junction table between tasks and workspace tags."""
    __tablename__ = "task_tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[str] = mapped_column(ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    tag_id: Mapped[int] = mapped_column(ForeignKey("tags.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    tag: Mapped["Tag"] = relationship(lazy="joined")

    __table_args__ = (
        Index('ix_task_tags_composite', 'task_id', 'tag_id', unique=True),
    )

    def __repr__(self):
        return f'<TaskTag task_id={self.task_id} tag_id={self.tag_id}>'


class TaskWatcher(Base):
    __tablename__ = "watchers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[str] = mapped_column(ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        Index('ix_watchers_composite', 'task_id', 'user_id', unique=True),
    )

    def __repr__(self):
        return f'<TaskWatcher task_id={self.task_id} user_id={self.user_id}>'


class TaskCollaborator(Base):
    __tablename__ = "collaborators"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[str] = mapped_column(ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        Index('ix_collaborators_composite', 'task_id', 'user_id', unique=True),
    )

    def __repr__(self):
        return f'<TaskCollaborator task_id={self.task_id} user_id={self.user_id}>'


class Task(Base):
    """
    A card on a board. `position` is the zero-based rank inside `column_id`;
    `board_id` is denormalized from the column for board-wide queries.
    """
    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    ticket: Mapped[Optional[str]] = mapped_column(String(32), index=True)  # TASK-00042

    # Task content
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    # People
    member_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    requester_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    member: Mapped[Optional["User"]] = relationship(foreign_keys=[member_id])
    requester: Mapped[Optional["User"]] = relationship(foreign_keys=[requester_id])

    # Scheduling
    start_date: Mapped[Optional[date]] = mapped_column(Date)
    due_date: Mapped[Optional[date]] = mapped_column(Date)
    effort: Mapped[Optional[float]] = mapped_column(Float)

    priority_id: Mapped[Optional[int]] = mapped_column(ForeignKey("priorities.id"), nullable=True)
    priority: Mapped[Optional["Priority"]] = relationship(lazy="joined")

    # Placement
    column_id: Mapped[str] = mapped_column(ForeignKey("columns.id", ondelete="CASCADE"), nullable=False)
    board_id: Mapped[str] = mapped_column(ForeignKey("boards.id", ondelete="CASCADE"), nullable=False, index=True)
    column: Mapped["BoardColumn"] = relationship(back_populates="tasks")
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Where the task lived before its last cross-board move
    pre_board_id: Mapped[Optional[str]] = mapped_column(String(36))
    pre_column_id: Mapped[Optional[str]] = mapped_column(String(36))

    # Collaboration
    comments: Mapped[List["TaskComment"]] = relationship(
        back_populates="task",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TaskComment.created_at",
    )
    attachments: Mapped[List["Attachment"]] = relationship(
        back_populates="task",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    task_tags: Mapped[List["TaskTag"]] = relationship(cascade="all, delete-orphan", passive_deletes=True)
    watchers: Mapped[List["TaskWatcher"]] = relationship(cascade="all, delete-orphan", passive_deletes=True)
    collaborators: Mapped[List["TaskCollaborator"]] = relationship(cascade="all, delete-orphan", passive_deletes=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index('ix_tasks_column_position', 'column_id', 'position'),
    )

    def __repr__(self):
        return f'<Task {self.id}: {self.title}>'

    @property
    def is_overdue(self) -> bool:
        """Check if task is overdue."""
        if not self.due_date:
            return False
        return date.today() > self.due_date

    @property
    def tag_ids(self) -> List[int]:
        return sorted(link.tag_id for link in self.task_tags)

    def to_dict(self, include_relationships: bool = False):
        data = {
            'id': self.id,
            'ticket': self.ticket,
            'title': self.title,
            'description': self.description,
            'member_id': self.member_id,
            'requester_id': self.requester_id,
            'start_date': self.start_date.isoformat() if self.start_date else None,
            'due_date': self.due_date.isoformat() if self.due_date else None,
            'effort': self.effort,
            'priority_id': self.priority_id,
            'priority': self.priority.priority if self.priority else None,
            'board_id': self.board_id,
            'column_id': self.column_id,
            'position': self.position,
            'pre_board_id': self.pre_board_id,
            'pre_column_id': self.pre_column_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_relationships:
            data['comments'] = [c.to_dict() for c in self.comments]
            data['attachments'] = [a.to_dict() for a in self.attachments]
            data['tags'] = [link.tag.to_dict() for link in self.task_tags]
            data['watchers'] = sorted(w.user_id for w in self.watchers)
            data['collaborators'] = sorted(c.user_id for c in self.collaborators)
        return data
