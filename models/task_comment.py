"""
TaskComment Model - discussion on a task.
Comments (with their attachments) are carried along when a task moves to another board.
"""

from typing import List, Optional, TYPE_CHECKING
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, DateTime, Text, ForeignKey, func
from .base import Base, new_id

if TYPE_CHECKING:
    from .task import Task
    from .attachment import Attachment


class TaskComment(Base):
    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    task_id: Mapped[str] = mapped_column(
        ForeignKey('tasks.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    task: Mapped["Task"] = relationship(back_populates="comments")

    author_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey('users.id', ondelete='SET NULL'),
        nullable=True,
        index=True
    )

    text: Mapped[str] = mapped_column(Text, nullable=False)

    attachments: Mapped[List["Attachment"]] = relationship(
        back_populates="comment",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f'<TaskComment task_id={self.task_id} author_id={self.author_id}>'

    def to_dict(self):
        """Convert comment to dictionary for JSON serialization"""
        return {
            'id': self.id,
            'task_id': self.task_id,
            'author_id': self.author_id,
            'text': self.text,
            'attachments': [a.to_dict() for a in self.attachments],
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
