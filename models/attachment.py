"""
Attachment Model
Metadata only (name, url, type, size); file storage lives outside this service.
An attachment belongs to exactly one of a task or a comment.
"""

from typing import Optional, TYPE_CHECKING
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Integer, DateTime, ForeignKey, CheckConstraint, func
from .base import Base, new_id

if TYPE_CHECKING:
    from .task import Task
    from .task_comment import TaskComment


class Attachment(Base):
    __tablename__ = "attachments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    task_id: Mapped[Optional[str]] = mapped_column(ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True, index=True)
    comment_id: Mapped[Optional[str]] = mapped_column(ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True)

    task: Mapped[Optional["Task"]] = relationship(back_populates="attachments")
    comment: Mapped[Optional["TaskComment"]] = relationship(back_populates="attachments")

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(String(1024), nullable=False)
    type: Mapped[Optional[str]] = mapped_column(String(128))
    size: Mapped[Optional[int]] = mapped_column(Integer)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            '(task_id IS NULL) <> (comment_id IS NULL)',
            name='ck_attachments_single_owner',
        ),
    )

    def __repr__(self):
        return f'<Attachment {self.name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'task_id': self.task_id,
            'comment_id': self.comment_id,
            'name': self.name,
            'url': self.url,
            'type': self.type,
            'size': self.size,
        }
