"""
Tag Model - workspace-wide labels attached to tasks through TaskTag.
"""

from typing import Optional
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime, Text, ForeignKey, func, Index
from .base import Base


class Tag(Base):
    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    workspace_id: Mapped[str] = mapped_column(ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False)
    tag: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    color: Mapped[str] = mapped_column(String(16), default="#4ECDC4")

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        Index('ix_tags_workspace_tag', 'workspace_id', 'tag', unique=True),
    )

    def __repr__(self):
        return f'<Tag {self.tag}>'

    def to_dict(self):
        return {
            'id': self.id,
            'tag': self.tag,
            'description': self.description,
            'color': self.color,
        }
