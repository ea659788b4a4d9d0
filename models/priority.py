"""
Priority Model
Workspace-level priority levels, ordered by `position`. Exactly one row per
workspace carries `initial=True` and is used when a task names no priority.
"""

from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime, Boolean, ForeignKey, func, Index
from .base import Base


class Priority(Base):
    __tablename__ = "priorities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    workspace_id: Mapped[str] = mapped_column(ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False)
    priority: Mapped[str] = mapped_column(String(64), nullable=False)
    color: Mapped[str] = mapped_column(String(16), default="#94A3B8")
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    initial: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        Index('ix_priorities_workspace_position', 'workspace_id', 'position'),
    )

    def __repr__(self):
        return f'<Priority {self.priority}>'

    def to_dict(self):
        return {
            'id': self.id,
            'priority': self.priority,
            'color': self.color,
            'position': self.position,
            'initial': self.initial,
        }
