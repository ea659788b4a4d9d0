"""
ActivityLog Model
Append-only record of board activity ("task X moved from column A to B").
Written after the mutating transaction commits.
"""

from typing import Optional
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime, JSON, func, Index
from .base import Base


class ActivityLog(Base):
    __tablename__ = "activity"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    workspace_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)
    user_id: Mapped[Optional[int]] = mapped_column(Integer)

    action: Mapped[str] = mapped_column(String(64), nullable=False)  # create_task, move_task, reorder_column, ...
    entity_type: Mapped[str] = mapped_column(String(32), nullable=False)  # task, column, board, priority
    entity_id: Mapped[Optional[str]] = mapped_column(String(36))

    board_id: Mapped[Optional[str]] = mapped_column(String(36))
    column_id: Mapped[Optional[str]] = mapped_column(String(36))
    details: Mapped[Optional[dict]] = mapped_column(JSON)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), index=True)

    __table_args__ = (
        Index('ix_activity_entity', 'entity_type', 'entity_id'),
    )

    def __repr__(self):
        return f'<ActivityLog {self.action} {self.entity_type}:{self.entity_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'action': self.action,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'board_id': self.board_id,
            'column_id': self.column_id,
            'details': self.details or {},
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
