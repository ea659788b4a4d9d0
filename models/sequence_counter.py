"""
SequenceCounter Model
One row per (workspace, prefix) holding the last issued number for
human-readable identifiers such as TASK-00042. Incremented with an atomic
upsert by services.identifiers.
"""

from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime, ForeignKey, func
from .base import Base


class SequenceCounter(Base):
    __tablename__ = "sequence_counters"

    workspace_id: Mapped[str] = mapped_column(ForeignKey("workspaces.id", ondelete="CASCADE"), primary_key=True)
    prefix: Mapped[str] = mapped_column(String(16), primary_key=True)
    counter: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f'<SequenceCounter {self.workspace_id}:{self.prefix}={self.counter}>'
