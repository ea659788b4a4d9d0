"""
Workspace Model
Top-level tenant scope: owns users, boards, priorities, tags and settings.
Boards and priorities are ordered within their workspace.
"""

import re
from typing import List, TYPE_CHECKING
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, DateTime, func
from .base import Base, new_id

if TYPE_CHECKING:
    from .board import Board
    from .user import User


class Workspace(Base):
    __tablename__ = "workspaces"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    slug: Mapped[str] = mapped_column(String(140), unique=True, nullable=False, index=True)

    users: Mapped[List["User"]] = relationship(back_populates="workspace")
    boards: Mapped[List["Board"]] = relationship(
        back_populates="workspace",
        cascade="all, delete-orphan",
        order_by="Board.position",
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f'<Workspace {self.slug}>'

    @staticmethod
    def generate_slug(name: str) -> str:
        """Generate URL-friendly slug from workspace name."""
        slug = re.sub(r'[^a-z0-9]+', '-', name.lower()).strip('-')
        return slug or 'workspace'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'slug': self.slug,
        }
