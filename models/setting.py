"""
Setting Model - per-workspace key/value configuration (ticket prefixes,
finished column names, ...). Read through services.settings_service.SettingsCache.
"""

from typing import Optional
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, DateTime, ForeignKey, func
from .base import Base


class Setting(Base):
    __tablename__ = "settings"

    workspace_id: Mapped[str] = mapped_column(ForeignKey("workspaces.id", ondelete="CASCADE"), primary_key=True)
    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[Optional[str]] = mapped_column(Text)

    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f'<Setting {self.key}>'

    def to_dict(self):
        return {'key': self.key, 'value': self.value}
