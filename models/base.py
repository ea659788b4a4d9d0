"""
Declarative base shared by every model.
"""

import uuid
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def new_id() -> str:
    """Opaque string identifier used for boards, columns, tasks and comments."""
    return str(uuid.uuid4())
