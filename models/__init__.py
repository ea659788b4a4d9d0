"""
Models package: SQLAlchemy 2.0 declarative models bound to Flask-SQLAlchemy.
"""

from flask_sqlalchemy import SQLAlchemy
from .base import Base, new_id

db = SQLAlchemy(model_class=Base)

from .workspace import Workspace
from .user import User
from .board import Board, BoardColumn
from .task import Task, TaskTag, TaskWatcher, TaskCollaborator
from .task_comment import TaskComment
from .attachment import Attachment
from .tag import Tag
from .priority import Priority
from .setting import Setting
from .sequence_counter import SequenceCounter
from .activity_log import ActivityLog

__all__ = [
    'db',
    'Base',
    'new_id',
    'Workspace',
    'User',
    'Board',
    'BoardColumn',
    'Task',
    'TaskTag',
    'TaskWatcher',
    'TaskCollaborator',
    'TaskComment',
    'Attachment',
    'Tag',
    'Priority',
    'Setting',
    'SequenceCounter',
    'ActivityLog',
]
