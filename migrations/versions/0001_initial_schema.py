"""Initial kanban schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-12

Workspaces, users, boards, columns, tasks and their side tables, plus
workspace tags, priorities, settings and the activity log.

Every ordered table gets a (parent, position) index; positions are kept
dense by the application, so there is no unique constraint on them.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated=True):
    columns = [sa.Column('created_at', sa.DateTime, server_default=sa.func.now())]
    if updated:
        columns.append(sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()))
    return columns


def upgrade():
    op.create_table(
        'workspaces',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('slug', sa.String(140), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_workspaces_slug', 'workspaces', ['slug'], unique=True)

    op.create_table(
        'users',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('username', sa.String(64), nullable=False),
        sa.Column('email', sa.String(120), nullable=False),
        sa.Column('password_hash', sa.String(256)),
        sa.Column('display_name', sa.String(120)),
        sa.Column('role', sa.String(32)),
        sa.Column('active', sa.Boolean),
        sa.Column('workspace_id', sa.String(36), sa.ForeignKey('workspaces.id')),
        *_timestamps(),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_workspace_id', 'users', ['workspace_id'])

    op.create_table(
        'boards',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('workspace_id', sa.String(36), sa.ForeignKey('workspaces.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('project', sa.String(32)),
        sa.Column('position', sa.Integer, nullable=False, server_default='0'),
        *_timestamps(),
    )
    op.create_index('ix_boards_workspace_position', 'boards', ['workspace_id', 'position'])

    op.create_table(
        'columns',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('board_id', sa.String(36), sa.ForeignKey('boards.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('position', sa.Integer, nullable=False, server_default='0'),
        sa.Column('is_finished', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('is_archived', sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index('ix_columns_board_position', 'columns', ['board_id', 'position'])

    op.create_table(
        'priorities',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('workspace_id', sa.String(36), sa.ForeignKey('workspaces.id', ondelete='CASCADE'), nullable=False),
        sa.Column('priority', sa.String(64), nullable=False),
        sa.Column('color', sa.String(16)),
        sa.Column('position', sa.Integer, nullable=False, server_default='0'),
        sa.Column('initial', sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(updated=False),
    )
    op.create_index('ix_priorities_workspace_position', 'priorities', ['workspace_id', 'position'])

    op.create_table(
        'tags',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('workspace_id', sa.String(36), sa.ForeignKey('workspaces.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tag', sa.String(64), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('color', sa.String(16)),
        *_timestamps(updated=False),
    )
    op.create_index('ix_tags_workspace_tag', 'tags', ['workspace_id', 'tag'], unique=True)

    op.create_table(
        'tasks',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('ticket', sa.String(32)),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('member_id', sa.Integer, sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('requester_id', sa.Integer, sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('start_date', sa.Date),
        sa.Column('due_date', sa.Date),
        sa.Column('effort', sa.Float),
        sa.Column('priority_id', sa.Integer, sa.ForeignKey('priorities.id')),
        sa.Column('column_id', sa.String(36), sa.ForeignKey('columns.id', ondelete='CASCADE'), nullable=False),
        sa.Column('board_id', sa.String(36), sa.ForeignKey('boards.id', ondelete='CASCADE'), nullable=False),
        sa.Column('position', sa.Integer, nullable=False, server_default='0'),
        sa.Column('pre_board_id', sa.String(36)),
        sa.Column('pre_column_id', sa.String(36)),
        *_timestamps(),
    )
    op.create_index('ix_tasks_ticket', 'tasks', ['ticket'])
    op.create_index('ix_tasks_board_id', 'tasks', ['board_id'])
    op.create_index('ix_tasks_column_position', 'tasks', ['column_id', 'position'])

    op.create_table(
        'comments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('task_id', sa.String(36), sa.ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False),
        sa.Column('author_id', sa.Integer, sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('text', sa.Text, nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_comments_task_id', 'comments', ['task_id'])
    op.create_index('ix_comments_author_id', 'comments', ['author_id'])
    op.create_index('ix_comments_created_at', 'comments', ['created_at'])

    op.create_table(
        'attachments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('task_id', sa.String(36), sa.ForeignKey('tasks.id', ondelete='CASCADE')),
        sa.Column('comment_id', sa.String(36), sa.ForeignKey('comments.id', ondelete='CASCADE')),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('url', sa.String(1024), nullable=False),
        sa.Column('type', sa.String(128)),
        sa.Column('size', sa.Integer),
        *_timestamps(updated=False),
        sa.CheckConstraint('(task_id IS NULL) <> (comment_id IS NULL)', name='ck_attachments_single_owner'),
    )
    op.create_index('ix_attachments_task_id', 'attachments', ['task_id'])
    op.create_index('ix_attachments_comment_id', 'attachments', ['comment_id'])

    op.create_table(
        'task_tags',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('task_id', sa.String(36), sa.ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tag_id', sa.Integer, sa.ForeignKey('tags.id', ondelete='CASCADE'), nullable=False),
        *_timestamps(updated=False),
    )
    op.create_index('ix_task_tags_task_id', 'task_tags', ['task_id'])
    op.create_index('ix_task_tags_tag_id', 'task_tags', ['tag_id'])
    op.create_index('ix_task_tags_composite', 'task_tags', ['task_id', 'tag_id'], unique=True)

    for table in ('watchers', 'collaborators'):
        op.create_table(
            table,
            sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
            sa.Column('task_id', sa.String(36), sa.ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False),
            sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
            *_timestamps(updated=False),
        )
        op.create_index(f'ix_{table}_task_id', table, ['task_id'])
        op.create_index(f'ix_{table}_user_id', table, ['user_id'])
        op.create_index(f'ix_{table}_composite', table, ['task_id', 'user_id'], unique=True)

    op.create_table(
        'settings',
        sa.Column('workspace_id', sa.String(36), sa.ForeignKey('workspaces.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('key', sa.String(128), primary_key=True),
        sa.Column('value', sa.Text),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )

    op.create_table(
        'activity',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('workspace_id', sa.String(36)),
        sa.Column('user_id', sa.Integer),
        sa.Column('action', sa.String(64), nullable=False),
        sa.Column('entity_type', sa.String(32), nullable=False),
        sa.Column('entity_id', sa.String(36)),
        sa.Column('board_id', sa.String(36)),
        sa.Column('column_id', sa.String(36)),
        sa.Column('details', sa.JSON),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_activity_workspace_id', 'activity', ['workspace_id'])
    op.create_index('ix_activity_created_at', 'activity', ['created_at'])
    op.create_index('ix_activity_entity', 'activity', ['entity_type', 'entity_id'])


def downgrade():
    for table in ('activity', 'settings', 'collaborators', 'watchers', 'task_tags', 'attachments',
                  'comments', 'tasks', 'tags', 'priorities', 'columns', 'boards', 'users', 'workspaces'):
        op.drop_table(table)
