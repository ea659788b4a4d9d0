"""Add sequence_counters for atomic ticket and project numbering

Revision ID: 0002_sequence_counters
Revises: 0001_initial_schema
Create Date: 2026-10-14

One row per (workspace, prefix), incremented with
INSERT ... ON CONFLICT DO UPDATE SET counter = counter + 1 RETURNING counter.

No backfill: the first increment for a prefix seeds its row from the highest
identifier already stored for that prefix.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0002_sequence_counters'
down_revision = '0001_initial_schema'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'sequence_counters',
        sa.Column('workspace_id', sa.String(36), sa.ForeignKey('workspaces.id', ondelete='CASCADE'),
                  primary_key=True),
        sa.Column('prefix', sa.String(16), primary_key=True),
        sa.Column('counter', sa.Integer, nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )


def downgrade():
    op.drop_table('sequence_counters')
