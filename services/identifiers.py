"""
Human-readable identifier generator (PROJ-00001, TASK-00042).

Each (workspace, prefix) pair owns a row in sequence_counters that is
incremented with one atomic INSERT ... ON CONFLICT DO UPDATE ... RETURNING.
Callers invoke it inside the transaction that inserts the new row, so a
rollback also gives the number back.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from models import db, Board, Task, SequenceCounter
from services.settings_service import get_setting

logger = logging.getLogger(__name__)

NUMBER_WIDTH = 5

UPSERT_DIALECTS = {
    'postgresql': pg_insert,
    'sqlite': sqlite_insert,
}


def format_identifier(prefix: str, number: int) -> str:
    return f"{prefix}{number:0{NUMBER_WIDTH}d}"


def parse_identifier(prefix: str, value: Optional[str]) -> Optional[int]:
    """Numeric suffix of `value` when it carries `prefix`, else None."""
    if not value or not value.startswith(prefix):
        return None
    suffix = value[len(prefix):]
    return int(suffix) if suffix.isdigit() else None


def _existing_values(workspace_id: str, prefix: str, kind: str, session):
    pattern = f"{prefix}%"
    if kind == 'project':
        stmt = select(Board.project).where(
            Board.workspace_id == workspace_id,
            Board.project.like(pattern),
        )
    else:
        stmt = (
            select(Task.ticket)
            .join(Board, Board.id == Task.board_id)
            .where(Board.workspace_id == workspace_id, Task.ticket.like(pattern))
        )
    return session.execute(stmt).scalars()


def _seed_value(workspace_id: str, prefix: str, kind: str, session) -> int:
    """Highest number already issued for the prefix, for rows created before the counter existed."""
    numbers = [
        n for n in (parse_identifier(prefix, v) for v in _existing_values(workspace_id, prefix, kind, session))
        if n is not None
    ]
    return max(numbers, default=0)


def _increment_with_upsert(insert_fn, workspace_id: str, prefix: str, seed: int, session) -> int:
    table = SequenceCounter.__table__
    stmt = insert_fn(table).values(workspace_id=workspace_id, prefix=prefix, counter=seed + 1)
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.workspace_id, table.c.prefix],
        set_={'counter': table.c.counter + 1},
    ).returning(table.c.counter)
    return session.execute(stmt).scalar_one()


def _increment_with_lock(workspace_id: str, prefix: str, seed: int, session) -> int:
    stmt = (
        select(SequenceCounter)
        .where(SequenceCounter.workspace_id == workspace_id, SequenceCounter.prefix == prefix)
        .with_for_update()
    )
    row = session.execute(stmt).scalar_one_or_none()
    if row is None:
        row = SequenceCounter(workspace_id=workspace_id, prefix=prefix, counter=seed)
        session.add(row)
    row.counter += 1
    session.flush()
    return row.counter


def next_number(workspace_id: str, prefix: str, kind: str = 'task', session=None) -> int:
    """Atomically reserve the next number for (workspace, prefix)."""
    session = session or db.session

    exists = session.execute(
        select(SequenceCounter.counter).where(
            SequenceCounter.workspace_id == workspace_id,
            SequenceCounter.prefix == prefix,
        )
    ).first()
    # a concurrent first insert lands on the conflict branch and still increments
    seed = 0 if exists else _seed_value(workspace_id, prefix, kind, session)

    insert_fn = UPSERT_DIALECTS.get(session.get_bind().dialect.name)
    if insert_fn is not None:
        number = _increment_with_upsert(insert_fn, workspace_id, prefix, seed, session)
    else:
        number = _increment_with_lock(workspace_id, prefix, seed, session)
    return number


def next_task_ticket(workspace_id: str, session=None) -> str:
    prefix = get_setting(workspace_id, 'DEFAULT_TASK_PREFIX') or 'TASK-'
    ticket = format_identifier(prefix, next_number(workspace_id, prefix, 'task', session))
    logger.info(f"[TICKET] Issued {ticket} in workspace {workspace_id}")
    return ticket


def next_project_identifier(workspace_id: str, session=None) -> str:
    prefix = get_setting(workspace_id, 'DEFAULT_PROJ_PREFIX') or 'PROJ-'
    project = format_identifier(prefix, next_number(workspace_id, prefix, 'project', session))
    logger.info(f"[TICKET] Issued project {project} in workspace {workspace_id}")
    return project
