#!/usr/bin/env python3
"""
Repair Positions Script

Rewrites the position of every ordered scope (boards in a workspace, priorities
in a workspace, columns in a board, tasks in a column) to a dense 0..n-1 run,
keeping the current (position, id) order. Each scope is repaired in its own
transaction.

Usage:
    python scripts/repair_positions.py                  # every workspace
    python scripts/repair_positions.py --workspace ID   # one workspace
    python scripts/repair_positions.py --dry-run        # report only
"""

import os
import sys
import argparse
import logging
from collections import Counter

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from app import create_app
from models import db, Workspace, Board, BoardColumn
from services.ordering import (
    BOARDS_IN_WORKSPACE, PRIORITIES_IN_WORKSPACE, COLUMNS_IN_BOARD, TASKS_IN_COLUMN,
)
from utils.db import atomic, retry_on_conflict

logger = logging.getLogger(__name__)


def is_dense(collection, parent_id) -> bool:
    positions = [position for _, position in collection.positions(parent_id)]
    return positions == list(range(len(positions)))


@retry_on_conflict
def repair_scope(collection, parent_id, dry_run=False) -> int:
    """Renumber one scope; returns rows changed (or 1/0 for broken/ok in dry-run mode)."""
    if dry_run:
        return 0 if is_dense(collection, parent_id) else 1
    with atomic():
        return collection.renumber(parent_id)


def scopes_for_workspace(workspace_id):
    """(collection, parent_id) pairs covering everything a workspace orders."""
    yield BOARDS_IN_WORKSPACE, workspace_id
    yield PRIORITIES_IN_WORKSPACE, workspace_id

    board_ids = db.session.execute(
        select(Board.id).where(Board.workspace_id == workspace_id)
    ).scalars().all()
    for board_id in board_ids:
        yield COLUMNS_IN_BOARD, board_id
        column_ids = db.session.execute(
            select(BoardColumn.id).where(BoardColumn.board_id == board_id)
        ).scalars().all()
        for column_id in column_ids:
            yield TASKS_IN_COLUMN, column_id


def repair_workspace(workspace_id, dry_run=False) -> Counter:
    changed = Counter()
    for collection, parent_id in list(scopes_for_workspace(workspace_id)):
        count = repair_scope(collection, parent_id, dry_run=dry_run)
        if count:
            changed[collection.label] += count
            logger.info(f"{'Would repair' if dry_run else 'Repaired'} {collection.label}s in {parent_id} ({count})")
    return changed


def repair_positions(workspace_id=None, dry_run=False) -> Counter:
    if workspace_id:
        workspace_ids = [workspace_id]
    else:
        workspace_ids = db.session.execute(select(Workspace.id)).scalars().all()

    totals = Counter()
    for ws_id in workspace_ids:
        totals.update(repair_workspace(ws_id, dry_run=dry_run))
    return totals


def main(argv=None):
    parser = argparse.ArgumentParser(description="Renumber kanban positions to 0..n-1")
    parser.add_argument("--workspace", help="only repair this workspace id")
    parser.add_argument("--dry-run", action="store_true", help="report broken scopes without writing")
    args = parser.parse_args(argv)

    app = create_app({"RUN_STARTUP_VALIDATION": False})
    with app.app_context():
        totals = repair_positions(args.workspace, dry_run=args.dry_run)

    if not totals:
        print("✅ All positions are dense")
        return 0

    verb = "Broken scopes" if args.dry_run else "Rows renumbered"
    print(f"{verb}:")
    for label, count in sorted(totals.items()):
        print(f"  {label}: {count}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
