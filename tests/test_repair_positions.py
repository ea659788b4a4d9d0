"""
Tests for scripts/repair_positions.py.
"""
from sqlalchemy import select, update

from conftest import titles_in, positions_in
from models import db, Board, BoardColumn, Task
from services.ordering import TASKS_IN_COLUMN, COLUMNS_IN_BOARD, BOARDS_IN_WORKSPACE
from scripts.repair_positions import repair_positions, repair_workspace, is_dense


def scramble(model, ids_to_positions):
    for item_id, position in ids_to_positions.items():
        db.session.execute(update(model).where(model.id == item_id).values(position=position))
    db.session.commit()


def test_repairs_every_scope_of_a_workspace(workspace, board, columns, make_tasks):
    tasks = make_tasks(columns[0], 'A', 'B', 'C')
    scramble(Task, {tasks[0].id: 4, tasks[1].id: 10, tasks[2].id: 11})
    scramble(BoardColumn, {columns[0].id: 1, columns[1].id: 3, columns[2].id: 6})
    scramble(Board, {board.id: 2})

    changed = repair_workspace(workspace.id)

    assert changed == {'task': 3, 'column': 3, 'board': 1}
    assert titles_in(columns[0].id) == ['A', 'B', 'C']
    assert positions_in(TASKS_IN_COLUMN, columns[0].id) == [0, 1, 2]
    assert positions_in(COLUMNS_IN_BOARD, board.id) == [0, 1, 2]
    assert positions_in(BOARDS_IN_WORKSPACE, workspace.id) == [0]


def test_dry_run_reports_without_writing(workspace, columns, make_tasks):
    tasks = make_tasks(columns[0], 'A', 'B')
    scramble(Task, {tasks[1].id: 5})

    changed = repair_positions(workspace.id, dry_run=True)

    assert changed == {'task': 1}
    assert not is_dense(TASKS_IN_COLUMN, columns[0].id)


def test_dense_data_is_left_alone(workspace, columns, make_tasks):
    make_tasks(columns[0], 'A', 'B')
    assert repair_positions() == {}


def test_duplicate_positions_are_split_by_id(workspace, columns, make_tasks):
    tasks = make_tasks(columns[0], 'A', 'B', 'C')
    scramble(Task, {t.id: 0 for t in tasks})

    repair_workspace(workspace.id)

    expected = sorted(t.id for t in tasks)
    ordered = db.session.execute(
        select(Task.id).where(Task.column_id == columns[0].id).order_by(Task.position)
    ).scalars().all()
    assert ordered == expected
