"""
Tests for the position protocol in services.ordering.

Tasks in a column are used as the representative scope; the same
OrderedCollection backs columns, boards and priorities.
"""
import pytest
from sqlalchemy import select, update

from conftest import titles_in, positions_in
from models import db, Task, BoardColumn
from services.errors import InvalidPositionError, NotFoundError, ConcurrencyConflictError
from services.ordering import TASKS_IN_COLUMN, COLUMNS_IN_BOARD
from utils.db import atomic


@pytest.fixture
def todo(columns):
    return columns[0]


@pytest.fixture
def abcd(todo, make_tasks):
    return {t.title: t.id for t in make_tasks(todo, 'A', 'B', 'C', 'D')}


def reorder(task_id, target, column_id, current=None):
    with atomic():
        return TASKS_IN_COLUMN.reorder_within_parent(task_id, target, column_id, current_position=current)


class TestReorderWithinParent:

    def test_move_up_to_top(self, todo, abcd):
        change = reorder(abcd['C'], 0, todo.id)

        assert titles_in(todo.id) == ['C', 'A', 'B', 'D']
        assert positions_in(TASKS_IN_COLUMN, todo.id) == [0, 1, 2, 3]
        assert (change.from_position, change.to_position) == (2, 0)
        assert change.moved

    def test_move_down_to_end(self, todo, abcd):
        reorder(abcd['A'], 3, todo.id)

        assert titles_in(todo.id) == ['B', 'C', 'D', 'A']
        assert positions_in(TASKS_IN_COLUMN, todo.id) == [0, 1, 2, 3]

    def test_same_position_is_a_no_op(self, todo, abcd):
        change = reorder(abcd['B'], 1, todo.id)

        assert not change.moved
        assert titles_in(todo.id) == ['A', 'B', 'C', 'D']

    def test_round_trip_restores_order(self, todo, abcd):
        reorder(abcd['B'], 3, todo.id)
        reorder(abcd['B'], 1, todo.id)

        assert titles_in(todo.id) == ['A', 'B', 'C', 'D']

    def test_rotating_through_every_position_stays_dense(self, todo, abcd):
        for target in (3, 0, 2, 1):
            reorder(abcd['A'], target, todo.id)
            assert positions_in(TASKS_IN_COLUMN, todo.id) == [0, 1, 2, 3]
        assert titles_in(todo.id)[1] == 'A'

    @pytest.mark.parametrize('target', [-1, 4, 99, '2', 1.5, True])
    def test_out_of_range_target_is_rejected(self, todo, abcd, target):
        with pytest.raises(InvalidPositionError):
            reorder(abcd['A'], target, todo.id)
        assert titles_in(todo.id) == ['A', 'B', 'C', 'D']

    def test_unknown_item_is_not_found(self, todo, abcd):
        with pytest.raises(NotFoundError):
            reorder('missing-task', 0, todo.id)

    def test_unknown_parent_is_not_found(self, abcd):
        with pytest.raises(NotFoundError):
            reorder(abcd['A'], 0, 'missing-column')

    def test_item_from_another_column_is_not_found(self, columns, abcd):
        with pytest.raises(NotFoundError):
            reorder(abcd['A'], 0, columns[1].id)

    def test_stale_current_position_is_a_non_retryable_conflict(self, todo, abcd):
        with pytest.raises(ConcurrencyConflictError) as exc_info:
            reorder(abcd['C'], 0, todo.id, current=1)

        assert exc_info.value.retryable is False
        assert exc_info.value.http_status == 409
        assert titles_in(todo.id) == ['A', 'B', 'C', 'D']

    def test_matching_current_position_is_accepted(self, todo, abcd):
        reorder(abcd['C'], 0, todo.id, current=2)
        assert titles_in(todo.id) == ['C', 'A', 'B', 'D']

    def test_failure_later_in_the_transaction_rolls_back_the_move(self, todo, abcd):
        with pytest.raises(RuntimeError):
            with atomic():
                TASKS_IN_COLUMN.reorder_within_parent(abcd['D'], 0, todo.id)
                raise RuntimeError('boom')

        assert titles_in(todo.id) == ['A', 'B', 'C', 'D']


class TestInsert:

    def test_insert_at_top(self, board, todo, make_tasks):
        make_tasks(todo, 'A', 'B', 'C')
        with atomic():
            TASKS_IN_COLUMN.insert_at_top(Task(title='E', board_id=board.id), todo.id)

        assert titles_in(todo.id) == ['E', 'A', 'B', 'C']
        assert positions_in(TASKS_IN_COLUMN, todo.id) == [0, 1, 2, 3]

    def test_insert_in_the_middle(self, board, todo, make_tasks):
        make_tasks(todo, 'A', 'B', 'C')
        with atomic():
            TASKS_IN_COLUMN.insert_at(Task(title='X', board_id=board.id), todo.id, 2)

        assert titles_in(todo.id) == ['A', 'B', 'X', 'C']
        assert positions_in(TASKS_IN_COLUMN, todo.id) == [0, 1, 2, 3]

    def test_insert_at_end_of_empty_scope(self, board, todo):
        with atomic():
            task = TASKS_IN_COLUMN.insert_at_end(Task(title='Only', board_id=board.id), todo.id)
        assert task.position == 0

    def test_insert_past_the_end_is_rejected(self, board, todo, make_tasks):
        make_tasks(todo, 'A')
        with pytest.raises(InvalidPositionError):
            with atomic():
                TASKS_IN_COLUMN.insert_at(Task(title='X', board_id=board.id), todo.id, 2)
        assert titles_in(todo.id) == ['A']

    def test_existing_rows_cannot_be_inserted_again(self, todo, abcd):
        task = db.session.get(Task, abcd['A'])
        with pytest.raises(ValueError):
            TASKS_IN_COLUMN.insert_at_top(task, todo.id)
        db.session.rollback()


class TestDelete:

    def test_delete_closes_the_gap(self, todo, abcd):
        with atomic():
            old = TASKS_IN_COLUMN.delete_item(abcd['B'], todo.id)

        assert old == 1
        assert titles_in(todo.id) == ['A', 'C', 'D']
        assert positions_in(TASKS_IN_COLUMN, todo.id) == [0, 1, 2]

    def test_detach_closes_the_gap_before_reparenting(self, columns, todo, abcd):
        with atomic():
            old = TASKS_IN_COLUMN.detach(abcd['A'], todo.id)
            task = db.session.get(Task, abcd['A'])
            task.column_id, task.position = columns[1].id, 0

        assert old == 0
        assert titles_in(todo.id) == ['B', 'C', 'D']
        assert positions_in(TASKS_IN_COLUMN, todo.id) == [0, 1, 2]
        assert titles_in(columns[1].id) == ['A']

    def test_delete_last_leaves_others_untouched(self, todo, abcd):
        with atomic():
            TASKS_IN_COLUMN.delete_item(abcd['D'], todo.id)
        assert positions_in(TASKS_IN_COLUMN, todo.id) == [0, 1, 2]


class TestMoveAcrossParent:

    def test_move_closes_source_and_opens_destination(self, columns, make_tasks):
        source, destination = columns[0], columns[1]
        moving = make_tasks(source, 'A', 'B', 'C')[1]
        make_tasks(destination, 'X', 'Y')

        with atomic():
            change = TASKS_IN_COLUMN.move_across_parent(moving.id, source.id, destination.id, 1)

        assert titles_in(source.id) == ['A', 'C']
        assert titles_in(destination.id) == ['X', 'B', 'Y']
        assert positions_in(TASKS_IN_COLUMN, source.id) == [0, 1]
        assert positions_in(TASKS_IN_COLUMN, destination.id) == [0, 1, 2]
        assert change.from_scope == source.id and change.to_scope == destination.id

    def test_destination_position_may_equal_its_count(self, columns, make_tasks):
        moving = make_tasks(columns[0], 'A')[0]
        make_tasks(columns[1], 'X')

        with atomic():
            TASKS_IN_COLUMN.move_across_parent(moving.id, columns[0].id, columns[1].id, 1)

        assert titles_in(columns[1].id) == ['X', 'A']

    def test_destination_position_past_the_end_is_rejected(self, columns, make_tasks):
        moving = make_tasks(columns[0], 'A', 'B')[0]

        with pytest.raises(InvalidPositionError):
            with atomic():
                TASKS_IN_COLUMN.move_across_parent(moving.id, columns[0].id, columns[1].id, 1)

        assert titles_in(columns[0].id) == ['A', 'B']
        assert titles_in(columns[1].id) == []

    def test_same_parent_behaves_like_reorder(self, todo, abcd):
        with atomic():
            TASKS_IN_COLUMN.move_across_parent(abcd['D'], todo.id, todo.id, 0)
        assert titles_in(todo.id) == ['D', 'A', 'B', 'C']


class TestRepair:

    def test_renumber_fixes_gaps_and_keeps_order(self, todo, abcd):
        for title, position in (('A', 3), ('B', 7), ('C', 8), ('D', 20)):
            db.session.execute(update(Task).where(Task.id == abcd[title]).values(position=position))
        db.session.commit()

        with atomic():
            changed = TASKS_IN_COLUMN.renumber(todo.id)

        assert changed == 4
        assert titles_in(todo.id) == ['A', 'B', 'C', 'D']
        assert positions_in(TASKS_IN_COLUMN, todo.id) == [0, 1, 2, 3]

    def test_renumber_of_a_dense_scope_changes_nothing(self, todo, abcd):
        with atomic():
            assert TASKS_IN_COLUMN.renumber(todo.id) == 0

    def test_reorder_all_applies_a_permutation(self, todo, abcd):
        with atomic():
            changes = TASKS_IN_COLUMN.reorder_all(todo.id, [abcd['D'], abcd['A'], abcd['B'], abcd['C']])

        assert titles_in(todo.id) == ['D', 'A', 'B', 'C']
        assert len(changes) == 4

    @pytest.mark.parametrize('ids', [
        ['A', 'B', 'C'],
        ['A', 'B', 'C', 'C'],
        ['A', 'B', 'C', 'D', 'D'],
    ])
    def test_reorder_all_requires_every_item_once(self, todo, abcd, ids):
        with pytest.raises(InvalidPositionError):
            with atomic():
                TASKS_IN_COLUMN.reorder_all(todo.id, [abcd[t] for t in ids])
        assert titles_in(todo.id) == ['A', 'B', 'C', 'D']


def test_columns_use_the_same_protocol(board, columns):
    with atomic():
        COLUMNS_IN_BOARD.reorder_within_parent(columns[2].id, 0, board.id)

    assert _column_titles(board.id) == ['Done', 'To Do', 'In Progress']
    assert positions_in(COLUMNS_IN_BOARD, board.id) == [0, 1, 2]


def _column_titles(board_id):
    rows = db.session.execute(
        select(BoardColumn.title).where(BoardColumn.board_id == board_id).order_by(BoardColumn.position)
    )
    return [row.title for row in rows]
