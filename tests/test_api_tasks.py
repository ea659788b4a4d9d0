"""
Tasks API tests: creation, drag-and-drop ordering, cross-board moves and
the task side collections.
"""
import pytest
from sqlalchemy import select, func

from conftest import titles_in
from models import db, Task, TaskComment, Attachment, TaskTag, TaskWatcher
from services import board_service, column_service, tag_service, task_service


@pytest.fixture
def todo(columns):
    return columns[0]


@pytest.fixture
def abcd(todo, make_tasks):
    return {t.title: t.id for t in make_tasks(todo, 'A', 'B', 'C', 'D')}


def task_exists(task_id):
    return db.session.execute(select(Task.id).where(Task.id == task_id)).first() is not None


class TestAuthentication:

    def test_requires_login(self, client, board):
        response = client.get(f'/api/tasks/by-board/{board.id}')
        assert response.status_code == 401
        assert response.get_json()['success'] is False

    def test_other_workspace_board_is_not_found(self, authenticated_client):
        response = authenticated_client.get('/api/tasks/by-board/not-a-board')
        assert response.status_code == 404


class TestCreateTask:

    def test_create_appends_with_ticket(self, authenticated_client, todo, abcd, test_user):
        response = authenticated_client.post('/api/tasks', json={'title': 'E', 'columnId': todo.id})

        assert response.status_code == 201
        data = response.get_json()['task']
        assert data['position'] == 4
        assert data['ticket'] == 'TASK-00005'
        assert data['requester_id'] == test_user.id
        assert titles_in(todo.id) == ['A', 'B', 'C', 'D', 'E']

    def test_add_at_top_shifts_the_column(self, authenticated_client, todo, make_tasks):
        make_tasks(todo, 'A', 'B', 'C')

        response = authenticated_client.post('/api/tasks/add-at-top', json={'title': 'E', 'columnId': todo.id})

        assert response.status_code == 201
        assert response.get_json()['task']['position'] == 0
        assert titles_in(todo.id) == ['E', 'A', 'B', 'C']

    def test_title_is_required(self, authenticated_client, todo):
        response = authenticated_client.post('/api/tasks', json={'columnId': todo.id})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'validation_error'

    def test_unknown_column_is_not_found(self, authenticated_client, board):
        response = authenticated_client.post('/api/tasks', json={'title': 'X', 'columnId': 'nope'})
        assert response.status_code == 404

    def test_fields_are_parsed(self, authenticated_client, todo, test_user):
        response = authenticated_client.post('/api/tasks', json={
            'title': 'Scoped',
            'columnId': todo.id,
            'description': 'details',
            'memberId': test_user.id,
            'dueDate': '2030-01-31',
            'effort': '2.5',
        })

        data = response.get_json()['task']
        assert data['member_id'] == test_user.id
        assert data['due_date'] == '2030-01-31'
        assert data['effort'] == 2.5

    @pytest.mark.parametrize('effort', ['nan', 'inf', '-Infinity'])
    def test_non_finite_effort_is_rejected(self, authenticated_client, todo, effort):
        response = authenticated_client.post('/api/tasks', json={
            'title': 'X', 'columnId': todo.id, 'effort': effort,
        })
        assert response.status_code == 400
        assert titles_in(todo.id) == []

    def test_invalid_date_is_rejected(self, authenticated_client, todo):
        response = authenticated_client.post('/api/tasks', json={
            'title': 'X', 'columnId': todo.id, 'startDate': '31/01/2030',
        })
        assert response.status_code == 400


class TestReorderEndpoint:

    def test_reorder_within_column(self, authenticated_client, todo, abcd):
        response = authenticated_client.post('/api/tasks/reorder', json={
            'taskId': abcd['C'], 'newPosition': 0, 'columnId': todo.id,
        })

        assert response.status_code == 200
        change = response.get_json()['change']
        assert (change['from_position'], change['to_position']) == (2, 0)
        assert titles_in(todo.id) == ['C', 'A', 'B', 'D']

    def test_reorder_into_another_column(self, authenticated_client, columns, abcd):
        doing = columns[1]
        response = authenticated_client.post('/api/tasks/reorder', json={
            'taskId': abcd['B'], 'newPosition': 0, 'columnId': doing.id,
        })

        assert response.status_code == 200
        assert titles_in(columns[0].id) == ['A', 'C', 'D']
        assert titles_in(doing.id) == ['B']

    @pytest.mark.parametrize('new_position', [-1, 4, 100])
    def test_out_of_range_is_400(self, authenticated_client, todo, abcd, new_position):
        response = authenticated_client.post('/api/tasks/reorder', json={
            'taskId': abcd['A'], 'newPosition': new_position, 'columnId': todo.id,
        })

        assert response.status_code == 400
        assert response.get_json()['error'] == 'invalid_position'
        assert titles_in(todo.id) == ['A', 'B', 'C', 'D']

    @pytest.mark.parametrize('new_position', ['top', '--1', '\u00b2', '1.5', '', True])
    def test_non_integer_position_is_400(self, authenticated_client, todo, abcd, new_position):
        response = authenticated_client.post('/api/tasks/reorder', json={
            'taskId': abcd['A'], 'newPosition': new_position, 'columnId': todo.id,
        })
        assert response.status_code == 400
        assert response.get_json()['error'] == 'validation_error'
        assert titles_in(todo.id) == ['A', 'B', 'C', 'D']

    def test_numeric_string_position_is_accepted(self, authenticated_client, todo, abcd):
        response = authenticated_client.post('/api/tasks/reorder', json={
            'taskId': abcd['A'], 'newPosition': ' 2 ', 'columnId': todo.id,
        })
        assert response.status_code == 200
        assert titles_in(todo.id) == ['B', 'C', 'A', 'D']

    def test_missing_task_is_404(self, authenticated_client, todo, abcd):
        response = authenticated_client.post('/api/tasks/reorder', json={
            'taskId': 'missing', 'newPosition': 0, 'columnId': todo.id,
        })
        assert response.status_code == 404

    def test_stale_current_position_is_409(self, authenticated_client, todo, abcd):
        response = authenticated_client.post('/api/tasks/reorder', json={
            'taskId': abcd['C'], 'newPosition': 0, 'columnId': todo.id, 'currentPosition': 3,
        })

        assert response.status_code == 409
        assert response.get_json()['error'] == 'concurrency_conflict'
        assert titles_in(todo.id) == ['A', 'B', 'C', 'D']

    def test_stale_current_position_across_columns_is_409(self, authenticated_client, columns, abcd):
        response = authenticated_client.post('/api/tasks/reorder', json={
            'taskId': abcd['C'], 'newPosition': 0, 'columnId': columns[1].id, 'currentPosition': 0,
        })

        assert response.status_code == 409
        assert response.get_json()['error'] == 'concurrency_conflict'
        assert titles_in(columns[0].id) == ['A', 'B', 'C', 'D']
        assert titles_in(columns[1].id) == []

    def test_matching_current_position_across_columns_moves(self, authenticated_client, columns, abcd):
        response = authenticated_client.post('/api/tasks/reorder', json={
            'taskId': abcd['C'], 'newPosition': 0, 'columnId': columns[1].id, 'currentPosition': 2,
        })

        assert response.status_code == 200
        assert titles_in(columns[1].id) == ['C']

    def test_column_on_another_board_is_rejected(self, authenticated_client, workspace, abcd):
        other = board_service.create_board(workspace.id, 'Other')
        other_column = column_service.create_column(workspace.id, other.id, 'To Do')

        response = authenticated_client.post('/api/tasks/reorder', json={
            'taskId': abcd['A'], 'newPosition': 0, 'columnId': other_column.id,
        })
        assert response.status_code == 400


class TestUpdateAndDelete:

    def test_partial_update_touches_only_given_fields(self, authenticated_client, todo, abcd):
        response = authenticated_client.put(f"/api/tasks/{abcd['A']}", json={
            'description': 'new text', 'position': 3, 'board_id': 'ignored',
        })

        assert response.status_code == 200
        data = response.get_json()['task']
        assert data['description'] == 'new text'
        assert data['title'] == 'A'
        assert titles_in(todo.id) == ['A', 'B', 'C', 'D']

    def test_empty_update_is_400(self, authenticated_client, abcd):
        response = authenticated_client.put(f"/api/tasks/{abcd['A']}", json={'unknown': 1})
        assert response.status_code == 400

    def test_column_change_moves_to_top_of_destination(self, authenticated_client, columns, abcd, make_tasks):
        doing = columns[1]
        make_tasks(doing, 'X')

        response = authenticated_client.put(f"/api/tasks/{abcd['C']}", json={'columnId': doing.id})

        assert response.status_code == 200
        assert titles_in(columns[0].id) == ['A', 'B', 'D']
        assert titles_in(doing.id) == ['C', 'X']

    def test_delete_renumbers_the_column(self, authenticated_client, todo, abcd):
        response = authenticated_client.delete(f"/api/tasks/{abcd['B']}")

        assert response.status_code == 200
        assert titles_in(todo.id) == ['A', 'C', 'D']
        positions = db.session.execute(
            select(Task.position).where(Task.column_id == todo.id).order_by(Task.position)
        ).scalars().all()
        assert positions == [0, 1, 2]

    def test_delete_missing_task_is_404(self, authenticated_client, board):
        assert authenticated_client.delete('/api/tasks/missing').status_code == 404


class TestMoveToBoard:

    @pytest.fixture
    def target_board(self, workspace):
        other = board_service.create_board(workspace.id, 'Roadmap')
        for title in ('Backlog', 'To Do'):
            column_service.create_column(workspace.id, other.id, title)
        return other

    @pytest.fixture
    def rich_task(self, workspace, todo, abcd, test_user):
        task_id = abcd['B']
        tag = tag_service.create_tag(workspace.id, 'urgent')
        task_service.add_comment(workspace.id, task_id, 'first look', author_id=test_user.id,
                                 attachments=[{'name': 'shot.png', 'url': '/files/shot.png', 'size': 10}])
        task_service.add_attachment(workspace.id, task_id, {'name': 'notes.pdf', 'url': '/files/notes.pdf'})
        task_service.add_tag(workspace.id, task_id, tag.id)
        task_service.add_person(workspace.id, task_id, 'watchers', test_user.id)
        return task_id

    def test_move_carries_related_data_to_the_new_task(self, authenticated_client, workspace, board,
                                                       todo, target_board, rich_task, test_user):
        ticket = db.session.execute(select(Task.ticket).where(Task.id == rich_task)).scalar_one()

        response = authenticated_client.post('/api/tasks/move-to-board', json={
            'taskId': rich_task, 'targetBoardId': target_board.id,
        })

        assert response.status_code == 200
        data = response.get_json()
        new_id = data['newTaskId']
        assert new_id != rich_task
        assert data['targetBoardId'] == target_board.id

        # source is gone and its column is dense again
        assert not task_exists(rich_task)
        assert titles_in(todo.id) == ['A', 'C', 'D']

        db.session.expire_all()
        moved = task_service.get_task(workspace.id, new_id, with_relationships=True)
        assert moved.ticket == ticket
        assert moved.position == 0
        assert moved.pre_board_id == board.id
        assert moved.pre_column_id == todo.id
        assert [c.text for c in moved.comments] == ['first look']
        assert [a.name for a in moved.comments[0].attachments] == ['shot.png']
        assert [a.name for a in moved.attachments] == ['notes.pdf']
        assert len(moved.tag_ids) == 1
        assert [w.user_id for w in moved.watchers] == [test_user.id]

    def test_destination_column_matches_source_title(self, authenticated_client, target_board, rich_task):
        data = authenticated_client.post('/api/tasks/move-to-board', json={
            'taskId': rich_task, 'targetBoardId': target_board.id,
        }).get_json()

        title = db.session.execute(
            select(Task.title).where(Task.column_id == data['targetColumnId'])
        ).scalar_one()
        assert title == 'B'
        column_titles = [c.title for c in column_service.list_columns(target_board.workspace_id, target_board.id)]
        assert column_titles.index('To Do') == 1

    def test_orphans_are_not_left_behind(self, authenticated_client, target_board, rich_task):
        authenticated_client.post('/api/tasks/move-to-board', json={
            'taskId': rich_task, 'targetBoardId': target_board.id,
        })

        for model, column in ((TaskComment, TaskComment.task_id), (Attachment, Attachment.task_id),
                              (TaskTag, TaskTag.task_id), (TaskWatcher, TaskWatcher.task_id)):
            count = db.session.execute(
                select(func.count()).select_from(model).where(column == rich_task)
            ).scalar_one()
            assert count == 0, model.__name__

    def test_falls_back_to_first_column(self, authenticated_client, workspace, columns, make_tasks, target_board):
        task = make_tasks(columns[1], 'In flight')[0]

        data = authenticated_client.post('/api/tasks/move-to-board', json={
            'taskId': task.id, 'targetBoardId': target_board.id,
        }).get_json()

        backlog = column_service.list_columns(workspace.id, target_board.id)[0]
        assert data['targetColumnId'] == backlog.id

    def test_same_board_is_rejected(self, authenticated_client, board, abcd):
        response = authenticated_client.post('/api/tasks/move-to-board', json={
            'taskId': abcd['A'], 'targetBoardId': board.id,
        })
        assert response.status_code == 400

    def test_board_without_columns_is_404(self, authenticated_client, workspace, todo, abcd):
        empty = board_service.create_board(workspace.id, 'Empty')

        response = authenticated_client.post('/api/tasks/move-to-board', json={
            'taskId': abcd['A'], 'targetBoardId': empty.id,
        })

        assert response.status_code == 404
        assert task_exists(abcd['A'])
        assert titles_in(todo.id) == ['A', 'B', 'C', 'D']


class TestSideCollections:

    def test_comment_thread(self, authenticated_client, abcd):
        created = authenticated_client.post(f"/api/tasks/{abcd['A']}/comments", json={'text': 'hello'})
        assert created.status_code == 201
        comment_id = created.get_json()['comment']['id']

        listed = authenticated_client.get(f"/api/tasks/{abcd['A']}/comments").get_json()['comments']
        assert [c['text'] for c in listed] == ['hello']

        updated = authenticated_client.put(f'/api/comments/{comment_id}', json={'text': 'edited'})
        assert updated.get_json()['comment']['text'] == 'edited'

        assert authenticated_client.delete(f'/api/comments/{comment_id}').status_code == 200

    def test_only_author_or_admin_edits_comments(self, authenticated_client, workspace, admin_user, abcd):
        comment = task_service.add_comment(workspace.id, abcd['A'], 'admin note', author_id=admin_user.id)

        response = authenticated_client.put(f'/api/comments/{comment.id}', json={'text': 'hijack'})
        assert response.status_code == 403

    def test_empty_comment_is_rejected(self, authenticated_client, abcd):
        response = authenticated_client.post(f"/api/tasks/{abcd['A']}/comments", json={'text': '  '})
        assert response.status_code == 400

    def test_attachment_metadata(self, authenticated_client, abcd):
        created = authenticated_client.post(f"/api/tasks/{abcd['A']}/attachments", json={
            'name': 'plan.txt', 'url': '/files/plan.txt', 'type': 'text/plain', 'size': 12,
        })
        assert created.status_code == 201

        listed = authenticated_client.get(f"/api/tasks/{abcd['A']}/attachments").get_json()['attachments']
        assert [a['name'] for a in listed] == ['plan.txt']

    def test_attachment_requires_url(self, authenticated_client, abcd):
        response = authenticated_client.post(f"/api/tasks/{abcd['A']}/attachments", json={'name': 'x'})
        assert response.status_code == 400

    def test_tag_link_is_idempotent(self, authenticated_client, workspace, abcd):
        tag = tag_service.create_tag(workspace.id, 'backend')

        first = authenticated_client.post(f"/api/tasks/{abcd['A']}/tags/{tag.id}").get_json()
        second = authenticated_client.post(f"/api/tasks/{abcd['A']}/tags/{tag.id}").get_json()
        assert (first['added'], second['added']) == (True, False)

        assert authenticated_client.delete(f"/api/tasks/{abcd['A']}/tags/{tag.id}").status_code == 200
        assert authenticated_client.delete(f"/api/tasks/{abcd['A']}/tags/{tag.id}").status_code == 404

    def test_watchers_and_collaborators(self, authenticated_client, test_user, abcd):
        for relation in ('watchers', 'collaborators'):
            url = f"/api/tasks/{abcd['A']}/{relation}/{test_user.id}"
            assert authenticated_client.post(url).get_json()['added'] is True
            assert authenticated_client.delete(url).status_code == 200

        task = authenticated_client.get(f"/api/tasks/{abcd['A']}").get_json()['task']
        assert task['watchers'] == [] and task['collaborators'] == []

    def test_unknown_user_cannot_watch(self, authenticated_client, abcd):
        response = authenticated_client.post(f"/api/tasks/{abcd['A']}/watchers/99999")
        assert response.status_code == 400

    def test_list_by_board_orders_by_column_then_position(self, authenticated_client, board, columns, make_tasks):
        make_tasks(columns[1], 'Doing 1')
        make_tasks(columns[0], 'Todo 1', 'Todo 2')

        tasks = authenticated_client.get(f'/api/tasks/by-board/{board.id}').get_json()['tasks']
        assert [t['title'] for t in tasks] == ['Todo 1', 'Todo 2', 'Doing 1']
