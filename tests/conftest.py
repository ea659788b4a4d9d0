"""
Root pytest configuration and fixtures for unit and integration tests.
"""
import os
import sys
import uuid
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Test configuration
os.environ['FLASK_ENV'] = 'testing'
os.environ['SESSION_SECRET'] = 'test-secret-key-for-testing-only-0123456789'
os.environ.pop('REDIS_URL', None)

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'RUN_STARTUP_VALIDATION': False,
    'LOG_LEVEL': 'WARNING',
    'SQLITE_BEGIN_IMMEDIATE': False,
}


@pytest.fixture(scope='function')
def app():
    """A fresh app on an in-memory database for every test."""
    from app import create_app
    from models import db

    test_app = create_app(TEST_CONFIG)

    with test_app.app_context():
        db.create_all()
        yield test_app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create a test client for the Flask application."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    from models import db
    yield db.session
    db.session.rollback()


@pytest.fixture(scope='function')
def workspace(db_session):
    from models import Workspace

    unique_id = str(uuid.uuid4())[:8]
    name = f'Test Workspace {unique_id}'
    ws = Workspace(name=name, slug=Workspace.generate_slug(name))
    db_session.add(ws)
    db_session.commit()
    return ws


def _make_user(db_session, workspace, role='user'):
    from models import User

    unique_id = str(uuid.uuid4())[:8]
    user = User(
        username=f'{role}_{unique_id}',
        email=f'{role}_{unique_id}@example.com',
        role=role,
        workspace_id=workspace.id,
    )
    user.set_password('testpassword123')
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def test_user(db_session, workspace):
    return _make_user(db_session, workspace)


@pytest.fixture(scope='function')
def admin_user(db_session, workspace):
    return _make_user(db_session, workspace, role='admin')


def _login(client, user):
    with client.session_transaction() as sess:
        sess['_user_id'] = str(user.id)
        sess['_fresh'] = True
    return client


@pytest.fixture(scope='function')
def authenticated_client(client, test_user):
    """Test client logged in as a regular workspace member."""
    return _login(client, test_user)


@pytest.fixture(scope='function')
def admin_client(app, admin_user):
    return _login(app.test_client(), admin_user)


@pytest.fixture(scope='function')
def board(workspace):
    """Board 'Main' with columns To Do / In Progress / Done."""
    from services import board_service, column_service

    b = board_service.create_board(workspace.id, 'Main')
    for title in ('To Do', 'In Progress', 'Done'):
        column_service.create_column(workspace.id, b.id, title)
    return b


@pytest.fixture(scope='function')
def columns(board):
    from services import column_service
    return column_service.list_columns(board.workspace_id, board.id)


@pytest.fixture(scope='function')
def make_tasks(workspace):
    """Factory: make_tasks(column, 'A', 'B', ...) appends tasks and returns them in order."""
    from services import task_service

    def _make(column, *titles):
        return [
            task_service.create_task(workspace.id, {'title': title, 'columnId': column.id})
            for title in titles
        ]

    return _make


def titles_in(column_id):
    """Task titles of a column in position order."""
    from sqlalchemy import select
    from models import db, Task

    rows = db.session.execute(
        select(Task.title).where(Task.column_id == column_id).order_by(Task.position)
    )
    return [row.title for row in rows]


def positions_in(collection, parent_id):
    return [position for _, position in collection.positions(parent_id)]
