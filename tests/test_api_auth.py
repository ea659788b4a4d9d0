"""
Test the JSON session login flow and API access control.
"""
import pytest


@pytest.fixture
def credentials(test_user):
    return {'email': test_user.email, 'password': 'testpassword123'}


def test_api_authentication(client, credentials, board):
    """Login, reach a protected endpoint, logout, and get locked out again."""
    assert client.get('/api/boards').status_code == 401

    resp = client.post('/api/auth/login', json=credentials)
    assert resp.status_code == 200
    assert resp.get_json()['user']['email'] == credentials['email']

    boards = client.get('/api/boards').get_json()['boards']
    assert [b['title'] for b in boards] == ['Main']

    assert client.post('/api/auth/logout').status_code == 200
    assert client.get('/api/boards').status_code == 401


def test_login_by_username(client, test_user):
    resp = client.post('/api/auth/login', json={'username': test_user.username, 'password': 'testpassword123'})
    assert resp.status_code == 200


def test_wrong_password(client, credentials):
    resp = client.post('/api/auth/login', json={**credentials, 'password': 'nope'})
    assert resp.status_code == 401
    assert resp.get_json()['success'] is False


def test_missing_fields(client):
    assert client.post('/api/auth/login', json={}).status_code == 400


def test_inactive_account(client, db_session, test_user, credentials):
    test_user.active = False
    db_session.commit()

    assert client.post('/api/auth/login', json=credentials).status_code == 403


def test_me(authenticated_client, test_user):
    data = authenticated_client.get('/api/auth/me').get_json()
    assert data['user']['id'] == test_user.id


def test_admin_routes_reject_members(authenticated_client):
    resp = authenticated_client.post('/api/tags', json={'tag': 'ops'})
    assert resp.status_code == 403


def test_admin_manages_tags(admin_client):
    created = admin_client.post('/api/tags', json={'tag': 'ops', 'color': '#000000'})
    assert created.status_code == 201
    tag_id = created.get_json()['tag']['id']

    assert [t['tag'] for t in admin_client.get('/api/tags').get_json()['tags']] == ['ops']
    assert admin_client.post('/api/tags', json={'tag': 'OPS'}).status_code == 400
    assert admin_client.delete(f'/api/tags/{tag_id}').status_code == 200
