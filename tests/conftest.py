import pytest

from gms import create_app
from gms.config import Config
from gms.extensions import db
from gms.models import Game, Membership, Puzzle, User, Workspace, WorkspaceRole

PASSWORD = 'secret123'


def build_app(tmp_path, **overrides):
    class TestConfig(Config):
        TESTING = True
        SECRET_KEY = 'test-secret-key'
        JWT_SECRET_KEY = 'test-jwt-secret'
        SQLALCHEMY_DATABASE_URI = 'sqlite://'
        RATELIMIT_ENABLED = False
        EMAIL_ENABLED = False
        FRONTEND_URL = 'http://frontend.test'
        UPLOAD_FOLDER = str(tmp_path / 'uploads')
        MAX_UPLOAD_SIZE = 1024

    for name, value in overrides.items():
        setattr(TestConfig, name, value)
    return create_app(TestConfig)


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.delenv('GMS_SKIP_BOOTSTRAP', raising=False)
    app = build_app(tmp_path)

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def ctx(app):
    """Application context for tests that call the services directly."""
    with app.app_context():
        yield
        db.session.remove()


def headers(token, workspace_id=None):
    result = {'Authorization': f'Bearer {token}'}
    if workspace_id is not None:
        result['X-Workspace-ID'] = str(workspace_id)
    return result


def register(client, email, name=None, password=PASSWORD):
    resp = client.post('/api/auth/register', json={
        'email': email,
        'password': password,
        'name': name or email.split('@')[0].title(),
    })
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def create_workspace(client, token, name='Second Site'):
    resp = client.post('/api/workspaces', json={'name': name}, headers=headers(token))
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()['id']


def add_member(client, token, workspace_id, email, role='USER'):
    resp = client.post(
        f'/api/workspaces/{workspace_id}/users',
        json={'email': email, 'role': role},
        headers=headers(token),
    )
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def create_game(client, token, workspace_id, name='Escape the Lab', genre='Sci-Fi'):
    resp = client.post(
        '/api/games',
        json={'name': name, 'genre': genre},
        headers=headers(token, workspace_id),
    )
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def create_puzzle(client, token, game_id, title='Keypad'):
    resp = client.post(
        '/api/puzzles',
        json={'gameId': game_id, 'title': title, 'difficulty': 3},
        headers=headers(token),
    )
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


@pytest.fixture()
def owner(client):
    """First registered user: SUPER_ADMIN of the default workspace."""
    data = register(client, 'owner@example.com', name='Olivia Owner')
    return {
        'token': data['token'],
        'user_id': data['user']['id'],
        'workspace_id': data['workspaces'][0]['id'],
    }


@pytest.fixture()
def seeded(ctx):
    """A workspace with one admin, one game and one puzzle, built directly."""
    admin = User(email='admin@example.com', name='Admin', role=WorkspaceRole.USER)
    admin.set_password(PASSWORD)
    workspace = Workspace(name='Downtown')
    db.session.add_all([admin, workspace])
    db.session.flush()
    db.session.add(Membership(user_id=admin.id, workspace_id=workspace.id, role=WorkspaceRole.ADMIN))
    game = Game(workspace_id=workspace.id, name='Vault', genre='Heist')
    db.session.add(game)
    db.session.flush()
    puzzle = Puzzle(game_id=game.id, title='Safe dial')
    db.session.add(puzzle)
    db.session.commit()
    return {'admin': admin, 'workspace': workspace, 'game': game, 'puzzle': puzzle}
