from datetime import datetime, timedelta, timezone

import jwt

from conftest import headers, register


def test_first_user_gets_default_workspace_as_super_admin(client):
    data = register(client, 'first@example.com')

    assert data['token']
    assert data['user']['email'] == 'first@example.com'
    assert len(data['workspaces']) == 1
    assert data['workspaces'][0]['name'] == 'Default Workspace'
    assert data['workspaces'][0]['role'] == 'SUPER_ADMIN'


def test_later_users_start_without_workspaces(client, owner):
    data = register(client, 'second@example.com')
    assert data['workspaces'] == []


def test_register_normalizes_email_and_rejects_duplicates(client, owner):
    register(client, 'Mixed.Case@Example.com')

    resp = client.post('/api/auth/register', json={
        'email': 'mixed.case@example.com',
        'password': 'another-pass',
        'name': 'Copy',
    })
    assert resp.status_code == 409
    assert resp.get_json()['error'] == 'Conflict'


def test_register_validates_fields(client):
    resp = client.post('/api/auth/register', json={'email': 'not-an-email', 'password': '123', 'name': ''})

    assert resp.status_code == 400
    body = resp.get_json()
    assert body['error'] == 'BadRequest'
    assert set(body['errors']) >= {'email', 'password', 'name'}


def test_register_rejects_non_object_body(client):
    resp = client.post('/api/auth/register', json=['a', 'b'])
    assert resp.status_code == 400


def test_login_and_me(client, owner):
    resp = client.post('/api/auth/login', json={'email': 'OWNER@example.com', 'password': 'secret123'})
    assert resp.status_code == 200
    token = resp.get_json()['token']

    me = client.get('/api/auth/me', headers=headers(token))
    assert me.status_code == 200
    body = me.get_json()
    assert body['user']['email'] == 'owner@example.com'
    assert [w['role'] for w in body['workspaces']] == ['SUPER_ADMIN']


def test_login_with_wrong_password_is_unauthenticated(client, owner):
    resp = client.post('/api/auth/login', json={'email': 'owner@example.com', 'password': 'wrong-pass'})
    assert resp.status_code == 401
    assert resp.get_json()['error'] == 'Unauthenticated'


def test_me_requires_a_token(client):
    resp = client.get('/api/auth/me')
    assert resp.status_code == 401
    assert resp.get_json()['error'] == 'Unauthenticated'


def test_malformed_and_foreign_tokens_are_rejected(client, owner):
    assert client.get('/api/auth/me', headers={'Authorization': 'Bearer garbage'}).status_code == 401
    assert client.get('/api/auth/me', headers={'Authorization': f"Token {owner['token']}"}).status_code == 401

    forged = jwt.encode(
        {'sub': str(owner['user_id']), 'exp': datetime.now(timezone.utc) + timedelta(hours=1)},
        'some-other-secret',
        algorithm='HS256',
    )
    assert client.get('/api/auth/me', headers=headers(forged)).status_code == 401


def test_expired_token_is_rejected(app, client, owner):
    expired = jwt.encode(
        {'sub': str(owner['user_id']), 'exp': datetime.now(timezone.utc) - timedelta(minutes=1)},
        app.config['JWT_SECRET_KEY'],
        algorithm='HS256',
    )
    assert client.get('/api/auth/me', headers=headers(expired)).status_code == 401


def test_token_for_missing_user_is_rejected(app, client, owner):
    stale = jwt.encode(
        {'sub': '9999', 'exp': datetime.now(timezone.utc) + timedelta(hours=1)},
        app.config['JWT_SECRET_KEY'],
        algorithm='HS256',
    )
    assert client.get('/api/auth/me', headers=headers(stale)).status_code == 401


def test_security_headers_are_set(client, owner):
    resp = client.get('/api/auth/me', headers=headers(owner['token']))
    assert resp.headers['X-Content-Type-Options'] == 'nosniff'
    assert resp.headers['X-Frame-Options'] == 'DENY'
    assert resp.headers['Cache-Control'] == 'no-store'
