import threading
from datetime import timedelta

import pytest

from conftest import add_member, build_app, headers, register
from gms.errors import BadRequest, Forbidden, NotFound
from gms.extensions import db
from gms.models import Invitation, User, WorkspaceRole
from gms.services import invitations
from gms.services.db import utcnow


def _invite(client, owner, email='new@example.com', role='ADMIN', token=None):
    return client.post(
        f"/api/workspaces/{owner['workspace_id']}/invite",
        json={'email': email, 'role': role},
        headers=headers(token or owner['token']),
    )


def _token_from(resp):
    return resp.get_json()['invitationUrl'].rsplit('/', 1)[1]


def test_invite_verify_accept(app, client, owner):
    resp = _invite(client, owner)
    assert resp.status_code == 201
    body = resp.get_json()
    assert body['message'] == 'Invitation sent'
    assert body['emailSent'] is True
    assert body['invitationUrl'].startswith('http://frontend.test/invitations/')
    assert 'token' not in body['invitation']
    token = _token_from(resp)

    outbox = app.extensions['gms_mailer'].outbox
    assert outbox[-1]['to'] == 'new@example.com'
    assert body['invitationUrl'] in outbox[-1]['body']

    verify = client.get(f'/api/workspaces/invitations/{token}')
    assert verify.status_code == 200
    assert verify.get_json() == {
        'email': 'new@example.com',
        'workspaceName': 'Default Workspace',
        'role': 'ADMIN',
    }

    accept = client.post(
        f'/api/workspaces/invitations/{token}/accept',
        json={'name': 'New Admin', 'password': 'hunter22'},
    )
    assert accept.status_code == 201
    session = accept.get_json()
    assert session['user']['email'] == 'new@example.com'
    assert [(w['id'], w['role']) for w in session['workspaces']] == [(owner['workspace_id'], 'ADMIN')]

    me = client.get('/api/auth/me', headers=headers(session['token']))
    assert me.status_code == 200

    login = client.post('/api/auth/login', json={'email': 'new@example.com', 'password': 'hunter22'})
    assert login.status_code == 200


def test_invitation_is_single_use(client, owner):
    token = _token_from(_invite(client, owner))
    first = client.post(f'/api/workspaces/invitations/{token}/accept', json={'name': 'A', 'password': 'hunter22'})
    assert first.status_code == 201

    again = client.post(f'/api/workspaces/invitations/{token}/accept', json={'name': 'B', 'password': 'hunter22'})
    assert again.status_code == 400
    assert again.get_json()['message'] == 'Invitation has already been used'

    assert client.get(f'/api/workspaces/invitations/{token}').status_code == 400


def test_simultaneous_accepts_claim_once(tmp_path, monkeypatch):
    monkeypatch.delenv('GMS_SKIP_BOOTSTRAP', raising=False)
    # Threads need a database shared across connections
    app = build_app(tmp_path, SQLALCHEMY_DATABASE_URI=f"sqlite:///{tmp_path / 'gms.db'}")
    with app.app_context():
        db.create_all()

    client = app.test_client()
    first = register(client, 'owner@example.com')
    owner = {'token': first['token'], 'workspace_id': first['workspaces'][0]['id']}
    token = _token_from(_invite(client, owner, email='race@example.com', role='USER'))

    attempts = 4
    barrier = threading.Barrier(attempts)
    results = []

    def accept(n):
        worker = app.test_client()
        barrier.wait()
        reply = worker.post(
            f'/api/workspaces/invitations/{token}/accept',
            json={'name': f'Racer {n}', 'password': 'hunter22'},
        )
        results.append((reply.status_code, reply.get_json().get('message')))

    threads = [threading.Thread(target=accept, args=(n,)) for n in range(attempts)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(status for status, _ in results) == [201, 400, 400, 400]
    assert all(message == 'Invitation has already been used' for status, message in results if status == 400)
    with app.app_context():
        assert User.query.filter_by(email='race@example.com').count() == 1
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def test_unknown_token(client):
    resp = client.get('/api/workspaces/invitations/does-not-exist')
    assert resp.status_code == 404
    assert resp.get_json()['message'] == 'Invalid or expired invitation'


def test_expired_invitation(app, client, owner):
    token = _token_from(_invite(client, owner))
    with app.app_context():
        invitation = invitations.get_by_token(token)
        invitation.expires_at = utcnow() - timedelta(minutes=1)
        db.session.commit()

    verify = client.get(f'/api/workspaces/invitations/{token}')
    assert verify.status_code == 400
    assert verify.get_json()['message'] == 'Invitation has expired'

    accept = client.post(f'/api/workspaces/invitations/{token}/accept', json={'name': 'Late', 'password': 'hunter22'})
    assert accept.status_code == 400
    with app.app_context():
        assert User.query.filter_by(email='new@example.com').first() is None


def test_accept_validates_new_account(client, owner):
    token = _token_from(_invite(client, owner))
    resp = client.post(f'/api/workspaces/invitations/{token}/accept', json={'name': 'Short', 'password': '123'})
    assert resp.status_code == 400
    assert 'password' in resp.get_json()['errors']

    # The failed attempt did not consume the token
    assert client.get(f'/api/workspaces/invitations/{token}').status_code == 200


def test_accept_conflicts_when_email_registered_meanwhile(client, owner):
    token = _token_from(_invite(client, owner))
    register(client, 'new@example.com')

    resp = client.post(f'/api/workspaces/invitations/{token}/accept', json={'name': 'Dup', 'password': 'hunter22'})
    assert resp.status_code == 409
    assert client.get(f'/api/workspaces/invitations/{token}').status_code == 200


def test_inviting_an_existing_user_adds_them(app, client, owner):
    register(client, 'existing@example.com')
    resp = _invite(client, owner, email='Existing@Example.com', role='USER')

    assert resp.status_code == 201
    body = resp.get_json()
    assert body['message'] == 'User added to workspace'
    assert body['member']['email'] == 'existing@example.com'
    assert body['member']['role'] == 'USER'
    assert app.extensions['gms_mailer'].outbox[-1]['subject'] == "You've been added to Default Workspace"

    listed = client.get(f"/api/workspaces/{owner['workspace_id']}/invitations", headers=headers(owner['token']))
    assert listed.get_json() == []


def test_invite_role_is_capped_by_inviter(client, owner):
    admin = register(client, 'admin@example.com')
    add_member(client, owner['token'], owner['workspace_id'], 'admin@example.com', role='ADMIN')

    resp = _invite(client, owner, role='SUPER_ADMIN', token=admin['token'])
    assert resp.status_code == 403
    assert resp.get_json()['message'] == 'You cannot grant a role higher than your own'

    assert _invite(client, owner, role='ADMIN', token=admin['token']).status_code == 201


def test_invite_rejects_unknown_role(client, owner):
    resp = _invite(client, owner, role='OWNER')
    assert resp.status_code == 400
    assert 'role' in resp.get_json()['errors']


def test_list_and_revoke(client, owner):
    _invite(client, owner, email='one@example.com')
    token = _token_from(_invite(client, owner, email='two@example.com'))
    base = f"/api/workspaces/{owner['workspace_id']}/invitations"

    listed = client.get(base, headers=headers(owner['token'])).get_json()
    assert [i['email'] for i in listed] == ['two@example.com', 'one@example.com']
    assert all('token' not in i for i in listed)

    revoked = client.delete(f"{base}/{listed[0]['id']}", headers=headers(owner['token']))
    assert revoked.status_code == 200
    assert revoked.get_json()['used'] is True

    accept = client.post(f'/api/workspaces/invitations/{token}/accept', json={'name': 'Two', 'password': 'hunter22'})
    assert accept.status_code == 400

    assert [i['email'] for i in client.get(base, headers=headers(owner['token'])).get_json()] == ['one@example.com']
    everything = client.get(f'{base}?all=true', headers=headers(owner['token'])).get_json()
    assert len(everything) == 2

    again = client.delete(f"{base}/{listed[0]['id']}", headers=headers(owner['token']))
    assert again.status_code == 400
    assert client.delete(f'{base}/9999', headers=headers(owner['token'])).status_code == 404


def test_service_rejects_grants_above_inviter(seeded):
    with pytest.raises(Forbidden):
        invitations.invite(
            seeded['workspace'], seeded['admin'], WorkspaceRole.ADMIN,
            'boss@example.com', WorkspaceRole.SUPER_ADMIN,
        )
    assert Invitation.query.count() == 0


def test_service_accept_creates_user_and_membership(seeded):
    result = invitations.invite(
        seeded['workspace'], seeded['admin'], WorkspaceRole.ADMIN, 'guest@example.com',
    )
    assert result.kind == 'invited'
    assert len(result.invitation.token) == invitations.TOKEN_BYTES * 2

    user, token = invitations.accept(result.invitation.token, 'Guest', 'hunter22')
    assert token
    assert user.memberships[0].workspace_id == seeded['workspace'].id
    assert user.memberships[0].role == WorkspaceRole.USER
    assert user.check_password('hunter22')

    with pytest.raises(BadRequest):
        invitations.accept(result.invitation.token, 'Guest again', 'hunter22')
    with pytest.raises(NotFound):
        invitations.verify('missing')
