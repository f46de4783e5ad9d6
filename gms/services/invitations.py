"""Invitation workflow.

An admin invites an email address into a workspace. Existing accounts are
added straight away; anyone else receives a single-use, time-limited token
that creates the account and the membership when accepted.

Expiry is evaluated lazily on verify and accept; nothing sweeps old rows.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app
from sqlalchemy import select, update

from gms.auth import find_user_by_email, issue_token, normalize_email
from gms.errors import BadRequest, Conflict, Forbidden, NotFound, ValidationFailed
from gms.extensions import db
from gms.models import Invitation, Membership, User, Workspace, WorkspaceRole
from gms.security import can_grant, parse_role
from gms.security.config import check_password_policy
from gms.services.audit import log_admin_action
from gms.services.db import as_utc, atomic, utcnow
from gms.services.email import send_added_to_workspace_email, send_invitation_email
from gms.services.membership import add_membership, create_membership

TOKEN_BYTES = 20


@dataclass
class InviteResult:
    """Outcome of ``invite``: either a membership or a pending invitation."""

    kind: str  # "added" or "invited"
    membership: Membership | None = None
    invitation: Invitation | None = None
    url: str | None = None
    email_sent: bool = False


def generate_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def invitation_url(token: str) -> str:
    base = current_app.config.get('FRONTEND_URL', '').rstrip('/')
    return f"{base}/invitations/{token}"


def invite(
    workspace: Workspace,
    inviter: User,
    inviter_role: WorkspaceRole,
    email: str,
    role: WorkspaceRole | str = WorkspaceRole.USER,
) -> InviteResult:
    """Invite ``email`` into ``workspace`` with ``role``.

    The inviter may only hand out roles up to their own.
    """
    role = parse_role(role)
    if not can_grant(inviter_role, role):
        raise Forbidden("You cannot grant a role higher than your own")

    email = normalize_email(email)
    existing = find_user_by_email(email)

    if existing is not None:
        membership = create_membership(existing.id, workspace.id, role)
        log_admin_action(
            inviter, workspace.id, 'member_added', 'membership', membership.id,
            {'user_id': existing.id, 'role': role.value, 'via': 'invite'},
        )
        sent = send_added_to_workspace_email(existing.email, inviter.name, workspace.name)
        return InviteResult(kind='added', membership=membership, email_sent=sent)

    ttl_days = current_app.config.get('INVITATION_TTL_DAYS', 7)
    with atomic():
        invitation = Invitation(
            email=email,
            workspace_id=workspace.id,
            role=role,
            token=generate_token(),
            expires_at=utcnow() + timedelta(days=ttl_days),
            used=False,
            inviter_id=inviter.id,
        )
        db.session.add(invitation)

    url = invitation_url(invitation.token)
    current_app.logger.info(
        f"Invitation {invitation.id} created for workspace {workspace.id} by user {inviter.id}"
    )
    log_admin_action(
        inviter, workspace.id, 'invitation_created', 'invitation', invitation.id,
        {'email': email, 'role': role.value},
    )
    sent = send_invitation_email(email, inviter.name, workspace.name, url)
    return InviteResult(kind='invited', invitation=invitation, url=url, email_sent=sent)


def _check_usable(invitation: Invitation | None) -> Invitation:
    if invitation is None:
        raise NotFound("Invalid or expired invitation")
    if as_utc(invitation.expires_at) < utcnow():
        raise BadRequest("Invitation has expired")
    if invitation.used:
        raise BadRequest("Invitation has already been used")
    return invitation


def get_by_token(token: str) -> Invitation | None:
    if not token:
        return None
    return db.session.execute(
        select(Invitation).where(Invitation.token == token)
    ).scalar_one_or_none()


def verify(token: str) -> dict:
    """Describe a usable invitation without revealing the token again."""
    invitation = _check_usable(get_by_token(token))
    return {
        'email': invitation.email,
        'workspaceName': invitation.workspace.name,
        'role': invitation.role.value,
    }


def accept(token: str, name: str, password: str) -> tuple[User, str]:
    """Create the invited account and its membership, consuming the token.

    The claim is a conditional update on ``used``, so of two concurrent
    accepts exactly one sees a row count of 1; the loser's transaction is
    rolled back before any user row is written. The email check runs after
    the claim so a losing accept always reports the used invitation.
    """
    invitation = _check_usable(get_by_token(token))
    check_password_policy(password)
    display_name = (name or '').strip()
    if not display_name:
        raise ValidationFailed({'name': ["Name is required"]})

    invitation_id = invitation.id
    workspace_id = invitation.workspace_id
    role = invitation.role
    email = invitation.email

    with atomic():
        claimed = db.session.execute(
            update(Invitation)
            .where(Invitation.id == invitation_id, Invitation.used.is_(False))
            .values(used=True),
            execution_options={"synchronize_session": False},
        )
        if claimed.rowcount != 1:
            raise BadRequest("Invitation has already been used")
        if find_user_by_email(email) is not None:
            raise Conflict("User with this email already exists")

        user = User(email=email, name=display_name, role=WorkspaceRole.USER)
        user.set_password(password)
        db.session.add(user)
        db.session.flush()
        add_membership(user.id, workspace_id, role)

    current_app.logger.info(
        f"Invitation {invitation_id} accepted; user {user.id} joined workspace {workspace_id}"
    )
    log_admin_action(
        user, workspace_id, 'invitation_accepted', 'invitation', invitation_id,
        {'role': role.value},
    )
    return user, issue_token(user)


def list_invitations(workspace_id: int, include_inactive: bool = False) -> list[Invitation]:
    """Pending invitations of a workspace, newest first."""
    query = select(Invitation).where(Invitation.workspace_id == workspace_id)
    if not include_inactive:
        query = query.where(Invitation.used.is_(False), Invitation.expires_at > utcnow())
    return list(db.session.execute(query.order_by(Invitation.id.desc())).scalars())


def revoke(workspace_id: int, invitation_id: int, actor: User | None = None) -> Invitation:
    """Make a pending invitation permanently unusable."""
    with atomic():
        invitation = db.session.execute(
            select(Invitation).where(
                Invitation.id == invitation_id,
                Invitation.workspace_id == workspace_id,
            )
        ).scalar_one_or_none()
        if invitation is None:
            raise NotFound("Invitation not found")
        if invitation.used:
            raise BadRequest("Invitation has already been used")
        invitation.used = True

    log_admin_action(actor, workspace_id, 'invitation_revoked', 'invitation', invitation_id)
    return invitation


__all__ = [
    'InviteResult',
    'generate_token',
    'invitation_url',
    'invite',
    'get_by_token',
    'verify',
    'accept',
    'list_invitations',
    'revoke',
]
