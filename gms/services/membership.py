"""Workspace membership store.

The ``(user_id, workspace_id) -> role`` mapping is the source of truth for
every access decision. Callers are expected to have authorized the caller
(ADMIN or stronger) before mutating memberships; this module only enforces
the store's own invariants.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from gms.errors import Conflict, InvariantViolation, NotFound
from gms.extensions import db
from gms.models import Membership, User, WorkspaceRole
from gms.security import ADMIN_ROLES, is_admin, parse_role
from gms.services.db import atomic, for_update

LAST_ADMIN_MESSAGE = "Cannot remove the last admin from a workspace"


def get_membership(user_id: int, workspace_id: int) -> Membership | None:
    """Keyed lookup on the composite unique constraint."""
    if user_id is None or workspace_id is None:
        return None
    return db.session.execute(
        select(Membership).where(
            Membership.user_id == user_id,
            Membership.workspace_id == workspace_id,
        )
    ).scalar_one_or_none()


def list_memberships(user_id: int) -> list[Membership]:
    return list(
        db.session.execute(
            select(Membership)
            .where(Membership.user_id == user_id)
            .order_by(Membership.workspace_id)
        ).scalars()
    )


def list_members(workspace_id: int) -> list[Membership]:
    return list(
        db.session.execute(
            select(Membership)
            .join(User, User.id == Membership.user_id)
            .where(Membership.workspace_id == workspace_id)
            .order_by(User.email)
        ).scalars()
    )


def add_membership(user_id: int, workspace_id: int, role: WorkspaceRole | str) -> Membership:
    """Stage a new membership on the current session without committing.

    Used where the membership must commit together with other rows
    (workspace creation, invitation acceptance).
    """
    if get_membership(user_id, workspace_id) is not None:
        raise Conflict("User is already a member of this workspace")
    membership = Membership(user_id=user_id, workspace_id=workspace_id, role=parse_role(role))
    db.session.add(membership)
    return membership


def create_membership(user_id: int, workspace_id: int, role: WorkspaceRole | str) -> Membership:
    try:
        with atomic():
            membership = add_membership(user_id, workspace_id, role)
            db.session.flush()
    except IntegrityError:
        # A concurrent request inserted the same pair between lookup and insert
        raise Conflict("User is already a member of this workspace") from None
    current_app.logger.info(
        f"Membership created user={user_id} workspace={workspace_id} role={membership.role.value}"
    )
    return membership


def _admin_count(workspace_id: int) -> int:
    # Lock every admin row so two concurrent removals cannot both see a count of 2
    rows = db.session.execute(
        for_update(
            select(Membership.id).where(
                Membership.workspace_id == workspace_id,
                Membership.role.in_(list(ADMIN_ROLES)),
            )
        )
    ).all()
    return len(rows)


def _locked_membership(user_id: int, workspace_id: int) -> Membership:
    membership = db.session.execute(
        for_update(
            select(Membership).where(
                Membership.user_id == user_id,
                Membership.workspace_id == workspace_id,
            )
        )
    ).scalar_one_or_none()
    if membership is None:
        raise NotFound("Membership not found")
    return membership


def change_role(user_id: int, workspace_id: int, new_role: WorkspaceRole | str) -> Membership:
    """Change a member's role; demoting the last admin is rejected."""
    role = parse_role(new_role)
    with atomic():
        membership = _locked_membership(user_id, workspace_id)
        if is_admin(membership.role) and not is_admin(role):
            if _admin_count(workspace_id) <= 1:
                raise InvariantViolation(LAST_ADMIN_MESSAGE)
        membership.role = role
    current_app.logger.info(
        f"Membership role changed user={user_id} workspace={workspace_id} role={role.value}"
    )
    return membership


def remove_membership(user_id: int, workspace_id: int) -> None:
    """Delete a membership unless it is the workspace's last admin."""
    with atomic():
        membership = _locked_membership(user_id, workspace_id)
        if is_admin(membership.role) and _admin_count(workspace_id) <= 1:
            raise InvariantViolation(LAST_ADMIN_MESSAGE)
        db.session.delete(membership)
    current_app.logger.info(f"Membership removed user={user_id} workspace={workspace_id}")


__all__ = [
    "get_membership",
    "list_memberships",
    "list_members",
    "add_membership",
    "create_membership",
    "change_role",
    "remove_membership",
]
