"""Workspace management service."""

from __future__ import annotations

from typing import TYPE_CHECKING

from flask import current_app

from gms.errors import NotFound, ValidationFailed
from gms.extensions import db
from gms.models import Game, Membership, Workspace, WorkspaceRole
from gms.services.db import atomic
from gms.services.membership import add_membership

if TYPE_CHECKING:
    from gms.models import User

NAME_MAX_LENGTH = 255


def validate_workspace_name(name: str | None) -> str:
    """Return the cleaned name or raise ``ValidationFailed``."""
    cleaned = (name or '').strip()
    if not cleaned:
        raise ValidationFailed({'name': ["Workspace name is required"]})
    if len(cleaned) > NAME_MAX_LENGTH:
        raise ValidationFailed({'name': [f"Workspace name must be {NAME_MAX_LENGTH} characters or less"]})
    return cleaned


def stage_workspace(
    name: str,
    description: str | None = None,
    owner: User | None = None,
    owner_role: WorkspaceRole = WorkspaceRole.ADMIN,
) -> Workspace:
    """Add a workspace (and its first member) to the open transaction."""
    workspace = Workspace(name=validate_workspace_name(name), description=description)
    db.session.add(workspace)
    db.session.flush()  # Get workspace.id

    if owner is not None:
        add_membership(owner.id, workspace.id, owner_role)
    return workspace


def create_workspace(
    name: str,
    description: str | None = None,
    owner: User | None = None,
    owner_role: WorkspaceRole = WorkspaceRole.ADMIN,
) -> Workspace:
    """
    Create a workspace; the creator becomes its first admin.

    Args:
        name: Workspace name
        description: Optional description
        owner: User creating the workspace
        owner_role: Role granted to the owner

    Returns:
        The committed workspace
    """
    with atomic():
        workspace = stage_workspace(name, description, owner=owner, owner_role=owner_role)

    current_app.logger.info(
        f"Workspace {workspace.id} created by user {owner.id if owner else None}"
    )
    return workspace


def get_workspace(workspace_id: int) -> Workspace:
    workspace = db.session.get(Workspace, workspace_id)
    if workspace is None:
        raise NotFound("Workspace not found")
    return workspace


def update_workspace(workspace: Workspace, name: str | None = None, description: str | None = None,
                     description_provided: bool = False) -> Workspace:
    """Update the name and/or description; an explicit null clears the description."""
    with atomic():
        if name is not None:
            workspace.name = validate_workspace_name(name)
        if description_provided:
            workspace.description = description
    return workspace


def list_user_workspaces(user_id: int) -> list[tuple[Workspace, Membership]]:
    rows = (
        db.session.query(Workspace, Membership)
        .join(Membership, Membership.workspace_id == Workspace.id)
        .filter(Membership.user_id == user_id)
        .order_by(Workspace.id)
        .all()
    )
    return [(workspace, membership) for workspace, membership in rows]


def list_workspace_games(workspace_id: int) -> list[Game]:
    return Game.query.filter_by(workspace_id=workspace_id).order_by(Game.id).all()


__all__ = [
    'validate_workspace_name',
    'stage_workspace',
    'create_workspace',
    'get_workspace',
    'update_workspace',
    'list_user_workspaces',
    'list_workspace_games',
]
