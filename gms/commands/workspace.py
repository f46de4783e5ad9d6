"""Workspace management CLI commands."""

import click
from flask.cli import with_appcontext

from gms.auth import find_user_by_email
from gms.errors import GMSError, error_text
from gms.extensions import db
from gms.models import Workspace, WorkspaceRole
from gms.services.membership import list_members
from gms.services.workspace import create_workspace


@click.group('workspace')
def workspace_commands():
    """Workspace management commands."""
    pass


@workspace_commands.command('create')
@click.option('--name', required=True, help='Workspace name')
@click.option('--description', help='Workspace description')
@click.option('--admin-email', help='Existing user who becomes the first admin')
@click.option('--role', type=click.Choice([r.value for r in WorkspaceRole if r != WorkspaceRole.USER]),
              default=WorkspaceRole.ADMIN.value, show_default=True, help='Role granted to the admin user')
@with_appcontext
def create(name, description, admin_email, role):
    """Create a workspace, optionally with its first admin.

    Example:
        flask workspace create --name "Downtown Rooms" --admin-email owner@example.com
    """
    owner = None
    if admin_email:
        owner = find_user_by_email(admin_email)
        if owner is None:
            click.echo(click.style(f'Error: No user with email "{admin_email}"', fg='red'))
            return

    try:
        workspace = create_workspace(name, description, owner=owner, owner_role=WorkspaceRole(role))
    except GMSError as e:
        click.echo(click.style(f'Error: {error_text(e)}', fg='red'))
        return

    click.echo(click.style('Workspace created successfully!', fg='green'))
    click.echo(f'  ID: {workspace.id}')
    click.echo(f'  Name: {workspace.name}')
    if owner is not None:
        click.echo(f'  Admin: {owner.email} ({role})')


@workspace_commands.command('list')
@with_appcontext
def list_workspaces():
    """List all workspaces."""
    workspaces = db.session.query(Workspace).order_by(Workspace.id).all()
    if not workspaces:
        click.echo('No workspaces found.')
        return

    for workspace in workspaces:
        click.echo(f'{workspace.id:>4}  {workspace.name}  ({len(workspace.memberships)} members)')


@workspace_commands.command('members')
@click.option('--workspace-id', type=int, required=True, help='Workspace ID')
@with_appcontext
def members(workspace_id):
    """List the members of a workspace with their roles."""
    if db.session.get(Workspace, workspace_id) is None:
        click.echo(click.style(f'Error: Workspace {workspace_id} not found', fg='red'))
        return

    for membership in list_members(workspace_id):
        click.echo(f'{membership.user.email}  {membership.role.value}')
