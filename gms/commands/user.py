"""User management CLI commands."""

import click
from flask.cli import with_appcontext

from gms.auth import find_user_by_email, register_user
from gms.errors import GMSError, error_text
from gms.extensions import db
from gms.models import Workspace, WorkspaceRole
from gms.security.config import check_password_policy
from gms.services.membership import create_membership


@click.group('user')
def user_commands():
    """User management commands."""
    pass


@user_commands.command('create')
@click.option('--email', required=True, help='User email')
@click.option('--password', required=True, help='User password')
@click.option('--name', required=True, help='Display name')
@click.option('--workspace-id', type=int, help='Add the user to this workspace')
@click.option('--role', type=click.Choice([r.value for r in WorkspaceRole]),
              default=WorkspaceRole.USER.value, show_default=True)
@with_appcontext
def create_user(email, password, name, workspace_id, role):
    """Create a user, optionally adding them to a workspace."""
    if workspace_id is not None and db.session.get(Workspace, workspace_id) is None:
        click.echo(click.style(f'Error: Workspace {workspace_id} not found', fg='red'))
        return

    try:
        check_password_policy(password)
        user = register_user(email, password, name)
        if workspace_id is not None:
            create_membership(user.id, workspace_id, role)
    except GMSError as e:
        click.echo(click.style(f'Error: {error_text(e)}', fg='red'))
        return

    click.echo(click.style('User created successfully!', fg='green'))
    click.echo(f'  Email: {user.email}')
    if workspace_id is not None:
        click.echo(f'  Workspace: {workspace_id} ({role})')


@user_commands.command('set-password')
@click.option('--email', required=True, help='User email')
@click.option('--password', required=True, help='New password')
@with_appcontext
def set_password(email, password):
    """Set or reset a user's password."""
    user = find_user_by_email(email)
    if not user:
        click.echo(click.style(f'Error: No user {email} found', fg='red'))
        return

    try:
        check_password_policy(password)
    except GMSError as e:
        click.echo(click.style(f'Error: {error_text(e)}', fg='red'))
        return

    user.set_password(password)
    db.session.commit()
    click.echo(click.style('Password updated.', fg='green'))
