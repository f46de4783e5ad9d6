"""Invitation CLI commands."""

import click
from flask.cli import with_appcontext

from gms.services.db import as_utc
from gms.services.invitations import list_invitations


@click.group('invitation')
def invitation_commands():
    """Invitation commands."""
    pass


@invitation_commands.command('list')
@click.option('--workspace-id', type=int, required=True, help='Workspace ID')
@click.option('--all', 'include_inactive', is_flag=True, help='Include used and expired invitations')
@with_appcontext
def list_workspace_invitations(workspace_id, include_inactive):
    """List invitations of a workspace."""
    invitations = list_invitations(workspace_id, include_inactive=include_inactive)
    if not invitations:
        click.echo('No invitations found.')
        return

    for invitation in invitations:
        state = 'used' if invitation.used else 'pending'
        expires = as_utc(invitation.expires_at).strftime('%Y-%m-%d %H:%M UTC')
        click.echo(f'{invitation.id:>4}  {invitation.email}  {invitation.role.value}  {state}  expires {expires}')
