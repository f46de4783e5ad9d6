"""CLI commands for GMS."""

from .invitation import invitation_commands
from .user import user_commands
from .worker import worker_command
from .workspace import workspace_commands


def register_commands(app):
    """Register all CLI command groups with the Flask app."""
    app.cli.add_command(workspace_commands)
    app.cli.add_command(user_commands)
    app.cli.add_command(invitation_commands)
    app.cli.add_command(worker_command)
