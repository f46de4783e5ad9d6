"""Initial schema: users, workspaces, memberships, invitations and workspace content

Revision ID: gms_initial_001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


revision = 'gms_initial_001'
down_revision = None
branch_labels = None
depends_on = None

ROLES = ('USER', 'ADMIN', 'SUPER_ADMIN')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _enum(name, *values):
    return sa.Enum(*values, name=name, native_enum=False)


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('role', _enum('global_role', *ROLES), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_user_email', 'user', ['email'], unique=True)

    op.create_table(
        'workspace',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        *_timestamps(),
    )

    op.create_table(
        'membership',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='CASCADE'), nullable=False),
        sa.Column('workspace_id', sa.Integer(), sa.ForeignKey('workspace.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', _enum('workspace_role', *ROLES), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'workspace_id', name='uq_membership_user_workspace'),
    )
    op.create_index('ix_membership_user_id', 'membership', ['user_id'])
    op.create_index('ix_membership_workspace_id', 'membership', ['workspace_id'])

    op.create_table(
        'invitation',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('workspace_id', sa.Integer(), sa.ForeignKey('workspace.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', _enum('invitation_role', *ROLES), nullable=False),
        sa.Column('token', sa.String(64), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('used', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('inviter_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='SET NULL')),
        *_timestamps(),
    )
    op.create_index('ix_invitation_email', 'invitation', ['email'])
    op.create_index('ix_invitation_workspace_id', 'invitation', ['workspace_id'])
    op.create_index('ix_invitation_token', 'invitation', ['token'], unique=True)

    op.create_table(
        'game',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('workspace_id', sa.Integer(), sa.ForeignKey('workspace.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('genre', sa.String(128), nullable=False),
        sa.Column('release_date', sa.Date()),
        sa.Column('purchase_date', sa.Date()),
        sa.Column('description', sa.Text()),
        sa.Column('image_url', sa.String(512)),
        *_timestamps(),
    )
    op.create_index('ix_game_workspace_id', 'game', ['workspace_id'])

    op.create_table(
        'puzzle',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('game_id', sa.Integer(), sa.ForeignKey('game.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('status', _enum('puzzle_status', 'active', 'needs_attention', 'in_maintenance'), nullable=False),
        sa.Column('difficulty', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('image_url', sa.String(512)),
        *_timestamps(),
    )
    op.create_index('ix_puzzle_game_id', 'puzzle', ['game_id'])

    op.create_table(
        'hint',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('puzzle_id', sa.Integer(), sa.ForeignKey('puzzle.id', ondelete='CASCADE'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_premium', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_used', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index('ix_hint_puzzle_id', 'hint', ['puzzle_id'])

    op.create_table(
        'maintenance',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('puzzle_id', sa.Integer(), sa.ForeignKey('puzzle.id', ondelete='CASCADE'), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('status', _enum('maintenance_status', 'planned', 'in_progress', 'completed'), nullable=False),
        sa.Column('fix_date', sa.Date(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_maintenance_puzzle_id', 'maintenance', ['puzzle_id'])

    op.create_table(
        'report',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('game_id', sa.Integer(), sa.ForeignKey('game.id', ondelete='CASCADE'), nullable=False),
        sa.Column('puzzle_id', sa.Integer(), sa.ForeignKey('puzzle.id', ondelete='SET NULL')),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('report_date', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('status', _enum('report_status', 'open', 'in-progress', 'resolved'), nullable=False),
        sa.Column('priority', _enum('report_priority', 'low', 'medium', 'high'), nullable=False),
        sa.Column('resolution', sa.Text()),
        sa.Column('resolved_at', sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_index('ix_report_game_id', 'report', ['game_id'])
    op.create_index('ix_report_puzzle_id', 'report', ['puzzle_id'])

    op.create_table(
        'puzzle_image',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('puzzle_id', sa.Integer(), sa.ForeignKey('puzzle.id', ondelete='CASCADE'), nullable=False),
        sa.Column('image_url', sa.String(512), nullable=False),
        sa.Column('caption', sa.String(512)),
        sa.Column('is_primary', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index('ix_puzzle_image_puzzle_id', 'puzzle_image', ['puzzle_id'])

    op.create_table(
        'report_image',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('report_id', sa.Integer(), sa.ForeignKey('report.id', ondelete='CASCADE'), nullable=False),
        sa.Column('image_url', sa.String(512), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_report_image_report_id', 'report_image', ['report_id'])

    op.create_table(
        'audit_log',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('workspace_id', sa.Integer(), sa.ForeignKey('workspace.id', ondelete='CASCADE')),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='SET NULL')),
        sa.Column('action', sa.String(128), nullable=False),
        sa.Column('entity_type', sa.String(128), nullable=False),
        sa.Column('entity_id', sa.String(64)),
        sa.Column('meta', sa.JSON()),
        *_timestamps(),
    )
    op.create_index('ix_audit_log_workspace_id', 'audit_log', ['workspace_id'])
    op.create_index('ix_audit_log_user_id', 'audit_log', ['user_id'])


def downgrade():
    for table in (
        'audit_log', 'report_image', 'puzzle_image', 'report', 'maintenance',
        'hint', 'puzzle', 'game', 'invitation', 'membership', 'workspace', 'user',
    ):
        op.drop_table(table)
