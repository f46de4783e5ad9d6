"""Workspace, membership and invitation endpoints."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from gms.auth import find_user_by_email
from gms.blueprints.auth import session_payload
from gms.blueprints.common.serializers import (
    serialize_audit_entry,
    serialize_game_summary,
    serialize_invitation,
    serialize_membership,
    serialize_workspace,
)
from gms.blueprints.common.tenant import current_workspace, workspace_required
from gms.errors import Forbidden, NotFound
from gms.extensions import limiter
from gms.forms import bind_json, collect_changes
from gms.forms.auth import AcceptInvitationForm
from gms.forms.workspace import MemberForm, RoleForm, WorkspaceForm, WorkspaceUpdateForm
from gms.models import WorkspaceRole
from gms.security import can_grant, parse_role
from gms.security.config import get_user_id, invitation_rate_limit
from gms.services import invitations
from gms.services.audit import list_audit_entries, log_admin_action
from gms.services.email import send_added_to_workspace_email
from gms.services.membership import (
    change_role,
    create_membership,
    get_membership,
    list_members,
    remove_membership,
)
from gms.services.workspace import (
    create_workspace,
    get_workspace,
    list_user_workspaces,
    list_workspace_games,
    update_workspace,
)

workspaces_bp = Blueprint("workspaces", __name__)


def _require_grantable(role: WorkspaceRole) -> None:
    if not can_grant(current_workspace().role, role):
        raise Forbidden("You cannot grant a role higher than your own")


@workspaces_bp.route("", methods=["GET"])
@login_required
def list_workspaces():
    return jsonify([
        serialize_workspace(workspace, membership.role)
        for workspace, membership in list_user_workspaces(current_user.id)
    ])


@workspaces_bp.route("", methods=["POST"])
@login_required
def create():
    form, _ = bind_json(WorkspaceForm)
    workspace = create_workspace(form.name.data, form.description.data or None, owner=current_user)
    return jsonify(serialize_workspace(workspace, WorkspaceRole.ADMIN)), 201


@workspaces_bp.route("/<int:workspace_id>", methods=["GET"])
@login_required
@workspace_required()
def detail(workspace_id: int):
    workspace = get_workspace(workspace_id)
    data = serialize_workspace(workspace, current_workspace().role)
    data['games'] = [serialize_game_summary(game) for game in list_workspace_games(workspace_id)]
    return jsonify(data)


@workspaces_bp.route("/<int:workspace_id>", methods=["PUT"])
@login_required
@workspace_required(WorkspaceRole.ADMIN)
def update(workspace_id: int):
    form, present = bind_json(WorkspaceUpdateForm)
    changes = collect_changes(form, present, required={'name'})
    workspace = update_workspace(
        get_workspace(workspace_id),
        name=changes.get('name'),
        description=changes.get('description') or None,
        description_provided='description' in changes,
    )
    return jsonify(serialize_workspace(workspace, current_workspace().role))


@workspaces_bp.route("/<int:workspace_id>/users", methods=["GET"])
@login_required
@workspace_required()
def members(workspace_id: int):
    return jsonify([serialize_membership(m) for m in list_members(workspace_id)])


@workspaces_bp.route("/<int:workspace_id>/users", methods=["POST"])
@login_required
@workspace_required(WorkspaceRole.ADMIN)
def add_member(workspace_id: int):
    form, _ = bind_json(MemberForm)
    role = parse_role(form.role.data or WorkspaceRole.USER)
    _require_grantable(role)

    user = find_user_by_email(form.email.data)
    if user is None:
        raise NotFound("User not found")

    workspace = get_workspace(workspace_id)
    membership = create_membership(user.id, workspace_id, role)
    log_admin_action(
        current_user, workspace_id, 'member_added', 'membership', membership.id,
        {'user_id': user.id, 'role': role.value},
    )
    send_added_to_workspace_email(user.email, current_user.name, workspace.name)
    return jsonify(serialize_membership(membership)), 201


@workspaces_bp.route("/<int:workspace_id>/users/<int:user_id>", methods=["PUT"])
@login_required
@workspace_required(WorkspaceRole.ADMIN)
def update_member_role(workspace_id: int, user_id: int):
    form, _ = bind_json(RoleForm)
    role = parse_role(form.role.data)

    target = get_membership(user_id, workspace_id)
    if target is None:
        raise NotFound("Membership not found")
    # Neither the new role nor the member's current one may outrank the caller
    _require_grantable(role)
    _require_grantable(target.role)

    previous = target.role
    membership = change_role(user_id, workspace_id, role)
    log_admin_action(
        current_user, workspace_id, 'member_role_changed', 'membership', membership.id,
        {'user_id': user_id, 'from': previous.value, 'to': role.value},
    )
    return jsonify(serialize_membership(membership))


@workspaces_bp.route("/<int:workspace_id>/users/<int:user_id>", methods=["DELETE"])
@login_required
@workspace_required(WorkspaceRole.ADMIN)
def remove_member(workspace_id: int, user_id: int):
    target = get_membership(user_id, workspace_id)
    if target is None:
        raise NotFound("Membership not found")
    _require_grantable(target.role)

    remove_membership(user_id, workspace_id)
    log_admin_action(
        current_user, workspace_id, 'member_removed', 'membership', None,
        {'user_id': user_id},
    )
    return jsonify({'message': 'User removed from workspace'})


@workspaces_bp.route("/<int:workspace_id>/invite", methods=["POST"])
@login_required
@workspace_required(WorkspaceRole.ADMIN)
@limiter.limit(invitation_rate_limit, key_func=get_user_id)
def invite(workspace_id: int):
    form, _ = bind_json(MemberForm)
    result = invitations.invite(
        get_workspace(workspace_id),
        current_user,
        current_workspace().role,
        form.email.data,
        form.role.data or WorkspaceRole.USER,
    )

    if result.kind == 'added':
        return jsonify({
            'message': 'User added to workspace',
            'member': serialize_membership(result.membership),
            'emailSent': result.email_sent,
        }), 201

    return jsonify({
        'message': 'Invitation sent',
        'invitation': serialize_invitation(result.invitation),
        'invitationUrl': result.url,
        'emailSent': result.email_sent,
    }), 201


@workspaces_bp.route("/<int:workspace_id>/invitations", methods=["GET"])
@login_required
@workspace_required(WorkspaceRole.ADMIN)
def list_workspace_invitations(workspace_id: int):
    include_inactive = request.args.get('all', '').lower() in ('1', 'true', 'yes')
    return jsonify([
        serialize_invitation(invitation)
        for invitation in invitations.list_invitations(workspace_id, include_inactive)
    ])


@workspaces_bp.route("/<int:workspace_id>/invitations/<int:invitation_id>", methods=["DELETE"])
@login_required
@workspace_required(WorkspaceRole.ADMIN)
def revoke_invitation(workspace_id: int, invitation_id: int):
    invitation = invitations.revoke(workspace_id, invitation_id, actor=current_user)
    return jsonify(serialize_invitation(invitation))


@workspaces_bp.route("/<int:workspace_id>/audit", methods=["GET"])
@login_required
@workspace_required(WorkspaceRole.ADMIN)
def audit_log(workspace_id: int):
    limit = min(request.args.get('limit', 50, type=int) or 50, 200)
    return jsonify([serialize_audit_entry(e) for e in list_audit_entries(workspace_id, limit)])


@workspaces_bp.route("/invitations/<token>", methods=["GET"])
@limiter.limit(invitation_rate_limit)
def verify_invitation(token: str):
    return jsonify(invitations.verify(token))


@workspaces_bp.route("/invitations/<token>/accept", methods=["POST"])
@limiter.limit(invitation_rate_limit)
def accept_invitation(token: str):
    form, _ = bind_json(AcceptInvitationForm)
    user, jwt_token = invitations.accept(token, form.name.data, form.password.data)
    return jsonify(session_payload(user, jwt_token)), 201
