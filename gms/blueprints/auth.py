"""Authentication blueprint: registration, login and the current identity."""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from gms.auth import authenticate, issue_token, register_user
from gms.blueprints.common.serializers import serialize_user, serialize_workspace
from gms.extensions import limiter
from gms.forms import bind_json
from gms.forms.auth import LoginForm, RegisterForm
from gms.models import User
from gms.security.config import auth_rate_limit
from gms.services.workspace import list_user_workspaces

auth_bp = Blueprint("auth", __name__)


def workspaces_of(user: User) -> list[dict]:
    return [
        serialize_workspace(workspace, membership.role)
        for workspace, membership in list_user_workspaces(user.id)
    ]


def session_payload(user: User, token: str) -> dict:
    return {
        'user': serialize_user(user),
        'token': token,
        'workspaces': workspaces_of(user),
    }


@auth_bp.route("/register", methods=["POST"])
@limiter.limit(auth_rate_limit)
def register():
    form, _ = bind_json(RegisterForm)
    user = register_user(form.email.data, form.password.data, form.name.data)
    return jsonify(session_payload(user, issue_token(user))), 201


@auth_bp.route("/login", methods=["POST"])
@limiter.limit(auth_rate_limit)
def login():
    form, _ = bind_json(LoginForm)
    user = authenticate(form.email.data, form.password.data)
    return jsonify(session_payload(user, issue_token(user)))


@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    return jsonify({
        'user': serialize_user(current_user),
        'workspaces': workspaces_of(current_user),
    })
