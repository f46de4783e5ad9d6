"""Bearer-token identity.

Requests carry ``Authorization: Bearer <jwt>``. The token is verified on
every request by the Flask-Login ``request_loader``; nothing about the
session is stored server side. A token whose user no longer exists is
treated exactly like an invalid token.
"""

from __future__ import annotations

from datetime import timedelta

import jwt
from flask import current_app

from gms.errors import Conflict, Unauthenticated
from gms.extensions import db, login_manager
from gms.models import User, WorkspaceRole
from gms.services.db import atomic, utcnow

DEFAULT_WORKSPACE_NAME = "Default Workspace"


def issue_token(user: User) -> str:
    now = utcnow()
    payload = {
        'sub': str(user.id),
        'iat': now,
        'exp': now + timedelta(hours=current_app.config.get('JWT_EXPIRES_HOURS', 24)),
    }
    return jwt.encode(
        payload,
        current_app.config['JWT_SECRET_KEY'],
        algorithm=current_app.config.get('JWT_ALGORITHM', 'HS256'),
    )


def decode_token(token: str) -> int | None:
    """Return the user id carried by a valid token, else None."""
    try:
        payload = jwt.decode(
            token,
            current_app.config['JWT_SECRET_KEY'],
            algorithms=[current_app.config.get('JWT_ALGORITHM', 'HS256')],
            options={'require': ['sub', 'exp']},
        )
    except jwt.PyJWTError as e:
        current_app.logger.info(f"Rejected bearer token: {e.__class__.__name__}")
        return None
    try:
        return int(payload['sub'])
    except (TypeError, ValueError):
        return None


def resolve_identity(authorization: str | None) -> User | None:
    """Resolve an ``Authorization`` header value to a user."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    user_id = decode_token(token.strip())
    if user_id is None:
        return None
    return db.session.get(User, user_id)


def init_auth(app) -> None:
    login_manager.init_app(app)
    # Stateless: identity comes from the bearer token only
    login_manager.session_protection = None

    @login_manager.request_loader
    def load_user_from_request(req):
        return resolve_identity(req.headers.get('Authorization'))

    @login_manager.user_loader
    def load_user(user_id: str):
        # Cookie sessions are never created; the hook exists because
        # Flask-Login requires one.
        return None

    @login_manager.unauthorized_handler
    def handle_unauthorized():
        raise Unauthenticated()


def normalize_email(email: str) -> str:
    return (email or '').strip().lower()


def find_user_by_email(email: str) -> User | None:
    return User.query.filter_by(email=normalize_email(email)).first()


def register_user(email: str, password: str, name: str) -> User:
    """Create an account; the very first account gets the default workspace.

    The user, and for the first user the workspace plus its SUPER_ADMIN
    membership, commit together.
    """
    from gms.services.workspace import stage_workspace

    email = normalize_email(email)
    with atomic():
        if find_user_by_email(email) is not None:
            raise Conflict("User already exists")

        is_first_user = db.session.query(User.id).first() is None
        user = User(email=email, name=name.strip(), role=WorkspaceRole.USER)
        user.set_password(password)
        db.session.add(user)
        db.session.flush()

        if is_first_user:
            stage_workspace(
                DEFAULT_WORKSPACE_NAME,
                "Default workspace created automatically",
                owner=user,
                owner_role=WorkspaceRole.SUPER_ADMIN,
            )

    current_app.logger.info(f"Registered user {user.id} (first user: {is_first_user})")
    return user


def authenticate(email: str, password: str) -> User:
    user = find_user_by_email(email)
    if user is None or not user.check_password(password):
        raise Unauthenticated("Invalid credentials")
    return user


__all__ = [
    'DEFAULT_WORKSPACE_NAME',
    'issue_token',
    'decode_token',
    'resolve_identity',
    'init_auth',
    'normalize_email',
    'find_user_by_email',
    'register_user',
    'authenticate',
]
