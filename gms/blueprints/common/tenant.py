"""Workspace resolution and the authorization guard.

Every workspace-scoped request runs through the same sequence: identity
(Flask-Login), target workspace resolution, membership lookup and an
optional role check. The admitted ``WorkspaceContext`` is stored on ``g``.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable

from flask import current_app, g, jsonify, request
from flask_login import current_user
from sqlalchemy import event, inspect as sa_inspect

from gms.errors import BadRequest, Forbidden
from gms.extensions import db
from gms.models import Game, Hint, Maintenance, Puzzle, PuzzleImage, Report, ReportImage, WorkspaceRole
from gms.security import satisfies
from gms.services.membership import get_membership

WORKSPACE_HEADER = "X-Workspace-ID"

# Parent references that can never change once a row is persisted. The
# columns are mapped with active_history so the old value is always known.
IMMUTABLE_PARENTS: dict[type, str] = {
    Game: "workspace_id",
    Puzzle: "game_id",
    Hint: "puzzle_id",
    Maintenance: "puzzle_id",
    PuzzleImage: "puzzle_id",
    Report: "game_id",
    ReportImage: "report_id",
}


@dataclass(frozen=True)
class WorkspaceContext:
    workspace_id: int
    role: WorkspaceRole


def init_tenant(app) -> None:
    """Register workspace resolution hooks with the Flask app."""

    @app.before_request
    def _load_workspace_candidate() -> None:
        g.workspace = None
        g.header_workspace_id = coerce_id(request.headers.get(WORKSPACE_HEADER))


def coerce_id(value: Any) -> int | None:
    """Parse an untrusted id; anything that is not a positive integer is absent."""
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None


def _json_body() -> dict:
    if not request.is_json:
        return {}
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def resolve_workspace_id() -> int | None:
    """Determine the target workspace for this request.

    Order:
    1) ``workspace_id`` URL segment
    2) ``workspaceId`` query parameter
    3) ``workspaceId`` in the JSON body
    4) ``X-Workspace-ID`` header (the client's current workspace)
    """
    view_args = request.view_args or {}
    for candidate in (
        view_args.get("workspace_id"),
        request.args.get("workspaceId"),
        _json_body().get("workspaceId"),
    ):
        workspace_id = coerce_id(candidate)
        if workspace_id is not None:
            return workspace_id
    return getattr(g, "header_workspace_id", None)


def admit(workspace_id: int, role: WorkspaceRole) -> WorkspaceContext:
    context = WorkspaceContext(workspace_id=workspace_id, role=role)
    g.workspace = context
    return context


def check_workspace_access(
    workspace_id: int | None,
    required: WorkspaceRole = WorkspaceRole.USER,
) -> WorkspaceContext:
    """Membership and role check for an explicit workspace id."""
    if workspace_id is None:
        raise BadRequest("Workspace ID is required")

    membership = get_membership(current_user.id, workspace_id)
    if membership is None:
        current_app.logger.info(
            f"Access denied: user {current_user.id} is not a member of workspace {workspace_id}"
        )
        raise Forbidden()

    if not satisfies(membership.role, required):
        current_app.logger.info(
            f"Access denied: user {current_user.id} has role {membership.role.value} "
            f"in workspace {workspace_id}, {required.value} required"
        )
        raise Forbidden("Insufficient permissions")

    return admit(workspace_id, membership.role)


def workspace_required(
    role: WorkspaceRole = WorkspaceRole.USER,
    list_read: bool = False,
    empty: Callable[[], Any] = list,
):
    """Admit the request into its target workspace before running the view.

    ``list_read`` views degrade to ``empty()`` when no workspace can be
    resolved or the caller is not a member, so clients without workspace
    context see an empty collection instead of an error. Must be applied
    beneath ``login_required``.
    """

    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            workspace_id = resolve_workspace_id()

            if list_read:
                if workspace_id is None:
                    current_app.logger.info("No workspace resolved; returning empty result")
                    return jsonify(empty())
                if get_membership(current_user.id, workspace_id) is None:
                    current_app.logger.info(
                        f"User {current_user.id} has no access to workspace {workspace_id}; "
                        "returning empty result"
                    )
                    return jsonify(empty())

            check_workspace_access(workspace_id, role)
            return view(*args, **kwargs)

        return wrapped

    return decorator


def current_workspace() -> WorkspaceContext:
    context = getattr(g, "workspace", None)
    if context is None:
        raise RuntimeError("Workspace context has not been resolved")
    return context


@event.listens_for(db.session, "before_flush")
def _block_reparenting(session, flush_context, instances) -> None:
    """Refuse to move a persisted resource to a different parent."""

    for obj in session.dirty:
        attribute = IMMUTABLE_PARENTS.get(type(obj))
        if attribute is None:
            continue
        history = sa_inspect(obj).attrs[attribute].history
        if history.deleted and history.added and history.deleted[0] != history.added[0]:
            raise PermissionError(
                f"{type(obj).__name__}.{attribute} cannot be changed after creation"
            )


__all__ = [
    "WORKSPACE_HEADER",
    "WorkspaceContext",
    "init_tenant",
    "coerce_id",
    "resolve_workspace_id",
    "admit",
    "check_workspace_access",
    "workspace_required",
    "current_workspace",
]
