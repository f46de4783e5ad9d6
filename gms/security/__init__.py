"""Workspace role hierarchy.

Roles form a total order ``USER < ADMIN < SUPER_ADMIN``. The same comparison
is used by the authorization guard, by the membership endpoints and by the
invitation workflow.
"""

from __future__ import annotations

from gms.errors import ValidationFailed
from gms.models import WorkspaceRole

ROLE_RANK: dict[WorkspaceRole, int] = {
    WorkspaceRole.USER: 1,
    WorkspaceRole.ADMIN: 2,
    WorkspaceRole.SUPER_ADMIN: 3,
}

ADMIN_ROLES = frozenset({WorkspaceRole.ADMIN, WorkspaceRole.SUPER_ADMIN})


def parse_role(value: WorkspaceRole | str | None, field: str = "role") -> WorkspaceRole:
    """Coerce a role name (case-insensitive) into a ``WorkspaceRole``."""
    if isinstance(value, WorkspaceRole):
        return value
    if value is None or not str(value).strip():
        raise ValidationFailed({field: ["Role is required"]})
    try:
        return WorkspaceRole(str(value).strip().upper())
    except ValueError:
        allowed = ", ".join(r.value for r in WorkspaceRole)
        raise ValidationFailed({field: [f"Role must be one of {allowed}"]}) from None


def rank(role: WorkspaceRole | str) -> int:
    return ROLE_RANK[parse_role(role)]


def satisfies(actual: WorkspaceRole | str, required: WorkspaceRole | str) -> bool:
    """True when ``actual`` is at least as strong as ``required``."""
    return rank(actual) >= rank(required)


def is_admin(role: WorkspaceRole | str) -> bool:
    return satisfies(role, WorkspaceRole.ADMIN)


def can_grant(granter: WorkspaceRole | str, role: WorkspaceRole | str) -> bool:
    """A member may hand out roles up to, and including, their own."""
    return is_admin(granter) and satisfies(granter, role)


__all__ = [
    "ROLE_RANK",
    "ADMIN_ROLES",
    "parse_role",
    "rank",
    "satisfies",
    "is_admin",
    "can_grant",
]
