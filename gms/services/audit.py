"""Audit logging for administrative workspace events."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from flask import current_app, has_request_context, request

from gms.extensions import db
from gms.models import AuditLog

if TYPE_CHECKING:
    from gms.models import User


def log_admin_action(
    user: User | None,
    workspace_id: int | None,
    action: str,
    entity_type: str,
    entity_id: Any = None,
    metadata: dict[str, Any] | None = None
) -> None:
    """
    Record an administrative action in its own short transaction.

    Args:
        user: User who performed the action (None for token-based flows)
        workspace_id: Workspace the action applies to
        action: Action performed (e.g., "member_added", "invitation_accepted")
        entity_type: Type of entity affected
        entity_id: ID of entity affected
        metadata: Additional metadata
    """
    try:
        meta = dict(metadata or {})
        if has_request_context():
            meta['ip_address'] = request.remote_addr

        audit_entry = AuditLog(
            workspace_id=workspace_id,
            user_id=user.id if user is not None else None,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            meta=meta
        )

        db.session.add(audit_entry)
        db.session.commit()

    except Exception as e:
        # Audit failures never fail the request
        db.session.rollback()
        current_app.logger.error(f"Failed to log admin action {action}: {e}")


def list_audit_entries(workspace_id: int, limit: int = 50) -> list[AuditLog]:
    return (
        AuditLog.query.filter_by(workspace_id=workspace_id)
        .order_by(AuditLog.id.desc())
        .limit(limit)
        .all()
    )


__all__ = ["log_admin_action", "list_audit_entries"]
