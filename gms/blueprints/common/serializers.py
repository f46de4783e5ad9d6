"""JSON representations of the API resources (camelCase keys)."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from gms.models import (
    AuditLog,
    Game,
    Hint,
    Invitation,
    Maintenance,
    Membership,
    Puzzle,
    PuzzleImage,
    Report,
    ReportImage,
    User,
    Workspace,
)
from gms.services.db import as_utc


def _iso(value: date | datetime | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    return value.isoformat()


def _enum(value) -> Any:
    return value.value if hasattr(value, 'value') else value


def _timestamps(obj) -> dict[str, Any]:
    return {
        'createdAt': _iso(obj.created_at),
        'updatedAt': _iso(obj.updated_at),
    }


def serialize_user(user: User) -> dict:
    return {
        'id': user.id,
        'email': user.email,
        'name': user.name,
        'role': _enum(user.role),
    }


def serialize_workspace(workspace: Workspace, role=None) -> dict:
    data = {
        'id': workspace.id,
        'name': workspace.name,
        'description': workspace.description,
        **_timestamps(workspace),
    }
    if role is not None:
        data['role'] = _enum(role)
    return data


def serialize_membership(membership: Membership) -> dict:
    return {
        'id': membership.user.id,
        'email': membership.user.email,
        'name': membership.user.name,
        'role': _enum(membership.role),
        'joinedAt': _iso(membership.created_at),
    }


def serialize_invitation(invitation: Invitation) -> dict:
    # The token is a bearer secret and is never echoed back
    return {
        'id': invitation.id,
        'email': invitation.email,
        'workspaceId': invitation.workspace_id,
        'role': _enum(invitation.role),
        'expiresAt': _iso(invitation.expires_at),
        'used': invitation.used,
        'invitedBy': invitation.inviter.name if invitation.inviter else None,
        'createdAt': _iso(invitation.created_at),
    }


def serialize_game(game: Game) -> dict:
    return {
        'id': game.id,
        'workspaceId': game.workspace_id,
        'name': game.name,
        'genre': game.genre,
        'releaseDate': _iso(game.release_date),
        'purchaseDate': _iso(game.purchase_date),
        'description': game.description,
        'imageUrl': game.image_url,
        **_timestamps(game),
    }


def serialize_game_summary(game: Game) -> dict:
    return {
        'id': game.id,
        'name': game.name,
        'genre': game.genre,
        'imageUrl': game.image_url,
    }


def serialize_puzzle_image(image: PuzzleImage) -> dict:
    return {
        'id': image.id,
        'puzzleId': image.puzzle_id,
        'imageUrl': image.image_url,
        'caption': image.caption,
        'isPrimary': image.is_primary,
        **_timestamps(image),
    }


def serialize_hint(hint: Hint) -> dict:
    return {
        'id': hint.id,
        'puzzleId': hint.puzzle_id,
        'content': hint.content,
        'isPremium': hint.is_premium,
        'isUsed': hint.is_used,
        **_timestamps(hint),
    }


def serialize_maintenance(record: Maintenance) -> dict:
    return {
        'id': record.id,
        'puzzleId': record.puzzle_id,
        'description': record.description,
        'status': _enum(record.status),
        'fixDate': _iso(record.fix_date),
        **_timestamps(record),
    }


def serialize_puzzle(puzzle: Puzzle, detail: bool = False) -> dict:
    data = {
        'id': puzzle.id,
        'gameId': puzzle.game_id,
        'title': puzzle.title,
        'description': puzzle.description,
        'status': _enum(puzzle.status),
        'difficulty': puzzle.difficulty,
        'imageUrl': puzzle.image_url,
        **_timestamps(puzzle),
    }
    if detail:
        data['game'] = serialize_game_summary(puzzle.game)
        data['hints'] = [serialize_hint(h) for h in puzzle.hints]
        data['maintenance'] = [serialize_maintenance(m) for m in puzzle.maintenance]
        data['images'] = [
            serialize_puzzle_image(i) for i in sorted(puzzle.images, key=lambda i: (not i.is_primary, i.id))
        ]
    return data


def serialize_report_image(image: ReportImage) -> dict:
    return {
        'id': image.id,
        'reportId': image.report_id,
        'imageUrl': image.image_url,
    }


def serialize_report(report: Report) -> dict:
    return {
        'id': report.id,
        'gameId': report.game_id,
        'puzzleId': report.puzzle_id,
        'title': report.title,
        'description': report.description,
        'reportDate': _iso(report.report_date),
        'status': _enum(report.status),
        'priority': _enum(report.priority),
        'resolution': report.resolution,
        'resolvedAt': _iso(report.resolved_at),
        'game': {'name': report.game.name, 'workspaceId': report.game.workspace_id},
        'puzzle': {'title': report.puzzle.title} if report.puzzle else None,
        'images': [serialize_report_image(i) for i in report.images],
        **_timestamps(report),
    }


def serialize_audit_entry(entry: AuditLog) -> dict:
    return {
        'id': entry.id,
        'action': entry.action,
        'entityType': entry.entity_type,
        'entityId': entry.entity_id,
        'userId': entry.user_id,
        'metadata': entry.meta or {},
        'createdAt': _iso(entry.created_at),
    }


__all__ = [
    'serialize_user',
    'serialize_workspace',
    'serialize_membership',
    'serialize_invitation',
    'serialize_game',
    'serialize_game_summary',
    'serialize_puzzle',
    'serialize_hint',
    'serialize_maintenance',
    'serialize_puzzle_image',
    'serialize_report',
    'serialize_report_image',
    'serialize_audit_entry',
]
