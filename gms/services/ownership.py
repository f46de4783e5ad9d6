"""Resource ownership graph.

Only games carry a workspace id. Every other resource reaches its workspace
through its parents::

    Workspace -> Game -> Puzzle -> {Hint, Maintenance, PuzzleImage}
                      -> Report -> ReportImage   (Report.puzzle_id is optional)

Single-resource operations are authorized by walking up to the workspace
and re-running the membership check. A resource that does not exist and a
resource in a workspace the caller cannot see both answer ``NotFound`` so
ids cannot be guessed across workspaces.
"""

from __future__ import annotations

from typing import TypeVar

from flask import current_app
from flask_login import current_user
from sqlalchemy import delete, select, update

from gms.blueprints.common.tenant import admit
from gms.errors import Forbidden, NotFound
from gms.extensions import db
from gms.models import (
    Game,
    Hint,
    Maintenance,
    Puzzle,
    PuzzleImage,
    Report,
    ReportImage,
    WorkspaceRole,
)
from gms.security import satisfies
from gms.services.db import atomic
from gms.services.membership import get_membership

Resource = TypeVar("Resource", Game, Puzzle, Hint, Maintenance, PuzzleImage, Report, ReportImage)

RESOURCE_LABELS = {
    Game: "Game",
    Puzzle: "Puzzle",
    Hint: "Hint",
    Maintenance: "Maintenance record",
    PuzzleImage: "Image",
    Report: "Report",
    ReportImage: "Image",
}


def workspace_id_of(resource) -> int:
    """Walk parent links up to the owning workspace."""
    if isinstance(resource, Game):
        return resource.workspace_id
    if isinstance(resource, Puzzle):
        return resource.game.workspace_id
    if isinstance(resource, (Hint, Maintenance, PuzzleImage)):
        return resource.puzzle.game.workspace_id
    if isinstance(resource, Report):
        return resource.game.workspace_id
    if isinstance(resource, ReportImage):
        return resource.report.game.workspace_id
    raise TypeError(f"{type(resource).__name__} is not a workspace-owned resource")


def authorize_resource(
    model: type[Resource],
    resource_id,
    role: WorkspaceRole = WorkspaceRole.USER,
) -> Resource:
    """Load a resource and admit the caller into its workspace.

    Raises ``NotFound`` when the resource is missing or belongs to a
    workspace the caller is not a member of, and ``Forbidden`` when the
    caller is a member without the required role.
    """
    label = RESOURCE_LABELS[model]
    try:
        key = int(resource_id)
    except (TypeError, ValueError):
        raise NotFound(f"{label} not found") from None

    resource = db.session.get(model, key)
    if resource is None:
        raise NotFound(f"{label} not found")

    workspace_id = workspace_id_of(resource)
    membership = get_membership(current_user.id, workspace_id)
    if membership is None:
        current_app.logger.info(
            f"Access denied: user {current_user.id} requested {model.__tablename__} {key} "
            f"in workspace {workspace_id}"
        )
        raise NotFound(f"{label} not found")

    if not satisfies(membership.role, role):
        raise Forbidden("Insufficient permissions")

    admit(workspace_id, membership.role)
    return resource


BLOB_REFERENCES = (Game, Puzzle, PuzzleImage, ReportImage)


def authorize_blob(url: str) -> None:
    """Refuse to touch an upload that a foreign workspace still references.

    Unreferenced uploads may be removed by any signed-in user. An upload used
    by a game, puzzle or image row answers ``NotFound`` unless the caller is a
    member of every workspace that uses it.
    """
    for model in BLOB_REFERENCES:
        rows = db.session.execute(select(model).where(model.image_url == url)).scalars()
        for row in rows:
            workspace_id = workspace_id_of(row)
            if get_membership(current_user.id, workspace_id) is None:
                current_app.logger.info(
                    f"Access denied: user {current_user.id} tried to remove {url} "
                    f"used in workspace {workspace_id}"
                )
                raise NotFound("File not found")


def workspace_query(model: type[Resource], workspace_id: int):
    """SELECT of every ``model`` row owned by ``workspace_id``, joined up the parent chain."""
    query = select(model)
    if model is Game:
        return query.where(Game.workspace_id == workspace_id)
    if model in (Puzzle, Report):
        query = query.join(Game, Game.id == model.game_id)
    elif model in (Hint, Maintenance, PuzzleImage):
        query = query.join(Puzzle, Puzzle.id == model.puzzle_id).join(Game, Game.id == Puzzle.game_id)
    elif model is ReportImage:
        query = query.join(Report, Report.id == ReportImage.report_id).join(Game, Game.id == Report.game_id)
    else:
        raise TypeError(f"{model.__name__} is not a workspace-owned resource")
    return query.where(Game.workspace_id == workspace_id)


def _puzzle_ids_of_game(game_id: int):
    return select(Puzzle.id).where(Puzzle.game_id == game_id)


def _report_ids_of_game(game_id: int):
    return select(Report.id).where(Report.game_id == game_id)


def _purge_puzzle_children(puzzle_ids) -> None:
    db.session.execute(
        delete(PuzzleImage).where(PuzzleImage.puzzle_id.in_(puzzle_ids)),
        execution_options={"synchronize_session": False},
    )
    db.session.execute(
        delete(Hint).where(Hint.puzzle_id.in_(puzzle_ids)),
        execution_options={"synchronize_session": False},
    )
    db.session.execute(
        delete(Maintenance).where(Maintenance.puzzle_id.in_(puzzle_ids)),
        execution_options={"synchronize_session": False},
    )


def delete_game(game: Game) -> None:
    """Delete a game and everything reachable through it, in one transaction."""
    game_id = game.id
    with atomic():
        db.session.execute(
            delete(ReportImage).where(ReportImage.report_id.in_(_report_ids_of_game(game_id))),
            execution_options={"synchronize_session": False},
        )
        db.session.execute(
            delete(Report).where(Report.game_id == game_id),
            execution_options={"synchronize_session": False},
        )
        _purge_puzzle_children(_puzzle_ids_of_game(game_id))
        db.session.execute(
            delete(Puzzle).where(Puzzle.game_id == game_id),
            execution_options={"synchronize_session": False},
        )
        db.session.execute(
            delete(Game).where(Game.id == game_id),
            execution_options={"synchronize_session": False},
        )
    current_app.logger.info(f"Deleted game {game_id} with its puzzles and reports")


def delete_puzzle(puzzle: Puzzle) -> None:
    """Delete a puzzle with its hints, maintenance records and images.

    Reports about the puzzle stay with their game and lose the puzzle link.
    """
    puzzle_id = puzzle.id
    with atomic():
        db.session.execute(
            update(Report).where(Report.puzzle_id == puzzle_id).values(puzzle_id=None),
            execution_options={"synchronize_session": False},
        )
        _purge_puzzle_children(select(Puzzle.id).where(Puzzle.id == puzzle_id))
        db.session.execute(
            delete(Puzzle).where(Puzzle.id == puzzle_id),
            execution_options={"synchronize_session": False},
        )
    current_app.logger.info(f"Deleted puzzle {puzzle_id} with its hints, maintenance and images")


def delete_report(report: Report) -> None:
    report_id = report.id
    with atomic():
        db.session.execute(
            delete(ReportImage).where(ReportImage.report_id == report_id),
            execution_options={"synchronize_session": False},
        )
        db.session.execute(
            delete(Report).where(Report.id == report_id),
            execution_options={"synchronize_session": False},
        )


def delete_leaf(resource) -> None:
    """Delete a resource that has no children (hint, maintenance record)."""
    with atomic():
        db.session.delete(resource)


__all__ = [
    "workspace_id_of",
    "authorize_resource",
    "authorize_blob",
    "workspace_query",
    "delete_game",
    "delete_puzzle",
    "delete_report",
    "delete_leaf",
]
