"""Puzzle endpoints."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import login_required

from gms.blueprints.common.serializers import serialize_hint, serialize_maintenance, serialize_puzzle
from gms.blueprints.common.tenant import current_workspace, workspace_required
from gms.forms import bind_json, collect_changes
from gms.forms.resources import PuzzleForm, PuzzleUpdateForm
from gms.models import Game, Puzzle
from gms.services.content import hints, maintenance, puzzles
from gms.services.ownership import authorize_resource, delete_puzzle, workspace_id_of

puzzles_bp = Blueprint("puzzles", __name__)


@puzzles_bp.route("", methods=["GET"])
@login_required
@workspace_required(list_read=True)
def list_puzzles():
    items = puzzles.list_for_workspace(
        current_workspace().workspace_id,
        game_id=request.args.get('gameId', type=int),
    )
    return jsonify([serialize_puzzle(p) for p in items])


@puzzles_bp.route("/<int:puzzle_id>", methods=["GET"])
@login_required
def puzzle_detail(puzzle_id: int):
    return jsonify(serialize_puzzle(authorize_resource(Puzzle, puzzle_id), detail=True))


@puzzles_bp.route("", methods=["POST"])
@login_required
def create_puzzle():
    form, _ = bind_json(PuzzleForm)
    # The puzzle's workspace is its game's; there is no separate workspace input
    game = authorize_resource(Game, form.game_id.data)
    puzzle = puzzles.create(game.id, form.data)
    return jsonify(serialize_puzzle(puzzle)), 201


@puzzles_bp.route("/<int:puzzle_id>", methods=["PUT"])
@login_required
def update_puzzle(puzzle_id: int):
    puzzle = authorize_resource(Puzzle, puzzle_id)
    form, present = bind_json(PuzzleUpdateForm)
    changes = collect_changes(form, present, required={'title', 'status', 'difficulty'})
    return jsonify(serialize_puzzle(puzzles.update(puzzle, changes)))


@puzzles_bp.route("/<int:puzzle_id>", methods=["DELETE"])
@login_required
def remove_puzzle(puzzle_id: int):
    delete_puzzle(authorize_resource(Puzzle, puzzle_id))
    return "", 204


@puzzles_bp.route("/<int:puzzle_id>/hints", methods=["GET"])
@login_required
def puzzle_hints(puzzle_id: int):
    puzzle = authorize_resource(Puzzle, puzzle_id)
    items = hints.list_for_workspace(workspace_id_of(puzzle), puzzle_id=puzzle.id)
    return jsonify([serialize_hint(h) for h in items])


@puzzles_bp.route("/<int:puzzle_id>/maintenance", methods=["GET"])
@login_required
def puzzle_maintenance(puzzle_id: int):
    puzzle = authorize_resource(Puzzle, puzzle_id)
    items = maintenance.list_for_workspace(workspace_id_of(puzzle), puzzle_id=puzzle.id)
    return jsonify([serialize_maintenance(m) for m in items])
