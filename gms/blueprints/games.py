"""Game endpoints."""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import login_required

from gms.blueprints.common.serializers import serialize_game, serialize_puzzle
from gms.blueprints.common.tenant import current_workspace, workspace_required
from gms.forms import bind_json, collect_changes
from gms.forms.resources import GameForm, GameUpdateForm
from gms.models import Game
from gms.services.content import games, puzzles
from gms.services.ownership import authorize_resource, delete_game

games_bp = Blueprint("games", __name__)


@games_bp.route("", methods=["GET"])
@login_required
@workspace_required(list_read=True)
def list_games():
    workspace_id = current_workspace().workspace_id
    return jsonify([serialize_game(game) for game in games.list_for_workspace(workspace_id)])


@games_bp.route("/<int:game_id>", methods=["GET"])
@login_required
def game_detail(game_id: int):
    return jsonify(serialize_game(authorize_resource(Game, game_id)))


@games_bp.route("", methods=["POST"])
@login_required
@workspace_required()
def create_game():
    form, _ = bind_json(GameForm)
    game = games.create(current_workspace().workspace_id, form.data)
    return jsonify(serialize_game(game)), 201


@games_bp.route("/<int:game_id>", methods=["PUT"])
@login_required
def update_game(game_id: int):
    game = authorize_resource(Game, game_id)
    form, present = bind_json(GameUpdateForm)
    game = games.update(game, collect_changes(form, present, required={'name', 'genre'}))
    return jsonify(serialize_game(game))


@games_bp.route("/<int:game_id>", methods=["DELETE"])
@login_required
def remove_game(game_id: int):
    delete_game(authorize_resource(Game, game_id))
    return "", 204


@games_bp.route("/<int:game_id>/puzzles", methods=["GET"])
@login_required
def game_puzzles(game_id: int):
    game = authorize_resource(Game, game_id)
    items = puzzles.list_for_workspace(game.workspace_id, game_id=game.id)
    return jsonify([serialize_puzzle(p, detail=True) for p in items])
