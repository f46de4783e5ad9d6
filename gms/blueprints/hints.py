"""Hint endpoints."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import login_required

from gms.blueprints.common.serializers import serialize_hint
from gms.blueprints.common.tenant import current_workspace, workspace_required
from gms.forms import bind_json, collect_changes
from gms.forms.resources import HintForm, HintUpdateForm
from gms.models import Hint, Puzzle
from gms.services.content import hints
from gms.services.ownership import authorize_resource, delete_leaf

hints_bp = Blueprint("hints", __name__)


@hints_bp.route("", methods=["GET"])
@login_required
@workspace_required(list_read=True)
def list_hints():
    items = hints.list_for_workspace(
        current_workspace().workspace_id,
        puzzle_id=request.args.get('puzzleId', type=int),
    )
    return jsonify([serialize_hint(h) for h in items])


@hints_bp.route("/<int:hint_id>", methods=["GET"])
@login_required
def hint_detail(hint_id: int):
    return jsonify(serialize_hint(authorize_resource(Hint, hint_id)))


@hints_bp.route("", methods=["POST"])
@login_required
def create_hint():
    form, _ = bind_json(HintForm)
    puzzle = authorize_resource(Puzzle, form.puzzle_id.data)
    hint = hints.create(puzzle.id, form.data)
    return jsonify(serialize_hint(hint)), 201


@hints_bp.route("/<int:hint_id>", methods=["PUT"])
@login_required
def update_hint(hint_id: int):
    hint = authorize_resource(Hint, hint_id)
    form, present = bind_json(HintUpdateForm)
    changes = collect_changes(form, present, required={'content'})
    return jsonify(serialize_hint(hints.update(hint, changes)))


@hints_bp.route("/<int:hint_id>", methods=["DELETE"])
@login_required
def remove_hint(hint_id: int):
    delete_leaf(authorize_resource(Hint, hint_id))
    return "", 204
