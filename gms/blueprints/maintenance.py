"""Maintenance record endpoints."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import login_required

from gms.blueprints.common.serializers import serialize_maintenance
from gms.blueprints.common.tenant import current_workspace, workspace_required
from gms.forms import bind_json, collect_changes
from gms.forms.resources import MaintenanceForm, MaintenanceUpdateForm
from gms.models import Maintenance, Puzzle
from gms.services.content import maintenance
from gms.services.ownership import authorize_resource, delete_leaf

maintenance_bp = Blueprint("maintenance", __name__)


@maintenance_bp.route("", methods=["GET"])
@login_required
@workspace_required(list_read=True)
def list_maintenance():
    items = maintenance.list_for_workspace(
        current_workspace().workspace_id,
        puzzle_id=request.args.get('puzzleId', type=int),
    )
    return jsonify([serialize_maintenance(m) for m in items])


@maintenance_bp.route("/<int:record_id>", methods=["GET"])
@login_required
def maintenance_detail(record_id: int):
    return jsonify(serialize_maintenance(authorize_resource(Maintenance, record_id)))


@maintenance_bp.route("", methods=["POST"])
@login_required
def create_maintenance():
    form, _ = bind_json(MaintenanceForm)
    puzzle = authorize_resource(Puzzle, form.puzzle_id.data)
    record = maintenance.create(puzzle.id, form.data)
    return jsonify(serialize_maintenance(record)), 201


@maintenance_bp.route("/<int:record_id>", methods=["PUT"])
@login_required
def update_maintenance(record_id: int):
    record = authorize_resource(Maintenance, record_id)
    form, present = bind_json(MaintenanceUpdateForm)
    changes = collect_changes(form, present, required={'description', 'status', 'fix_date'})
    return jsonify(serialize_maintenance(maintenance.update(record, changes)))


@maintenance_bp.route("/<int:record_id>", methods=["DELETE"])
@login_required
def remove_maintenance(record_id: int):
    delete_leaf(authorize_resource(Maintenance, record_id))
    return "", 204
