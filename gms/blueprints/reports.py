"""Report endpoints, including the per-workspace statistics."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import login_required

from gms.blueprints.common.serializers import serialize_report
from gms.blueprints.common.tenant import current_workspace, workspace_required
from gms.forms import bind_json, collect_changes, json_payload, string_list
from gms.forms.resources import ReportForm, ReportUpdateForm
from gms.models import Game, Puzzle, Report
from gms.services import reports as report_service
from gms.services.ownership import authorize_resource, delete_report, workspace_id_of

reports_bp = Blueprint("reports", __name__)


def _empty_page() -> dict:
    return {
        'reports': [],
        'total': 0,
        'page': 1,
        'limit': report_service.DEFAULT_PAGE_SIZE,
        'totalPages': 0,
    }


@reports_bp.route("", methods=["GET"])
@login_required
@workspace_required(list_read=True, empty=_empty_page)
def list_reports():
    args = request.args
    page = report_service.list_reports(
        current_workspace().workspace_id,
        status=args.get('status'),
        search=args.get('search'),
        page=args.get('page', 1, type=int),
        limit=args.get('limit', report_service.DEFAULT_PAGE_SIZE, type=int),
        sort_order=args.get('sortOrder', 'desc'),
    )
    page['reports'] = [serialize_report(r) for r in page['reports']]
    return jsonify(page)


@reports_bp.route("/stats", methods=["GET"])
@login_required
@workspace_required(list_read=True)
def stats():
    return jsonify(report_service.report_stats(current_workspace().workspace_id, request.args.get('range')))


@reports_bp.route("/game/<int:game_id>", methods=["GET"])
@login_required
def game_reports(game_id: int):
    game = authorize_resource(Game, game_id)
    items = report_service.reports_for(game.workspace_id, game_id=game.id)
    return jsonify([serialize_report(r) for r in items])


@reports_bp.route("/puzzle/<int:puzzle_id>", methods=["GET"])
@login_required
def puzzle_reports(puzzle_id: int):
    puzzle = authorize_resource(Puzzle, puzzle_id)
    items = report_service.reports_for(workspace_id_of(puzzle), puzzle_id=puzzle.id)
    return jsonify([serialize_report(r) for r in items])


@reports_bp.route("/<int:report_id>", methods=["GET"])
@login_required
def report_detail(report_id: int):
    return jsonify(serialize_report(authorize_resource(Report, report_id)))


@reports_bp.route("", methods=["POST"])
@login_required
def create_report():
    payload = json_payload()
    form, _ = bind_json(ReportForm, payload)
    game = authorize_resource(Game, form.game_id.data)
    report = report_service.create_report(
        game,
        title=form.title.data.strip(),
        description=form.description.data.strip(),
        puzzle_id=form.puzzle_id.data,
        report_date=form.report_date.data,
        priority=form.priority.data or None,
        image_urls=string_list(payload, 'imageUrls'),
    )
    return jsonify(serialize_report(report)), 201


@reports_bp.route("/<int:report_id>", methods=["PUT"])
@login_required
def update_report(report_id: int):
    report = authorize_resource(Report, report_id)
    payload = json_payload()
    form, present = bind_json(ReportUpdateForm, payload)
    changes = collect_changes(
        form, present, required={'title', 'description', 'status', 'priority', 'report_date'}
    )
    if 'image_urls' in present:
        changes['image_urls'] = string_list(payload, 'imageUrls') or []
    report = report_service.update_report(report, changes)
    return jsonify(serialize_report(report))


@reports_bp.route("/<int:report_id>", methods=["DELETE"])
@login_required
def remove_report(report_id: int):
    delete_report(authorize_resource(Report, report_id))
    return "", 204
