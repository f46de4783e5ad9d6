"""Player-reported issues.

A report belongs to a game and optionally to one of that game's puzzles.
Status changes carry the resolution bookkeeping: moving into ``resolved``
stamps ``resolved_at``, moving out of it clears both ``resolved_at`` and
``resolution``. A report and its images are always written together.
"""

from __future__ import annotations

import calendar
import math
from datetime import datetime, timedelta
from typing import Any, Iterable

from flask import current_app
from sqlalchemy import delete, func, or_, select

from gms.errors import BadRequest, ValidationFailed
from gms.extensions import db
from gms.models import Game, Puzzle, Report, ReportImage, ReportPriority, ReportStatus
from gms.services.db import atomic, for_update, utcnow
from gms.services.ownership import workspace_query

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
DEFAULT_STATS_DAYS = 30

_STATUS_KEYS = {
    ReportStatus.OPEN: 'open',
    ReportStatus.IN_PROGRESS: 'inProgress',
    ReportStatus.RESOLVED: 'resolved',
}


def _check_puzzle_matches_game(puzzle_id: int | None, game_id: int) -> None:
    if puzzle_id is None:
        return
    puzzle = db.session.get(Puzzle, puzzle_id)
    if puzzle is None or puzzle.game_id != game_id:
        raise BadRequest("Puzzle does not belong to the specified game")


def _clean_urls(image_urls: Iterable[str] | None) -> list[str]:
    urls = []
    for url in image_urls or []:
        if not isinstance(url, str) or not url.strip():
            raise ValidationFailed({'image_urls': ["Image URLs must be non-empty strings"]})
        urls.append(url.strip())
    return urls


def create_report(
    game: Game,
    title: str,
    description: str,
    puzzle_id: int | None = None,
    report_date: datetime | None = None,
    priority: ReportPriority | str | None = None,
    image_urls: Iterable[str] | None = None,
) -> Report:
    """Create a report with its images in one transaction."""
    _check_puzzle_matches_game(puzzle_id, game.id)
    urls = _clean_urls(image_urls)

    with atomic():
        report = Report(
            game_id=game.id,
            puzzle_id=puzzle_id,
            title=title,
            description=description,
            report_date=report_date or utcnow(),
            status=ReportStatus.OPEN,
            priority=ReportPriority(priority) if priority else ReportPriority.HIGH,
        )
        db.session.add(report)
        db.session.flush()
        for url in urls:
            db.session.add(ReportImage(report_id=report.id, image_url=url))

    current_app.logger.info(f"Report {report.id} created for game {game.id} with {len(urls)} image(s)")
    return report


def apply_status(report: Report, status: ReportStatus, resolution: str | None = None,
                 resolution_provided: bool = False) -> None:
    """Apply a status transition and its resolution bookkeeping in place."""
    becoming_resolved = status == ReportStatus.RESOLVED

    if resolution_provided and resolution is not None and not becoming_resolved:
        raise ValidationFailed({'resolution': ["Resolution can only be set on a resolved report"]})

    if becoming_resolved:
        if report.status != ReportStatus.RESOLVED:
            report.resolved_at = utcnow()
        if resolution_provided:
            report.resolution = resolution
    elif report.status == ReportStatus.RESOLVED:
        report.resolved_at = None
        report.resolution = None

    report.status = status


def update_report(report: Report, changes: dict[str, Any]) -> Report:
    """Apply a partial update.

    ``changes`` holds only the fields the caller sent, keyed by attribute
    name; ``image_urls`` replaces the whole image set.
    """
    report_id = report.id
    with atomic():
        # Serialise concurrent transitions of the same report
        locked = db.session.execute(
            for_update(select(Report).where(Report.id == report_id))
        ).scalar_one()

        if 'puzzle_id' in changes:
            _check_puzzle_matches_game(changes['puzzle_id'], locked.game_id)
            locked.puzzle_id = changes['puzzle_id']

        for field in ('title', 'description', 'report_date'):
            if field in changes:
                setattr(locked, field, changes[field])

        if 'priority' in changes:
            locked.priority = ReportPriority(changes['priority'])

        if 'status' in changes:
            apply_status(
                locked,
                ReportStatus(changes['status']),
                changes.get('resolution'),
                resolution_provided='resolution' in changes,
            )
        elif 'resolution' in changes:
            apply_status(locked, locked.status, changes['resolution'], resolution_provided=True)

        if 'image_urls' in changes:
            urls = _clean_urls(changes['image_urls'])
            db.session.execute(
                delete(ReportImage).where(ReportImage.report_id == report_id),
                execution_options={"synchronize_session": False},
            )
            db.session.expire(locked, ['images'])
            for url in urls:
                db.session.add(ReportImage(report_id=report_id, image_url=url))

    return locked


def list_reports(
    workspace_id: int,
    status: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    sort_order: str = 'desc',
    game_id: int | None = None,
    puzzle_id: int | None = None,
) -> dict[str, Any]:
    """Filtered, paginated reports of a workspace."""
    page = max(page or 1, 1)
    limit = min(max(limit or DEFAULT_PAGE_SIZE, 1), MAX_PAGE_SIZE)

    query = workspace_query(Report, workspace_id)
    if status in {s.value for s in ReportStatus}:
        query = query.where(Report.status == ReportStatus(status))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(Report.title.ilike(pattern), Report.description.ilike(pattern)))
    if game_id is not None:
        query = query.where(Report.game_id == game_id)
    if puzzle_id is not None:
        query = query.where(Report.puzzle_id == puzzle_id)

    total = db.session.execute(
        select(func.count()).select_from(query.subquery())
    ).scalar_one()

    ordering = Report.report_date.asc() if sort_order == 'asc' else Report.report_date.desc()
    tie_break = Report.id.asc() if sort_order == 'asc' else Report.id.desc()
    reports = list(
        db.session.execute(
            query.order_by(ordering, tie_break).offset((page - 1) * limit).limit(limit)
        ).scalars()
    )

    return {
        'reports': reports,
        'total': total,
        'page': page,
        'limit': limit,
        'totalPages': math.ceil(total / limit),
    }


def reports_for(workspace_id: int, game_id: int | None = None, puzzle_id: int | None = None) -> list[Report]:
    """Every report of a game or puzzle, newest first."""
    query = workspace_query(Report, workspace_id)
    if game_id is not None:
        query = query.where(Report.game_id == game_id)
    if puzzle_id is not None:
        query = query.where(Report.puzzle_id == puzzle_id)
    return list(db.session.execute(query.order_by(Report.report_date.desc(), Report.id.desc())).scalars())


def _months_back(moment: datetime, months: int) -> datetime:
    month_index = moment.month - 1 - months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def range_start(range_name: str | None, now: datetime | None = None) -> datetime:
    """Start of a stats window: week, month, year or the default 30 days."""
    now = now or utcnow()
    if range_name == 'week':
        return now - timedelta(days=7)
    if range_name == 'month':
        return _months_back(now, 1)
    if range_name == 'year':
        return _months_back(now, 12)
    return now - timedelta(days=DEFAULT_STATS_DAYS)


def _empty_counts() -> dict[str, int]:
    return {'total': 0, 'open': 0, 'inProgress': 0, 'resolved': 0}


def report_stats(workspace_id: int, range_name: str | None = None,
                 now: datetime | None = None) -> list[dict[str, Any]]:
    """Per-game and per-puzzle report counts by status since the window start."""
    since = range_start(range_name, now)
    rows = db.session.execute(
        select(
            Report.game_id,
            Game.name,
            Report.puzzle_id,
            Puzzle.title,
            Report.status,
            func.count(Report.id),
        )
        .join(Game, Game.id == Report.game_id)
        .outerjoin(Puzzle, Puzzle.id == Report.puzzle_id)
        .where(Game.workspace_id == workspace_id, Report.report_date >= since)
        .group_by(Report.game_id, Game.name, Report.puzzle_id, Puzzle.title, Report.status)
        .order_by(Report.game_id, Report.puzzle_id)
    ).all()

    games: dict[int, dict[str, Any]] = {}
    for game_id, game_name, puzzle_id, puzzle_title, status, count in rows:
        entry = games.setdefault(
            game_id,
            {'gameId': game_id, 'gameName': game_name, **_empty_counts(), 'puzzles': {}},
        )
        key = _STATUS_KEYS[status]
        entry['total'] += count
        entry[key] += count

        if puzzle_id is not None:
            puzzle_entry = entry['puzzles'].setdefault(
                puzzle_id, {'id': puzzle_id, 'title': puzzle_title, **_empty_counts()}
            )
            puzzle_entry['total'] += count
            puzzle_entry[key] += count

    for entry in games.values():
        entry['puzzles'] = list(entry['puzzles'].values())
    return list(games.values())


__all__ = [
    'MAX_PAGE_SIZE',
    'create_report',
    'apply_status',
    'update_report',
    'list_reports',
    'reports_for',
    'range_start',
    'report_stats',
]
