from datetime import datetime, timedelta, timezone

import pytest

from conftest import create_game, create_puzzle, headers
from gms.errors import BadRequest, ValidationFailed
from gms.extensions import db
from gms.models import Puzzle, ReportPriority, ReportStatus
from gms.services.reports import create_report, range_start, report_stats, update_report


@pytest.fixture()
def game_setup(client, owner):
    game = create_game(client, owner['token'], owner['workspace_id'])
    puzzle = create_puzzle(client, owner['token'], game['id'])
    return game, puzzle


def _report(client, owner, game, **extra):
    payload = {'gameId': game['id'], 'title': 'Lights flicker', 'description': 'Room 2 lights'}
    payload.update(extra)
    resp = client.post('/api/reports', json=payload, headers=headers(owner['token']))
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def test_create_report_defaults(client, owner, game_setup):
    game, puzzle = game_setup
    report = _report(client, owner, game, puzzleId=puzzle['id'], imageUrls=['/a.png', '/b.png'])

    assert report['status'] == 'open'
    assert report['priority'] == 'high'
    assert report['resolvedAt'] is None
    assert report['game'] == {'name': game['name'], 'workspaceId': owner['workspace_id']}
    assert report['puzzle'] == {'title': puzzle['title']}
    assert [i['imageUrl'] for i in report['images']] == ['/a.png', '/b.png']


def test_puzzle_must_belong_to_the_game(client, owner, game_setup):
    game, _ = game_setup
    other_game = create_game(client, owner['token'], owner['workspace_id'], name='Other Room')
    other_puzzle = create_puzzle(client, owner['token'], other_game['id'], title='Lockbox')

    resp = client.post(
        '/api/reports',
        json={'gameId': game['id'], 'puzzleId': other_puzzle['id'], 'title': 'x', 'description': 'y'},
        headers=headers(owner['token']),
    )
    assert resp.status_code == 400
    assert resp.get_json()['message'] == 'Puzzle does not belong to the specified game'

    report = _report(client, owner, game)
    moved = client.put(f"/api/reports/{report['id']}", json={'puzzleId': other_puzzle['id']},
                       headers=headers(owner['token']))
    assert moved.status_code == 400


def test_resolution_lifecycle(client, owner, game_setup):
    game, _ = game_setup
    report = _report(client, owner, game)
    url = f"/api/reports/{report['id']}"
    auth = headers(owner['token'])

    resolved = client.put(url, json={'status': 'resolved', 'resolution': 'Replaced bulb'}, headers=auth).get_json()
    assert resolved['status'] == 'resolved'
    assert resolved['resolution'] == 'Replaced bulb'
    assert resolved['resolvedAt'] is not None

    # Staying resolved keeps the original timestamp
    again = client.put(url, json={'status': 'resolved'}, headers=auth).get_json()
    assert again['resolvedAt'] == resolved['resolvedAt']
    assert again['resolution'] == 'Replaced bulb'

    reopened = client.put(url, json={'status': 'in-progress'}, headers=auth).get_json()
    assert reopened['status'] == 'in-progress'
    assert reopened['resolution'] is None
    assert reopened['resolvedAt'] is None


def test_resolution_only_on_resolved_reports(client, owner, game_setup):
    game, _ = game_setup
    report = _report(client, owner, game)
    url = f"/api/reports/{report['id']}"
    auth = headers(owner['token'])

    resp = client.put(url, json={'status': 'in-progress', 'resolution': 'Too early'}, headers=auth)
    assert resp.status_code == 400
    assert 'resolution' in resp.get_json()['errors']

    assert client.put(url, json={'resolution': 'Still open'}, headers=auth).status_code == 400
    assert client.get(url, headers=auth).get_json()['status'] == 'open'


def test_required_fields_cannot_be_cleared(client, owner, game_setup):
    game, _ = game_setup
    report = _report(client, owner, game)

    resp = client.put(f"/api/reports/{report['id']}", json={'title': '   '}, headers=headers(owner['token']))
    assert resp.status_code == 400
    assert resp.get_json()['errors'] == {'title': ['This field cannot be empty.']}

    bad_status = client.put(f"/api/reports/{report['id']}", json={'status': 'closed'}, headers=headers(owner['token']))
    assert bad_status.status_code == 400


def test_image_urls_replace_the_set(client, owner, game_setup):
    game, _ = game_setup
    report = _report(client, owner, game, imageUrls=['/a.png', '/b.png'])
    url = f"/api/reports/{report['id']}"
    auth = headers(owner['token'])

    untouched = client.put(url, json={'priority': 'low'}, headers=auth).get_json()
    assert untouched['priority'] == 'low'
    assert len(untouched['images']) == 2

    replaced = client.put(url, json={'imageUrls': ['/c.png']}, headers=auth).get_json()
    assert [i['imageUrl'] for i in replaced['images']] == ['/c.png']

    cleared = client.put(url, json={'imageUrls': []}, headers=auth).get_json()
    assert cleared['images'] == []


def test_list_filters_and_pagination(client, owner, game_setup):
    game, puzzle = game_setup
    base = datetime(2026, 3, 1, tzinfo=timezone.utc)
    for day in range(3):
        _report(client, owner, game, title=f'Issue {day}',
                reportDate=(base + timedelta(days=day)).isoformat())
    _report(client, owner, game, title='Smoke machine', description='Fog everywhere',
            puzzleId=puzzle['id'], reportDate=(base + timedelta(days=5)).isoformat())

    auth = headers(owner['token'], owner['workspace_id'])
    page = client.get('/api/reports?limit=2', headers=auth).get_json()
    assert page['total'] == 4
    assert page['totalPages'] == 2
    assert [r['title'] for r in page['reports']] == ['Smoke machine', 'Issue 2']

    second = client.get('/api/reports?limit=2&page=2&sortOrder=desc', headers=auth).get_json()
    assert [r['title'] for r in second['reports']] == ['Issue 1', 'Issue 0']

    ascending = client.get('/api/reports?sortOrder=asc', headers=auth).get_json()
    assert ascending['reports'][0]['title'] == 'Issue 0'

    searched = client.get('/api/reports?search=fog', headers=auth).get_json()
    assert [r['title'] for r in searched['reports']] == ['Smoke machine']

    by_puzzle = client.get(f"/api/reports/puzzle/{puzzle['id']}", headers=headers(owner['token'])).get_json()
    assert [r['title'] for r in by_puzzle] == ['Smoke machine']
    by_game = client.get(f"/api/reports/game/{game['id']}", headers=headers(owner['token'])).get_json()
    assert len(by_game) == 4


def test_status_filter(client, owner, game_setup):
    game, _ = game_setup
    first = _report(client, owner, game, title='First')
    _report(client, owner, game, title='Second')
    client.put(f"/api/reports/{first['id']}", json={'status': 'resolved'}, headers=headers(owner['token']))

    auth = headers(owner['token'], owner['workspace_id'])
    resolved = client.get('/api/reports?status=resolved', headers=auth).get_json()
    assert [r['title'] for r in resolved['reports']] == ['First']
    everything = client.get('/api/reports?status=all', headers=auth).get_json()
    assert everything['total'] == 2


def test_stats_endpoint(client, owner, game_setup):
    game, puzzle = game_setup
    first = _report(client, owner, game, puzzleId=puzzle['id'])
    _report(client, owner, game)
    client.put(f"/api/reports/{first['id']}", json={'status': 'in-progress'}, headers=headers(owner['token']))

    stats = client.get('/api/reports/stats', headers=headers(owner['token'], owner['workspace_id'])).get_json()
    assert stats == [{
        'gameId': game['id'],
        'gameName': game['name'],
        'total': 2,
        'open': 1,
        'inProgress': 1,
        'resolved': 0,
        'puzzles': [{
            'id': puzzle['id'],
            'title': puzzle['title'],
            'total': 1,
            'open': 0,
            'inProgress': 1,
            'resolved': 0,
        }],
    }]


def test_stats_window(seeded):
    now = datetime(2026, 6, 15, 12, tzinfo=timezone.utc)
    game = seeded['game']
    create_report(game, 'Recent', 'x', report_date=now - timedelta(days=3))
    create_report(game, 'Older', 'x', report_date=now - timedelta(days=60))

    assert report_stats(seeded['workspace'].id, 'week', now=now)[0]['total'] == 1
    assert report_stats(seeded['workspace'].id, None, now=now)[0]['total'] == 1
    assert report_stats(seeded['workspace'].id, 'year', now=now)[0]['total'] == 2
    assert report_stats(seeded['workspace'].id + 1, 'year', now=now) == []


def test_range_start_clamps_month_ends():
    now = datetime(2026, 3, 31, tzinfo=timezone.utc)
    assert range_start('month', now) == datetime(2026, 2, 28, tzinfo=timezone.utc)
    assert range_start('year', now) == datetime(2025, 3, 31, tzinfo=timezone.utc)
    assert range_start('week', now) == now - timedelta(days=7)
    assert range_start('bogus', now) == now - timedelta(days=30)


def test_service_transitions(seeded):
    report = create_report(seeded['game'], 'Door', 'Sticks', priority='medium')
    assert report.priority == ReportPriority.MEDIUM

    update_report(report, {'status': 'resolved', 'resolution': 'Planed the door'})
    assert report.status == ReportStatus.RESOLVED
    assert report.resolved_at is not None

    with pytest.raises(ValidationFailed):
        update_report(report, {'status': 'open', 'resolution': 'nope'})
    db.session.refresh(report)
    assert report.status == ReportStatus.RESOLVED

    with pytest.raises(BadRequest):
        create_report(seeded['game'], 'Wrong', 'Puzzle', puzzle_id=9999)


def test_report_for_puzzle_of_same_game(seeded):
    report = create_report(seeded['game'], 'Dial', 'Loose', puzzle_id=seeded['puzzle'].id)
    assert report.puzzle_id == seeded['puzzle'].id
    assert db.session.get(Puzzle, report.puzzle_id).title == 'Safe dial'
