from datetime import date

import pytest

from conftest import create_game, create_puzzle, headers
from gms.errors import ValidationFailed
from gms.extensions import db
from gms.models import Game, Hint, Maintenance, Puzzle, PuzzleImage, Report, ReportImage
from gms.services.images import add_puzzle_images, delete_puzzle_image, list_puzzle_images, update_puzzle_image
from gms.services.ownership import delete_game, workspace_id_of, workspace_query
from gms.services.reports import create_report


def _populate(client, owner):
    token = owner['token']
    game = create_game(client, token, owner['workspace_id'])
    puzzle = create_puzzle(client, token, game['id'])
    client.post('/api/hints', json={'puzzleId': puzzle['id'], 'content': 'Count the stars'}, headers=headers(token))
    client.post(
        '/api/maintenance',
        json={'puzzleId': puzzle['id'], 'description': 'Replace battery', 'fixDate': '2026-11-01'},
        headers=headers(token),
    )
    client.post(
        '/api/puzzle-images',
        json={'puzzleId': puzzle['id'], 'images': [{'imageUrl': '/api/uploads/image-a.png'}]},
        headers=headers(token),
    )
    report = client.post(
        '/api/reports',
        json={
            'gameId': game['id'],
            'puzzleId': puzzle['id'],
            'title': 'Keypad sticks',
            'description': 'The 7 key does not register',
            'imageUrls': ['/api/uploads/image-b.png'],
        },
        headers=headers(token),
    ).get_json()
    return game, puzzle, report


def _counts():
    return {
        model.__name__: db.session.query(model).count()
        for model in (Game, Puzzle, Hint, Maintenance, PuzzleImage, Report, ReportImage)
    }


def test_deleting_a_game_cascades(app, client, owner):
    game, _, _ = _populate(client, owner)
    with app.app_context():
        assert all(count == 1 for count in _counts().values())

    resp = client.delete(f"/api/games/{game['id']}", headers=headers(owner['token']))
    assert resp.status_code == 204

    with app.app_context():
        assert all(count == 0 for count in _counts().values())
    assert client.get(f"/api/games/{game['id']}", headers=headers(owner['token'])).status_code == 404


def test_deleting_a_puzzle_keeps_its_reports(app, client, owner):
    game, puzzle, report = _populate(client, owner)
    auth = headers(owner['token'])

    assert client.delete(f"/api/puzzles/{puzzle['id']}", headers=auth).status_code == 204

    kept = client.get(f"/api/reports/{report['id']}", headers=auth)
    assert kept.status_code == 200
    assert kept.get_json()['puzzleId'] is None
    assert kept.get_json()['puzzle'] is None
    assert len(kept.get_json()['images']) == 1

    with app.app_context():
        counts = _counts()
    assert counts == {
        'Game': 1, 'Puzzle': 0, 'Hint': 0, 'Maintenance': 0,
        'PuzzleImage': 0, 'Report': 1, 'ReportImage': 1,
    }


def test_deleting_leaves(client, owner):
    game = create_game(client, owner['token'], owner['workspace_id'])
    puzzle = create_puzzle(client, owner['token'], game['id'])
    auth = headers(owner['token'])
    hint = client.post('/api/hints', json={'puzzleId': puzzle['id'], 'content': 'Mirror'}, headers=auth).get_json()

    assert client.delete(f"/api/hints/{hint['id']}", headers=auth).status_code == 204
    assert client.get(f"/api/hints/{hint['id']}", headers=auth).status_code == 404
    assert client.get(f"/api/puzzles/{puzzle['id']}/hints", headers=auth).get_json() == []


def test_workspace_id_and_scoped_queries(seeded):
    puzzle = seeded['puzzle']
    hint = Hint(puzzle_id=puzzle.id, content='Spin left')
    db.session.add(hint)
    db.session.commit()
    report = create_report(seeded['game'], 'Dial loose', 'Spins freely', puzzle_id=puzzle.id)

    workspace_id = seeded['workspace'].id
    assert workspace_id_of(hint) == workspace_id
    assert workspace_id_of(report) == workspace_id

    assert db.session.execute(workspace_query(Hint, workspace_id)).scalars().all() == [hint]
    assert db.session.execute(workspace_query(Hint, workspace_id + 1)).scalars().all() == []
    assert len(db.session.execute(workspace_query(ReportImage, workspace_id)).scalars().all()) == 0


def test_delete_game_service_removes_everything(seeded):
    game = seeded['game']
    db.session.add(Maintenance(puzzle_id=seeded['puzzle'].id, description='Oil', fix_date=date(2026, 1, 5)))
    db.session.commit()
    create_report(game, 'Broken', 'Needs work', image_urls=['/api/uploads/image-c.png'])

    delete_game(game)

    assert all(count == 0 for count in _counts().values())


def test_first_image_becomes_primary(seeded):
    puzzle = seeded['puzzle']
    first, second = add_puzzle_images(puzzle, [
        {'image_url': '/img/1.png'},
        {'image_url': '/img/2.png', 'caption': 'Side view'},
    ])
    assert first.is_primary and not second.is_primary

    (third,) = add_puzzle_images(puzzle, [{'image_url': '/img/3.png'}])
    assert not third.is_primary


def test_primary_flag_moves_and_promotes(seeded):
    puzzle = seeded['puzzle']
    first, second, third = add_puzzle_images(puzzle, [
        {'image_url': '/img/1.png'},
        {'image_url': '/img/2.png'},
        {'image_url': '/img/3.png'},
    ])

    update_puzzle_image(third, is_primary=True)
    images = list_puzzle_images(puzzle.id)
    assert images[0].id == third.id
    assert [i.id for i in images if i.is_primary] == [third.id]

    promoted = delete_puzzle_image(third)
    assert promoted.id == first.id
    assert [i.id for i in list_puzzle_images(puzzle.id) if i.is_primary] == [first.id]

    assert delete_puzzle_image(second) is None


def test_image_endpoints(client, owner):
    game = create_game(client, owner['token'], owner['workspace_id'])
    puzzle = create_puzzle(client, owner['token'], game['id'])
    auth = headers(owner['token'])

    created = client.post(
        '/api/puzzle-images',
        json={'puzzleId': puzzle['id'], 'images': [{'imageUrl': '/a.png'}, {'imageUrl': '/b.png', 'caption': 'B'}]},
        headers=auth,
    )
    assert created.status_code == 201
    a, b = created.get_json()
    assert a['isPrimary'] is True and b['isPrimary'] is False

    updated = client.put(f"/api/puzzle-images/{b['id']}", json={'isPrimary': True, 'caption': 'Back'}, headers=auth)
    assert updated.status_code == 200
    assert updated.get_json()['caption'] == 'Back'

    gallery = client.get(f"/api/puzzle-images/puzzle/{puzzle['id']}", headers=auth).get_json()
    assert [(i['id'], i['isPrimary']) for i in gallery] == [(b['id'], True), (a['id'], False)]

    detail = client.get(f"/api/puzzles/{puzzle['id']}", headers=auth).get_json()
    assert detail['images'][0]['id'] == b['id']

    unset = client.put(f"/api/puzzle-images/{b['id']}", json={'isPrimary': False}, headers=auth)
    assert unset.status_code == 400
    assert 'is_primary' in unset.get_json()['errors']
    assert client.put(f"/api/puzzle-images/{a['id']}", json={'isPrimary': False}, headers=auth).status_code == 200

    deleted = client.delete(f"/api/puzzle-images/{b['id']}", headers=auth)
    assert deleted.get_json()['promotedImageId'] == a['id']

    empty = client.post('/api/puzzle-images', json={'puzzleId': puzzle['id'], 'images': []}, headers=auth)
    assert empty.status_code == 400


def test_primary_image_cannot_be_unset(seeded):
    first, second = add_puzzle_images(seeded['puzzle'], [{'image_url': '/img/1.png'}, {'image_url': '/img/2.png'}])

    with pytest.raises(ValidationFailed):
        update_puzzle_image(first, caption='Front', caption_provided=True, is_primary=False)
    db.session.refresh(first)
    assert first.is_primary
    assert first.caption is None

    update_puzzle_image(second, is_primary=False)
    assert [i.id for i in list_puzzle_images(seeded['puzzle'].id) if i.is_primary] == [first.id]
