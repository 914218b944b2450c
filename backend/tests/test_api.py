import io
import os

from openpyxl import Workbook
from werkzeug.datastructures import FileStorage

from app import db, hunt as hunt_ext
from app.models import BarRecord, GameRecord, TeamRecord

from conftest import START, TestConfig, build_app


def _claim(client, team, place_id, **extra):
    body = {'game_code': '', 'team_code': team, 'place_id': place_id, 'name': f'Bar {place_id}',
            'lat': -8.65, 'lng': 115.13, 'has_proof': True}
    body.update(extra)
    return client.post('/api/hunt/claim', json=body)


def test_state_lists_configured_teams(client):
    res = client.get('/api/hunt/state')
    assert res.status_code == 200
    state = res.get_json()
    assert set(state['teams']) == {'T1', 'T2', 'T3'}
    assert state['game_window']['active'] is True
    assert state['bars'] == {}


def test_join(client):
    res = client.post('/api/hunt/join', json={'game_code': '', 'team_code': 'T1', 'display_name': 'Alex'})
    assert res.status_code == 200
    assert res.get_json()['team']['name'] == 'Raj on the Rocks'

    res = client.post('/api/hunt/join', json={'team_code': 'NOPE', 'display_name': 'Alex'})
    assert res.status_code == 404
    assert res.get_json()['code'] == 'InvalidTeamCode'

    res = client.post('/api/hunt/join', json={'team_code': 'T1', 'display_name': ''})
    assert res.status_code == 400
    assert res.get_json()['code'] == 'MissingDisplayName'


def test_join_with_access_code(client):
    client.post('/api/admin/window', json={'access_code': 'CANGGU'})
    res = client.post('/api/hunt/join', json={'game_code': 'bad', 'team_code': 'T1', 'display_name': 'Alex'})
    assert res.status_code == 403
    assert res.get_json()['code'] == 'InvalidGameCode'
    res = client.post('/api/hunt/join', json={'game_code': 'CANGGU', 'team_code': 'T1', 'display_name': 'Alex'})
    assert res.status_code == 200


def test_claim_lock_steal_flow(client):
    res = _claim(client, 'T1', 'B1', has_proof=False)
    assert res.status_code == 400
    assert res.get_json()['code'] == 'MissingProof'

    res = _claim(client, 'T1', 'B1')
    assert res.status_code == 200
    assert res.get_json()['bar']['owner'] == 'T1'

    res = client.post('/api/hunt/steal', json={'team_code': 'T2', 'place_id': 'B1', 'success': 'false'})
    body = res.get_json()
    assert res.status_code == 200
    assert body['success'] is False
    assert body['penalty_minutes'] == 5
    assert body['bar']['failed_steal_attempts'] == 1

    res = client.post('/api/hunt/steal', json={'team_code': 'T3', 'place_id': 'B1', 'success': True})
    assert res.get_json()['bar']['owner'] == 'T3'

    res = client.post('/api/hunt/lock', json={'team_code': 'T1', 'place_id': 'B1'})
    assert res.status_code == 400
    assert res.get_json()['code'] == 'BarNotOwnedByCaller'
    res = client.post('/api/hunt/lock', json={'team_code': 'T3', 'place_id': 'B1'})
    assert res.get_json()['bar']['locked'] is True

    state = client.get('/api/hunt/state').get_json()
    assert state['standings']['final_score'] == {'T1': 0, 'T2': 0, 'T3': 1}
    assert state['teams']['T2']['penalty_remaining_sec'] == 300


def test_claim_with_photo_upload(client, flask_app):
    data = {
        'team_code': 'T1',
        'place_id': 'B9',
        'name': 'Sandbar',
        'lat': '-8.66',
        'lng': '115.12',
        'team_photo': (io.BytesIO(b'fake-jpeg'), 'team pic.jpg'),
    }
    res = client.post('/api/hunt/claim', data=data, content_type='multipart/form-data')
    assert res.status_code == 200
    proof = res.get_json()['bar']['proof']
    url = proof['team_photo']
    assert url.startswith('/uploads/') and url.endswith('team_pic.jpg')
    stored = os.path.join(flask_app.config['UPLOAD_FOLDER'], url.rsplit('/', 1)[1])
    assert os.path.exists(stored)
    assert client.get(url).data == b'fake-jpeg'


def test_claim_rejects_bad_coordinates(client):
    res = _claim(client, 'T1', 'B1', lat='north')
    assert res.status_code == 400
    assert client.get('/api/hunt/state').get_json()['bars'] == {}


def test_deck_flow(client, clock):
    res = client.post('/api/hunt/deck/draw', json={'team_code': 'T1'})
    assert res.get_json()['code'] == 'DeckNotLoaded'

    csv_body = b'type,text\nchallenge,Order in Spanish\ncurse,Whisper only\n'
    res = client.post('/api/admin/deck', data={'file': (io.BytesIO(csv_body), 'deck.csv')},
                      content_type='multipart/form-data')
    assert res.get_json() == {'ok': True, 'count': 2}

    res = client.post('/api/hunt/deck/draw', json={'team_code': 'T1'})
    body = res.get_json()
    assert res.status_code == 200
    assert body['min_attempt_minutes'] == 12
    assert body['challenge']['status'] == 'active'

    res = client.post('/api/hunt/deck/veto', json={'team_code': 'T1'})
    body = res.get_json()
    assert body['code'] == 'VetoTooEarly'
    assert body['remaining_minutes'] == 12

    clock.advance(minutes=12)
    res = client.post('/api/hunt/deck/veto', json={'team_code': 'T1'})
    assert res.get_json() == {'ok': True, 'penalty_minutes': 5}

    res = client.post('/api/hunt/deck/draw', json={'team_code': 'T1'})
    assert res.get_json()['code'] == 'PenaltyActive'
    clock.advance(minutes=5)
    assert client.post('/api/hunt/deck/draw', json={'team_code': 'T1'}).status_code == 200
    assert client.post('/api/hunt/deck/complete', json={'team_code': 'T1'}).get_json() == {'ok': True}
    res = client.post('/api/hunt/deck/draw', json={'team_code': 'T1'})
    assert res.get_json()['code'] == 'DeckExhausted'


def test_game_window_closes_play(client, clock):
    res = client.post('/api/admin/window', json={'start': START + 600, 'end': START + 1200})
    assert res.get_json()['game']['start'] == START + 600
    res = _claim(client, 'T1', 'B1')
    assert res.get_json()['code'] == 'GameWindowClosed'
    res = client.post('/api/admin/window', json={'start': START + 600, 'end': START})
    assert res.get_json()['code'] == 'InvalidGameWindow'


def test_admin_adjustments_bars_and_reset(client):
    _claim(client, 'T1', 'B1')
    res = client.post('/api/admin/adjustments', json={'adjustments': {'T1': -2, 'T2': 3}})
    assert res.get_json()['standings']['final_score'] == {'T1': -1, 'T2': 3, 'T3': 0}

    res = client.post('/api/admin/bars', json={'bars': [{'place_id': 'B5', 'owner': 'GHOST'}]})
    assert res.status_code == 404

    res = client.post('/api/admin/bars', json={'bars': [
        {'place_id': 'B5', 'name': 'Black Sand', 'owner': 'T2', 'locked': True},
    ]})
    assert res.get_json() == {'ok': True, 'count': 1}
    state = client.get('/api/hunt/state').get_json()
    assert list(state['bars']) == ['B5']
    assert state['bars']['B5']['state'] == 'locked'

    res = client.post('/api/admin/teams', json={'team_code': 'T4', 'name': 'Latecomers'})
    assert res.get_json()['team']['color'] == '#4f46e5'

    assert client.post('/api/admin/reset', json={}).get_json() == {'ok': True}
    state = client.get('/api/hunt/state').get_json()
    assert state['bars'] == {}
    assert set(state['teams']) == {'T1', 'T2', 'T3', 'T4'}
    assert all(t['score'] == 0 for t in state['teams'].values())


def test_mutations_are_persisted(client, flask_app):
    client.post('/api/admin/window', json={'access_code': 'CODE'})
    client.post('/api/admin/deck', json={'cards': [{'type': 'challenge', 'text': 'Sing'}]})
    _claim(client, 'T1', 'B1', game_code='CODE')
    client.post('/api/hunt/deck/draw', json={'team_code': 'T2'})

    game = GameRecord.query.first()
    assert game.access_code == 'CODE'
    assert game.to_dict()['master_deck'] == [{'id': 'card_1', 'kind': 'challenge', 'text': 'Sing'}]
    bar = BarRecord.query.get('B1')
    assert bar.owner == 'T1'
    assert TeamRecord.query.get('T2').to_dict()['active_challenge']['card_id'] == 'card_1'

    # A fresh store load rebuilds the same public state
    hunt = flask_app.extensions['hunt']
    state = hunt.store.load()
    assert state.version == hunt.session.version
    assert state.bars['B1'].owner == 'T1'
    assert state.teams['T2'].deck_seed == hunt.session.teams['T2'].deck_seed


def test_rejected_operation_is_not_persisted(client):
    _claim(client, 'T1', 'B1')
    _claim(client, 'T2', 'B1')
    assert BarRecord.query.get('B1').owner == 'T1'
    assert BarRecord.query.count() == 1


class SecretConfig(TestConfig):
    GAME_ADMIN_SECRET = 'hunter2'


def test_admin_secret_required(tmp_path):
    application = build_app(SecretConfig, tmp_path)
    with application.app_context():
        db.create_all()
        client = application.test_client()
        res = client.post('/api/admin/reset', json={})
        assert res.status_code == 403

        res = client.post('/api/admin/reset', json={}, headers={'X-Admin-Secret': 'wrong'})
        assert res.status_code == 403
        res = client.post('/api/admin/reset', json={}, headers={'X-Admin-Secret': 'hunter2'})
        assert res.status_code == 200

        assert client.post('/api/admin/login', json={'secret': 'nope'}).status_code == 403
        assert client.post('/api/admin/login', json={'secret': 'hunter2'}).status_code == 200
        res = client.get('/api/admin/state')
        assert res.status_code == 200
        assert set(res.get_json()['teams']) == {'T1', 'T2', 'T3'}

        client.post('/api/admin/logout')
        assert client.get('/api/admin/state').status_code == 403
        db.session.remove()
        db.drop_all()


def test_join_rejects_non_string_access_code(client):
    client.post('/api/admin/window', json={'access_code': '1234'})
    res = client.post('/api/hunt/join', json={'game_code': 1234, 'team_code': 'T1', 'display_name': 'Alex'})
    assert res.status_code == 403
    assert res.get_json()['code'] == 'InvalidGameCode'
    res = _claim(client, 'T1', 'B1', game_code=1234)
    assert res.status_code == 403
    assert client.get('/api/hunt/state').get_json()['bars'] == {}


def test_deck_upload_must_be_utf8(client):
    body = 'type,text\nchallenge,Caf\xe9 crawl\n'.encode('latin-1')
    res = client.post('/api/admin/deck', data={'file': (io.BytesIO(body), 'deck.csv')},
                      content_type='multipart/form-data')
    assert res.status_code == 400
    assert res.get_json()['code'] == 'InvalidDeck'
    assert hunt_ext.session.master_deck == []


def test_deck_upload_from_workbook(client):
    wb = Workbook()
    sheet = wb.active
    sheet.title = 'Deck'
    sheet.append(['type', 'text'])
    sheet.append(['challenge', 'Order in Spanish'])
    sheet.append(['curse', 'Whisper only'])
    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    res = client.post('/api/admin/deck', data={'file': (buf, 'Deck.xlsx')},
                      content_type='multipart/form-data')
    assert res.get_json() == {'ok': True, 'count': 2}
    assert [c.kind for c in hunt_ext.session.master_deck] == ['challenge', 'curse']

    res = client.post('/api/admin/deck', data={'file': (io.BytesIO(b'not a workbook'), 'deck.xlsx')},
                      content_type='multipart/form-data')
    assert res.status_code == 400
    assert res.get_json()['code'] == 'InvalidDeck'
    assert len(hunt_ext.session.master_deck) == 2


def test_adjustments_reject_fractions_and_bools(client):
    res = client.post('/api/admin/adjustments', json={'adjustments': {'T1': 2, 'T2': 2.7}})
    assert res.status_code == 400
    assert res.get_json()['code'] == 'InvalidTeamConfig'
    res = client.post('/api/admin/adjustments', json={'adjustments': {'T1': True}})
    assert res.status_code == 400
    state = client.get('/api/hunt/state').get_json()
    assert state['standings']['final_score'] == {'T1': 0, 'T2': 0, 'T3': 0}


def _photo_claim(client, team, place_id):
    data = {
        'team_code': team,
        'place_id': place_id,
        'team_photo': (io.BytesIO(b'fake-jpeg'), 'team.jpg'),
    }
    return client.post('/api/hunt/claim', data=data, content_type='multipart/form-data')


def test_photo_write_failure_leaves_bar_unclaimed(client, flask_app, monkeypatch):
    def broken_save(self, dst, buffer_size=16384):
        raise OSError('disk full')

    monkeypatch.setattr(FileStorage, 'save', broken_save)
    version = hunt_ext.session.version
    res = _photo_claim(client, 'T1', 'B1')
    assert res.status_code == 500
    assert res.get_json()['code'] == 'UploadFailed'
    assert client.get('/api/hunt/state').get_json()['bars'] == {}
    assert hunt_ext.session.version == version
    assert BarRecord.query.count() == 0
    assert os.listdir(flask_app.config['UPLOAD_FOLDER']) == []


def test_rejected_photo_claim_leaves_no_files(client, flask_app):
    assert _claim(client, 'T1', 'B1').status_code == 200
    res = _photo_claim(client, 'T2', 'B1')
    assert res.status_code == 400
    assert os.listdir(flask_app.config['UPLOAD_FOLDER']) == []

    res = _photo_claim(client, 'T2', 'B2')
    assert res.status_code == 200
    stored = os.listdir(flask_app.config['UPLOAD_FOLDER'])
    assert len(stored) == 1 and stored[0].endswith('_team.jpg')


def test_restart_restores_saved_game(tmp_path, clock):
    deck_path = tmp_path / 'deck.csv'
    deck_path.write_text('type,text\nchallenge,From the file\n', encoding='utf-8')

    class FileConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'hunt.db'}"
        HUNT_DECK_FILE = str(deck_path)

    first_app = build_app(FileConfig, tmp_path)
    with first_app.app_context():
        db.create_all()
        hunt_ext.session.clock = clock
        client = first_app.test_client()
        client.post('/api/admin/window', json={'access_code': 'CODE', 'start': START - 60, 'end': START + 7200})
        client.post('/api/admin/teams', json={'team_code': 'T1', 'name': 'Renamed Rockers'})
        client.post('/api/admin/deck', json={'cards': [
            {'type': 'challenge', 'text': 'Sing'}, {'type': 'curse', 'text': 'Whisper only'},
        ]})
        assert _claim(client, 'T1', 'B1', game_code='CODE').status_code == 200
        client.post('/api/hunt/steal', json={'game_code': 'CODE', 'team_code': 'T2', 'place_id': 'B1',
                                             'success': False})
        assert client.post('/api/hunt/deck/draw', json={'team_code': 'T3'}).status_code == 200
        client.post('/api/admin/adjustments', json={'game_code': 'CODE', 'adjustments': {'T2': 2}})
        before = hunt_ext.session.export_state().to_dict()
        public = hunt_ext.session.snapshot()
        db.session.remove()

    second_app = build_app(FileConfig, tmp_path)
    with second_app.app_context():
        hunt_ext.session.clock = clock
        assert hunt_ext.session.export_state().to_dict() == before
        assert hunt_ext.session.snapshot() == public
        assert hunt_ext.session.teams['T1'].name == 'Renamed Rockers'
        assert [c.text for c in hunt_ext.session.master_deck] == ['Sing', 'Whisper only']
        assert TeamRecord.query.count() == 3
        db.session.remove()
