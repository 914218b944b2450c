import os
import sys
import pytest

# Ensure the backend root (containing the `app` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from app import create_app, db, socketio, hunt as hunt_ext
from app.services.hunt import Card, GameSession


START = 1_700_000_000.0

TEAMS = [
    {'code': 'T1', 'name': 'Raj on the Rocks', 'color': '#ef4444'},
    {'code': 'T2', 'name': 'Blue Lagoons', 'color': '#3b82f6'},
    {'code': 'T3', 'name': 'Green Giants', 'color': '#22c55e'},
]


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    GAME_ACCESS_CODE = ''
    GAME_ADMIN_SECRET = ''
    HUNT_TEAMS = TEAMS
    HUNT_DECK_FILE = ''
    UPLOAD_FOLDER = ''


class ManualClock:
    """Clock the tests move by hand."""

    def __init__(self, now=START):
        self.t = now

    def now(self):
        return self.t

    def advance(self, minutes=0, seconds=0):
        self.t += minutes * 60 + seconds


def make_cards(n):
    return [Card(id=f'c{i}', kind='challenge', text=f'Challenge {i}') for i in range(1, n + 1)]


@pytest.fixture()
def clock():
    return ManualClock()


@pytest.fixture()
def session(clock):
    s = GameSession(clock=clock)
    for t in TEAMS:
        s.set_team_config(t['code'], t['name'], t['color'])
    return s


def build_app(config_class, tmp_path):
    application = create_app(config_class)
    application.config['UPLOAD_FOLDER'] = str(tmp_path / 'uploads')
    return application


@pytest.fixture()
def flask_app(tmp_path, clock):
    application = build_app(TestConfig, tmp_path)
    with application.app_context():
        db.create_all()
        hunt_ext.session.clock = clock
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def hunt(flask_app):
    return flask_app.extensions['hunt']


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
