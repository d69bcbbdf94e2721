import os
import sys
import pytest

# Ensure the backend root (containing the `duel` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from duel import create_app, socketio
from duel.services.games import DuelService, GameConfig


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    GAME_CONFIG_PATH = os.path.join(CURRENT_DIR, 'does-not-exist.json')
    TICK_INTERVAL_MS = 100
    MATCHMAKING_SLACK_MS = 1000
    GAME_OVER_GRACE_MS = 1000
    CORS_ORIGINS = ['http://localhost:5173']


class FakeClock:
    def __init__(self, start=1_000_000):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms
        return self.now


class RecordingGateway:
    """In-memory gateway: records emits and room membership."""

    def __init__(self):
        self.events = []
        self.rooms = {}
        self.closed = []

    def emit(self, event, data, to=None):
        self.events.append((event, data, to))

    def enter_room(self, sid, room):
        self.rooms.setdefault(room, set()).add(sid)

    def close_room(self, room):
        self.rooms.pop(room, None)
        self.closed.append(room)

    def named(self, event):
        return [data for name, data, _ in self.events if name == event]

    def last(self, event):
        found = self.named(event)
        return found[-1] if found else None

    def clear(self):
        self.events = []


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def gateway():
    return RecordingGateway()


@pytest.fixture()
def make_service(clock, gateway):
    def _make(**overrides):
        return DuelService(GameConfig(**overrides), gateway, clock=clock)
    return _make


@pytest.fixture()
def service(make_service):
    return make_service()


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(flask_app):
    created = []

    def _connect(name=None, mode=None):
        params = []
        if name:
            params.append(f'name={name}')
        if mode:
            params.append(f'mode={mode}')
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace='/ws',
            query_string='&'.join(params) or None,
        )
        created.append(test_client)
        return test_client

    yield _connect
    for test_client in created:
        if test_client.is_connected('/ws'):
            test_client.disconnect(namespace='/ws')
