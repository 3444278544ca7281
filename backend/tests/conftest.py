import os
import random
import sys
import pytest

# Ensure the backend root (containing the `tambola` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from tambola import create_app, socketio
from tambola.services.engine import Command, GameEngine
from tambola.services.registry import SessionRegistry


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = ['http://localhost:5173']
    ROOM_CODE_LENGTH = 6
    PLAYER_CODE_LENGTH = 4
    MAX_TICKETS_PER_ASSIGN = 6
    CHAT_HISTORY_LIMIT = 200
    CHAT_MAX_LENGTH = 500
    ROOM_IDLE_TTL_SEC = 0
    SWEEP_INTERVAL_SEC = 300
    NOTIFY_DROPPED_COMMANDS = False
    RANDOM_SEED = 1234


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


def _connect(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    test_client.get_received('/ws')  # drop the 'connected' greeting
    return test_client


@pytest.fixture()
def connect(flask_app):
    """Factory for extra Socket.IO clients; all are disconnected on teardown."""
    opened = []

    def _factory():
        test_client = _connect(flask_app)
        opened.append(test_client)
        return test_client

    yield _factory
    for test_client in opened:
        try:
            test_client.disconnect(namespace='/ws')
        except Exception:
            pass


@pytest.fixture()
def sio_client(connect):
    return connect()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def engine(clock):
    rng = random.Random(42)
    return GameEngine(SessionRegistry(rng=rng), rng=rng, clock=clock)


@pytest.fixture()
def run(engine):
    """Send one command to the engine: run(name, sid, **data)."""
    def _run(name, sid, **data):
        return engine.handle(Command(name=name, sid=sid, data=data))
    return _run
