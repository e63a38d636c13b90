import json
import os
import random
import sys

import pytest

# Ensure the backend root (containing the `salvo` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from salvo import create_app, socketio
from salvo.errors import TransportFailure
from salvo.models import Player
from salvo.registry import ConnectionRegistry
from salvo.services.battle.board import Board


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    LOG_LEVEL = 'DEBUG'
    CORS_ORIGINS = []
    SOCKETIO_NAMESPACE = '/ws'
    FLEET = (5, 4, 3, 3, 2)
    PLACEMENT_SEED = 1234
    TURN_TIMEOUT_SEC = 0


# Two ships: ship 1 on (0,0)-(0,1), ship 2 on (2,0)-(4,0)
SMALL_GRID = [[0] * 10 for _ in range(10)]
SMALL_GRID[0][0] = SMALL_GRID[0][1] = 1
SMALL_GRID[2][0] = SMALL_GRID[3][0] = SMALL_GRID[4][0] = 2


class RecordingTransport:
    """Collects decoded messages per connection; can be told to fail."""

    def __init__(self):
        self.sent = {}
        self.failing = set()

    def send(self, connection, text):
        if connection in self.failing:
            raise TransportFailure(f'{connection} is gone')
        self.sent.setdefault(connection, []).append(json.loads(text))

    def messages(self, connection):
        return self.sent.get(connection, [])

    def types(self, connection):
        return [m['type'] for m in self.messages(connection)]


def make_player(connection='c', grid=None):
    return Player(connection=connection, board=Board.from_grid(grid or SMALL_GRID))


@pytest.fixture()
def transport():
    return RecordingTransport()


@pytest.fixture()
def registry(transport):
    return ConnectionRegistry(transport, rng=random.Random(7))


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    yield application
    application.extensions['salvo'].registry.shutdown()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(flask_app):
    clients = []

    def _connect():
        test_client = socketio.test_client(flask_app, namespace='/ws')
        clients.append(test_client)
        return test_client

    yield _connect
    for test_client in clients:
        try:
            if test_client.is_connected('/ws'):
                test_client.disconnect(namespace='/ws')
        except Exception:
            pass
