import os
import random
import sys

import pytest

# Ensure the backend root (containing the `wrongfruit` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from wrongfruit.config import Config
from wrongfruit.game.models import Player, RoomSettings
from wrongfruit.game.room import Room
from wrongfruit.server import create_app


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SOCKETIO_ASYNC_MODE = "threading"
    TRUST_PROXY_HEADERS = False
    ENABLE_TIMERS_IN_TESTS = False


class Recorder:
    """Collects room notifications as (event, payload, to) tuples."""

    def __init__(self):
        self.events = []

    def __call__(self, room_code, event, payload, to=None):
        self.events.append((event, payload, to))

    def named(self, event):
        return [(payload, to) for name, payload, to in self.events if name == event]


@pytest.fixture()
def recorder():
    return Recorder()


@pytest.fixture()
def make_room(recorder):
    def _make(players=4, **settings):
        room = Room(
            "ABCD",
            RoomSettings(**settings),
            notify=recorder,
            spawn=lambda *args: None,
            sleep=lambda seconds: None,
            rng=random.Random(1234),
        )
        for i in range(players):
            room.add_player(Player(id=f"p{i}", name=f"Player{i}", room_code="ABCD"))
        return room

    return _make


@pytest.fixture()
def app_and_socketio():
    return create_app(TestConfig)


@pytest.fixture()
def flask_app(app_and_socketio):
    return app_and_socketio[0]


@pytest.fixture()
def socketio(app_and_socketio):
    return app_and_socketio[1]


@pytest.fixture()
def directory(flask_app):
    return flask_app.extensions["wrongfruit"]


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def make_sio(flask_app, socketio):
    clients = []

    def _make():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass
