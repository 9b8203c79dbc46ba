import os
import sys
import pytest

# Ensure the backend root (containing the `marble_royale` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from marble_royale import create_app, socketio
from marble_royale.services.broadcast import BroadcastHub, Observer
from marble_royale.services.race import RaceController

# 2023-11-14T22:13:32.345Z; the next whole minute is 1_700_000_040_000
START_MS = 1_700_000_012_345
NEXT_MINUTE_MS = 1_700_000_040_000


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    LOBBY_INTERVAL_SEC = 60
    SCHEDULER_POLL_SEC = 1
    LOBBY_REFRESH_SEC = 5
    # Tick workers run inline in tests; no sleeping between ticks
    RACE_TICK_MS = 0
    TRACK_DISTANCE = 100
    ADVANCE_MIN = 2
    ADVANCE_MAX = 8
    MAX_NAME_LENGTH = 24
    ENABLE_FORCE_START = True
    VISITOR_COOKIE = 'visitorId'
    SSE_KEEPALIVE_SEC = 0.05
    SSE_QUEUE_SIZE = 16


class FakeClock:
    def __init__(self, now=START_MS):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms
        return self.now


class RecordingObserver(Observer):
    def __init__(self, visitor_id=None):
        super().__init__(visitor_id)
        self.events = []

    def send(self, event, data):
        self.events.append((event, data))

    def names(self):
        return [event for event, _ in self.events]

    def last(self, event):
        matching = [data for name, data in self.events if name == event]
        return matching[-1] if matching else None


class BrokenObserver(Observer):
    def send(self, event, data):
        raise ConnectionError('socket closed')


def max_step(low, high):
    return high


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def hub():
    return BroadcastHub()


@pytest.fixture()
def controller(clock, hub):
    return RaceController(hub=hub, clock=clock, sampler=max_step)


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws',
        auth={'visitor_id': 'observer-1'},
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
