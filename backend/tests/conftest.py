import os
import sys
import pytest

# Ensure the backend root (containing the `metattt` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from metattt import create_app, db, socketio
from metattt.services.game.commands import Connect, RequestUsername
from metattt.services.game.identity import PlayerRegistry
from metattt.services.game.manager import GameManager
from metattt.services.game.profanity import Blocklist
from metattt.services.game.scheduler import ScheduledTask
from metattt.services.game.scoring import ScoreLedger


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    RESTORE_PLAYERS_ON_START = False
    BLOCKED_WORDS_FILE = os.path.join(BACKEND_ROOT, 'metattt', 'data', 'blocked_words.txt')
    RESET_DELAY_SEC = 0
    SUPPORT_EMAIL = 'help@test.local'


class FakeStore:
    """Records writes instead of persisting them."""

    def __init__(self):
        self.calls = []

    def insert_player(self, player):
        self.calls.append(('insert', player.id, player.username))

    def update_player(self, player):
        self.calls.append(('update', player.id, player.username, player.ip_address))

    def update_score(self, player_id, score):
        self.calls.append(('score', player_id, score))


class RecordingBroadcaster:
    def __init__(self):
        self.sent = []
        self.broadcasts = []

    def send(self, session_id, event, payload):
        self.sent.append((session_id, event, payload))

    def broadcast(self, event, payload):
        self.broadcasts.append((event, payload))

    def events(self, name):
        return [payload for event, payload in self.broadcasts if event == name]

    def sent_to(self, session_id, name):
        return [payload for sid, event, payload in self.sent if sid == session_id and event == name]


class ManualScheduler:
    """Holds scheduled tasks until the test runs them."""

    def __init__(self):
        self.tasks = []

    def schedule(self, delay, callback):
        task = ScheduledTask(delay, callback)
        self.tasks.append(task)
        return task

    def run_pending(self):
        for task in list(self.tasks):
            task.run()


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import metattt.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        namespace='/ws',
        headers={'X-Forwarded-For': '10.0.0.1'},
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def store():
    return FakeStore()


@pytest.fixture()
def registry(store):
    return PlayerRegistry(store, Blocklist(['heck', 'darn']), support_email='help@test.local')


@pytest.fixture()
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def manager(registry, store, broadcaster, scheduler, clock):
    return GameManager(
        broadcaster,
        registry,
        ScoreLedger(store),
        scheduler,
        reset_delay=3,
        history_length=3,
        max_emotes_per_window=2,
        emote_window=10,
        clock=clock,
    )


@pytest.fixture()
def join(manager):
    """Connect a session and optionally claim a username; returns its player."""

    def _join(session_id, ip_address, username=None, claimed=None):
        manager.dispatch(Connect(session_id, ip_address, claimed))
        if username:
            result = manager.dispatch(RequestUsername(session_id, username))
            assert result.ok, result.message
        return manager.registry.player_for_session(session_id)

    return _join
