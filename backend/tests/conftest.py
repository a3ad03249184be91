import os
import sys
import threading
import pytest

# Ensure the backend root (containing the `gamebrain` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from gamebrain import create_app, db, socketio
from gamebrain.services.obs import ActuatorError
from gamebrain.services.timeline import RoomRegistry, StorageError, SyncEngine


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = '*'
    STRICT_EVENT_KINDS = False
    SESSION_LIST_LIMIT = 50
    OBS_SCENE_2_NAME = 'Scene 2'
    OBS_SWITCH_SCENE2_EFFECT = 'toggle_spotlight'


class FakeBridge:
    """Stands in for ObsBridge; records effects instead of talking to OBS."""

    def __init__(self, fail=False):
        self.fail = fail
        self.dispatched = []
        self.scenes = []
        self.host = 'fake-obs'
        self.port = 4455

    @property
    def connected(self):
        return not self.fail

    def connect(self):
        return not self.fail

    def health(self):
        return {'ok': not self.fail, 'connected': not self.fail, 'host': self.host, 'port': self.port}

    def set_scene(self, scene_name):
        if self.fail:
            raise ActuatorError('OBS not connected')
        self.scenes.append(scene_name)
        return True

    def trigger_scene_effect(self, effect_id):
        if self.fail:
            raise ActuatorError('OBS not connected')
        self.dispatched.append(effect_id)
        return True

    def dispatch(self, effect_id):
        try:
            return self.trigger_scene_effect(effect_id)
        except ActuatorError:
            return False


class MemoryStore:
    """In-process SessionStore double with optional slow reads and injected failures."""

    def __init__(self, read_delay=0.0):
        self.snapshots = {}
        self.events = []
        self.writes = []
        self.read_delay = read_delay
        self.fail_append = False
        self.fail_save = False
        self._ids = 0

    def create_session(self, state, session_id=None, ts=None):
        if session_id is None:
            self._ids += 1
            session_id = f'S{self._ids:06d}'
        self.snapshots[session_id] = state
        return session_id

    def get_state(self, session_id):
        if self.read_delay:
            threading.Event().wait(self.read_delay)
        return self.snapshots.get(session_id)

    def save_state(self, session_id, state, ts=None):
        if self.fail_save:
            raise StorageError('Failed to save state')
        self.writes.append(('snapshot', session_id))
        self.snapshots[session_id] = state

    def append_event(self, session_id, kind, payload, ts=None):
        if self.fail_append:
            raise StorageError('Failed to append event')
        self.writes.append(('event', session_id))
        self.events.append({'session_id': session_id, 'kind': kind, 'payload': payload, 'ts': ts})

    def list_sessions(self, limit=50):
        return [{'session_id': k, 'state': v} for k, v in list(self.snapshots.items())[:limit]]

    def list_events(self, session_id):
        return [e for e in self.events if e['session_id'] == session_id]


class RecordingSender:
    def __init__(self, log=None):
        self.sent = []
        self.log = log
        self.broken = set()

    def __call__(self, handle, event, data):
        if handle in self.broken:
            raise ConnectionError(f'{handle} is gone')
        self.sent.append((handle, event, data))
        if self.log is not None:
            self.log.append(('send', handle, event))

    def for_handle(self, handle):
        return [(event, data) for h, event, data in self.sent if h == handle]


@pytest.fixture()
def memory_store():
    return MemoryStore()


@pytest.fixture()
def sender():
    return RecordingSender()


@pytest.fixture()
def fake_bridge():
    return FakeBridge()


@pytest.fixture()
def engine(memory_store, sender, fake_bridge):
    counter = iter(range(1_000, 1_000_000))
    return SyncEngine(
        memory_store,
        RoomRegistry(sender),
        bridge=fake_bridge,
        actuator_effects={'OBS_SWITCH_SCENE2': 'toggle_spotlight'},
        clock=lambda: next(counter),
    )


@pytest.fixture()
def flask_app(fake_bridge):
    application = create_app(TestConfig)
    # Run actuator effects inline against a fake bridge
    timeline = application.extensions['timeline']
    timeline.bridge = fake_bridge
    timeline.spawn = lambda fn, *args: fn(*args)
    application.extensions['obs'] = fake_bridge
    with application.app_context():
        # Ensure models are imported so tables are created
        import gamebrain.models  # noqa: F401
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
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
