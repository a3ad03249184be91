import pytest
from sqlalchemy.exc import OperationalError

from gamebrain import db
from gamebrain.models import GameEvent
from gamebrain.services.timeline import SessionExists, SessionStore, StorageError, default_state


def test_create_get_save(flask_app):
    store = SessionStore()
    session_id = store.create_session(default_state(), ts=1)
    assert session_id.startswith('S') and len(session_id) == 7
    assert store.get_state(session_id) == default_state()
    assert store.get_state('missing') is None

    state = default_state()
    state['sequence_index'] = 3
    store.save_state(session_id, state, ts=2)
    store.save_state(session_id, state, ts=3)
    assert store.get_state(session_id)['sequence_index'] == 3


def test_duplicate_session_id(flask_app):
    store = SessionStore()
    store.create_session(default_state(), session_id='ROOM1')
    with pytest.raises(SessionExists):
        store.create_session(default_state(), session_id='ROOM1')


def test_list_sessions_most_recent_first(flask_app):
    store = SessionStore()
    store.create_session(default_state(), session_id='A', ts=10)
    store.create_session(default_state(), session_id='B', ts=20)
    store.save_state('A', default_state(), ts=30)
    assert [s['session_id'] for s in store.list_sessions()] == ['A', 'B']
    assert [s['session_id'] for s in store.list_sessions(limit=1)] == ['A']
    assert store.list_sessions()[0]['updated_at'] == 30


def test_events_append_in_order(flask_app):
    store = SessionStore()
    store.create_session(default_state(), session_id='A')
    store.append_event('A', 'PR_SET_NEXT_YEAR', None, ts=5)
    store.append_event('A', 'FUTURE_SENT_MESSAGE_TO_PAST', {'message': 'hi'}, ts=6)
    store.append_event('B', 'PR_SET_NEXT_YEAR', {}, ts=7)

    events = store.list_events('A')
    assert [(e['kind'], e['payload'], e['ts']) for e in events] == [
        ('PR_SET_NEXT_YEAR', {}, 5),
        ('FUTURE_SENT_MESSAGE_TO_PAST', {'message': 'hi'}, 6),
    ]


def test_commit_failure_becomes_storage_error(flask_app, monkeypatch):
    store = SessionStore()
    store.create_session(default_state(), session_id='A')

    def boom():
        raise OperationalError('INSERT', {}, Exception('disk I/O error'))

    monkeypatch.setattr(db.session, 'commit', boom)
    with pytest.raises(StorageError):
        store.append_event('A', 'PR_SET_NEXT_YEAR', {}, ts=1)
    monkeypatch.undo()
    assert GameEvent.query.count() == 0
