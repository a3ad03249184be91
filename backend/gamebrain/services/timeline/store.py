import json
import logging
import time

from sqlalchemy.exc import SQLAlchemyError

from gamebrain import db
from gamebrain.models import GameEvent, GameSession, generate_session_id
from .errors import SessionExists, StorageError

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class SessionStore:
    """Snapshot table plus append-only event log, backed by Flask-SQLAlchemy.

    Each write commits on its own: an event is durable before the snapshot
    that reflects it, so a failed snapshot save leaves an audit trail instead
    of silently losing the event.
    """

    def _commit(self, what: str, session_id: str) -> None:
        try:
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.error(f"[storage-error] op={what} session={session_id} error={exc}")
            raise StorageError(f'Failed to {what}', {'session_id': session_id}) from exc

    def create_session(self, state, session_id=None, ts=None) -> str:
        try:
            if session_id is None:
                session_id = generate_session_id()
            elif db.session.get(GameSession, session_id) is not None:
                raise SessionExists(session_id)
            row = GameSession(id=session_id, updated_at=ts or now_ms())
            row.state = state
            db.session.add(row)
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError('Failed to create session', {'session_id': session_id}) from exc
        self._commit('create session', session_id)
        return session_id

    def get_state(self, session_id):
        try:
            row = db.session.get(GameSession, session_id)
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError('Failed to load session', {'session_id': session_id}) from exc
        return row.state if row else None

    def save_state(self, session_id, state, ts=None) -> None:
        try:
            row = db.session.get(GameSession, session_id)
            if row is None:
                row = GameSession(id=session_id)
                db.session.add(row)
            row.state = state
            row.updated_at = ts or now_ms()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError('Failed to save state', {'session_id': session_id}) from exc
        self._commit('save state', session_id)

    def append_event(self, session_id, kind, payload, ts=None) -> GameEvent:
        event = GameEvent(
            session_id=session_id,
            type=kind,
            payload_json=json.dumps(payload or {}),
            ts=ts or now_ms(),
        )
        db.session.add(event)
        self._commit('append event', session_id)
        return event

    def list_sessions(self, limit=50):
        try:
            rows = GameSession.query.order_by(GameSession.updated_at.desc()).limit(limit).all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError('Failed to list sessions') from exc
        return [row.to_dict() for row in rows]

    def list_events(self, session_id):
        try:
            rows = GameEvent.query.filter_by(session_id=session_id).order_by(GameEvent.id.asc()).all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError('Failed to list events', {'session_id': session_id}) from exc
        return [row.to_dict() for row in rows]
