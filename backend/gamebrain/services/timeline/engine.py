import logging
import threading
from typing import Callable, Dict, Optional

from .errors import MissingEventKind, SessionNotFound, ValidationError
from .rooms import RoomRegistry
from .state_machine import ARTIFACT_SELECTED, apply_event, default_state, replay
from .store import now_ms

logger = logging.getLogger(__name__)

STATE_UPDATED = 'state_updated'
HELLO = 'hello'


def _run_inline(fn, *args):
    fn(*args)


class SyncEngine:
    """Validate, apply, persist and fan out gameplay events.

    Work for one session is serialized by a per-session lock, so two devices
    submitting at once never lose an update. Unrelated sessions never wait on
    each other. Actuator effects run through ``spawn`` and never hold up the
    caller.
    """

    def __init__(
        self,
        store,
        registry: RoomRegistry,
        bridge=None,
        spawn: Optional[Callable] = None,
        actuator_effects: Optional[Dict[str, str]] = None,
        strict_kinds: bool = False,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.registry = registry
        self.bridge = bridge
        self.spawn = spawn or _run_inline
        self.actuator_effects = {k: v for k, v in (actuator_effects or {}).items() if v}
        self.strict_kinds = strict_kinds
        self.clock = clock
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def session_lock(self, session_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = self._locks[session_id] = threading.Lock()
            return lock

    # ---- Session lifecycle ----

    def create_session(self, session_id=None, artifact=None):
        state = default_state()
        if artifact is not None:
            # Validate before anything is written
            apply_event(state, ARTIFACT_SELECTED, {'artifact': artifact}, self.clock())
        session_id = self.store.create_session(state, session_id=session_id, ts=self.clock())
        logger.info(f"[session-create] session={session_id} artifact={artifact}")
        if artifact is not None:
            state = self.submit_event(session_id, ARTIFACT_SELECTED, {'artifact': artifact})
        return session_id, state

    def get_state(self, session_id):
        state = self.store.get_state(session_id)
        if state is None:
            raise SessionNotFound(session_id)
        return state

    def list_sessions(self, limit=50):
        return self.store.list_sessions(limit=limit)

    def list_events(self, session_id):
        self.get_state(session_id)
        return self.store.list_events(session_id)

    # ---- Event submission ----

    def submit_event(self, session_id, kind, payload=None):
        # Unknown ids never get a lock entry
        self.get_state(session_id)
        with self.session_lock(session_id):
            state = self.store.get_state(session_id)
            if state is None:
                raise SessionNotFound(session_id)
            if not kind or not isinstance(kind, str) or not kind.strip():
                raise MissingEventKind()
            if payload is not None and not isinstance(payload, dict):
                raise ValidationError('Payload must be an object', {'field': 'payload'})
            payload = payload or {}

            ts = self.clock()
            new_state = apply_event(state, kind, payload, ts, strict=self.strict_kinds)

            self.store.append_event(session_id, kind, payload, ts)
            self.store.save_state(session_id, new_state, ts)
            delivered = self.registry.broadcast(
                session_id, STATE_UPDATED, {'session_id': session_id, 'state': new_state}
            )

        logger.info(
            f"[event] session={session_id} kind={kind} index={new_state.get('sequence_index')} "
            f"open={new_state.get('timeline_open')} delivered={delivered}"
        )
        self._dispatch_actuator(session_id, kind)
        return new_state

    def _dispatch_actuator(self, session_id, kind):
        effect_id = self.actuator_effects.get(kind)
        if effect_id is None or self.bridge is None:
            return
        try:
            self.spawn(self.bridge.dispatch, effect_id)
        except Exception as exc:
            logger.error(f"[actuator-spawn-failed] session={session_id} kind={kind} effect={effect_id} error={exc}")

    # ---- Live subscribers ----

    def subscribe(self, session_id, handle, device='unknown'):
        """Join a room and catch up.

        Registration and the snapshot read happen under the session lock, so
        the new subscriber sees either the pre-event snapshot followed by the
        broadcast, or the post-event snapshot alone. Never both, never neither.
        """
        if self.store.get_state(session_id) is None:
            # Nothing to catch up on, and no lock kept for an id that may never exist
            self.registry.subscribe(session_id, handle, device)
            self.registry.deliver(handle, HELLO, {'session_id': session_id, 'device': device, 'ts': self.clock()})
            logger.info(f"[subscribe] session={session_id} device={device} handle={handle} caught_up=False")
            return None
        with self.session_lock(session_id):
            self.registry.subscribe(session_id, handle, device)
            self.registry.deliver(handle, HELLO, {'session_id': session_id, 'device': device, 'ts': self.clock()})
            state = self.store.get_state(session_id)
            if state is not None:
                self.registry.deliver(handle, STATE_UPDATED, {'session_id': session_id, 'state': state})
        logger.info(f"[subscribe] session={session_id} device={device} handle={handle} caught_up={state is not None}")
        return state

    def unsubscribe(self, handle, session_id=None):
        if session_id is None:
            session_id = self.registry.discard(handle)
        else:
            self.registry.unsubscribe(session_id, handle)
        if session_id is not None:
            logger.info(f"[unsubscribe] session={session_id} handle={handle}")
        return session_id

    # ---- Audit ----

    def audit_session(self, session_id):
        """Replay the event log and compare it with the stored snapshot.

        A log entry whose snapshot save failed shows up here as
        ``consistent: False``.

        Replay is always lenient: unknown kinds only reached the log while
        the server accepted them.
        """
        snapshot = self.get_state(session_id)
        events = self.store.list_events(session_id)
        replayed = replay(
            ((e['kind'], e['payload'], e['ts']) for e in events),
            strict=False,
        )
        consistent = replayed == snapshot
        if not consistent:
            logger.warning(f"[audit-divergence] session={session_id} events={len(events)}")
        return {
            'session_id': session_id,
            'consistent': consistent,
            'event_count': len(events),
            'snapshot': snapshot,
            'replayed': replayed,
        }
