import logging
import threading
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


class RoomRegistry:
    """Live subscribers per session.

    ``send(handle, event, data)`` delivers one message to one subscriber; in
    the app it emits to a Socket.IO sid. Nothing here is persisted: a room
    exists only while it has members.
    """

    def __init__(self, send: Callable[[str, str, dict], None]):
        self._send = send
        self._rooms: Dict[str, Dict[str, str]] = {}  # session_id -> {handle: device}
        self._handles: Dict[str, str] = {}  # handle -> session_id
        self._lock = threading.Lock()

    def subscribe(self, session_id: str, handle: str, device: str = 'unknown') -> None:
        with self._lock:
            previous = self._handles.get(handle)
            if previous is not None and previous != session_id:
                self._remove_locked(previous, handle)
            self._rooms.setdefault(session_id, {})[handle] = device
            self._handles[handle] = session_id

    def unsubscribe(self, session_id: str, handle: str) -> bool:
        with self._lock:
            return self._remove_locked(session_id, handle)

    def discard(self, handle: str) -> Optional[str]:
        """Drop ``handle`` from whichever room holds it; returns that session id."""
        with self._lock:
            session_id = self._handles.get(handle)
            if session_id is not None:
                self._remove_locked(session_id, handle)
            return session_id

    def _remove_locked(self, session_id, handle):
        members = self._rooms.get(session_id)
        if not members or handle not in members:
            return False
        del members[handle]
        if self._handles.get(handle) == session_id:
            del self._handles[handle]
        if not members:
            del self._rooms[session_id]
        return True

    def members(self, session_id: str) -> Dict[str, str]:
        with self._lock:
            return dict(self._rooms.get(session_id, {}))

    def rooms(self) -> Dict[str, int]:
        with self._lock:
            return {sid: len(members) for sid, members in self._rooms.items()}

    def deliver(self, handle: str, event: str, data: dict) -> bool:
        """Send to one subscriber; a broken subscriber is dropped, never raised."""
        try:
            self._send(handle, event, data)
        except Exception as exc:
            session_id = self.discard(handle)
            logger.warning(f"[broadcast-skip] session={session_id} handle={handle} event={event} error={exc}")
            return False
        return True

    def broadcast(self, session_id: str, event: str, data: dict) -> int:
        # Snapshot membership so sends never run under the lock
        with self._lock:
            handles = list(self._rooms.get(session_id, {}))
        delivered = 0
        for handle in handles:
            if self.deliver(handle, event, data):
                delivered += 1
        return delivered
