"""Timeline session synchronization.

The pure state machine, the durable session store/event log, the live room
registry and the engine that ties them together. HTTP routes and socket
handlers import from here and stay free of game rules.
"""
from .errors import (
    InvalidEvent,
    MissingEventKind,
    SessionExists,
    SessionNotFound,
    StorageError,
    TimelineError,
    UnknownEventKind,
    ValidationError,
)
from .state_machine import (
    ARTIFACT_SELECTED,
    EVENT_KINDS,
    FUTURE_SENT_MESSAGE_TO_PAST,
    OBS_SWITCH_SCENE2,
    PA_ANSWER_CORRECT,
    PR_SET_NEXT_YEAR,
    apply_event,
    default_state,
    path_for_artifact,
    replay,
)
from .rooms import RoomRegistry
from .store import SessionStore
from .engine import HELLO, STATE_UPDATED, SyncEngine
