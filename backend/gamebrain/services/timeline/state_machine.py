"""Pure state transitions for a timeline session.

``apply_event`` never touches storage or sockets; it takes the current state
document and returns a new one. The input is left untouched, so a failed
transition can never leave a half-applied document behind.
"""
import copy

from .errors import InvalidEvent, UnknownEventKind, ValidationError


ARTIFACT_SELECTED = 'ARTIFACT_SELECTED'
PR_SET_NEXT_YEAR = 'PR_SET_NEXT_YEAR'
PA_ANSWER_CORRECT = 'PA_ANSWER_CORRECT'
FUTURE_SENT_MESSAGE_TO_PAST = 'FUTURE_SENT_MESSAGE_TO_PAST'
OBS_SWITCH_SCENE2 = 'OBS_SWITCH_SCENE2'

# Timeline locations
PRESENT = 'PR'
PAST = 'PA'
FUTURE = 'F'

ARTIFACT_PATHS = {
    'watch': (PRESENT, PAST, PRESENT, FUTURE, PRESENT, PAST, FUTURE),
    'compass': (PRESENT, FUTURE, PRESENT, PAST, PRESENT, FUTURE, PAST),
    'letter': (PRESENT, PAST, FUTURE, PRESENT, FUTURE, PAST, PRESENT),
}

DEFAULT_FUTURE_MESSAGE = 'Message from the future…'


def default_state():
    return {
        'artifact': None,
        'path': [],
        'sequence_index': 0,
        'timeline_open': PRESENT,
        'puzzles': {
            'pr': {'stage': 0},
            'pa': {'stage': 0, 'inbox': []},
            'f': {'stage': 0},
        },
        'last_event': None,
    }


def path_for_artifact(artifact):
    if not isinstance(artifact, str) or artifact not in ARTIFACT_PATHS:
        raise InvalidEvent('Invalid artifact', {'artifact': artifact, 'allowed': sorted(ARTIFACT_PATHS)})
    return list(ARTIFACT_PATHS[artifact])


def _advance(state):
    # Clamp at the last location; before an artifact is chosen there is nowhere to go
    path = state.get('path') or []
    if not path:
        return
    state['sequence_index'] = min(int(state.get('sequence_index') or 0) + 1, len(path) - 1)
    state['timeline_open'] = path[state['sequence_index']]


def _artifact_selected(state, payload, ts):
    artifact = payload.get('artifact')
    state['path'] = path_for_artifact(artifact)
    state['artifact'] = artifact
    state['sequence_index'] = 0
    state['timeline_open'] = state['path'][0]


def _pr_set_next_year(state, payload, ts):
    _advance(state)


def _pa_answer_correct(state, payload, ts):
    state['puzzles']['pa']['stage'] += 1
    _advance(state)


def _future_sent_message(state, payload, ts):
    message = payload.get('message') or DEFAULT_FUTURE_MESSAGE
    state['puzzles']['pa']['inbox'].append({'id': f'msg_{ts}', 'message': message})


def _obs_switch_scene2(state, payload, ts):
    # Marker only; the scene change itself is dispatched by the engine
    state['puzzles']['pr']['last_obs_scene'] = 'Scene2'


_TRANSITIONS = {
    ARTIFACT_SELECTED: _artifact_selected,
    PR_SET_NEXT_YEAR: _pr_set_next_year,
    PA_ANSWER_CORRECT: _pa_answer_correct,
    FUTURE_SENT_MESSAGE_TO_PAST: _future_sent_message,
    OBS_SWITCH_SCENE2: _obs_switch_scene2,
}

EVENT_KINDS = tuple(_TRANSITIONS)


def apply_event(state, kind, payload=None, ts=None, strict=False):
    """Return the state that results from applying one event to ``state``.

    Raises ``InvalidEvent`` for a malformed payload of a known kind. An
    unrecognized kind only updates ``last_event``, unless ``strict`` is set,
    in which case ``UnknownEventKind`` is raised.
    """
    payload = payload or {}
    transition = _TRANSITIONS.get(kind)
    if transition is None and strict:
        raise UnknownEventKind(kind)

    new_state = copy.deepcopy(state)
    new_state['last_event'] = {'kind': kind, 'payload': copy.deepcopy(payload), 'ts': ts}
    if transition is not None:
        transition(new_state, payload, ts)
    return new_state


def replay(events, strict=False):
    """Fold ``(kind, payload, ts)`` tuples over a fresh default state.

    Events that fail validation are skipped, matching how the engine refuses
    to commit them.
    """
    state = default_state()
    for kind, payload, ts in events:
        try:
            state = apply_event(state, kind, payload, ts, strict=strict)
        except ValidationError:
            continue
    return state
