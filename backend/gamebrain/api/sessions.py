from flask import Blueprint, jsonify, request, current_app
from gamebrain.services.timeline import SyncEngine, TimelineError, ValidationError


sessions = Blueprint('sessions', __name__)


def _engine() -> SyncEngine:
    return current_app.extensions['timeline']


def _json_object():
    """Request body as a dict; an empty body counts as {}."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


@sessions.errorhandler(TimelineError)
def handle_timeline_error(exc: TimelineError):
    try:
        current_app.logger.info(f"[rejected] path={request.path} status={exc.status_code} error={exc.message}")
    except Exception:
        pass
    return jsonify(exc.to_dict()), exc.status_code


@sessions.route('', methods=['POST'])
def create_session():
    data = _json_object()
    session_id = data.get('session_id') or data.get('sessionId')
    if session_id is not None and not isinstance(session_id, str):
        raise ValidationError('session_id must be a string', {'field': 'session_id'})
    session_id, state = _engine().create_session(
        session_id=session_id,
        artifact=data.get('artifact'),
    )
    return jsonify({'session_id': session_id, 'state': state}), 201


@sessions.route('', methods=['GET'])
def list_sessions():
    default_limit = int(current_app.config.get('SESSION_LIST_LIMIT', 50))
    limit = request.args.get('limit', default_limit, type=int)
    limit = max(1, min(limit, 500))
    return jsonify({'sessions': _engine().list_sessions(limit=limit)})


@sessions.route('/<string:session_id>', methods=['GET'])
def get_session(session_id):
    state = _engine().get_state(session_id)
    return jsonify({'session_id': session_id, 'state': state})


@sessions.route('/<string:session_id>/events', methods=['POST'])
def submit_event(session_id):
    data = _json_object()
    # Older device firmware sends "type" rather than "kind"
    kind = data.get('kind') or data.get('type')
    state = _engine().submit_event(session_id, kind, data.get('payload'))
    return jsonify({'ok': True, 'state': state})


@sessions.route('/<string:session_id>/events', methods=['GET'])
def list_events(session_id):
    events = _engine().list_events(session_id)
    return jsonify({'session_id': session_id, 'events': events})


@sessions.route('/<string:session_id>/audit', methods=['GET'])
def audit_session(session_id):
    return jsonify(_engine().audit_session(session_id))
