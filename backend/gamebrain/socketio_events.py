from flask_socketio import emit
from flask import current_app, request
from gamebrain import socketio, WS_NAMESPACE
from gamebrain.services.timeline import TimelineError


def _engine():
    return current_app.extensions['timeline']


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _join(session_id, device):
    try:
        _engine().subscribe(session_id, _get_sid(), device)
    except TimelineError as exc:
        emit('error', exc.to_dict())


def handle_connect(auth=None):
    emit('connected', {'message': f'Connected to {WS_NAMESPACE}'})
    # ws://host:3000/ws?sessionId=S123&device=past joins straight away
    session_id = request.args.get('sessionId') or request.args.get('session_id')
    if session_id:
        _join(session_id, request.args.get('device') or 'unknown')


def handle_disconnect(reason=None):
    _engine().unsubscribe(_get_sid())


def handle_join_session(data):
    session_id = (data or {}).get('session_id')
    device = (data or {}).get('device') or 'unknown'
    if not session_id:
        emit('error', {'error': 'session_id is required'})
        return
    _join(session_id, device)


def handle_leave_session(data):
    session_id = (data or {}).get('session_id')
    if not session_id:
        emit('error', {'error': 'session_id is required'})
        return
    _engine().unsubscribe(_get_sid(), session_id=session_id)
    emit('left', {'session_id': session_id})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on the device namespace."""
    socketio.on_event('connect', handle_connect, namespace=WS_NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=WS_NAMESPACE)
    socketio.on_event('join_session', handle_join_session, namespace=WS_NAMESPACE)
    socketio.on_event('leave_session', handle_leave_session, namespace=WS_NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=WS_NAMESPACE)
