from flask import current_app, request
from flask_socketio import emit
from typing import Dict

from marble_royale import get_controller, socketio
from marble_royale.services.broadcast import SocketIOObserver
from marble_royale.visitor import current_visitor_id

NAMESPACE = '/ws'

# Socket.IO session id -> broadcast hub handle
_sid_to_handle: Dict[str, int] = {}


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect(auth=None):
    sid = _get_sid()
    observer = SocketIOObserver(
        socketio,
        sid,
        namespace=NAMESPACE,
        visitor_id=current_visitor_id(auth if isinstance(auth, dict) else None),
    )
    # Subscribing sends the lobby or race snapshot straight away
    _sid_to_handle[sid] = get_controller().subscribe(observer)
    current_app.logger.info(f"[ws-connect] sid={sid} visitor={observer.visitor_id}")


def handle_disconnect(*args):
    handle = _sid_to_handle.pop(_get_sid(), None)
    if handle is not None:
        get_controller().unsubscribe(handle)


def handle_snapshot(data=None):
    """Re-send the point-in-time snapshot to the requesting socket only."""
    visitor_id = current_visitor_id(data if isinstance(data, dict) else None)
    event, payload = get_controller().snapshot_event(visitor_id)
    emit(event, payload)


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('snapshot', handle_snapshot, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
