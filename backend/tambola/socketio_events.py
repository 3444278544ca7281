from flask import current_app, request
from flask_socketio import emit, join_room, leave_room

from tambola import socketio
from tambola.services.engine import Command, Outbound, Subscribe, Unsubscribe

NAMESPACE = '/ws'

# Client events forwarded to the game engine unchanged
ENGINE_EVENTS = (
    'create_session',
    'add_player',
    'toggle_auto_mark',
    'remove_player',
    'assign_tickets',
    'call_number',
    'reset_session',
    'join_with_code',
    'submit_claim',
    'send_chat',
    'send_emoji',
)


def room_channel(room_code: str) -> str:
    return f"room:{room_code}"


def get_engine():
    return current_app.extensions['tambola']


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def deliver(results, namespace: str = NAMESPACE) -> None:
    """Send engine results in order: membership changes and events."""
    for item in results:
        if isinstance(item, Subscribe):
            join_room(room_channel(item.room_code), sid=item.sid, namespace=namespace)
        elif isinstance(item, Unsubscribe):
            leave_room(room_channel(item.room_code), sid=item.sid, namespace=namespace)
        elif isinstance(item, Outbound):
            target = room_channel(item.room_code) if item.room_code else item.sid
            socketio.emit(item.event, item.payload, to=target, namespace=namespace)


def dispatch(name: str, data) -> None:
    payload = data if isinstance(data, dict) else {}
    results = get_engine().handle(Command(name=name, sid=_get_sid(), data=payload))
    deliver(results, namespace=request.namespace)


def _make_handler(name: str):
    def handler(data=None):
        dispatch(name, data)
    handler.__name__ = f"handle_{name}"
    return handler


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    dispatch('disconnect', None)


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = [NAMESPACE, '/'] if testing else [NAMESPACE]
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
        for name in ENGINE_EVENTS:
            socketio.on_event(name, _make_handler(name), namespace=namespace)
