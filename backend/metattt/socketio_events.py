from flask import current_app, request

from metattt import socketio
from metattt.services.game.commands import Connect, Disconnect, Emote, Move, RequestUsername

NAMESPACE = '/ws'


class SocketIOBroadcaster:
    """Outbound side of the transport: one session or everyone on the namespace."""

    def __init__(self, sio, namespace: str = NAMESPACE):
        self.socketio = sio
        self.namespace = namespace

    def send(self, session_id: str, event: str, payload) -> None:
        self.socketio.emit(event, payload, to=session_id, namespace=self.namespace)

    def broadcast(self, event: str, payload) -> None:
        self.socketio.emit(event, payload, namespace=self.namespace)


def _manager():
    return current_app.extensions['game_manager']


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _client_ip():
    forwarded = request.headers.get('X-Forwarded-For')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.remote_addr


def _as_int(value):
    """Coerce a client-sent index; anything that is not a whole number is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def handle_connect(auth=None):
    username = auth.get('username') if isinstance(auth, dict) else None
    _manager().dispatch(Connect(_get_sid(), _client_ip(), username))


def handle_disconnect(reason=None):
    _manager().dispatch(Disconnect(_get_sid()))


def handle_request_username(data):
    username = data.get('username') if isinstance(data, dict) else data
    if not isinstance(username, str):
        username = None
    result = _manager().dispatch(RequestUsername(_get_sid(), username))
    # Returned value becomes the client's acknowledgement
    return result.to_dict()


def handle_move(data):
    data = data if isinstance(data, dict) else {}
    _manager().dispatch(Move(
        session_id=_get_sid(),
        game_id=_as_int(data.get('game_id')),
        board_index=_as_int(data.get('board_index')),
        cell_index=_as_int(data.get('cell_index')),
        piece=data.get('piece'),
    ))


def handle_emote(data):
    slug = data.get('slug') if isinstance(data, dict) else data
    if not isinstance(slug, str):
        return
    _manager().dispatch(Emote(_get_sid(), slug))


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on the '/ws' namespace."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('request_username', handle_request_username, namespace=NAMESPACE)
    socketio.on_event('move', handle_move, namespace=NAMESPACE)
    socketio.on_event('emote', handle_emote, namespace=NAMESPACE)
