from flask import current_app, request
from duel import socketio
from typing import Any, Dict

NAMESPACE = '/ws'


class SocketIOGateway:
    """Delivers duel events through the Flask-SocketIO server."""

    def __init__(self, sio, namespace: str = NAMESPACE):
        self.socketio = sio
        self.namespace = namespace

    def emit(self, event: str, data: Dict[str, Any], to=None) -> None:
        # socketio.emit works outside a request context (scheduler loop)
        self.socketio.emit(event, data, to=to, namespace=self.namespace)

    def enter_room(self, sid: str, room: str) -> None:
        self.socketio.server.enter_room(sid, room, namespace=self.namespace)

    def close_room(self, room: str) -> None:
        self.socketio.close_room(room, namespace=self.namespace)


def _service():
    return current_app.extensions['duel']


def _payload(data) -> Dict[str, Any]:
    return data if isinstance(data, dict) else {}


def handle_connect(auth=None):
    auth = _payload(auth)
    name = auth.get('name') or request.args.get('name')
    mode = auth.get('mode') or request.args.get('mode')
    _ensure_scheduler_started()
    _service().connect(request.sid, name, mode)


def handle_disconnect(reason=None):
    current_app.logger.info(f"[disconnect] sid={request.sid} reason={reason}")
    _service().disconnect(request.sid)


def handle_make_move(data):
    data = _payload(data)
    _service().submit_move(request.sid, data.get('match_id'), data.get('move'))


def handle_crit_tap(data):
    _service().crit_tap(request.sid, _payload(data).get('match_id'))


def handle_play_again(data=None):
    _service().play_again(request.sid, _payload(data).get('mode'))


def handle_leave_match(data=None):
    _service().leave_match(request.sid)


def handle_sync_time(client_time=None):
    # Returned value is sent back as the event acknowledgement
    return _service().sync_time(client_time)

# ---- Scheduler loop ----

def _ensure_scheduler_started() -> None:
    app = current_app._get_current_object()
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return
    service = app.extensions['duel']
    with service.lock:
        if app.extensions.get('duel_loop_started'):
            return
        app.extensions['duel_loop_started'] = True
    socketio.start_background_task(_tick_loop, app)


def _tick_loop(app) -> None:
    service = app.extensions['duel']
    interval_ms = max(10, int(app.config.get('TICK_INTERVAL_MS', 100)))
    app.logger.info(f"[scheduler-start] interval={interval_ms}ms")
    while True:
        try:
            service.tick()
        except Exception:
            # keep the loop alive for the other matches
            app.logger.exception("[scheduler-error] tick failed")
        socketio.sleep(interval_ms / 1000.0)


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('make_move', handle_make_move, namespace=NAMESPACE)
    socketio.on_event('crit_tap', handle_crit_tap, namespace=NAMESPACE)
    socketio.on_event('play_again', handle_play_again, namespace=NAMESPACE)
    socketio.on_event('leave_match', handle_leave_match, namespace=NAMESPACE)
    socketio.on_event('sync_time', handle_sync_time, namespace=NAMESPACE)
