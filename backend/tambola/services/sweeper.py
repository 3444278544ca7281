import time

from tambola import socketio
from tambola.socketio_events import NAMESPACE, room_channel


def sweep_idle_rooms(app, registry, max_idle: float, now=None):
    """Tear down rooms idle for ``max_idle`` seconds and tell their members."""
    removed = registry.sweep(max_idle, now=now)
    for session in removed:
        app.logger.info(f"[sweep] room={session.room_code} idle_since={session.last_activity}")
        socketio.emit('session_ended', {'roomCode': session.room_code},
                      to=room_channel(session.room_code), namespace=NAMESPACE)
        socketio.close_room(room_channel(session.room_code), namespace=NAMESPACE)
    return [s.room_code for s in removed]


def start_room_sweeper(app, registry) -> bool:
    """Run ``sweep_idle_rooms`` periodically in a Socket.IO background task.

    - No-ops in TESTING mode or when ROOM_IDLE_TTL_SEC is 0
    """
    max_idle = int(app.config.get('ROOM_IDLE_TTL_SEC', 0))
    interval = max(1, int(app.config.get('SWEEP_INTERVAL_SEC', 300)))
    if app.config.get('TESTING') or max_idle <= 0:
        return False

    def _worker():
        while True:
            socketio.sleep(interval)
            sweep_idle_rooms(app, registry, max_idle, now=time.time())

    app.logger.info(f"[sweep-start] ttl={max_idle}s interval={interval}s")
    socketio.start_background_task(_worker)
    return True
