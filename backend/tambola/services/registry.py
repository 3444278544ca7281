import random
import threading
import time
from typing import Dict, List, Optional, Tuple

from tambola.models import HOST_AUTHOR, Session, generate_code


def normalize_code(code) -> str:
    return str(code or '').strip().upper()


class SessionRegistry:
    """Owned store of every live room in this process.

    Besides ``room_code -> Session`` it indexes player codes and bound
    connection ids so joins and disconnects never scan every room.
    ``_lock`` only guards these maps; game state is guarded by each
    Session's own lock.
    """

    def __init__(self, rng: Optional[random.Random] = None, room_code_length: int = 6,
                 player_code_length: int = 4):
        self.rng = rng or random.Random()
        self.room_code_length = room_code_length
        self.player_code_length = player_code_length
        self._lock = threading.Lock()
        self._sessions: Dict[str, Session] = {}
        self._player_rooms: Dict[str, str] = {}
        self._connections: Dict[str, Tuple[str, str]] = {}

    def __len__(self):
        return len(self._sessions)

    def __contains__(self, room_code):
        return normalize_code(room_code) in self._sessions

    def sessions(self) -> List[Session]:
        with self._lock:
            return list(self._sessions.values())

    def create_session(self, host_sid: str, now: Optional[float] = None) -> Session:
        now = time.time() if now is None else now
        with self._lock:
            code = generate_code(self.room_code_length, self.rng, self._sessions)
            session = Session(room_code=code, host_sid=host_sid, created_at=now, last_activity=now)
            self._sessions[code] = session
        return session

    def get(self, room_code) -> Optional[Session]:
        return self._sessions.get(normalize_code(room_code))

    # ---- player codes ----
    def reserve_player_code(self, room_code: str) -> Optional[str]:
        """Allocate a player code unique across all rooms.

        Returns None when ``room_code`` is no longer registered.
        """
        with self._lock:
            if room_code not in self._sessions:
                return None
            code = generate_code(self.player_code_length, self.rng, self._player_rooms,
                                 reserved=(HOST_AUTHOR,))
            self._player_rooms[code] = room_code
        return code

    def release_player_code(self, player_code: str) -> None:
        with self._lock:
            self._player_rooms.pop(player_code, None)
            for sid, (_, code) in list(self._connections.items()):
                if code == player_code:
                    del self._connections[sid]

    def locate_player(self, player_code) -> Optional[Session]:
        room_code = self._player_rooms.get(normalize_code(player_code))
        return self._sessions.get(room_code) if room_code else None

    # ---- connections ----
    def bind_connection(self, sid: str, room_code: str, player_code: str) -> None:
        with self._lock:
            self._connections[sid] = (room_code, player_code)

    def release_connection(self, sid: str) -> None:
        with self._lock:
            self._connections.pop(sid, None)

    def locate_connection(self, sid) -> Tuple[Optional[Session], Optional[str]]:
        entry = self._connections.get(sid)
        if not entry:
            return None, None
        room_code, player_code = entry
        return self._sessions.get(room_code), player_code

    # ---- teardown ----
    def remove(self, room_code) -> Optional[Session]:
        code = normalize_code(room_code)
        with self._lock:
            session = self._sessions.pop(code, None)
            if session is None:
                return None
            self._player_rooms = {p: r for p, r in self._player_rooms.items() if r != code}
            self._connections = {s: e for s, e in self._connections.items() if e[0] != code}
        return session

    def sweep(self, max_idle: float, now: Optional[float] = None) -> List[Session]:
        """Drop rooms with no activity for ``max_idle`` seconds."""
        now = time.time() if now is None else now
        removed = []
        for session in self.sessions():
            with session.lock:
                if now - session.last_activity < max_idle:
                    continue
                if self.remove(session.room_code) is not None:
                    removed.append(session)
        return removed
