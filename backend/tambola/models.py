import random
import string
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

ROWS = 3
COLUMNS = 9
NUMBERS_PER_ROW = 5
NUMBERS_PER_TICKET = ROWS * NUMBERS_PER_ROW
HIGHEST_NUMBER = 90
CODE_ALPHABET = string.ascii_uppercase + string.digits
# Chat/emoji author marker for the host; never issued as a player code
HOST_AUTHOR = 'HOST'


class PlayerStatus(str, Enum):
    ONLINE = 'ONLINE'
    OFFLINE = 'OFFLINE'


class ClaimKind(str, Enum):
    FIRST_FIVE = 'FIRST_FIVE'
    FIRST_LINE = 'FIRST_LINE'
    MIDDLE_LINE = 'MIDDLE_LINE'
    LAST_LINE = 'LAST_LINE'
    FULL_HOUSE = 'FULL_HOUSE'

    @classmethod
    def parse(cls, value) -> Optional['ClaimKind']:
        try:
            return cls(value)
        except ValueError:
            return None


def generate_code(length, rng=None, taken=(), reserved=()):
    """Generate a short uppercase alphanumeric code not in ``taken`` or ``reserved``."""
    rng = rng or random
    while True:
        code = ''.join(rng.choices(CODE_ALPHABET, k=length))
        if code not in taken and code not in reserved:
            return code


@dataclass(frozen=True)
class Ticket:
    """A 3x9 grid of numbers; ``None`` marks an empty cell."""
    rows: Tuple[Tuple[Optional[int], ...], ...]

    @classmethod
    def from_grid(cls, grid) -> 'Ticket':
        return cls(rows=tuple(tuple(cell for cell in row) for row in grid))

    @property
    def numbers(self) -> List[int]:
        return [n for row in self.rows for n in row if n is not None]

    def row_numbers(self, row: int) -> List[int]:
        return [n for n in self.rows[row] if n is not None]

    def column_numbers(self, col: int) -> List[int]:
        return [row[col] for row in self.rows if row[col] is not None]

    def to_list(self) -> List[List[Optional[int]]]:
        return [list(row) for row in self.rows]


@dataclass
class Player:
    player_code: str
    player_name: str
    tickets: List[Ticket] = field(default_factory=list)
    sid: Optional[str] = None
    status: PlayerStatus = PlayerStatus.OFFLINE
    allow_auto_mark: bool = False

    @property
    def display_name(self) -> str:
        return self.player_name or self.player_code

    def to_dict(self):
        return {
            'playerCode': self.player_code,
            'playerName': self.player_name,
            'status': self.status.value,
            'ticketCount': len(self.tickets),
            'allowAutoMark': self.allow_auto_mark,
        }


@dataclass
class ChatEntry:
    author: str
    message: str
    timestamp: float

    def to_dict(self):
        return {'author': self.author, 'message': self.message, 'time': self.timestamp}


def _empty_claims() -> Dict[ClaimKind, Optional[str]]:
    return {kind: None for kind in ClaimKind}


@dataclass
class Session:
    """One room: roster, tickets, call history, claim ledger and chat.

    Callers hold ``lock`` around every mutation; the registry hands out the
    same Session object to every thread handling this room.
    """
    room_code: str
    host_sid: Optional[str]
    players: Dict[str, Player] = field(default_factory=dict)
    called: List[int] = field(default_factory=list)
    called_set: set = field(default_factory=set)
    current: Optional[int] = None
    claims: Dict[ClaimKind, Optional[str]] = field(default_factory=_empty_claims)
    chat: List[ChatEntry] = field(default_factory=list)
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    lock: Any = field(default_factory=threading.RLock, repr=False, compare=False)

    def is_host(self, sid) -> bool:
        return sid is not None and sid == self.host_sid

    def touch(self, now=None) -> None:
        self.last_activity = time.time() if now is None else now

    # ---- roster ----
    def add_player(self, player_code: str, player_name: str) -> Player:
        player = Player(player_code=player_code, player_name=player_name)
        self.players[player_code] = player
        return player

    def remove_player(self, player_code: str) -> Optional[Player]:
        return self.players.pop(player_code, None)

    def bind(self, player: Player, sid: str) -> None:
        player.sid = sid
        player.status = PlayerStatus.ONLINE

    def unbind(self, player: Player) -> None:
        player.sid = None
        player.status = PlayerStatus.OFFLINE

    # ---- game ----
    def assign_tickets(self, player: Player, tickets: List[Ticket]) -> None:
        player.tickets.extend(tickets)

    @property
    def exhausted(self) -> bool:
        return len(self.called_set) >= HIGHEST_NUMBER

    def remaining_numbers(self) -> List[int]:
        return [n for n in range(1, HIGHEST_NUMBER + 1) if n not in self.called_set]

    def record_call(self, number: int) -> None:
        self.called.append(number)
        self.called_set.add(number)
        self.current = number

    def award(self, kind: ClaimKind, winner: str) -> None:
        self.claims[kind] = winner

    def reset(self) -> None:
        """Start a new round: roster and chat survive, everything else is cleared."""
        self.called = []
        self.called_set = set()
        self.current = None
        for player in self.players.values():
            player.tickets = []
        self.claims = _empty_claims()

    def add_chat(self, author: str, message: str, timestamp: float, limit: int) -> ChatEntry:
        entry = ChatEntry(author=author, message=message, timestamp=timestamp)
        self.chat.append(entry)
        if limit and len(self.chat) > limit:
            del self.chat[:len(self.chat) - limit]
        return entry

    # ---- serialisation ----
    def claims_dict(self):
        return {kind.value: winner for kind, winner in self.claims.items()}

    def roster(self):
        return [p.to_dict() for p in self.players.values()]

    def player_view(self, player: Player):
        return {
            'roomCode': self.room_code,
            'playerCode': player.player_code,
            'playerName': player.player_name,
            'tickets': [t.to_list() for t in player.tickets],
            'called': list(self.called),
            'current': self.current,
            'claims': self.claims_dict(),
            'chat': [c.to_dict() for c in self.chat],
            'allowAutoMark': player.allow_auto_mark,
        }

    def to_dict(self):
        return {
            'roomCode': self.room_code,
            'players': self.roster(),
            'called': list(self.called),
            'current': self.current,
            'claims': self.claims_dict(),
            'createdAt': self.created_at,
        }
