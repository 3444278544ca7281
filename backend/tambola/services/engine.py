import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from tambola.models import HOST_AUTHOR, Session
from tambola.services import claims
from tambola.services.registry import SessionRegistry, normalize_code
from tambola.services.tickets import TicketGenerator

HOST_DISPLAY_NAME = 'Host'
MAX_NAME_LENGTH = 64
MAX_EMOJI_LENGTH = 16


@dataclass(frozen=True)
class Command:
    """One inbound event from a connection."""
    name: str
    sid: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Outbound:
    """An event for a whole room (``room_code``) or a single connection (``sid``)."""
    event: str
    payload: Dict[str, Any]
    room_code: Optional[str] = None
    sid: Optional[str] = None


@dataclass(frozen=True)
class Subscribe:
    sid: str
    room_code: str


@dataclass(frozen=True)
class Unsubscribe:
    sid: str
    room_code: str


class GameEngine:
    """Applies commands to the registry's sessions and reports what to send.

    The engine knows nothing about sockets: ``handle`` returns a list of
    ``Outbound`` events and room membership changes in the order they must
    be delivered.
    """

    def __init__(self, registry: SessionRegistry, generator: Optional[TicketGenerator] = None,
                 rng: Optional[random.Random] = None, logger: Optional[logging.Logger] = None,
                 clock: Callable[[], float] = time.time, max_tickets_per_assign: int = 6,
                 chat_history_limit: int = 200, chat_max_length: int = 500,
                 notify_dropped: bool = False):
        self.registry = registry
        self.rng = rng or random.Random()
        self.generator = generator or TicketGenerator(self.rng)
        self.logger = logger or logging.getLogger(__name__)
        self.clock = clock
        self.max_tickets_per_assign = max_tickets_per_assign
        self.chat_history_limit = chat_history_limit
        self.chat_max_length = chat_max_length
        self.notify_dropped = notify_dropped
        self._handlers = {
            'create_session': self._create_session,
            'add_player': self._add_player,
            'toggle_auto_mark': self._toggle_auto_mark,
            'remove_player': self._remove_player,
            'assign_tickets': self._assign_tickets,
            'call_number': self._call_number,
            'reset_session': self._reset_session,
            'join_with_code': self._join_with_code,
            'submit_claim': self._submit_claim,
            'send_chat': self._send_chat,
            'send_emoji': self._send_emoji,
            'disconnect': self._disconnect,
        }

    def handle(self, command: Command) -> List[Any]:
        handler = self._handlers.get(command.name)
        if handler is None:
            return self._drop(command, 'unknown command')
        return handler(command)

    # ---- helpers ----
    def _drop(self, command: Command, reason: str) -> List[Any]:
        self.logger.info(f"[drop] {command.name} sid={command.sid} reason={reason}")
        if self.notify_dropped:
            return [Outbound('command_ignored', {'command': command.name, 'reason': reason}, sid=command.sid)]
        return []

    def _session(self, command: Command) -> Optional[Session]:
        return self.registry.get(command.data.get('roomCode'))

    @staticmethod
    def _roster(session: Session) -> Outbound:
        return Outbound('roster_updated', {'roomCode': session.room_code, 'players': session.roster()},
                        room_code=session.room_code)

    def _author(self, session: Session, command: Command) -> Optional[str]:
        code = command.data.get('playerCode')
        if code == HOST_AUTHOR:
            return HOST_DISPLAY_NAME if session.is_host(command.sid) else None
        player = session.players.get(normalize_code(code))
        return player.display_name if player else None

    def _evict(self, session: Session, sid: str, reason: str) -> List[Any]:
        """Notify a connection that lost its player seat and drop it from the room.

        The host connection is told but stays subscribed, since it still runs
        the room.
        """
        if session.is_host(sid):
            return [Outbound('force_logout', {'reason': reason, 'hostRetained': True}, sid=sid)]
        return [
            Outbound('force_logout', {'reason': reason}, sid=sid),
            Unsubscribe(sid, session.room_code),
        ]

    def _release(self, sid: str, unsubscribe: bool = False) -> List[Any]:
        session, player_code = self.registry.locate_connection(sid)
        self.registry.release_connection(sid)
        if session is None:
            return []
        with session.lock:
            player = session.players.get(player_code)
            if player is None or player.sid != sid:
                return []
            session.unbind(player)
            self.logger.info(f"[offline] room={session.room_code} player={player_code}")
            # The host keeps its room channel even after dropping a player seat
            out = [Unsubscribe(sid, session.room_code)] if unsubscribe and not session.is_host(sid) else []
            out.append(self._roster(session))
            return out

    # ---- commands ----
    def _create_session(self, command: Command) -> List[Any]:
        session = self.registry.create_session(command.sid, now=self.clock())
        self.logger.info(f"[session-created] room={session.room_code} host={command.sid}")
        return [
            Subscribe(command.sid, session.room_code),
            Outbound('session_created', {'roomCode': session.room_code}, sid=command.sid),
        ]

    def _add_player(self, command: Command) -> List[Any]:
        session = self._session(command)
        if session is None:
            return self._drop(command, 'unknown room')
        name = str(command.data.get('playerName') or '').strip()[:MAX_NAME_LENGTH]
        with session.lock:
            code = self.registry.reserve_player_code(session.room_code)
            if code is None:
                return self._drop(command, 'unknown room')
            player = session.add_player(code, name)
            session.touch(self.clock())
            self.logger.info(f"[player-added] room={session.room_code} player={code}")
            return [
                Outbound('player_added', {'playerCode': player.player_code, 'playerName': player.player_name},
                         room_code=session.room_code),
                self._roster(session),
            ]

    def _toggle_auto_mark(self, command: Command) -> List[Any]:
        session = self._session(command)
        if session is None:
            return self._drop(command, 'unknown room')
        with session.lock:
            if not session.is_host(command.sid):
                return self._drop(command, 'not host')
            player = session.players.get(normalize_code(command.data.get('playerCode')))
            if player is None:
                return self._drop(command, 'unknown player')
            player.allow_auto_mark = bool(command.data.get('allowed'))
            session.touch(self.clock())
            out = []
            if player.sid:
                out.append(Outbound('auto_mark_permission', {'allowed': player.allow_auto_mark}, sid=player.sid))
            out.append(self._roster(session))
            return out

    def _remove_player(self, command: Command) -> List[Any]:
        session = self._session(command)
        if session is None:
            return self._drop(command, 'unknown room')
        with session.lock:
            if not session.is_host(command.sid):
                return self._drop(command, 'not host')
            player = session.remove_player(normalize_code(command.data.get('playerCode')))
            if player is None:
                return self._drop(command, 'unknown player')
            self.registry.release_player_code(player.player_code)
            session.touch(self.clock())
            self.logger.info(f"[player-removed] room={session.room_code} player={player.player_code}")
            out = []
            if player.sid:
                out.extend(self._evict(session, player.sid, 'removed'))
            out.append(Outbound('player_removed', {'playerCode': player.player_code}, room_code=session.room_code))
            out.append(self._roster(session))
            return out

    def _assign_tickets(self, command: Command) -> List[Any]:
        session = self._session(command)
        if session is None:
            return self._drop(command, 'unknown room')
        count = command.data.get('count', 1)
        if isinstance(count, bool) or not isinstance(count, int):
            return self._drop(command, 'invalid count')
        if not 1 <= count <= self.max_tickets_per_assign:
            return self._drop(command, 'invalid count')
        with session.lock:
            player = session.players.get(normalize_code(command.data.get('playerCode')))
            if player is None:
                return self._drop(command, 'unknown player')
            session.assign_tickets(player, self.generator.generate_many(count))
            session.touch(self.clock())
            self.logger.info(f"[tickets] room={session.room_code} player={player.player_code} total={len(player.tickets)}")
            out = [Outbound('ticket_assigned', {'playerCode': player.player_code, 'ticketCount': len(player.tickets)},
                            room_code=session.room_code)]
            if player.sid:
                out.append(Outbound('tickets_updated', {'tickets': [t.to_list() for t in player.tickets]},
                                    sid=player.sid))
            return out

    def _call_number(self, command: Command) -> List[Any]:
        session = self._session(command)
        if session is None:
            return self._drop(command, 'unknown room')
        with session.lock:
            if session.exhausted:
                return self._drop(command, 'number pool exhausted')
            number = self.rng.choice(session.remaining_numbers())
            session.record_call(number)
            session.touch(self.clock())
            return [Outbound('number_called', {'number': number, 'called': list(session.called)},
                             room_code=session.room_code)]

    def _reset_session(self, command: Command) -> List[Any]:
        session = self._session(command)
        if session is None:
            return self._drop(command, 'unknown room')
        with session.lock:
            if not session.is_host(command.sid):
                return self._drop(command, 'not host')
            session.reset()
            session.touch(self.clock())
            self.logger.info(f"[reset] room={session.room_code}")
            return [
                Outbound('session_reset', {'roomCode': session.room_code}, room_code=session.room_code),
                self._roster(session),
            ]

    def _join_with_code(self, command: Command) -> List[Any]:
        player_code = normalize_code(command.data.get('playerCode'))
        session = self.registry.locate_player(player_code)
        if session is None:
            self.logger.info(f"[join-error] sid={command.sid} code={player_code!r}")
            return [Outbound('join_error', {'message': 'Invalid player code'}, sid=command.sid)]

        out = []
        _, bound_code = self.registry.locate_connection(command.sid)
        if bound_code and bound_code != player_code:
            out.extend(self._release(command.sid, unsubscribe=True))

        with session.lock:
            player = session.players.get(player_code)
            if player is None:
                return out + [Outbound('join_error', {'message': 'Invalid player code'}, sid=command.sid)]
            if player.sid and player.sid != command.sid:
                # One live connection per player: the newest link wins
                self.logger.info(f"[superseded] room={session.room_code} player={player_code} old={player.sid}")
                self.registry.release_connection(player.sid)
                out.extend(self._evict(session, player.sid, 'joined elsewhere'))
            session.bind(player, command.sid)
            self.registry.bind_connection(command.sid, session.room_code, player_code)
            session.touch(self.clock())
            self.logger.info(f"[joined] room={session.room_code} player={player_code} sid={command.sid}")
            out.append(Subscribe(command.sid, session.room_code))
            out.append(Outbound('player_joined', session.player_view(player), sid=command.sid))
            out.append(self._roster(session))
            return out

    def _submit_claim(self, command: Command) -> List[Any]:
        session = self._session(command)
        if session is None:
            return self._drop(command, 'unknown room')
        claim_kind = command.data.get('claimKind')
        player_code = normalize_code(command.data.get('playerCode'))
        with session.lock:
            result = claims.evaluate(session, player_code, claim_kind)
            if not result.accepted:
                self.logger.info(f"[claim-rejected] room={session.room_code} player={player_code} "
                                 f"kind={claim_kind} reason={result.reason}")
                return [Outbound('claim_rejected', {'claimKind': claim_kind}, sid=command.sid)]
            session.touch(self.clock())
            self.logger.info(f"[claim-accepted] room={session.room_code} kind={claim_kind} winner={result.winner}")
            return [Outbound('claim_accepted', {'claimKind': claim_kind, 'winner': result.winner},
                             room_code=session.room_code)]

    def _send_chat(self, command: Command) -> List[Any]:
        session = self._session(command)
        if session is None:
            return self._drop(command, 'unknown room')
        message = str(command.data.get('message') or '').strip()[:self.chat_max_length]
        if not message:
            return self._drop(command, 'empty message')
        with session.lock:
            author = self._author(session, command)
            if author is None:
                return self._drop(command, 'unknown author')
            now = self.clock()
            entry = session.add_chat(author, message, now, self.chat_history_limit)
            session.touch(now)
            return [Outbound('chat_message', entry.to_dict(), room_code=session.room_code)]

    def _send_emoji(self, command: Command) -> List[Any]:
        session = self._session(command)
        if session is None:
            return self._drop(command, 'unknown room')
        emoji = str(command.data.get('emoji') or '').strip()[:MAX_EMOJI_LENGTH]
        if not emoji:
            return self._drop(command, 'empty emoji')
        with session.lock:
            author = self._author(session, command)
            if author is None:
                return self._drop(command, 'unknown author')
            session.touch(self.clock())
            return [Outbound('emoji_reaction', {'author': author, 'emoji': emoji}, room_code=session.room_code)]

    def _disconnect(self, command: Command) -> List[Any]:
        return self._release(command.sid)
