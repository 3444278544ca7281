from dataclasses import dataclass
from typing import Collection, Optional

from tambola.models import ClaimKind, Session, Ticket

LINE_ROWS = {
    ClaimKind.FIRST_LINE: 0,
    ClaimKind.MIDDLE_LINE: 1,
    ClaimKind.LAST_LINE: 2,
}


@dataclass(frozen=True)
class ClaimResult:
    accepted: bool
    winner: Optional[str] = None
    reason: Optional[str] = None


def first_five(ticket: Ticket, called: Collection[int]) -> bool:
    return sum(1 for n in ticket.numbers if n in called) >= 5


def line_complete(ticket: Ticket, row: int, called: Collection[int]) -> bool:
    return all(n in called for n in ticket.row_numbers(row))


def full_house(ticket: Ticket, called: Collection[int]) -> bool:
    return all(n in called for n in ticket.numbers)


def ticket_wins(ticket: Ticket, kind: ClaimKind, called: Collection[int]) -> bool:
    if kind is ClaimKind.FIRST_FIVE:
        return first_five(ticket, called)
    if kind in LINE_ROWS:
        return line_complete(ticket, LINE_ROWS[kind], called)
    if kind is ClaimKind.FULL_HOUSE:
        return full_house(ticket, called)
    return False


def evaluate(session: Session, player_code: str, claim_kind) -> ClaimResult:
    """Adjudicate a claim and record the award on success.

    Checks run in order and stop at the first failure: known kind, kind not
    yet awarded, player with at least one ticket, and finally any ticket
    matching the pattern against the called numbers. The caller must hold
    ``session.lock`` so the check and the award happen together.
    """
    kind = ClaimKind.parse(claim_kind)
    if kind is None:
        return ClaimResult(False, reason='unknown claim kind')
    if session.claims.get(kind):
        return ClaimResult(False, reason='already claimed')

    player = session.players.get(player_code)
    if not player or not player.tickets:
        return ClaimResult(False, reason='no tickets')

    if not any(ticket_wins(t, kind, session.called_set) for t in player.tickets):
        return ClaimResult(False, reason='no winning ticket')

    winner = player.display_name
    session.award(kind, winner)
    return ClaimResult(True, winner=winner)
