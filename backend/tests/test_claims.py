import pytest

from tambola.models import ClaimKind, Session, Ticket
from tambola.services import claims

GRID = [
    [None, 5, None, 23, None, 44, None, 67, 82],
    [3, None, 12, None, 31, None, 55, 70, None],
    [9, 18, None, 29, None, 48, 59, None, None],
]
TICKET = Ticket.from_grid(GRID)
ROW_TOP = {5, 23, 44, 67, 82}
ROW_MIDDLE = {3, 12, 31, 55, 70}
ROW_BOTTOM = {9, 18, 29, 48, 59}


def make_session(called=(), tickets=(TICKET,), name='Asha'):
    session = Session(room_code='ROOM01', host_sid='host')
    player = session.add_player('P1', name)
    player.tickets.extend(tickets)
    for n in called:
        session.record_call(n)
    return session


def test_line_example_row():
    assert claims.line_complete(TICKET, 0, {5, 23, 44, 67, 82})
    assert not claims.line_complete(TICKET, 0, {5, 23, 44, 67})


@pytest.mark.parametrize('kind,called', [
    (ClaimKind.FIRST_LINE, ROW_TOP),
    (ClaimKind.MIDDLE_LINE, ROW_MIDDLE),
    (ClaimKind.LAST_LINE, ROW_BOTTOM),
])
def test_line_claims_follow_their_row(kind, called):
    assert claims.ticket_wins(TICKET, kind, called)
    other_rows = ROW_TOP | ROW_MIDDLE | ROW_BOTTOM
    assert not claims.ticket_wins(TICKET, kind, other_rows - called)


def test_first_five_counts_any_five_marks():
    spread = {5, 3, 9, 70, 48}
    assert claims.first_five(TICKET, spread)
    assert not claims.first_five(TICKET, {5, 3, 9, 70, 1, 2, 90})


def test_full_house_needs_all_fifteen():
    everything = ROW_TOP | ROW_MIDDLE | ROW_BOTTOM
    assert claims.full_house(TICKET, everything)
    assert not claims.full_house(TICKET, everything - {59})


def test_evaluate_awards_once():
    session = make_session(called=ROW_TOP)
    result = claims.evaluate(session, 'P1', 'FIRST_LINE')
    assert result.accepted
    assert result.winner == 'Asha'
    assert session.claims[ClaimKind.FIRST_LINE] == 'Asha'

    again = claims.evaluate(session, 'P1', 'FIRST_LINE')
    assert not again.accepted
    assert again.reason == 'already claimed'
    assert session.claims[ClaimKind.FIRST_LINE] == 'Asha'


def test_evaluate_rejects_without_winning_ticket():
    session = make_session(called={5, 23, 44, 67})
    result = claims.evaluate(session, 'P1', 'FIRST_LINE')
    assert not result.accepted
    assert session.claims[ClaimKind.FIRST_LINE] is None


def test_evaluate_rejects_unknown_player_and_empty_hand():
    session = make_session(called=ROW_TOP, tickets=())
    assert claims.evaluate(session, 'P1', 'FIRST_LINE').reason == 'no tickets'
    assert claims.evaluate(session, 'NOPE', 'FIRST_LINE').reason == 'no tickets'


def test_evaluate_rejects_unknown_kind():
    session = make_session(called=ROW_TOP)
    assert claims.evaluate(session, 'P1', 'FOUR_CORNERS').reason == 'unknown claim kind'


def test_any_ticket_can_win():
    losing = Ticket.from_grid([
        [1, None, None, 30, None, 50, None, 72, 90],
        [None, 11, 20, None, 40, None, 60, None, 85],
        [2, 19, None, None, 39, None, 58, 80, None],
    ])
    session = make_session(called=ROW_BOTTOM, tickets=(losing, TICKET))
    assert claims.evaluate(session, 'P1', ClaimKind.LAST_LINE).accepted


def test_winner_falls_back_to_code_without_name():
    session = make_session(called=ROW_TOP, name='')
    assert claims.evaluate(session, 'P1', 'FIRST_FIVE').winner == 'P1'
