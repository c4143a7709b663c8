import pytest

from decksync.backend.state import now_ms
from decksync.client.effects import EffectBook, EffectRequest, EffectResult, RequestKind, RequestStatus
from decksync.client.errors import InvalidTransitionError
from decksync.client.models import Card


def _deal(session, deck, count: int) -> list[str]:
    session.actions.select_deck(deck)
    return [session.actions.draw().uid for _ in range(count)]


def _shared_top(table, deck, kind: str = "deck"):
    """Open and accept a request from host to guest; return the host's result."""
    host, guest = table.host, table.guest
    _deal(guest, deck, 2)
    table.settle()
    if kind == "deck":
        request = host.actions.request_deck_peek(guest.ctx.player_id)
    else:
        request = host.actions.request_hand_view(guest.ctx.player_id)
    table.settle()
    prompt = guest.ctx.listener.prompts[-1]
    assert prompt.request_id == request.request_id
    guest.actions.accept_request(prompt.request_id)
    table.settle()
    return host.ctx.listener.results[-1]


def _request(status: RequestStatus = RequestStatus.REQUESTED, created_at: int = 0) -> EffectRequest:
    return EffectRequest(
        request_id="r1",
        kind=RequestKind.DECK_SHARE,
        requester_id="p_a",
        requester_name="A",
        victim_id="p_b",
        victim_name="B",
        created_at=created_at,
        count=3,
        status=status,
    )


def test_deck_peek_round_trip_returns_top_three_in_order(table, deck) -> None:
    guest = table.guest
    result = _shared_top(table, deck)

    expected = [card.uid for card in guest.ctx.local.draw[:3]]
    assert [card.uid for card in result.cards] == expected
    assert result.victim_id == guest.ctx.player_id
    assert result.declined is False
    request = table.host.ctx.effects.get(result.request_id)
    assert request.status is RequestStatus.ACCEPTED
    assert guest.ctx.effects.get(result.request_id).status is RequestStatus.ACCEPTED


def test_declined_request_leaves_nothing_to_act_on(table, deck) -> None:
    host, guest = table.host, table.guest
    _deal(guest, deck, 1)
    table.settle()
    request = host.actions.request_deck_peek(guest.ctx.player_id)
    table.settle()

    guest.actions.decline_request(request.request_id)
    table.settle()

    result = host.ctx.listener.results[-1]
    assert result.declined is True
    assert result.cards == ()
    assert host.ctx.effects.get(request.request_id).status is RequestStatus.DECLINED
    assert host.actions.deck_peek_discard(guest.ctx.player_id, "anything") is None
    assert host.ctx.listener.notice_messages[-1] == "Nothing to act on"


def test_forced_peek_discard_moves_victim_card_and_writes_back(table, deck) -> None:
    host, guest = table.host, table.guest
    result = _shared_top(table, deck)
    target = result.cards[0]

    assert host.actions.deck_peek_discard(guest.ctx.player_id, target.uid) == target
    table.settle()

    assert guest.ctx.local.find("draw", target.uid) is None
    assert [card.uid for card in guest.ctx.local.discard] == [target.uid]
    discard = table.document()["players"][guest.ctx.player_id]["discardCards"]
    assert [card["uid"] for card in discard] == [target.uid]
    assert host.ctx.effects.get(result.request_id).status is RequestStatus.APPLIED
    assert [card.uid for card in host.ctx.effects.result_for(guest.ctx.player_id, RequestKind.DECK_SHARE).cards] == [
        card.uid for card in result.cards[1:]
    ]


def test_forced_reorder_rewrites_victim_draw_top(table, deck) -> None:
    host, guest = table.host, table.guest
    result = _shared_top(table, deck)
    first, second, third = (card.uid for card in result.cards)

    assert host.actions.deck_peek_reorder(guest.ctx.player_id, [third, first, second]) is True
    table.settle()

    assert [card.uid for card in guest.ctx.local.draw[:3]] == [third, first, second]
    assert table.document()["reveals"][-1]["action"] == "force-deck-peek-reorder"


def test_hand_take_moves_card_between_hands(table, deck) -> None:
    host, guest = table.host, table.guest
    result = _shared_top(table, deck, kind="hand")
    target = result.cards[0]

    card = host.actions.hand_take(guest.ctx.player_id, target.uid)
    table.settle()

    assert card in host.ctx.local.hand
    assert guest.ctx.local.find("hand", target.uid) is None
    assert table.document()["players"][guest.ctx.player_id]["cardCounts"]["hand"] == 1
    assert host.actions.hand_take(guest.ctx.player_id, target.uid) is None
    assert host.ctx.listener.notice_messages[-1] == "Card already taken"



def test_deck_peek_take_moves_top_card_into_requester_hand(table, deck) -> None:
    host, guest = table.host, table.guest
    result = _shared_top(table, deck)
    target = result.cards[0]

    assert host.actions.deck_peek_take(guest.ctx.player_id, target.uid) == target
    table.settle()

    assert target.uid in [card.uid for card in host.ctx.local.hand]
    assert guest.ctx.local.find("draw", target.uid) is None
    assert len(guest.ctx.local.draw) == len(deck.cards) - 3
    assert table.document()["reveals"][-1]["action"] == "force-deck-take-to-hand"
    assert host.ctx.effects.get(result.request_id).status is RequestStatus.APPLIED


def test_hand_share_response_carries_the_victim_hand(table, deck) -> None:
    guest = table.guest
    result = _shared_top(table, deck, kind="hand")

    response = next(
        event for event in reversed(table.document()["reveals"]) if event["action"] == "hand-share-response"
    )
    assert response["handCards"] == [card.to_dict() for card in guest.ctx.local.hand]
    assert [card.uid for card in result.cards] == [card.uid for card in guest.ctx.local.hand]
    assert result.kind is RequestKind.HAND_SHARE


def test_hand_force_shuffle_returns_card_to_victim_deck(table, deck) -> None:
    host, guest = table.host, table.guest
    result = _shared_top(table, deck, kind="hand")
    target = result.cards[0]
    draw_before = len(guest.ctx.local.draw)

    assert host.actions.hand_force_shuffle(guest.ctx.player_id, target.uid) == target
    table.settle()

    assert guest.ctx.local.find("hand", target.uid) is None
    assert guest.ctx.local.find("draw", target.uid) is not None
    assert len(guest.ctx.local.draw) == draw_before + 1
    assert target.uid not in [card.uid for card in host.ctx.local.hand]
    counts = table.document()["players"][guest.ctx.player_id]["cardCounts"]
    assert counts["hand"] == 1
    assert counts["draw"] == draw_before + 1

def test_expired_request_blocks_follow_ups(table, deck) -> None:
    host, guest = table.host, table.guest
    result = _shared_top(table, deck)
    host.ctx.clock = lambda: now_ms() + 10 * 60 * 1000

    host.poll()

    assert host.ctx.effects.get(result.request_id).status is RequestStatus.EXPIRED
    assert host.actions.deck_peek_take(guest.ctx.player_id, result.cards[0].uid) is None
    assert host.ctx.listener.notice_messages[-1] == "Request expired"


def test_answering_twice_is_refused(table, deck) -> None:
    guest = table.guest
    result = _shared_top(table, deck)

    assert guest.actions.accept_request(result.request_id) is None
    assert guest.ctx.listener.notices[-1].code == "INVALID_TRANSITION"


def test_request_to_self_or_unknown_player_is_refused(table) -> None:
    host = table.host

    assert host.actions.request_hand_view(host.ctx.player_id) is None
    assert host.actions.request_hand_view("p_ghost") is None
    assert host.ctx.listener.notice_messages[-2:] == ["Player not found", "Player not found"]


def test_book_rejects_illegal_transitions() -> None:
    book = EffectBook()
    request = book.track(_request(status=RequestStatus.DECLINED))

    with pytest.raises(InvalidTransitionError):
        book.transition(request, RequestStatus.APPLIED)


def test_book_expiry_respects_ttl() -> None:
    book = EffectBook(ttl_ms=1000)
    request = book.track(_request(created_at=0))

    assert book.expire_stale(now=1000) == []
    assert book.expire_stale(now=1001) == [request]
    assert request.status is RequestStatus.EXPIRED
    assert book.incoming("p_b") == []


def test_zero_ttl_never_expires() -> None:
    book = EffectBook(ttl_ms=0)
    request = book.track(_request(created_at=0))

    assert book.expire_stale(now=10**12) == []
    assert request.is_open


def test_newer_request_replaces_older_for_same_pair() -> None:
    book = EffectBook()
    book.track(_request())
    newer = _request()
    newer.request_id = "r2"
    book.track(newer)

    assert book.get("r1") is None
    assert book.outgoing("p_a") == [newer]


def test_results_from_one_victim_are_kept_per_kind() -> None:
    book = EffectBook()
    deck_result = EffectResult("r1", RequestKind.DECK_SHARE, "p_b", "B", cards=(Card("a.png", "a"),))
    hand_result = EffectResult("r2", RequestKind.HAND_SHARE, "p_b", "B", cards=(Card("b.png", "b"),))

    book.store_result(deck_result)
    book.store_result(hand_result)

    assert book.result_for("p_b", RequestKind.DECK_SHARE) == deck_result
    assert book.result_for("p_b", RequestKind.HAND_SHARE) == hand_result
    assert book.result_for("p_c", RequestKind.HAND_SHARE) is None
