import copy

from conftest import RecordingListener

from decksync.backend.state import build_initial_room, build_player_entry
from decksync.backend.store import InMemoryRoomStore
from decksync.client.context import SessionContext
from decksync.client.deduper import EventDeduper
from decksync.client.models import Card
from decksync.client.reconciler import Reconciler
from decksync.client.sync import OverwriteUpdater
from decksync.client.transport import LocalTransport


def _reconciler(settings, player_id: str = "p_me") -> tuple[Reconciler, SessionContext, RecordingListener, LocalTransport]:
    listener = RecordingListener()
    ctx = SessionContext(settings=settings, listener=listener)
    ctx.local.player_id = player_id
    ctx.local.player_name = "Me"
    ctx.local.room_code = "ABC123"
    ctx.is_multiplayer = True
    transport = LocalTransport(store=InMemoryRoomStore())
    updater = OverwriteUpdater(ctx, transport)
    return Reconciler(ctx, EventDeduper(ctx), updater), ctx, listener, transport


def _room() -> dict:
    room = build_initial_room("p_host", "Host")
    room["players"]["p_me"] = build_player_entry("Me", last_update=1)
    room["players"]["p_other"] = build_player_entry("Other", last_update=1)
    room["turnOrder"] = ["p_host", "p_me", "p_other"]
    return room


def test_reconcile_refreshes_turn_fields_and_combat(settings) -> None:
    reconciler, ctx, listener, _ = _reconciler(settings)
    room = _room()
    room["currentTurn"] = 1
    room["gameStarted"] = True
    room["combat"] = {"p_other": {"revealed": True}, "bogus": {"cards": []}}

    reasons = reconciler.reconcile(room)

    assert reasons == {"turn", "combat"}
    assert ctx.turn_order == ["p_host", "p_me", "p_other"]
    assert ctx.current_turn == 1
    assert ctx.game_started is True
    assert ctx.is_my_turn is True
    assert ctx.combat == {"p_other": {"cards": [], "revealed": True}}
    assert listener.renders == [frozenset({"turn", "combat"})]


def test_reconcile_is_idempotent(settings) -> None:
    reconciler, ctx, listener, _ = _reconciler(settings)
    room = _room()
    room["players"]["p_me"]["discardCards"] = [{"image": "a.png", "uid": "a"}]
    room["reveals"] = [{"playerId": "p_other", "playerName": "Other", "timestamp": 5, "action": "drew", "count": 1}]
    ctx.local.discard = [Card("a.png", "a"), Card("b.png", "b")]

    first = reconciler.reconcile(copy.deepcopy(room))
    snapshot = (list(ctx.local.discard), ctx.local.last_seen_reveal_timestamp, len(listener.logs), len(listener.renders))
    second = reconciler.reconcile(copy.deepcopy(room))

    assert first
    assert second == frozenset()
    assert (list(ctx.local.discard), ctx.local.last_seen_reveal_timestamp, len(listener.logs), len(listener.renders)) == snapshot


def test_discard_reconciliation_drops_cards_taken_by_others(settings) -> None:
    reconciler, ctx, listener, _ = _reconciler(settings)
    ctx.local.discard = [Card("a.png", "a"), Card("b.png", "b"), Card("c.png", "c")]
    room = _room()
    room["players"]["p_me"]["discardCards"] = [{"image": "a.png", "uid": "a"}, {"image": "c.png", "uid": "c"}]

    reasons = reconciler.reconcile(room)

    assert [card.uid for card in ctx.local.discard] == ["a", "c"]
    assert "discard" in reasons
    assert any("discard" in render for render in listener.renders)


def test_discard_reconciliation_treats_missing_list_as_empty(settings) -> None:
    reconciler, ctx, _, _ = _reconciler(settings)
    ctx.local.discard = [Card("a.png", "a")]

    reconciler.reconcile(_room())

    assert ctx.local.discard == []


def test_discard_left_alone_when_snapshot_has_no_entry_for_self(settings) -> None:
    reconciler, ctx, _, _ = _reconciler(settings, player_id="p_stranger")
    ctx.local.discard = [Card("a.png", "a")]

    reasons = reconciler.reconcile(_room())

    assert [card.uid for card in ctx.local.discard] == ["a"]
    assert "discard" not in reasons


def test_reconcile_ignores_non_documents(settings) -> None:
    reconciler, _, listener, _ = _reconciler(settings)

    assert reconciler.reconcile(None) == frozenset()
    assert listener.renders == []


def test_victim_effect_writes_own_entry_back(settings) -> None:
    reconciler, ctx, _, transport = _reconciler(settings)
    ctx.local.hand = [Card("x.png", "x"), Card("y.png", "y")]
    room = _room()
    room["reveals"] = [
        {
            "playerId": "p_other",
            "playerName": "Other",
            "timestamp": 10,
            "action": "force-discard-hand",
            "victimId": "p_me",
            "cardUid": "x",
            "cardName": "x",
        }
    ]
    ctx.room = room

    reasons = reconciler.reconcile(room)

    assert "zones" in reasons
    assert [card.uid for card in ctx.local.hand] == ["y"]
    assert [card.uid for card in ctx.local.discard] == ["x"]
    written = transport.fetch_current("ABC123")
    assert [card["uid"] for card in written["players"]["p_me"]["discardCards"]] == ["x"]
    assert written["players"]["p_me"]["cardCounts"]["hand"] == 1
    assert len(written["reveals"]) == 1


def test_own_combat_cards_cleared_by_another_player_land_in_local_discard(settings) -> None:
    reconciler, ctx, _, _ = _reconciler(settings)
    room = _room()
    room["combat"] = {"p_me": {"cards": [{"image": "x.png", "uid": "x"}], "revealed": True}}
    reconciler.reconcile(copy.deepcopy(room))

    room["combat"] = None
    room["players"]["p_me"]["discardCards"] = [{"image": "x.png", "uid": "x", "deckKey": "knights"}]
    reasons = reconciler.reconcile(room)

    assert "combat" in reasons
    assert ctx.combat is None
    assert [card.uid for card in ctx.local.discard] == ["x"]
    assert ctx.local.discard[0].origin_deck_key == "knights"
