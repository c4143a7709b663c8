"""Folds a freshly received room document into the local session mirror."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from decksync.backend.state import normalize_combat

from .models import ZONES, Card
from .sync import sync_player_entry

if TYPE_CHECKING:
    from .context import SessionContext
    from .deduper import EventDeduper
    from .sync import DocumentUpdater


logger = logging.getLogger(__name__)


class Reconciler:
    """Idempotent merge of a snapshot into ``SessionContext``.

    Returns the set of render reasons it emitted; reconciling the same
    document twice emits nothing the second time.
    """

    def __init__(self, ctx: "SessionContext", deduper: "EventDeduper", updater: "DocumentUpdater") -> None:
        self.ctx = ctx
        self.deduper = deduper
        self.updater = updater

    def reconcile(self, document: dict[str, Any] | None) -> frozenset[str]:
        if not isinstance(document, dict):
            return frozenset()
        ctx = self.ctx
        reasons: set[str] = set()
        players = document.get("players")
        players = players if isinstance(players, dict) else {}

        if self._refresh_turns(document):
            reasons.add("turn")

        previous_combat = ctx.combat
        combat = normalize_combat(document.get("combat"), players)
        if combat != previous_combat:
            reasons.add("combat")
        ctx.combat = combat

        own = players.get(ctx.player_id) if ctx.player_id else None
        if isinstance(own, dict):
            server_uids = {card.get("uid") for card in own.get("discardCards") or [] if isinstance(card, dict)}
            if self._drop_taken_discards(server_uids):
                reasons.add("discard")
            if self._adopt_cleared_combat(previous_combat, combat, own):
                reasons.add("discard")

        ctx.render(*reasons)

        if self.deduper.process(document.get("reveals")):
            reasons.add("zones")
            ctx.render("zones")
            self.updater.update(lambda doc: sync_player_entry(doc, ctx))

        expired = ctx.effects.expire_stale(ctx.clock())
        if expired:
            for request in expired:
                logger.info("Request %s (%s) expired", request.request_id, request.kind.value)
            reasons.add("effects")
            ctx.render("effects")
        return frozenset(reasons)

    def _refresh_turns(self, document: dict[str, Any]) -> bool:
        ctx = self.ctx
        turn_order = [str(pid) for pid in document.get("turnOrder") or []]
        current_turn = int(document.get("currentTurn") or 0)
        game_started = bool(document.get("gameStarted") or False)
        changed = (turn_order, current_turn, game_started) != (ctx.turn_order, ctx.current_turn, ctx.game_started)
        ctx.turn_order = turn_order
        ctx.current_turn = current_turn
        ctx.game_started = game_started
        return changed

    def _drop_taken_discards(self, server_uids: set[str]) -> bool:
        # Another player took these from our shared discard.
        local = self.ctx.local
        kept = [card for card in local.discard if card.uid in server_uids]
        if len(kept) == len(local.discard):
            return False
        logger.debug("Dropping %d discard card(s) taken by others", len(local.discard) - len(kept))
        local.discard = kept
        return True

    def _adopt_cleared_combat(
        self,
        previous: dict[str, dict[str, Any]] | None,
        current: dict[str, dict[str, Any]] | None,
        own: dict[str, Any],
    ) -> bool:
        """Pick up own combat cards that another player's clear moved to our shared discard."""
        ctx = self.ctx
        pid = ctx.player_id
        if not previous or pid not in previous:
            return False
        still_in_combat = {card.get("uid") for card in ((current or {}).get(pid) or {}).get("cards", [])}
        shared = {card.get("uid"): card for card in own.get("discardCards") or [] if isinstance(card, dict)}
        local = ctx.local
        known = {card.uid for name in ZONES for card in local.zone(name)}
        deck_key = ctx.deck.key if ctx.deck is not None else None
        target = local.intermediate if ctx.deck is not None and ctx.deck.has_intermediate else local.discard

        adopted = 0
        for ref in previous[pid].get("cards", []):
            uid = ref.get("uid")
            if uid in still_in_combat or uid in known or uid not in shared:
                continue
            target.append(Card.from_dict(shared[uid], deck_key))
            known.add(uid)
            adopted += 1
        return adopted > 0
