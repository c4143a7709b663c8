"""Shared combat zone: each client appends to and reveals only its own entry; anyone may clear."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from decksync.backend.state import ensure_combat_entry, normalize_combat

from .events import RevealAction
from .models import Card
from .sync import sync_player_entry

if TYPE_CHECKING:
    from .context import SessionContext
    from .sync import DocumentUpdater


logger = logging.getLogger(__name__)


class CombatZoneMerger:
    def __init__(self, ctx: "SessionContext", updater: "DocumentUpdater") -> None:
        self.ctx = ctx
        self.updater = updater

    def add(self, uids: list[str], random: bool = False) -> list[Card]:
        ctx = self.ctx
        if not ctx.is_multiplayer:
            ctx.notify("Not in multiplayer")
            return []
        if ctx.room is None:
            ctx.notify("No room data")
            return []
        cards = [card for card in ctx.local.hand if card.uid in set(uids)]
        if not cards:
            ctx.notify("No cards in hand")
            return []

        added = {card.uid for card in cards}
        ctx.local.hand = [card for card in ctx.local.hand if card.uid not in added]
        ctx.local.staged = [card for card in ctx.local.staged if card.uid not in added]
        ctx.local.selected -= added
        if ctx.local.random_picked_uid in added:
            ctx.local.random_picked_uid = None
            random = True

        def mutate(document: dict[str, Any]) -> None:
            entry = ensure_combat_entry(document, ctx.player_id)
            entry["cards"].extend(card.to_ref() for card in cards)
            sync_player_entry(document, ctx)
            ctx.append_event(document, RevealAction.ADDED_TO_COMBAT, count=len(cards), random=True if random else None)

        document = self.updater.update(mutate)
        if document is not None:
            ctx.combat = normalize_combat(document.get("combat"), document.get("players") or {})
        if len(cards) == 1:
            text = f"You added “{cards[0].label}” to combat ⚔️"
        else:
            text = f"You added {len(cards)} cards to combat ⚔️"
        ctx.log(("\U0001f3b2 Random: " if random else "") + text, "combat")
        ctx.render("combat", "zones")
        return cards

    def add_random(self) -> Card | None:
        ctx = self.ctx
        if not ctx.local.hand:
            ctx.notify("No cards in hand")
            return None
        card = ctx.rng.choice(ctx.local.hand)
        added = self.add([card.uid], random=True)
        return added[0] if added else None

    def reveal(self) -> bool:
        ctx = self.ctx
        if not ctx.is_multiplayer:
            return False
        combat = (ctx.room or {}).get("combat")
        if not isinstance(combat, dict) or ctx.player_id not in combat:
            ctx.notify("No cards to reveal")
            return False

        def mutate(document: dict[str, Any]) -> None:
            ensure_combat_entry(document, ctx.player_id)["revealed"] = True
            ctx.append_event(document, RevealAction.COMBAT_REVEAL)

        document = self.updater.update(mutate)
        if document is not None:
            ctx.combat = normalize_combat(document.get("combat"), document.get("players") or {})
        ctx.log("You revealed your combat cards \U0001f513", "combat")
        ctx.render("combat")
        return True

    def clear(self) -> bool:
        """Move every entry's cards to its owner's shared discard and empty the zone."""
        ctx = self.ctx
        if not ctx.is_multiplayer or ctx.room is None or not ctx.room.get("combat"):
            return False
        to_intermediate = ctx.deck is not None and ctx.deck.has_intermediate
        deck_key = ctx.deck.key if ctx.deck is not None else None

        def mutate(document: dict[str, Any]) -> None:
            combat = normalize_combat(document.get("combat"), document.get("players") or {}) or {}
            players = document.get("players") or {}
            own_refs: list[dict[str, Any]] = []
            for pid, entry in combat.items():
                player = players[pid]
                refs = [dict(ref, deckKey=ref.get("deckKey") or player.get("deckKey")) for ref in entry["cards"]]
                if pid == ctx.player_id:
                    target = ctx.local.intermediate if to_intermediate else ctx.local.discard
                    target.extend(Card.from_dict(ref, deck_key) for ref in refs)
                    own_refs.extend(refs)
                else:
                    player["discardCards"] = list(player.get("discardCards") or []) + refs
            document["combat"] = None
            own = sync_player_entry(document, ctx)
            if to_intermediate and own_refs:
                # Shared discard lists them even though they sit in the local intermediate zone.
                own["discardCards"] = own["discardCards"] + own_refs
            ctx.append_event(document, RevealAction.COMBAT_CLEARED)

        ctx.combat = None
        self.updater.update(mutate)
        ctx.log("Combat zone cleared \U0001f5d1️", "combat")
        ctx.notify("Combat → Intermediate Zone" if to_intermediate else "Combat cleared")
        ctx.render("combat", "discard", "zones")
        return True
