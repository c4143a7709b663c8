"""Player intents: mutate the local mirror, then publish one shared write."""

from __future__ import annotations

import logging
import secrets
from typing import TYPE_CHECKING, Any

from decksync.backend.state import player_name

from .effects import EffectRequest, EffectResult, RequestKind, RequestStatus
from .errors import NOT_ALLOWED, InvalidTransitionError, StaleReferenceError
from .events import RevealAction
from .models import Card, DeckDefinition
from .sync import sync_player_entry

if TYPE_CHECKING:
    from .combat import CombatZoneMerger
    from .context import SessionContext
    from .sync import DocumentUpdater
    from .turns import TurnOrderMachine


logger = logging.getLogger(__name__)

RANDOM_PREFIX = "\U0001f3b2 Random: "
POSITIONS = ("top", "bottom", "shuffle")


def _plural(count: int) -> str:
    return "1 card" if count == 1 else f"{count} cards"


def _position_label(position: str) -> str:
    return {"top": "top of deck", "bottom": "bottom of deck"}.get(position, "shuffled into deck")


class ActionDispatcher:
    """Public intent API called by the presentation layer.

    Every intent updates ``ctx.local`` first. In multiplayer it then performs a
    single read-modify-write that refreshes this client's player entry and
    appends at most one reveal event. Precondition failures become notices.
    """

    def __init__(
        self,
        ctx: "SessionContext",
        updater: "DocumentUpdater",
        combat: "CombatZoneMerger",
        turns: "TurnOrderMachine",
    ) -> None:
        self.ctx = ctx
        self.updater = updater
        self.combat = combat
        self.turns = turns

    # -- shared write ---------------------------------------------------

    def _publish(self, action: RevealAction | None = None, **payload: Any) -> dict[str, Any] | None:
        ctx = self.ctx
        if not ctx.is_multiplayer or not ctx.room_code:
            return None

        def mutate(document: dict[str, Any]) -> None:
            sync_player_entry(document, ctx)
            if action is not None:
                ctx.append_event(document, action, **payload)

        return self.updater.update(mutate)

    def _take_random_mark(self, uids: set[str]) -> bool:
        local = self.ctx.local
        if local.random_picked_uid is not None and local.random_picked_uid in uids:
            local.random_picked_uid = None
            return True
        return False

    def _spend(self, cards: list[Card]) -> None:
        """Move played or discarded cards out of hand/staged into discard or the intermediate zone."""
        local = self.ctx.local
        uids = {card.uid for card in cards}
        local.hand = [card for card in local.hand if card.uid not in uids]
        local.staged = [card for card in local.staged if card.uid not in uids]
        local.selected -= uids
        if self.ctx.deck is not None and self.ctx.deck.has_intermediate:
            local.intermediate.extend(cards)
        else:
            local.discard.extend(cards)

    def _hand_card(self, uid: str) -> Card | None:
        local = self.ctx.local
        card = local.find("hand", uid) or local.find("staged", uid)
        if card is None:
            self.ctx.notify("Card is not in hand")
        return card

    # -- deck setup -----------------------------------------------------

    def select_deck(self, deck: DeckDefinition) -> None:
        ctx = self.ctx
        local = ctx.local
        ctx.deck = deck
        local.reset_zones()
        draw = [Card(image=spec.image, uid=f"{deck.key}_{spec.id}_{i}", origin_deck_key=deck.key) for i, spec in enumerate(deck.cards)]
        ctx.rng.shuffle(draw)
        local.draw = draw
        local.hp = {f"bar{i}": bar.start_value for i, bar in enumerate(deck.health_bars)}

        special = deck.special_ability
        if special is None:
            local.special_mode = None
            local.special_deck = []
            local.special_discard = []
            local.special_current = None
        else:
            local.special_mode = special.mode
            local.special_deck = list(special.deck)
            ctx.rng.shuffle(local.special_deck)
            local.special_discard = []
            local.special_current = local.special_deck.pop(0) if local.special_deck else None

        logger.debug("Selected deck %s with %d cards", deck.key, len(draw))
        self._publish()
        ctx.render("zones", "hp", "special")

    # -- draw pile ------------------------------------------------------

    def draw(self) -> Card | None:
        ctx = self.ctx
        if not ctx.local.draw:
            ctx.notify("Draw pile is empty")
            return None
        card = ctx.local.draw.pop(0)
        ctx.local.hand.append(card)
        ctx.log(f"You drew: {card.label}", "draw")
        self._publish(RevealAction.DREW, count=1)
        ctx.render("zones")
        return card

    def draw_from_position(self, index: int) -> Card | None:
        ctx = self.ctx
        if not 0 <= index < len(ctx.local.draw):
            ctx.notify("No card at that position")
            return None
        card = ctx.local.draw.pop(index)
        ctx.local.hand.append(card)
        ctx.log(f"You drew “{card.label}” from position #{index + 1}", "draw")
        self._publish(RevealAction.DRAWN_FROM_DECK_POSITION, position=index + 1)
        ctx.render("zones")
        return card

    def peek_deck(self, count: int) -> list[Card]:
        ctx = self.ctx
        top = list(ctx.local.draw[: max(count, 0)])
        if not top:
            ctx.notify("Draw pile is empty")
            return []
        ctx.log(f"You looked at the top {_plural(len(top))} of your deck", "other")
        self._publish(RevealAction.PEEKED_DECK, count=len(top))
        return top

    def move_in_deck(self, index: int, direction: int) -> bool:
        draw = self.ctx.local.draw
        target = index + (1 if direction > 0 else -1)
        if not 0 <= index < len(draw) or not 0 <= target < len(draw):
            return False
        draw[index], draw[target] = draw[target], draw[index]
        self._publish(RevealAction.MOVED_IN_DECK, fromPosition=index + 1, toPosition=target + 1)
        self.ctx.render("zones")
        return True

    def shuffle_draw(self) -> None:
        self.ctx.rng.shuffle(self.ctx.local.draw)
        self.ctx.log("You shuffled the draw pile", "other")
        self._publish()
        self.ctx.render("zones")

    # -- play / discard -------------------------------------------------

    def _play_or_discard(self, cards: list[Card], action: RevealAction) -> list[Card]:
        ctx = self.ctx
        random = self._take_random_mark({card.uid for card in cards})
        self._spend(cards)
        verb = "played" if action is RevealAction.PLAYED else "discarded"
        kind = "play" if action is RevealAction.PLAYED else "discard"
        if len(cards) == 1:
            ctx.log(f"{RANDOM_PREFIX if random else ''}You {verb}: {cards[0].label}", kind)
        else:
            ctx.log(f"You {verb} {_plural(len(cards))}", kind)
        self._publish(action, cards=[card.to_ref() for card in cards], random=True if random else None)
        ctx.render("zones", "discard")
        return cards

    def play(self, uid: str) -> Card | None:
        card = self._hand_card(uid)
        if card is None:
            return None
        self._play_or_discard([card], RevealAction.PLAYED)
        return card

    def discard(self, uid: str) -> Card | None:
        card = self._hand_card(uid)
        if card is None:
            return None
        self._play_or_discard([card], RevealAction.DISCARDED)
        return card

    def _selected_hand(self) -> list[Card]:
        selected = self.ctx.local.selected
        cards = [card for card in self.ctx.local.hand if card.uid in selected]
        if not cards:
            self.ctx.notify("Select at least one card")
        return cards

    def play_selected(self) -> list[Card]:
        cards = self._selected_hand()
        if not cards:
            return []
        self.ctx.local.selected.clear()
        return self._play_or_discard(cards, RevealAction.PLAYED)

    def discard_selected(self) -> list[Card]:
        cards = self._selected_hand()
        if not cards:
            return []
        self.ctx.local.selected.clear()
        return self._play_or_discard(cards, RevealAction.DISCARDED)

    # -- staging --------------------------------------------------------

    def stage(self, uid: str) -> bool:
        """Toggle a hand card in or out of the staged area. Returns True when now staged."""
        local = self.ctx.local
        if local.find("staged", uid) is not None:
            local.remove("staged", uid)
            staged = False
        else:
            card = local.find("hand", uid)
            if card is None:
                self.ctx.notify("Card is not in hand")
                return False
            local.staged.append(card)
            staged = True
        self._publish()
        self.ctx.render("zones")
        return staged

    def stage_selected(self) -> list[Card]:
        local = self.ctx.local
        cards = self._selected_hand()
        if not cards:
            return []
        staged = {card.uid for card in local.staged}
        added = [card for card in cards if card.uid not in staged]
        local.staged.extend(added)
        local.selected.clear()
        self.ctx.notify(f"{_plural(len(added))} staged")
        self._publish()
        self.ctx.render("zones")
        return added

    def unstage_all(self) -> None:
        self.ctx.local.staged = []
        self._publish()
        self.ctx.render("zones")

    def reveal_staged(self) -> list[Card]:
        ctx = self.ctx
        cards = list(ctx.local.staged)
        if not cards:
            ctx.notify("Nothing staged")
            return []
        ctx.log(f"You revealed {_plural(len(cards))}", "play")
        self._publish(RevealAction.PLAYED, cards=[card.to_ref() for card in cards])
        return cards

    def discard_all_staged(self) -> list[Card]:
        cards = list(self.ctx.local.staged)
        if not cards:
            return []
        self._spend(cards)
        self.ctx.notify("All discarded")
        self._publish()
        self.ctx.render("zones", "discard")
        return cards

    # -- returning and moving -------------------------------------------

    def _return(self, cards: list[Card], position: str) -> None:
        local = self.ctx.local
        uids = {card.uid for card in cards}
        for zone in ("hand", "staged", "intermediate"):
            setattr(local, zone, [card for card in local.zone(zone) if card.uid not in uids])
        local.selected -= uids
        if position == "top":
            local.draw[:0] = cards
        else:
            local.draw.extend(cards)
            if position != "bottom":
                self.ctx.rng.shuffle(local.draw)

    def return_to_deck(self, uid: str, position: str = "shuffle") -> Card | None:
        ctx = self.ctx
        local = ctx.local
        card = local.find("hand", uid) or local.find("staged", uid) or local.find("intermediate", uid)
        if card is None:
            ctx.notify("Card is not in hand")
            return None
        if position not in POSITIONS:
            position = "shuffle"
        self._return([card], position)
        ctx.log(f"You returned “{card.label}” to {_position_label(position)}", "other")
        self._publish(RevealAction.RETURNED_TO_DECK, count=1, pos=position)
        ctx.render("zones")
        return card

    def return_selected_to_deck(self, position: str = "shuffle") -> list[Card]:
        ctx = self.ctx
        cards = self._selected_hand()
        if not cards:
            return []
        if position not in POSITIONS:
            position = "shuffle"
        self._return(cards, position)
        ctx.log(f"You returned {_plural(len(cards))} to {_position_label(position)}", "other")
        self._publish(RevealAction.RETURNED_TO_DECK, count=len(cards), pos=position)
        ctx.render("zones")
        return cards

    def move_to_hand(self, uid: str) -> Card | None:
        ctx = self.ctx
        card = ctx.local.remove("intermediate", uid)
        if card is None:
            ctx.notify("Card is not in the intermediate zone")
            return None
        ctx.local.hand.append(card)
        ctx.log(f"You moved “{card.label}” → hand", "other")
        self._publish(RevealAction.MOVED_ZONE_TO_HAND, cardName=card.label)
        ctx.render("zones")
        return card

    def move_to_discard(self, uid: str) -> Card | None:
        ctx = self.ctx
        card = ctx.local.remove("intermediate", uid)
        if card is None:
            ctx.notify("Card is not in the intermediate zone")
            return None
        ctx.local.discard.append(card)
        ctx.log(f"You moved “{card.label}” → discard", "discard")
        self._publish(RevealAction.MOVED_ZONE_TO_DISCARD, cardName=card.label)
        ctx.render("zones", "discard")
        return card

    def shuffle_hand_in(self) -> int:
        ctx = self.ctx
        local = ctx.local
        if not local.hand:
            ctx.notify("Hand is empty")
            return 0
        count = len(local.hand)
        local.draw.extend(local.hand)
        local.hand = []
        local.staged = []
        local.selected.clear()
        ctx.rng.shuffle(local.draw)
        ctx.log(f"You shuffled hand ({_plural(count)}) into deck", "other")
        self._publish(RevealAction.SHUFFLED_HAND_IN, count=count)
        ctx.render("zones")
        return count

    def shuffle_discard_in(self) -> int:
        ctx = self.ctx
        local = ctx.local
        if not local.discard:
            ctx.notify("Discard pile is empty")
            return 0
        count = len(local.discard)
        local.draw.extend(local.discard)
        local.discard = []
        ctx.rng.shuffle(local.draw)
        ctx.log(f"You shuffled discard ({_plural(count)}) into deck", "other")
        self._publish(RevealAction.SHUFFLED_DISCARD_IN, count=count)
        ctx.render("zones", "discard")
        return count

    def take_from_discard(self, player_id: str, uid: str) -> Card | None:
        """Move a card from any player's shared discard into this client's hand.

        The card must still be present in the cached document; otherwise the
        notice "Card already taken" is emitted and nothing is written.
        """
        ctx = self.ctx
        local = ctx.local
        if local.find("hand", uid) is not None:
            ctx.notify("Already in hand")
            return None

        if not ctx.is_multiplayer:
            card = local.remove("discard", uid) if player_id == ctx.player_id or player_id is None else None
            if card is None:
                ctx.notify("Card already taken")
                return None
            local.hand.append(card)
            ctx.log(f"You recovered “{card.label}” from your own discard", "other")
            ctx.render("zones", "discard")
            return card

        taken: dict[str, Any] = {}

        def mutate(document: dict[str, Any]) -> None:
            player = (document.get("players") or {}).get(player_id)
            if not isinstance(player, dict):
                raise StaleReferenceError(uid, "Player not found")
            pile = list(player.get("discardCards") or [])
            index = next((i for i, ref in enumerate(pile) if isinstance(ref, dict) and ref.get("uid") == uid), None)
            if index is None:
                raise StaleReferenceError(uid)
            card = Card.from_dict(pile.pop(index), player.get("deckKey"))
            player["discardCards"] = pile
            local.hand.append(card)
            if player_id == ctx.player_id:
                local.remove("discard", uid)
            taken.update(card=card, from_name=player.get("name") or "unknown")
            sync_player_entry(document, ctx)
            if player_id == ctx.player_id:
                ctx.append_event(document, RevealAction.TOOK_FROM_OWN_DISCARD, cardName=card.label)
            else:
                ctx.append_event(
                    document,
                    RevealAction.TOOK_FROM_DISCARD,
                    fromId=player_id,
                    fromName=taken["from_name"],
                    cardName=card.label,
                )

        try:
            self.updater.update(mutate)
        except StaleReferenceError as exc:
            logger.info("Discard take of %s from %s rejected: %s", uid, player_id, exc.message)
            ctx.notify(exc.message, exc.code)
            return None
        if not taken:
            ctx.notify("No room data")
            return None
        card = taken["card"]
        if player_id == ctx.player_id:
            ctx.log(f"You recovered “{card.label}” from your own discard", "other")
        else:
            ctx.log(f"You took “{card.label}” from {taken['from_name']}'s discard", "other")
        ctx.notify("Added to hand")
        ctx.render("zones", "discard")
        return card

    # -- random pick and selection --------------------------------------

    def pick_random(self, zone: str) -> Card | None:
        """Pick a uniformly random card; its next play, discard or combat add is tagged random."""
        ctx = self.ctx
        if zone not in ("draw", "hand", "intermediate", "discard"):
            raise ValueError(f"Cannot pick from {zone!r}")
        pool = ctx.local.zone(zone)
        if not pool:
            ctx.notify(f"No cards in {zone}")
            return None
        card = ctx.rng.choice(pool)
        ctx.local.random_picked_uid = card.uid
        ctx.render("random")
        return card

    def toggle_select(self, uid: str) -> bool:
        selected = self.ctx.local.selected
        if uid in selected:
            selected.discard(uid)
        elif self.ctx.local.find("hand", uid) is not None:
            selected.add(uid)
        self.ctx.render("selection")
        return uid in selected

    def select_all(self) -> None:
        self.ctx.local.selected = {card.uid for card in self.ctx.local.hand}
        self.ctx.render("selection")

    def clear_selection(self) -> None:
        self.ctx.local.selected = set()
        self.ctx.render("selection")

    # -- health ---------------------------------------------------------

    def hp_change(self, bar: str, delta: int) -> int | None:
        ctx = self.ctx
        hp = ctx.local.hp
        if bar not in hp:
            ctx.notify(f"Unknown health bar {bar}")
            return None
        before = hp[bar]
        hp[bar] = max(0, before + delta)
        label = ctx.deck.bar_label(bar) if ctx.deck is not None else bar
        ctx.log(f"{label}: {delta:+d} → {hp[bar]} HP", "hp")
        self._publish(RevealAction.HP_CHANGE, barLabel=label, **{"from": before, "to": hp[bar], "delta": delta})
        ctx.render("hp")
        return hp[bar]

    # -- special ability ------------------------------------------------

    def _special_label(self) -> str:
        special = self.ctx.deck.special_ability if self.ctx.deck is not None else None
        return special.label if special is not None else "Special Ability"

    def use_special(self) -> bool:
        ctx = self.ctx
        local = ctx.local
        current = local.special_current
        if current is None:
            ctx.notify("No card active")
            return False
        label = self._special_label()
        if local.special_mode == "discard":
            local.special_discard.append(current)
            local.special_current = local.special_deck.pop(0) if local.special_deck else None
            name = Card(image=current.image, uid=current.id).label
            ctx.log(f"You used {label}: {name}", "other")
        elif local.special_mode == "swap":
            ids = [spec.id for spec in local.special_deck]
            if current.id in ids:
                local.special_current = local.special_deck[(ids.index(current.id) + 1) % len(ids)]
            else:
                local.special_deck.insert(0, current)
                local.special_current = local.special_deck[1] if len(local.special_deck) > 1 else local.special_deck[0]
            name = Card(image=local.special_current.image, uid=local.special_current.id).label
            ctx.log(f"You swapped {label} → {name}", "other")
        else:
            return False
        self._publish(RevealAction.USED_SPECIAL, saLabel=label, cardName=name)
        ctx.render("special")
        return True

    def activate_special(self, index: int) -> bool:
        ctx = self.ctx
        local = ctx.local
        if not 0 <= index < len(local.special_deck):
            ctx.notify("No card at that position")
            return False
        if local.special_current is not None:
            local.special_deck.append(local.special_current)
        current = local.special_deck.pop(index)
        local.special_current = current
        label = self._special_label()
        name = Card(image=current.image, uid=current.id).label
        ctx.log(f"You activated {label}: {name}", "other")
        self._publish(RevealAction.ACTIVATED_SPECIAL, saLabel=label, cardName=name, cards=[{"image": current.image}])
        ctx.render("special")
        return True

    def recover_special(self, index: int) -> bool:
        ctx = self.ctx
        local = ctx.local
        if not 0 <= index < len(local.special_discard):
            ctx.notify("No card at that position")
            return False
        if local.special_current is not None:
            local.special_discard.append(local.special_current)
        local.special_current = local.special_discard.pop(index)
        ctx.notify("Card recovered")
        self._publish()
        ctx.render("special")
        return True

    def share_hand(self, enabled: bool) -> None:
        self.ctx.local.share_hand = enabled
        self._publish()
        self.ctx.render("zones")

    # -- combat and turns -----------------------------------------------

    def add_to_combat(self, uid: str) -> list[Card]:
        return self.combat.add([uid])

    def add_selected_to_combat(self) -> list[Card]:
        cards = self._selected_hand()
        if not cards:
            return []
        return self.combat.add([card.uid for card in cards])

    def add_random_to_combat(self) -> Card | None:
        return self.combat.add_random()

    def reveal_combat(self) -> bool:
        return self.combat.reveal()

    def clear_combat(self) -> bool:
        return self.combat.clear()

    def start_game(self) -> bool:
        return self.turns.start_game()

    def end_turn(self) -> str | None:
        return self.turns.end_turn()

    def move_player_to_end(self, player_id: str) -> bool:
        return self.turns.move_to_end(player_id)

    def set_turn_order(self, order: list[str]) -> bool:
        return self.turns.set_order(order)

    # -- cross-player effects: requester side ---------------------------

    def _open_request(self, kind: RequestKind, victim_id: str, count: int | None = None) -> EffectRequest | None:
        ctx = self.ctx
        if not ctx.is_multiplayer or ctx.room is None:
            ctx.notify("Not in multiplayer", NOT_ALLOWED)
            return None
        if victim_id == ctx.player_id or victim_id not in (ctx.room.get("players") or {}):
            ctx.notify("Player not found", NOT_ALLOWED)
            return None
        request = EffectRequest(
            request_id=secrets.token_hex(6),
            kind=kind,
            requester_id=ctx.player_id or "",
            requester_name=ctx.player_name,
            victim_id=victim_id,
            victim_name=player_name(ctx.room, victim_id),
            created_at=ctx.clock(),
            count=count,
        )
        ctx.effects.track(request)
        self._publish(
            kind.request_action,
            victimId=victim_id,
            victimName=request.victim_name,
            count=count,
            requestId=request.request_id,
        )
        what = f"the top {count} cards of {request.victim_name}'s deck" if count else f"{request.victim_name}'s hand"
        ctx.log(f"You asked to see {what}", "effect")
        ctx.render("effects")
        return request

    def request_deck_peek(self, victim_id: str, count: int = 3) -> EffectRequest | None:
        return self._open_request(RequestKind.DECK_SHARE, victim_id, max(count, 1))

    def request_hand_view(self, victim_id: str) -> EffectRequest | None:
        return self._open_request(RequestKind.HAND_SHARE, victim_id)

    def _active_result(self, victim_id: str, kind: RequestKind) -> EffectResult | None:
        ctx = self.ctx
        result = ctx.effects.result_for(victim_id, kind)
        if result is None or result.declined:
            ctx.notify("Nothing to act on", NOT_ALLOWED)
            return None
        request = ctx.effects.find(ctx.player_id or "", victim_id, kind)
        if request is not None:
            if request.status is RequestStatus.EXPIRED:
                ctx.notify("Request expired", NOT_ALLOWED)
                return None
            if request.status is RequestStatus.ACCEPTED:
                ctx.effects.transition(request, RequestStatus.APPLIED)
        return result

    def _force(self, victim_id: str, kind: RequestKind, action: RevealAction, uid: str, to_hand: bool) -> Card | None:
        ctx = self.ctx
        result = self._active_result(victim_id, kind)
        if result is None:
            return None
        card = next((card for card in result.cards if card.uid == uid), None)
        if card is None:
            ctx.notify("Card already taken", NOT_ALLOWED)
            return None
        ctx.effects.store_result(result.without(uid))
        if to_hand:
            ctx.local.hand.append(card)
        self._publish(action, victimId=victim_id, victimName=result.victim_name, cardUid=uid, cardName=card.label)
        ctx.render("effects", "zones")
        return card

    def deck_peek_discard(self, victim_id: str, uid: str) -> Card | None:
        card = self._force(victim_id, RequestKind.DECK_SHARE, RevealAction.FORCE_DECK_PEEK_DISCARD, uid, False)
        if card is not None:
            self.ctx.log(f"You discarded “{card.label}” from the top of their deck", "effect")
        return card

    def deck_peek_take(self, victim_id: str, uid: str) -> Card | None:
        card = self._force(victim_id, RequestKind.DECK_SHARE, RevealAction.FORCE_DECK_TAKE_TO_HAND, uid, True)
        if card is not None:
            self.ctx.log(f"You took “{card.label}” from their deck", "effect")
        return card

    def deck_peek_reorder(self, victim_id: str, order: list[str]) -> bool:
        ctx = self.ctx
        result = self._active_result(victim_id, RequestKind.DECK_SHARE)
        if result is None:
            return False
        known = {card.uid for card in result.cards}
        order = [uid for uid in order if uid in known]
        if not order:
            return False
        ctx.effects.store_result(result.reordered(order))
        self._publish(
            RevealAction.FORCE_DECK_PEEK_REORDER,
            victimId=victim_id,
            victimName=result.victim_name,
            order=order,
        )
        ctx.log(f"You reordered the top of {result.victim_name}'s deck", "effect")
        ctx.render("effects")
        return True

    def hand_force_discard(self, victim_id: str, uid: str) -> Card | None:
        card = self._force(victim_id, RequestKind.HAND_SHARE, RevealAction.FORCE_DISCARD_HAND, uid, False)
        if card is not None:
            self.ctx.log(f"You discarded “{card.label}” from their hand", "effect")
        return card

    def hand_take(self, victim_id: str, uid: str) -> Card | None:
        card = self._force(victim_id, RequestKind.HAND_SHARE, RevealAction.FORCE_TAKE_FROM_HAND, uid, True)
        if card is not None:
            self.ctx.log(f"You took “{card.label}” from their hand", "effect")
        return card

    def hand_force_shuffle(self, victim_id: str, uid: str) -> Card | None:
        card = self._force(victim_id, RequestKind.HAND_SHARE, RevealAction.FORCE_SHUFFLE_TO_DECK, uid, False)
        if card is not None:
            self.ctx.log(f"You shuffled “{card.label}” from their hand into their deck", "effect")
        return card

    # -- cross-player effects: victim side ------------------------------

    def _answer(self, request_id: str, accept: bool) -> EffectRequest | None:
        ctx = self.ctx
        request = ctx.effects.get(request_id)
        if request is None or request.victim_id != ctx.player_id:
            ctx.notify("Request not found", NOT_ALLOWED)
            return None
        target = RequestStatus.ACCEPTED if accept else RequestStatus.DECLINED
        try:
            ctx.effects.transition(request, target)
        except InvalidTransitionError as exc:
            ctx.notify(exc.message, exc.code)
            return None

        payload: dict[str, Any] = {
            "requesterId": request.requester_id,
            "requesterName": request.requester_name,
            "requestId": request.request_id,
        }
        if not accept:
            payload["declined"] = True
        elif request.kind is RequestKind.DECK_SHARE:
            payload["topCards"] = [card.to_dict() for card in ctx.local.draw[: request.count or 1]]
        else:
            payload["handCards"] = [card.to_dict() for card in ctx.local.hand]
        self._publish(request.kind.response_action, **payload)

        verb = "showed" if accept else "declined to show"
        what = "deck" if request.kind is RequestKind.DECK_SHARE else "hand"
        ctx.log(f"You {verb} your {what} to {request.requester_name}", "effect")
        ctx.render("effects")
        return request

    def accept_request(self, request_id: str) -> EffectRequest | None:
        return self._answer(request_id, accept=True)

    def decline_request(self, request_id: str) -> EffectRequest | None:
        return self._answer(request_id, accept=False)
