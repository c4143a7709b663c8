"""Turns newly observed reveal events into log lines, notifications and local effects."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from .effects import (
    RequestStatus,
    apply_victim_effect,
    request_from_event,
    result_from_event,
)
from .errors import InvalidTransitionError
from .events import (
    REQUEST_ACTIONS,
    RESPONSE_ACTIONS,
    SPOTLIGHT_ACTIONS,
    VICTIM_ACTIONS,
    RevealAction,
    RevealEvent,
)

if TYPE_CHECKING:
    from .context import SessionContext


logger = logging.getLogger(__name__)

Description = tuple[str, str]
Describer = Callable[[RevealEvent, "SessionContext"], Description]

_POSITION_LABELS = {"top": "top of deck", "bottom": "bottom of deck"}


def _count_words(event: RevealEvent) -> str:
    count = len(event.cards) if event.cards else int(event.get("count") or 1)
    return "1 card" if count == 1 else f"{count} cards"


def _card_name(event: RevealEvent) -> str:
    return f"“{event.get('cardName') or 'a card'}”"


def _victim(event: RevealEvent, ctx: "SessionContext") -> str:
    if event.victim_id and event.victim_id == ctx.player_id:
        return "your"
    return f"{event.get('victimName') or 'someone'}'s"


def _played(event: RevealEvent, ctx: "SessionContext") -> Description:
    if event.is_random:
        return f"{event.player_name} played a random card \U0001f3b2", "other"
    return f"{event.player_name} played {_count_words(event)}", "other"


def _discarded(event: RevealEvent, ctx: "SessionContext") -> Description:
    if event.is_random:
        return f"{event.player_name} discarded a random card \U0001f3b2", "discard"
    return f"{event.player_name} discarded {_count_words(event)}", "discard"


def _hp_change(event: RevealEvent, ctx: "SessionContext") -> Description:
    direction = "increased" if (event.get("delta") or 0) > 0 else "decreased"
    return (
        f"{event.player_name} {direction} {event.get('barLabel')}: "
        f"{event.get('from')} → {event.get('to')} HP",
        "hp",
    )


def _added_to_combat(event: RevealEvent, ctx: "SessionContext") -> Description:
    if event.is_random:
        return f"{event.player_name} added a random card to combat \U0001f3b2⚔️", "combat"
    return f"{event.player_name} added {_count_words(event)} to combat ⚔️", "combat"


def _returned_to_deck(event: RevealEvent, ctx: "SessionContext") -> Description:
    position = _POSITION_LABELS.get(event.get("pos"), "shuffled into deck")
    if position == "shuffled into deck":
        return f"{event.player_name} returned {_count_words(event)} {position}", "other"
    return f"{event.player_name} returned {_count_words(event)} to {position}", "other"


def _turn_end(event: RevealEvent, ctx: "SessionContext") -> Description:
    ended = event.get("endedName") or event.player_name
    following = event.get("nextName")
    if following is None:
        return f"{ended} ended their turn", "turn"
    return f"{ended} ended turn → {following}", "turn"


def _share_request(event: RevealEvent, ctx: "SessionContext") -> Description:
    if event.action is RevealAction.DECK_SHARE_REQUEST:
        what = f"the top {event.get('count') or '?'} cards of {_victim(event, ctx)} deck"
    else:
        what = f"{_victim(event, ctx)} hand"
    return f"{event.player_name} asked to see {what}", "effect"


def _share_response(event: RevealEvent, ctx: "SessionContext") -> Description:
    what = "deck" if event.action is RevealAction.DECK_SHARE_RESPONSE else "hand"
    if event.get("declined"):
        return f"{event.player_name} declined to show their {what}", "effect"
    return f"{event.player_name} showed their {what} to {event.get('requesterName') or 'someone'}", "effect"


def _simple(template: str, kind: str = "other") -> Describer:
    def describe(event: RevealEvent, ctx: "SessionContext") -> Description:
        return (
            template.format(
                name=event.player_name,
                card=_card_name(event),
                count=event.get("count") or "?",
                cards=_count_words(event),
                label=event.get("saLabel") or "special ability",
                suffix=f": {event.get('cardName')}" if event.get("cardName") else "",
                source=event.get("fromName") or "someone",
                victim=_victim(event, ctx),
                position=event.get("position", "?"),
                origin=event.get("fromPosition", "?"),
                target=event.get("toPosition", "?"),
            ),
            kind,
        )

    return describe


DESCRIBERS: dict[RevealAction, Describer] = {
    RevealAction.PLAYED: _played,
    RevealAction.DISCARDED: _discarded,
    RevealAction.DREW: _simple("{name} drew {cards}", "draw"),
    RevealAction.HP_CHANGE: _hp_change,
    RevealAction.ADDED_TO_COMBAT: _added_to_combat,
    RevealAction.COMBAT_REVEAL: _simple("{name} revealed their combat cards \U0001f513", "combat"),
    RevealAction.COMBAT_CLEARED: _simple("{name} cleared the combat zone \U0001f5d1️", "combat"),
    RevealAction.RETURNED_TO_DECK: _returned_to_deck,
    RevealAction.TOOK_FROM_DISCARD: _simple("{name} took {card} from {source}'s discard"),
    RevealAction.TOOK_FROM_OWN_DISCARD: _simple("{name} recovered {card} from their own discard"),
    RevealAction.MOVED_ZONE_TO_HAND: _simple("{name} moved {card} → hand"),
    RevealAction.MOVED_ZONE_TO_DISCARD: _simple("{name} moved {card} → discard", "discard"),
    RevealAction.SHUFFLED_HAND_IN: _simple("{name} shuffled hand ({count} cards) into deck"),
    RevealAction.SHUFFLED_DISCARD_IN: _simple("{name} shuffled discard ({count} cards) into deck"),
    RevealAction.USED_SPECIAL: _simple("{name} used {label}{suffix}"),
    RevealAction.ACTIVATED_SPECIAL: _simple("{name} activated {label}{suffix}"),
    RevealAction.TURN_END: _turn_end,
    RevealAction.FORCE_DISCARD_HAND: _simple("{name} discarded {card} from {victim} hand", "effect"),
    RevealAction.FORCE_SHUFFLE_TO_DECK: _simple("{name} shuffled {card} from {victim} hand into their deck", "effect"),
    RevealAction.DECK_SHARE_REQUEST: _share_request,
    RevealAction.DECK_SHARE_RESPONSE: _share_response,
    RevealAction.FORCE_DECK_PEEK_DISCARD: _simple("{name} discarded {card} from the top of {victim} deck", "effect"),
    RevealAction.FORCE_DECK_PEEK_REORDER: _simple("{name} reordered the top of {victim} deck", "effect"),
    RevealAction.FORCE_DECK_TAKE_TO_HAND: _simple("{name} took {card} from {victim} deck", "effect"),
    RevealAction.FORCE_TAKE_FROM_HAND: _simple("{name} took {card} from {victim} hand", "effect"),
    RevealAction.PEEKED_DECK: _simple("{name} looked at the top {count} cards of their deck"),
    RevealAction.MOVED_IN_DECK: _simple("{name} moved a card in their deck from #{origin} to #{target}"),
    RevealAction.DRAWN_FROM_DECK_POSITION: _simple("{name} drew the card at #{position} of their deck", "draw"),
    RevealAction.HAND_SHARE_REQUEST: _share_request,
    RevealAction.HAND_SHARE_RESPONSE: _share_response,
}


def describe(event: RevealEvent, ctx: "SessionContext") -> Description:
    """Return the (log text, log kind) pair for an event from another player."""
    if event.action is None:
        return f"{event.player_name} performed an action", "other"
    return DESCRIBERS[event.action](event, ctx)


class EventDeduper:
    def __init__(self, ctx: "SessionContext") -> None:
        self.ctx = ctx

    def select(self, reveals: Any) -> list[dict[str, Any]]:
        """Events newer than the watermark that this client did not author, in log order."""
        if not isinstance(reveals, list):
            return []
        watermark = self.ctx.local.last_seen_reveal_timestamp
        return [
            raw
            for raw in reveals
            if isinstance(raw, dict)
            and int(raw.get("timestamp") or 0) > watermark
            and raw.get("playerId") != self.ctx.player_id
        ]

    def process(self, reveals: Any) -> bool:
        """Consume new events once. Returns True when a victim effect changed local zones."""
        ctx = self.ctx
        fresh = self.select(reveals)
        if not fresh:
            return False
        ctx.local.last_seen_reveal_timestamp = int(fresh[-1].get("timestamp") or 0)

        spotlight: RevealEvent | None = None
        zones_changed = False
        for raw in fresh:
            event = RevealEvent.from_dict(raw)
            text, kind = describe(event, ctx)
            ctx.log(text, kind)

            if event.action in SPOTLIGHT_ACTIONS:
                spotlight = event
            if event.victim_id and event.victim_id == ctx.player_id:
                if event.action in VICTIM_ACTIONS:
                    zones_changed = apply_victim_effect(ctx, event) or zones_changed
                elif event.action in REQUEST_ACTIONS:
                    self._register_request(event)
            elif event.action in RESPONSE_ACTIONS and event.requester_id == ctx.player_id:
                self._complete_request(event)

        if spotlight is not None and spotlight.cards:
            ctx.listener.on_reveal(spotlight)
        return zones_changed

    def _register_request(self, event: RevealEvent) -> None:
        request = request_from_event(event)
        if request is None:
            return
        self.ctx.effects.track(request)
        logger.debug("Tracking %s request %s from %s", request.kind.value, request.request_id, request.requester_id)
        self.ctx.listener.on_effect_prompt(request)

    def _complete_request(self, event: RevealEvent) -> None:
        result = result_from_event(event)
        if result is None:
            return
        book = self.ctx.effects
        request = book.get(result.request_id) or book.find(self.ctx.player_id or "", result.victim_id, result.kind)
        if request is not None:
            target = RequestStatus.DECLINED if result.declined else RequestStatus.ACCEPTED
            try:
                book.transition(request, target)
            except InvalidTransitionError:
                logger.info("Ignoring response to %s request %s", request.status.value, request.request_id)
                return
        book.store_result(result)
        self.ctx.listener.on_effect_result(result)
