"""Two-phase cross-player effect requests carried through the reveal log.

A requester appends ``*-request`` addressed to a victim. The victim's client
picks it up through its deduper, prompts, and on accept appends
``*-response`` addressed back to the requester with a snapshot of the
requested cards. Each follow-up action (take, discard, reorder) is another
event carrying ``victimId`` that only the victim's client applies.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any

from .errors import InvalidTransitionError
from .events import RevealAction, RevealEvent
from .models import Card

if TYPE_CHECKING:
    from .context import SessionContext


logger = logging.getLogger(__name__)


class RequestKind(str, Enum):
    DECK_SHARE = "deck-share"
    HAND_SHARE = "hand-share"

    @property
    def request_action(self) -> RevealAction:
        return RevealAction(f"{self.value}-request")

    @property
    def response_action(self) -> RevealAction:
        return RevealAction(f"{self.value}-response")

    @classmethod
    def for_action(cls, action: RevealAction | None) -> "RequestKind | None":
        if action in (RevealAction.DECK_SHARE_REQUEST, RevealAction.DECK_SHARE_RESPONSE):
            return cls.DECK_SHARE
        if action in (RevealAction.HAND_SHARE_REQUEST, RevealAction.HAND_SHARE_RESPONSE):
            return cls.HAND_SHARE
        return None


class RequestStatus(str, Enum):
    REQUESTED = "requested"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    APPLIED = "applied"
    EXPIRED = "expired"


_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.REQUESTED: frozenset({RequestStatus.ACCEPTED, RequestStatus.DECLINED, RequestStatus.EXPIRED}),
    RequestStatus.ACCEPTED: frozenset({RequestStatus.APPLIED, RequestStatus.EXPIRED}),
    RequestStatus.DECLINED: frozenset(),
    RequestStatus.APPLIED: frozenset(),
    RequestStatus.EXPIRED: frozenset(),
}

OPEN_STATUSES = frozenset({RequestStatus.REQUESTED, RequestStatus.ACCEPTED})


@dataclass
class EffectRequest:
    request_id: str
    kind: RequestKind
    requester_id: str
    requester_name: str
    victim_id: str
    victim_name: str
    created_at: int
    count: int | None = None
    status: RequestStatus = RequestStatus.REQUESTED

    @property
    def key(self) -> tuple[str, str, RequestKind]:
        return (self.requester_id, self.victim_id, self.kind)

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES


@dataclass(frozen=True)
class EffectResult:
    """What the requester browses after a response arrives."""

    request_id: str
    kind: RequestKind
    victim_id: str
    victim_name: str
    cards: tuple[Card, ...] = ()
    declined: bool = False

    def without(self, uid: str) -> "EffectResult":
        return replace(self, cards=tuple(card for card in self.cards if card.uid != uid))

    def reordered(self, order: list[str]) -> "EffectResult":
        by_uid = {card.uid: card for card in self.cards}
        ordered = [by_uid[uid] for uid in order if uid in by_uid]
        rest = [card for card in self.cards if card.uid not in order]
        return replace(self, cards=tuple(ordered + rest))


@dataclass
class EffectBook:
    """Pending requests keyed by (requester, victim, kind); newer requests replace older ones."""

    ttl_ms: int = 0
    _requests: dict[tuple[str, str, RequestKind], EffectRequest] = field(default_factory=dict)
    _results: dict[tuple[str, RequestKind], EffectResult] = field(default_factory=dict)

    def track(self, request: EffectRequest) -> EffectRequest:
        self._requests[request.key] = request
        return request

    def get(self, request_id: str) -> EffectRequest | None:
        for request in self._requests.values():
            if request.request_id == request_id:
                return request
        return None

    def find(self, requester_id: str, victim_id: str, kind: RequestKind) -> EffectRequest | None:
        return self._requests.get((requester_id, victim_id, kind))

    def transition(self, request: EffectRequest, target: RequestStatus) -> EffectRequest:
        if target not in _TRANSITIONS[request.status]:
            raise InvalidTransitionError(request.request_id, request.status.value, target.value)
        request.status = target
        return request

    def incoming(self, victim_id: str) -> list[EffectRequest]:
        return [r for r in self._requests.values() if r.victim_id == victim_id and r.is_open]

    def outgoing(self, requester_id: str) -> list[EffectRequest]:
        return [r for r in self._requests.values() if r.requester_id == requester_id and r.is_open]

    def expire_stale(self, now: int) -> list[EffectRequest]:
        if self.ttl_ms <= 0:
            return []
        expired = []
        for request in self._requests.values():
            if request.is_open and now - request.created_at > self.ttl_ms:
                request.status = RequestStatus.EXPIRED
                expired.append(request)
        return expired

    def store_result(self, result: EffectResult) -> EffectResult:
        self._results[(result.victim_id, result.kind)] = result
        return result

    def result_for(self, victim_id: str, kind: RequestKind) -> EffectResult | None:
        return self._results.get((victim_id, kind))

    def clear(self) -> None:
        self._requests.clear()
        self._results.clear()


def request_from_event(event: RevealEvent) -> EffectRequest | None:
    kind = RequestKind.for_action(event.action)
    if kind is None or not event.victim_id:
        return None
    count = event.get("count")
    return EffectRequest(
        request_id=str(event.get("requestId") or f"{event.player_id}:{event.timestamp}"),
        kind=kind,
        requester_id=event.player_id,
        requester_name=event.player_name,
        victim_id=event.victim_id,
        victim_name=str(event.get("victimName") or ""),
        created_at=event.timestamp,
        count=int(count) if count is not None else None,
    )


def result_from_event(event: RevealEvent) -> EffectResult | None:
    kind = RequestKind.for_action(event.action)
    if kind is None:
        return None
    payload_key = "topCards" if kind is RequestKind.DECK_SHARE else "handCards"
    raw_cards: list[Any] = event.get(payload_key) or []
    return EffectResult(
        request_id=str(event.get("requestId") or ""),
        kind=kind,
        victim_id=event.player_id,
        victim_name=event.player_name,
        cards=tuple(Card.from_dict(card) for card in raw_cards if isinstance(card, dict)),
        declined=bool(event.get("declined")),
    )


def apply_victim_effect(ctx: "SessionContext", event: RevealEvent) -> bool:
    """Apply another player's forced action to this client's private zones.

    Returns True when a local zone changed. A card that is no longer where the
    requester saw it is logged and skipped.
    """
    local = ctx.local
    uid = event.get("cardUid")
    action = event.action

    if action is RevealAction.FORCE_DECK_PEEK_REORDER:
        order = [str(u) for u in event.get("order") or []]
        moved = [card for card in local.draw if card.uid in order]
        if not moved:
            return False
        moved.sort(key=lambda card: order.index(card.uid))
        rest = [card for card in local.draw if card.uid not in order]
        local.draw = moved + rest
        return True

    source = {
        RevealAction.FORCE_DISCARD_HAND: "hand",
        RevealAction.FORCE_SHUFFLE_TO_DECK: "hand",
        RevealAction.FORCE_TAKE_FROM_HAND: "hand",
        RevealAction.FORCE_DECK_PEEK_DISCARD: "draw",
        RevealAction.FORCE_DECK_TAKE_TO_HAND: "draw",
    }.get(action)
    if source is None or not uid:
        return False

    card = local.remove(source, uid)
    if card is None:
        logger.info("Ignoring %s for %s: card %s no longer in %s", event.tag, ctx.player_id, uid, source)
        return False
    local.selected.discard(uid)
    if source == "hand":
        local.staged = [c for c in local.staged if c.uid != uid]

    if action in (RevealAction.FORCE_DISCARD_HAND, RevealAction.FORCE_DECK_PEEK_DISCARD):
        local.discard.append(card)
    elif action is RevealAction.FORCE_SHUFFLE_TO_DECK:
        local.draw.append(card)
        ctx.rng.shuffle(local.draw)
    return True
