"""Reveal event vocabulary shared through the room document's event log."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class RevealAction(str, Enum):
    PLAYED = "played"
    DISCARDED = "discarded"
    DREW = "drew"
    HP_CHANGE = "hp-change"
    ADDED_TO_COMBAT = "added-to-combat"
    COMBAT_REVEAL = "combat-reveal"
    COMBAT_CLEARED = "combat-cleared"
    RETURNED_TO_DECK = "returned-to-deck"
    TOOK_FROM_DISCARD = "took-from-discard"
    TOOK_FROM_OWN_DISCARD = "took-from-own-discard"
    MOVED_ZONE_TO_HAND = "moved-zone-to-hand"
    MOVED_ZONE_TO_DISCARD = "moved-zone-to-discard"
    SHUFFLED_HAND_IN = "shuffled-hand-in"
    SHUFFLED_DISCARD_IN = "shuffled-discard-in"
    USED_SPECIAL = "used-special"
    ACTIVATED_SPECIAL = "activated-special"
    TURN_END = "turn-end"
    FORCE_DISCARD_HAND = "force-discard-hand"
    FORCE_SHUFFLE_TO_DECK = "force-shuffle-to-deck"
    DECK_SHARE_REQUEST = "deck-share-request"
    DECK_SHARE_RESPONSE = "deck-share-response"
    FORCE_DECK_PEEK_DISCARD = "force-deck-peek-discard"
    FORCE_DECK_PEEK_REORDER = "force-deck-peek-reorder"
    FORCE_DECK_TAKE_TO_HAND = "force-deck-take-to-hand"
    FORCE_TAKE_FROM_HAND = "force-take-from-hand"
    PEEKED_DECK = "peeked-deck"
    MOVED_IN_DECK = "moved-in-deck"
    DRAWN_FROM_DECK_POSITION = "drawn-from-deck-position"
    HAND_SHARE_REQUEST = "hand-share-request"
    HAND_SHARE_RESPONSE = "hand-share-response"

    @classmethod
    def parse(cls, tag: Any) -> "RevealAction | None":
        try:
            return cls(tag)
        except ValueError:
            return None


# Actions that pop the large "X played N cards" notification.
SPOTLIGHT_ACTIONS = frozenset({RevealAction.PLAYED, RevealAction.DISCARDED, RevealAction.ACTIVATED_SPECIAL})

# Actions a requester aims at a victim, applied by the victim's own client.
VICTIM_ACTIONS = frozenset(
    {
        RevealAction.FORCE_DISCARD_HAND,
        RevealAction.FORCE_SHUFFLE_TO_DECK,
        RevealAction.FORCE_DECK_PEEK_DISCARD,
        RevealAction.FORCE_DECK_PEEK_REORDER,
        RevealAction.FORCE_DECK_TAKE_TO_HAND,
        RevealAction.FORCE_TAKE_FROM_HAND,
    }
)

REQUEST_ACTIONS = frozenset({RevealAction.DECK_SHARE_REQUEST, RevealAction.HAND_SHARE_REQUEST})
RESPONSE_ACTIONS = frozenset({RevealAction.DECK_SHARE_RESPONSE, RevealAction.HAND_SHARE_RESPONSE})

_ENVELOPE_KEYS = ("playerId", "playerName", "timestamp", "action")


@dataclass(frozen=True)
class RevealEvent:
    """Parsed reveal log entry. ``action`` is None for tags this client does not know."""

    player_id: str
    player_name: str
    timestamp: int
    tag: str
    action: RevealAction | None
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def victim_id(self) -> str | None:
        return self.payload.get("victimId")

    @property
    def requester_id(self) -> str | None:
        return self.payload.get("requesterId")

    @property
    def cards(self) -> list[dict[str, Any]]:
        cards = self.payload.get("cards")
        return list(cards) if isinstance(cards, list) else []

    @property
    def is_random(self) -> bool:
        return bool(self.payload.get("random"))

    def get(self, key: str, default: Any = None) -> Any:
        return self.payload.get(key, default)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RevealEvent":
        tag = str(data.get("action", ""))
        return cls(
            player_id=str(data.get("playerId", "")),
            player_name=str(data.get("playerName") or "Someone"),
            timestamp=int(data.get("timestamp", 0)),
            tag=tag,
            action=RevealAction.parse(tag),
            payload={key: value for key, value in data.items() if key not in _ENVELOPE_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        data = {
            "playerId": self.player_id,
            "playerName": self.player_name,
            "timestamp": self.timestamp,
            "action": self.tag,
        }
        data.update(self.payload)
        return data


def build_event(
    player_id: str,
    player_name: str,
    timestamp: int,
    action: RevealAction,
    **payload: Any,
) -> dict[str, Any]:
    """Return the document form of a new reveal event. ``None`` payload values are dropped."""
    event: dict[str, Any] = {
        "playerId": player_id,
        "playerName": player_name,
        "timestamp": timestamp,
        "action": action.value,
    }
    event.update({key: value for key, value in payload.items() if value is not None})
    return event
