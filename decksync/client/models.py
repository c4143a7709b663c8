"""Client-side data models: cards, deck definitions and the local session mirror."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any


ZONES = ("draw", "hand", "staged", "intermediate", "discard")

_COUNTED_NAME_RE = re.compile(r"\d+ x (.+)\.png$", re.IGNORECASE)


def card_label(image: str | None) -> str:
    """Human-readable card name derived from its image path."""
    image = image or ""
    match = _COUNTED_NAME_RE.search(image)
    if match:
        return match.group(1)
    base = re.sub(r"^.*[\\/]", "", image)
    base = re.sub(r"\.[^.]+$", "", base)
    return base or "card"


@dataclass(frozen=True)
class Card:
    image: str
    uid: str
    origin_deck_key: str | None = None

    @property
    def label(self) -> str:
        return card_label(self.image)

    def to_ref(self) -> dict[str, Any]:
        return {"image": self.image, "uid": self.uid}

    def to_dict(self) -> dict[str, Any]:
        return {"image": self.image, "uid": self.uid, "deckKey": self.origin_deck_key}

    @classmethod
    def from_dict(cls, data: dict[str, Any], default_deck_key: str | None = None) -> "Card":
        return cls(
            image=str(data.get("image", "")),
            uid=str(data.get("uid", "")),
            origin_deck_key=data.get("deckKey") or default_deck_key,
        )


@dataclass(frozen=True)
class CardSpec:
    id: str
    image: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "image": self.image}


@dataclass(frozen=True)
class HealthBar:
    label: str
    start_value: int
    color: str | None = None


@dataclass(frozen=True)
class SpecialAbility:
    label: str
    mode: str  # "discard" | "swap"
    deck: tuple[CardSpec, ...] = ()


@dataclass(frozen=True)
class DeckDefinition:
    """Catalog entry for one playable deck."""

    key: str
    name: str
    image: str = ""
    cards: tuple[CardSpec, ...] = ()
    health_bars: tuple[HealthBar, ...] = ()
    intermediate_zone: str | None = None
    special_ability: SpecialAbility | None = None

    @property
    def has_intermediate(self) -> bool:
        return self.intermediate_zone is not None

    def bar_label(self, bar_key: str) -> str:
        index = bar_key.removeprefix("bar")
        if index.isdigit() and int(index) < len(self.health_bars):
            return self.health_bars[int(index)].label
        return bar_key

    @classmethod
    def from_dict(cls, key: str, data: dict[str, Any]) -> "DeckDefinition":
        intermediate = data.get("intermediateZone") or {}
        special = data.get("specialAbility") or {}
        special_ability = None
        if special.get("enabled"):
            special_ability = SpecialAbility(
                label=special.get("label") or "Special Ability",
                mode=special.get("mode", "discard"),
                deck=tuple(CardSpec(id=str(c["id"]), image=c["image"]) for c in special.get("deck", [])),
            )
        return cls(
            key=key,
            name=data.get("name", key),
            image=data.get("image", ""),
            cards=tuple(CardSpec(id=str(c["id"]), image=c["image"]) for c in data.get("cards", [])),
            health_bars=tuple(
                HealthBar(label=bar["label"], start_value=int(bar.get("startValue", 0)), color=bar.get("color"))
                for bar in data.get("healthBars", [])
            ),
            intermediate_zone=(intermediate.get("name") or "Intermediate") if intermediate.get("enabled") else None,
            special_ability=special_ability,
        )


@dataclass(frozen=True)
class LogEntry:
    text: str
    kind: str
    time_ms: int


@dataclass(frozen=True)
class Notice:
    message: str
    code: str | None = None


@dataclass
class LocalSessionState:
    """A client's private mirror of its own zones."""

    player_id: str | None = None
    player_name: str | None = None
    room_code: str | None = None
    draw: list[Card] = field(default_factory=list)
    hand: list[Card] = field(default_factory=list)
    staged: list[Card] = field(default_factory=list)
    intermediate: list[Card] = field(default_factory=list)
    discard: list[Card] = field(default_factory=list)
    selected: set[str] = field(default_factory=set)
    last_seen_reveal_timestamp: int = 0
    hp: dict[str, int] = field(default_factory=dict)
    special_deck: list[CardSpec] = field(default_factory=list)
    special_discard: list[CardSpec] = field(default_factory=list)
    special_current: CardSpec | None = None
    special_mode: str | None = None
    share_hand: bool = False
    random_picked_uid: str | None = None

    def zone(self, name: str) -> list[Card]:
        if name not in ZONES:
            raise ValueError(f"Unknown zone {name!r}")
        return getattr(self, name)

    def find(self, zone: str, uid: str) -> Card | None:
        for card in self.zone(zone):
            if card.uid == uid:
                return card
        return None

    def remove(self, zone: str, uid: str) -> Card | None:
        cards = self.zone(zone)
        for index, card in enumerate(cards):
            if card.uid == uid:
                return cards.pop(index)
        return None

    def card_counts(self) -> dict[str, int]:
        return {name: len(self.zone(name)) for name in ZONES}

    def reset_zones(self) -> None:
        self.draw = []
        self.hand = []
        self.staged = []
        self.intermediate = []
        self.discard = []
        self.selected = set()
        self.random_picked_uid = None
