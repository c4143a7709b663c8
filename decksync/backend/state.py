"""State builders and pure helpers for room documents."""

from __future__ import annotations

import time
from typing import Any

from .identifiers import is_player_id


REVEAL_LOG_LIMIT = 50
ZONE_NAMES = ("draw", "hand", "staged", "intermediate", "discard")


def now_ms() -> int:
    return int(time.time() * 1000)


def empty_card_counts() -> dict[str, int]:
    return {zone: 0 for zone in ZONE_NAMES}


def build_player_entry(name: str, last_update: int | None = None) -> dict[str, Any]:
    """Return the entry a player gets when it first enters a room."""
    return {
        "name": name,
        "deckKey": None,
        "hp": {},
        "lastUpdate": now_ms() if last_update is None else last_update,
    }


def build_initial_room(host_id: str, host_name: str) -> dict[str, Any]:
    """Return the document a host writes when opening a room."""
    return {
        "host": host_id,
        "players": {host_id: build_player_entry(host_name)},
        "reveals": [],
        "turnOrder": [host_id],
        "currentTurn": 0,
        "gameStarted": False,
        "combat": None,
    }


def next_reveal_timestamp(document: dict[str, Any], now: int) -> int:
    """Keep reveal timestamps strictly increasing inside one document."""
    reveals = document.get("reveals") or []
    if not reveals:
        return now
    last = reveals[-1].get("timestamp", 0) if isinstance(reveals[-1], dict) else 0
    return max(now, int(last) + 1)


def append_reveal(document: dict[str, Any], event: dict[str, Any], limit: int = REVEAL_LOG_LIMIT) -> dict[str, Any]:
    """Append an event to the bounded reveal log, evicting the oldest entries."""
    reveals = list(document.get("reveals") or [])
    reveals.append(event)
    if len(reveals) > limit:
        reveals = reveals[-limit:]
    document["reveals"] = reveals
    return event


def normalize_combat(combat: Any, players: dict[str, Any] | None = None) -> dict[str, dict[str, Any]] | None:
    """Return a clean combat mapping or None when nothing is in combat.

    The store drops empty containers on write, so missing ``cards`` and
    ``revealed`` fields read as empty/false. Keys that are not player ids, or
    that name a player absent from ``players``, are dropped.
    """
    if not isinstance(combat, dict) or not combat:
        return None
    clean: dict[str, dict[str, Any]] = {}
    for key, entry in combat.items():
        if not is_player_id(key):
            continue
        if players is not None and key not in players:
            continue
        entry = entry if isinstance(entry, dict) else {}
        clean[key] = {
            "cards": [dict(card) for card in entry.get("cards") or [] if isinstance(card, dict)],
            "revealed": bool(entry.get("revealed", False)),
        }
    return clean or None


def ensure_combat_entry(document: dict[str, Any], player_id: str) -> dict[str, Any]:
    combat = document.get("combat")
    if not isinstance(combat, dict):
        combat = {}
        document["combat"] = combat
    entry = combat.get(player_id)
    if not isinstance(entry, dict):
        entry = {"cards": [], "revealed": False}
        combat[player_id] = entry
    entry.setdefault("cards", [])
    entry.setdefault("revealed", False)
    if entry["cards"] is None:
        entry["cards"] = []
    return entry


def player_discard_uids(document: dict[str, Any], player_id: str) -> set[str] | None:
    """Return the uids of a player's shared discard, or None if the player is unknown."""
    players = document.get("players") or {}
    player = players.get(player_id)
    if not isinstance(player, dict):
        return None
    return {card.get("uid") for card in player.get("discardCards") or [] if isinstance(card, dict)}


def player_name(document: dict[str, Any] | None, player_id: str | None, default: str = "Unknown") -> str:
    if document is None or player_id is None:
        return default
    player = (document.get("players") or {}).get(player_id)
    if isinstance(player, dict) and player.get("name"):
        return str(player["name"])
    return default
