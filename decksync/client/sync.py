"""The single read-modify-write path every shared-document mutation goes through."""

from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING, Any, Callable, Protocol

from .models import Card

if TYPE_CHECKING:
    from .context import SessionContext
    from .transport import Transport


logger = logging.getLogger(__name__)

Mutation = Callable[[dict[str, Any]], None]


class DocumentUpdater(Protocol):
    def update(self, mutate: Mutation) -> dict[str, Any] | None:
        """Apply ``mutate`` to a copy of the current document and publish the result."""


class OverwriteUpdater:
    """Last-write-wins: mutate the cached document and replace the stored one wholesale.

    The cache is updated before the write is attempted and is not rolled back
    when the write fails. Exceptions raised by ``mutate`` propagate before any
    write happens, leaving the cache untouched.
    """

    def __init__(self, ctx: "SessionContext", transport: "Transport") -> None:
        self.ctx = ctx
        self.transport = transport

    def update(self, mutate: Mutation) -> dict[str, Any] | None:
        room_code = self.ctx.room_code
        if not room_code or self.ctx.room is None:
            return None
        document = copy.deepcopy(self.ctx.room)
        mutate(document)
        self.ctx.room = document
        if self.transport.write(room_code, document):
            logger.debug("Wrote room %s (%d reveals)", room_code, len(document.get("reveals") or []))
        else:
            logger.warning("Write to room %s was not accepted; keeping local copy", room_code)
        return document


def _card_payload(card: Card, default_deck_key: str | None) -> dict[str, Any]:
    return {"image": card.image, "uid": card.uid, "deckKey": card.origin_deck_key or default_deck_key}


def build_own_player_entry(ctx: "SessionContext", previous: dict[str, Any] | None = None) -> dict[str, Any]:
    local = ctx.local
    deck_key = ctx.deck.key if ctx.deck is not None else None
    entry = dict(previous or {})
    entry.update(
        {
            "name": ctx.player_name,
            "deckKey": deck_key,
            "hp": dict(local.hp),
            "cardCounts": local.card_counts(),
            "discardCards": [_card_payload(card, deck_key) for card in local.discard],
            "specialCurrent": local.special_current.to_dict() if local.special_current else None,
            "lastUpdate": ctx.clock(),
        }
    )
    if local.share_hand:
        entry["handCards"] = [_card_payload(card, deck_key) for card in local.hand]
    else:
        entry.pop("handCards", None)
    return entry


def sync_player_entry(document: dict[str, Any], ctx: "SessionContext") -> dict[str, Any]:
    """Refresh this client's own slice of ``document`` from its local zones."""
    players = document.get("players")
    if not isinstance(players, dict):
        players = {}
        document["players"] = players
    entry = build_own_player_entry(ctx, players.get(ctx.player_id))
    players[ctx.player_id] = entry
    return entry
