"""Round-robin turn order and the one-way game-started flag."""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any

from decksync.backend.state import build_player_entry, player_name

from .events import RevealAction

if TYPE_CHECKING:
    from .context import SessionContext
    from .sync import DocumentUpdater


logger = logging.getLogger(__name__)


class TurnPhase(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"


class TurnOrderMachine:
    """Turn bookkeeping over the shared document.

    Ordering changes are host-only and only before the game starts. Ending a
    turn is allowed for any player once the game is in progress.
    """

    def __init__(self, ctx: "SessionContext", updater: "DocumentUpdater") -> None:
        self.ctx = ctx
        self.updater = updater

    @property
    def phase(self) -> TurnPhase:
        return TurnPhase.IN_PROGRESS if self.ctx.game_started else TurnPhase.NOT_STARTED

    def _can_reorder(self) -> bool:
        ctx = self.ctx
        if not ctx.is_multiplayer or not ctx.is_host:
            ctx.notify("Only the host can change the turn order")
            return False
        if self.phase is TurnPhase.IN_PROGRESS:
            ctx.notify("Game already started")
            return False
        return True

    def start_game(self) -> bool:
        ctx = self.ctx
        if not ctx.is_multiplayer or not ctx.is_host:
            ctx.notify("Only the host can start the game")
            return False
        if self.phase is TurnPhase.IN_PROGRESS:
            return False

        def mutate(document: dict[str, Any]) -> None:
            document["gameStarted"] = True

        document = self.updater.update(mutate)
        if document is None:
            return False
        ctx.game_started = True
        ctx.render("turn")
        logger.info("Game started in room %s with %d players", ctx.room_code, len(ctx.turn_order))
        return True

    def admit(self, player_id: str, name: str) -> bool:
        """Add a joining player to the roster and the end of the order, before start only."""
        ctx = self.ctx
        if self.phase is TurnPhase.IN_PROGRESS:
            return False

        def mutate(document: dict[str, Any]) -> None:
            players = document.get("players")
            if not isinstance(players, dict):
                players = {}
                document["players"] = players
            players.setdefault(player_id, build_player_entry(name, ctx.clock()))
            order = document.get("turnOrder")
            if not isinstance(order, list):
                order = list(players)
                document["turnOrder"] = order
            if player_id not in order:
                order.append(player_id)

        document = self.updater.update(mutate)
        if document is None:
            return False
        ctx.turn_order = list(document["turnOrder"])
        ctx.render("turn")
        return True

    def move_to_end(self, player_id: str) -> bool:
        ctx = self.ctx
        if not self._can_reorder():
            return False
        order = list((ctx.room or {}).get("turnOrder") or [])
        if len(order) < 2 or player_id not in order or order[-1] == player_id:
            return False
        order.remove(player_id)
        order.append(player_id)
        return self._write_order(order)

    def set_order(self, order: list[str]) -> bool:
        ctx = self.ctx
        if not self._can_reorder():
            return False
        current = list((ctx.room or {}).get("turnOrder") or [])
        if sorted(order) != sorted(current):
            ctx.notify("Turn order must list every player exactly once")
            return False
        return self._write_order(list(order))

    def _write_order(self, order: list[str]) -> bool:
        def mutate(document: dict[str, Any]) -> None:
            document["turnOrder"] = order
            document["currentTurn"] = 0

        if self.updater.update(mutate) is None:
            return False
        self.ctx.turn_order = order
        self.ctx.current_turn = 0
        self.ctx.render("turn")
        return True

    def end_turn(self) -> str | None:
        """Advance to the next player. Returns the next player's id."""
        ctx = self.ctx
        if not ctx.is_multiplayer or self.phase is not TurnPhase.IN_PROGRESS:
            return None
        if not (ctx.room or {}).get("turnOrder"):
            return None
        outcome: dict[str, str] = {}

        def mutate(document: dict[str, Any]) -> None:
            order = list(document.get("turnOrder") or [])
            current = int(document.get("currentTurn") or 0) % len(order)
            following = (current + 1) % len(order)
            ended_id, next_id = order[current], order[following]
            document["currentTurn"] = following
            outcome.update(
                endedId=ended_id,
                endedName=player_name(document, ended_id),
                nextId=next_id,
                nextName=player_name(document, next_id),
            )
            ctx.append_event(document, RevealAction.TURN_END, **outcome)

        document = self.updater.update(mutate)
        if document is None:
            return None
        ctx.turn_order = list(document["turnOrder"])
        ctx.current_turn = document["currentTurn"]
        ctx.log(f"{outcome['endedName']} ended turn → {outcome['nextName']}", "turn")
        ctx.notify(f"{outcome['nextName']}'s turn!")
        ctx.render("turn")
        return outcome["nextId"]
