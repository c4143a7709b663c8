"""Explicit per-client session context handed to every engine component."""

from __future__ import annotations

import random
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable

from decksync.backend.state import append_reveal, next_reveal_timestamp, now_ms

from .config import SyncSettings, load_sync_settings
from .effects import EffectBook
from .events import RevealAction, build_event
from .listener import NullListener, SessionListener
from .models import DeckDefinition, LocalSessionState, LogEntry, Notice


@dataclass
class SessionContext:
    local: LocalSessionState = field(default_factory=LocalSessionState)
    settings: SyncSettings = field(default_factory=load_sync_settings)
    listener: SessionListener = field(default_factory=NullListener)
    deck: DeckDefinition | None = None
    is_host: bool = False
    is_multiplayer: bool = False
    room: dict[str, Any] | None = None
    turn_order: list[str] = field(default_factory=list)
    current_turn: int = 0
    game_started: bool = False
    combat: dict[str, dict[str, Any]] | None = None
    rng: random.Random = field(default_factory=random.Random)
    clock: Callable[[], int] = now_ms
    action_log: deque[LogEntry] = field(init=False)
    effects: EffectBook = field(init=False)

    def __post_init__(self) -> None:
        self.action_log = deque(maxlen=self.settings.action_log_limit)
        self.effects = EffectBook(ttl_ms=int(self.settings.request_ttl_s * 1000))

    @property
    def player_id(self) -> str | None:
        return self.local.player_id

    @property
    def player_name(self) -> str:
        return self.local.player_name or "Player"

    @property
    def room_code(self) -> str | None:
        return self.local.room_code

    @property
    def active_player_id(self) -> str | None:
        if not self.turn_order:
            return None
        if 0 <= self.current_turn < len(self.turn_order):
            return self.turn_order[self.current_turn]
        return None

    @property
    def is_my_turn(self) -> bool:
        return self.player_id is not None and self.active_player_id == self.player_id

    def log(self, text: str, kind: str = "neutral") -> LogEntry:
        entry = LogEntry(text=text, kind=kind, time_ms=self.clock())
        self.action_log.appendleft(entry)
        self.listener.on_log(entry)
        return entry

    def notify(self, message: str, code: str | None = None) -> None:
        self.listener.on_notice(Notice(message=message, code=code))

    def render(self, *reasons: str) -> None:
        if reasons:
            self.listener.on_render(frozenset(reasons))

    def append_event(self, document: dict[str, Any], action: RevealAction, **payload: Any) -> dict[str, Any]:
        """Append one reveal event authored by this client to ``document``."""
        event = build_event(
            self.player_id or "",
            self.player_name,
            next_reveal_timestamp(document, self.clock()),
            action,
            **payload,
        )
        return append_reveal(document, event)

    def leave(self) -> None:
        self.is_multiplayer = False
        self.is_host = False
        self.room = None
        self.local.room_code = None
        self.turn_order = []
        self.current_turn = 0
        self.game_started = False
        self.combat = None
        self.effects.clear()
