"""Host/join/leave lifecycle for one client, wiring the engine components together."""

from __future__ import annotations

import copy
import itertools
import logging
import random
import threading
from functools import partial
from typing import Any

from decksync.backend.identifiers import generate_player_id, generate_room_code, is_valid_room_code
from decksync.backend.state import build_initial_room

from .combat import CombatZoneMerger
from .config import SyncSettings, load_sync_settings
from .context import SessionContext
from .deduper import EventDeduper
from .dispatcher import ActionDispatcher
from .errors import SyncError
from .listener import NullListener, SessionListener
from .mailbox import PollTimer, SyncMailbox
from .reconciler import Reconciler
from .sync import OverwriteUpdater, sync_player_entry
from .transport import SubscriptionHandle, Transport, open_listener
from .turns import TurnOrderMachine


logger = logging.getLogger(__name__)


class RoomSession:
    """One client's view of a room.

    Snapshots from the transport and poll ticks are posted to ``mailbox``.
    With ``background`` on, a mailbox thread and a poll timer run after a
    successful host or join; otherwise the caller drives ``pump()`` and
    ``poll()`` itself.
    """

    def __init__(
        self,
        transport: Transport,
        settings: SyncSettings | None = None,
        listener: SessionListener | None = None,
        rng: random.Random | None = None,
        background: bool = True,
    ) -> None:
        self.transport = transport
        self.ctx = SessionContext(
            settings=settings or load_sync_settings(),
            listener=listener or NullListener(),
            rng=rng or random.Random(),
        )
        self.updater = OverwriteUpdater(self.ctx, transport)
        self.deduper = EventDeduper(self.ctx)
        self.reconciler = Reconciler(self.ctx, self.deduper, self.updater)
        self.combat = CombatZoneMerger(self.ctx, self.updater)
        self.turns = TurnOrderMachine(self.ctx, self.updater)
        self.dispatcher = ActionDispatcher(self.ctx, self.updater, self.combat, self.turns)
        self.mailbox = SyncMailbox()
        self.background = background
        self._handle: SubscriptionHandle | None = None
        self._timer: PollTimer | None = None
        self._snapshot_lock = threading.Lock()
        self._snapshot_seq = itertools.count()
        self._latest_seq = -1

    @property
    def actions(self) -> ActionDispatcher:
        return self.dispatcher

    def host_room(self, name: str = "") -> str | None:
        """Create a room with this client as host. Returns the room code, or None on failure."""
        ctx = self.ctx
        code = generate_room_code()
        self._enter(code, name.strip() or "Host", is_host=True)
        document = build_initial_room(ctx.player_id, ctx.player_name)
        ctx.room = document
        if not self.transport.write(code, document):
            logger.warning("Initial write for room %s was not accepted", code)
        first = self._listen(code)
        if first is None:
            return None
        self.reconciler.reconcile(ctx.room)
        self._start()
        logger.info("Hosting room %s as %s", code, ctx.player_id)
        return code

    def join_room(self, code: str, name: str) -> bool:
        ctx = self.ctx
        code = (code or "").strip().upper()
        name = (name or "").strip()
        if not is_valid_room_code(code):
            ctx.notify("Enter a valid 6-character room code")
            return False
        if not name:
            ctx.notify("Enter your name")
            return False

        self._enter(code, name, is_host=False)
        first = self._listen(code)
        if first is None:
            return False
        ctx.room = copy.deepcopy(first)
        self.reconciler.reconcile(ctx.room)
        if not ctx.game_started:
            self.turns.admit(ctx.player_id, ctx.player_name)
        self.updater.update(lambda document: sync_player_entry(document, ctx))
        self._start()
        logger.info("Joined room %s as %s", code, ctx.player_id)
        return True

    def leave_room(self) -> None:
        ctx = self.ctx
        code = ctx.room_code
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._handle is not None:
            self.transport.unsubscribe(self._handle)
            self._handle = None
        self.mailbox.stop()
        with self._snapshot_lock:
            # Snapshots still queued belong to the room being left.
            self._latest_seq = next(self._snapshot_seq)
        ctx.leave()
        if code:
            logger.info("Left room %s", code)

    def on_snapshot(self, document: dict[str, Any] | None) -> None:
        ctx = self.ctx
        if document is None or not ctx.is_multiplayer:
            return
        ctx.room = document
        self.reconciler.reconcile(document)

    def poll(self) -> None:
        if self.ctx.is_multiplayer and self.ctx.room is not None:
            self.reconciler.reconcile(self.ctx.room)

    def pump(self) -> int:
        return self.mailbox.drain()

    def _enter(self, code: str, name: str, is_host: bool) -> None:
        ctx = self.ctx
        ctx.local.room_code = code
        ctx.local.player_id = generate_player_id()
        ctx.local.player_name = name
        ctx.local.last_seen_reveal_timestamp = 0
        ctx.is_host = is_host
        ctx.is_multiplayer = True

    def _apply_snapshot(self, seq: int, document: dict[str, Any]) -> None:
        with self._snapshot_lock:
            if seq != self._latest_seq:
                return
        self.on_snapshot(document)

    def _listen(self, code: str) -> dict[str, Any] | None:
        first: list[dict[str, Any]] = []

        def on_change(document: dict[str, Any]) -> None:
            if not first:
                first.append(document)
            # Only the newest snapshot matters; older queued ones would roll the cache back.
            with self._snapshot_lock:
                seq = next(self._snapshot_seq)
                self._latest_seq = seq
            self.mailbox.post(partial(self._apply_snapshot, seq, document))

        try:
            self._handle = open_listener(self.transport, code, on_change, self.ctx.settings)
        except SyncError as exc:
            logger.warning("Could not connect to room %s: %s", code, exc)
            self.ctx.notify("Failed to connect to room", exc.code)
            self.ctx.leave()
            return None
        return first[0]

    def _start(self) -> None:
        if not self.background:
            return
        self.mailbox.start()
        self._timer = PollTimer(self.ctx.settings.poll_interval_s, partial(self.mailbox.post, self.poll))
        self._timer.start()
