"""Client-side transport contract and adapters for the replicated room store."""

from __future__ import annotations

import copy
import itertools
import json
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from decksync.backend.store import RoomStore

from .config import SyncSettings
from .errors import RoomNotFoundError, TransportUnavailableError


logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[dict[str, Any]], None]


@dataclass(frozen=True)
class SubscriptionHandle:
    room_code: str
    token: int


class Transport(Protocol):
    def is_ready(self) -> bool:
        """Whether the store handle can be used yet."""

    def fetch_current(self, room_code: str) -> dict[str, Any] | None:
        """Return the current document, or None when the room does not exist."""

    def subscribe(self, room_code: str, on_change: SnapshotCallback) -> SubscriptionHandle:
        """Deliver every successive full-document snapshot to ``on_change``."""

    def write(self, room_code: str, document: dict[str, Any]) -> bool:
        """Replace the whole document; return whether the store accepted it."""

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        """Stop delivering snapshots for ``handle``."""


@dataclass
class LocalTransport:
    """In-process push store shared by every client of a test or local table.

    With ``deliver_immediately`` off, snapshots queue until ``flush()`` so a
    caller can hold one client on a stale view while another writes.
    """

    store: RoomStore
    deliver_immediately: bool = True
    ready: bool = True
    _subscribers: dict[int, tuple[str, SnapshotCallback]] = field(default_factory=dict)
    _pending: list[tuple[int, dict[str, Any]]] = field(default_factory=list)
    _tokens: Any = field(default_factory=itertools.count)

    def is_ready(self) -> bool:
        return self.ready

    def fetch_current(self, room_code: str) -> dict[str, Any] | None:
        record = self.store.get_room(room_code)
        return None if record is None else record.document

    def subscribe(self, room_code: str, on_change: SnapshotCallback) -> SubscriptionHandle:
        token = next(self._tokens)
        self._subscribers[token] = (room_code, on_change)
        current = self.fetch_current(room_code)
        if current is not None:
            self._deliver(token, current)
        return SubscriptionHandle(room_code=room_code, token=token)

    def write(self, room_code: str, document: dict[str, Any]) -> bool:
        record = self.store.put_room(room_code, document)
        for token, (code, _) in list(self._subscribers.items()):
            if code == room_code:
                self._deliver(token, record.document)
        return True

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        self._subscribers.pop(handle.token, None)

    def flush(self) -> int:
        pending, self._pending = self._pending, []
        delivered = 0
        for token, document in pending:
            subscriber = self._subscribers.get(token)
            if subscriber is not None:
                subscriber[1](copy.deepcopy(document))
                delivered += 1
        return delivered

    def _deliver(self, token: int, document: dict[str, Any]) -> None:
        if not self.deliver_immediately:
            self._pending.append((token, copy.deepcopy(document)))
            return
        self._subscribers[token][1](copy.deepcopy(document))


class HttpTransport:
    """Talks to the room service: httpx for reads and writes, a websocket thread for push."""

    def __init__(self, base_url: str, client: Any | None = None, timeout_s: float = 5.0) -> None:
        import httpx

        self.base_url = base_url.rstrip("/")
        self._client = client if client is not None else httpx.Client(base_url=self.base_url, timeout=timeout_s)
        self._listeners: dict[int, "_SocketListener"] = {}
        self._tokens = itertools.count()

    def is_ready(self) -> bool:
        import httpx

        try:
            response = self._client.get("/api/health")
        except httpx.HTTPError:
            return False
        return response.status_code == 200

    def fetch_current(self, room_code: str) -> dict[str, Any] | None:
        response = self._client.get(f"/api/rooms/{room_code}")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()["document"]

    def write(self, room_code: str, document: dict[str, Any]) -> bool:
        import httpx

        try:
            response = self._client.put(f"/api/rooms/{room_code}", json={"document": document})
        except httpx.HTTPError as exc:
            logger.warning("Write to room %s failed: %s", room_code, exc)
            return False
        if response.status_code >= 400:
            logger.warning("Write to room %s rejected with HTTP %s", room_code, response.status_code)
            return False
        return True

    def subscribe(self, room_code: str, on_change: SnapshotCallback) -> SubscriptionHandle:
        token = next(self._tokens)
        listener = _SocketListener(url=self._ws_url(room_code), on_change=on_change)
        self._listeners[token] = listener
        listener.start()
        return SubscriptionHandle(room_code=room_code, token=token)

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        listener = self._listeners.pop(handle.token, None)
        if listener is not None:
            listener.stop()

    def close(self) -> None:
        for token in list(self._listeners):
            self._listeners.pop(token).stop()
        self._client.close()

    def _ws_url(self, room_code: str) -> str:
        if self.base_url.startswith("https://"):
            root = "wss://" + self.base_url.removeprefix("https://")
        else:
            root = "ws://" + self.base_url.removeprefix("http://")
        return f"{root}/ws/rooms/{room_code}"


class _SocketListener:
    def __init__(self, url: str, on_change: SnapshotCallback) -> None:
        self.url = url
        self.on_change = on_change
        self._stop = threading.Event()
        self._connection: Any | None = None
        self._thread = threading.Thread(target=self._run, name=f"room-listener:{url}", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._connection is not None:
            self._connection.close()

    def _run(self) -> None:
        from websockets.exceptions import ConnectionClosed, InvalidHandshake
        from websockets.sync.client import connect

        try:
            with connect(self.url) as connection:
                self._connection = connection
                while not self._stop.is_set():
                    frame = connection.recv()
                    try:
                        message = json.loads(frame)
                    except json.JSONDecodeError:
                        logger.warning("Malformed frame from %s: %.80r", self.url, frame)
                        continue
                    if not isinstance(message, dict):
                        continue
                    if message.get("type") == "state.full" and message.get("state") is not None:
                        self.on_change(message["state"])
        except ConnectionClosed:
            logger.debug("Listener for %s closed", self.url)
        except InvalidHandshake as exc:
            logger.warning("Listener for %s was refused: %s", self.url, exc)
        except OSError as exc:
            logger.warning("Listener for %s failed: %s", self.url, exc)


def open_listener(
    transport: Transport,
    room_code: str,
    on_change: SnapshotCallback,
    settings: SyncSettings,
) -> SubscriptionHandle:
    """Wait for the store, subscribe, and wait for the first real snapshot.

    Raises TransportUnavailableError when the store never becomes ready and
    RoomNotFoundError when no snapshot arrives within the listener timeout.
    """
    for attempt in range(1, settings.readiness_attempts + 1):
        if transport.is_ready():
            break
        logger.debug("Store not ready for room %s (attempt %d)", room_code, attempt)
        time.sleep(settings.readiness_interval_s)
    else:
        raise TransportUnavailableError(
            f"Store not ready after {settings.readiness_attempts} attempts"
        )

    arrived = threading.Event()

    def _deliver(document: dict[str, Any] | None) -> None:
        if document is None:
            return
        arrived.set()
        on_change(document)

    handle = transport.subscribe(room_code, _deliver)
    if not arrived.wait(settings.listener_timeout_s):
        transport.unsubscribe(handle)
        raise RoomNotFoundError(room_code)
    return handle
