"""FastAPI endpoints for room document storage and websocket push."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Path, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from .config import load_settings
from .identifiers import ROOM_CODE_LENGTH, is_valid_room_code
from .store import RoomStore, create_store


logger = logging.getLogger(__name__)

ROOM_CODE_PATTERN = rf"^[A-Z0-9]{{{ROOM_CODE_LENGTH}}}$"
INVALID_ROOM_CLOSE_CODE = 1008


class RoomDocumentEnvelope(BaseModel):
    document: dict[str, Any]


class HealthResponse(BaseModel):
    status: str


class RoomWebSocketHub:
    """Room subscribers keyed by room code.

    ``attach`` refuses malformed codes with close code 1008 and otherwise sends
    the stored document (if any) before the socket starts receiving broadcasts.
    """

    def __init__(self, store: RoomStore) -> None:
        self.store = store
        self._rooms: dict[str, set[WebSocket]] = defaultdict(set)

    async def attach(self, room_code: str, websocket: WebSocket) -> bool:
        if not is_valid_room_code(room_code):
            await websocket.close(code=INVALID_ROOM_CLOSE_CODE)
            return False
        await websocket.accept()
        self._rooms[room_code].add(websocket)
        record = self.store.get_room(room_code)
        if record is not None:
            await self._send(websocket, record.document)
        return True

    def detach(self, room_code: str, websocket: WebSocket) -> None:
        sockets = self._rooms.get(room_code)
        if sockets is None:
            return
        sockets.discard(websocket)
        if not sockets:
            del self._rooms[room_code]

    def subscriber_count(self, room_code: str) -> int:
        return len(self._rooms.get(room_code, ()))

    async def _send(self, websocket: WebSocket, document: dict[str, Any]) -> None:
        await websocket.send_json({"type": "state.full", "state": document})

    async def publish(self, room_code: str, document: dict[str, Any]) -> int:
        """Push ``document`` to every subscriber of the room; return how many got it."""
        delivered = 0
        for websocket in list(self._rooms.get(room_code, ())):
            try:
                await self._send(websocket, document)
            except RuntimeError:
                logger.debug("Dropping closed subscriber of room %s", room_code)
                self.detach(room_code, websocket)
                continue
            delivered += 1
        return delivered


def _default_store() -> RoomStore:
    return create_store(load_settings().database_url)


def create_app(store: RoomStore | None = None) -> FastAPI:
    app = FastAPI(title="Deck Sync Room Service", version="0.1.0")
    room_store = store if store is not None else _default_store()
    websocket_hub = RoomWebSocketHub(room_store)
    app.state.websocket_hub = websocket_hub

    def get_store() -> RoomStore:
        return room_store

    @app.get("/api/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/api/rooms/{room_code}", response_model=RoomDocumentEnvelope)
    def get_room(
        room_code: str = Path(pattern=ROOM_CODE_PATTERN),
        local_store: RoomStore = Depends(get_store),
    ) -> RoomDocumentEnvelope:
        record = local_store.get_room(room_code)
        if record is None:
            raise HTTPException(status_code=404, detail="Room not found")
        return RoomDocumentEnvelope(document=record.document)

    @app.put("/api/rooms/{room_code}", response_model=RoomDocumentEnvelope)
    async def put_room(
        payload: RoomDocumentEnvelope,
        room_code: str = Path(pattern=ROOM_CODE_PATTERN),
        local_store: RoomStore = Depends(get_store),
    ) -> RoomDocumentEnvelope:
        record = local_store.put_room(room_code, payload.document)
        delivered = await websocket_hub.publish(room_code, record.document)
        logger.debug("Room %s replaced, pushed to %d subscribers", room_code, delivered)
        return RoomDocumentEnvelope(document=record.document)

    @app.websocket("/ws/rooms/{room_code}")
    async def room_ws(websocket: WebSocket, room_code: str) -> None:
        if not await websocket_hub.attach(room_code, websocket):
            return
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            websocket_hub.detach(room_code, websocket)

    return app


app = create_app()
