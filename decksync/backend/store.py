"""Persistence interfaces and implementations for room documents.

A write replaces the whole document. There is no merge and no
compare-and-swap.
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

from .models import RoomRecord


logger = logging.getLogger(__name__)


class RoomStore(Protocol):
    def get_room(self, code: str) -> RoomRecord | None:
        """Return the current document for a room, if any."""

    def put_room(self, code: str, document: dict[str, Any]) -> RoomRecord:
        """Replace the whole document stored under a room code."""

    def delete_room(self, code: str) -> bool:
        """Drop a room; return whether it existed."""


@dataclass
class InMemoryRoomStore:
    def __post_init__(self) -> None:
        self._rooms: dict[str, RoomRecord] = {}

    def get_room(self, code: str) -> RoomRecord | None:
        record = self._rooms.get(code)
        if record is None:
            return None
        return RoomRecord(code=code, document=copy.deepcopy(record.document), updated_at=record.updated_at)

    def put_room(self, code: str, document: dict[str, Any]) -> RoomRecord:
        now = datetime.now(timezone.utc).isoformat()
        record = RoomRecord(code=code, document=copy.deepcopy(document), updated_at=now)
        self._rooms[code] = record
        return RoomRecord(code=code, document=copy.deepcopy(document), updated_at=now)

    def delete_room(self, code: str) -> bool:
        return self._rooms.pop(code, None) is not None


@dataclass
class PostgresRoomStore:
    database_url: str

    def _connect(self) -> Any:
        import psycopg

        return psycopg.connect(self.database_url)

    def get_room(self, code: str) -> RoomRecord | None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT document, updated_at
                    FROM room_documents
                    WHERE code = %s
                    """,
                    (code,),
                )
                row = cur.fetchone()

        if row is None:
            return None

        document_json, updated_at = row
        document = document_json if isinstance(document_json, dict) else json.loads(document_json)
        updated = updated_at.isoformat() if isinstance(updated_at, datetime) else str(updated_at)
        return RoomRecord(code=code, document=document, updated_at=updated)

    def put_room(self, code: str, document: dict[str, Any]) -> RoomRecord:
        now = datetime.now(timezone.utc)
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO room_documents (code, document, created_at, updated_at)
                    VALUES (%s, %s::jsonb, %s, %s)
                    ON CONFLICT (code)
                    DO UPDATE SET document = EXCLUDED.document, updated_at = EXCLUDED.updated_at
                    """,
                    (code, json.dumps(document), now, now),
                )
            conn.commit()
        logger.debug("Stored room %s", code)
        return RoomRecord(code=code, document=copy.deepcopy(document), updated_at=now.isoformat())

    def delete_room(self, code: str) -> bool:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM room_documents WHERE code = %s", (code,))
                deleted = cur.rowcount > 0
            conn.commit()
        return deleted


def create_store(database_url: str | None) -> RoomStore:
    if database_url:
        return PostgresRoomStore(database_url=database_url)
    return InMemoryRoomStore()
