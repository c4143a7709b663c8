"""Configuration helpers for the room service runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class BackendSettings:
    database_url: str | None
    host: str
    port: int
    log_level: str
    room_retention_days: int | None = None


def load_settings() -> BackendSettings:
    port_raw = os.getenv("DECKSYNC_PORT", "8000")
    retention_raw = os.getenv("DECKSYNC_ROOM_RETENTION_DAYS")
    return BackendSettings(
        database_url=os.getenv("DECKSYNC_DATABASE_URL"),
        host=os.getenv("DECKSYNC_HOST", "127.0.0.1"),
        port=int(port_raw),
        log_level=os.getenv("DECKSYNC_LOG_LEVEL", "INFO").upper(),
        room_retention_days=int(retention_raw) if retention_raw else None,
    )
