"""Configuration helpers for the client synchronization engine."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class SyncSettings:
    server_url: str
    poll_interval_s: float = 0.5
    listener_timeout_s: float = 6.0
    readiness_attempts: int = 30
    readiness_interval_s: float = 0.1
    prompt_window_s: float = 15.0
    request_ttl_s: float = 120.0
    action_log_limit: int = 30


def _ms_env(name: str, default_ms: int) -> float:
    return int(os.getenv(name, str(default_ms))) / 1000.0


def load_sync_settings() -> SyncSettings:
    return SyncSettings(
        server_url=os.getenv("DECKSYNC_SERVER_URL", "http://127.0.0.1:8000").rstrip("/"),
        poll_interval_s=_ms_env("DECKSYNC_POLL_INTERVAL_MS", 500),
        listener_timeout_s=_ms_env("DECKSYNC_LISTENER_TIMEOUT_MS", 6000),
        readiness_attempts=int(os.getenv("DECKSYNC_READINESS_ATTEMPTS", "30")),
        readiness_interval_s=_ms_env("DECKSYNC_READINESS_INTERVAL_MS", 100),
        prompt_window_s=_ms_env("DECKSYNC_PROMPT_WINDOW_MS", 15000),
        request_ttl_s=_ms_env("DECKSYNC_REQUEST_TTL_MS", 120000),
        action_log_limit=int(os.getenv("DECKSYNC_ACTION_LOG_LIMIT", "30")),
    )
