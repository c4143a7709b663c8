"""Domain records returned by room stores."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RoomRecord:
    code: str
    document: dict[str, Any]
    updated_at: str
