"""Identifier helpers for room codes and player ids."""

from __future__ import annotations

import re
import secrets
import string
import time


ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits
ROOM_CODE_LENGTH = 6
PLAYER_ID_PREFIX = "p_"
PLAYER_ID_RANDOM_LENGTH = 9

_ROOM_CODE_RE = re.compile(rf"^[A-Z0-9]{{{ROOM_CODE_LENGTH}}}$")
_PLAYER_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_room_code() -> str:
    """Generate a 6-character room code drawn from [A-Z0-9]."""
    return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))


def generate_player_id() -> str:
    """Generate a room-unique player id: prefix, random part, millisecond timestamp."""
    random_part = "".join(secrets.choice(_PLAYER_ID_ALPHABET) for _ in range(PLAYER_ID_RANDOM_LENGTH))
    return f"{PLAYER_ID_PREFIX}{random_part}{int(time.time() * 1000)}"


def is_valid_room_code(code: str) -> bool:
    return isinstance(code, str) and _ROOM_CODE_RE.match(code) is not None


def is_player_id(value: object) -> bool:
    return isinstance(value, str) and value.startswith(PLAYER_ID_PREFIX) and len(value) > len(PLAYER_ID_PREFIX)
