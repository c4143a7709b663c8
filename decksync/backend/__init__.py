"""Room document service for Deck Sync."""

from .config import BackendSettings, load_settings
from .identifiers import generate_player_id, generate_room_code, is_player_id, is_valid_room_code
from .models import RoomRecord
from .state import append_reveal, build_initial_room, build_player_entry, normalize_combat
from .store import InMemoryRoomStore, PostgresRoomStore, RoomStore, create_store

__all__ = [
    "append_reveal",
    "BackendSettings",
    "build_initial_room",
    "build_player_entry",
    "create_store",
    "generate_player_id",
    "generate_room_code",
    "InMemoryRoomStore",
    "is_player_id",
    "is_valid_room_code",
    "load_settings",
    "normalize_combat",
    "PostgresRoomStore",
    "RoomRecord",
    "RoomStore",
]
