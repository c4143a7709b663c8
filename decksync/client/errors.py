"""Error types raised inside the synchronization engine."""

from __future__ import annotations


TRANSPORT_UNAVAILABLE = "TRANSPORT_UNAVAILABLE"
ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
WRITE_FAILURE = "WRITE_FAILURE"
STALE_REFERENCE = "STALE_REFERENCE"
INVALID_TRANSITION = "INVALID_TRANSITION"
NOT_ALLOWED = "NOT_ALLOWED"


class SyncError(Exception):
    """Base exception for synchronization failures."""

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")


class TransportUnavailableError(SyncError):
    def __init__(self, message: str = "Store handle never became ready"):
        super().__init__(TRANSPORT_UNAVAILABLE, message)


class RoomNotFoundError(SyncError):
    def __init__(self, room_code: str):
        self.room_code = room_code
        super().__init__(ROOM_NOT_FOUND, f"No snapshot arrived for room {room_code}")


class StaleReferenceError(SyncError):
    def __init__(self, uid: str, message: str = "Card already taken"):
        self.uid = uid
        super().__init__(STALE_REFERENCE, message)


class InvalidTransitionError(SyncError):
    def __init__(self, request_id: str, current: str, target: str):
        self.request_id = request_id
        super().__init__(INVALID_TRANSITION, f"Request {request_id} cannot move from {current} to {target}")
