"""Client-side synchronization engine for Deck Sync rooms."""

from .config import SyncSettings, load_sync_settings
from .context import SessionContext
from .dispatcher import ActionDispatcher
from .errors import (
    InvalidTransitionError,
    RoomNotFoundError,
    StaleReferenceError,
    SyncError,
    TransportUnavailableError,
)
from .events import RevealAction, RevealEvent
from .listener import NullListener, SessionListener
from .models import Card, DeckDefinition, LocalSessionState
from .session import RoomSession
from .transport import HttpTransport, LocalTransport, Transport, open_listener

__all__ = [
    "ActionDispatcher",
    "Card",
    "DeckDefinition",
    "HttpTransport",
    "InvalidTransitionError",
    "load_sync_settings",
    "LocalSessionState",
    "LocalTransport",
    "NullListener",
    "open_listener",
    "RevealAction",
    "RevealEvent",
    "RoomNotFoundError",
    "RoomSession",
    "SessionContext",
    "SessionListener",
    "StaleReferenceError",
    "SyncError",
    "SyncSettings",
    "Transport",
    "TransportUnavailableError",
]
