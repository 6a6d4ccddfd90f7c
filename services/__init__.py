from .connection_hub import BroadcastGateway, ConnectionHub
from .eviction import EvictionLoop
from .presence import AckReply, EventReply, PresenceProtocol
from .store import SessionStore

__all__ = [
    "AckReply",
    "BroadcastGateway",
    "ConnectionHub",
    "EventReply",
    "EvictionLoop",
    "PresenceProtocol",
    "SessionStore",
]
