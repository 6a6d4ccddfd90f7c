from . import events
from .player import DepartureReason, PlayerSession

__all__ = [
    "DepartureReason",
    "PlayerSession",
    "events",
]
