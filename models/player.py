from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class DepartureReason(StrEnum):
    TIMEOUT = "timeout"
    LEFT = "left"


@dataclass
class PlayerSession:
    id: str
    name: str
    connection_id: str                     # owning connection, compared only
    joined_at: int                         # ms since epoch
    last_seen: int                         # ms since epoch
    lat: float | None = None
    lng: float | None = None
    is_tracking: bool = False

    @property
    def has_location(self) -> bool:
        # (0, 0) is a real coordinate, so presence is checked, not truthiness.
        return self.lat is not None and self.lng is not None

    def is_active(self, now: int, window_ms: int) -> bool:
        return now - self.last_seen < window_ms

    def online_summary(self, now: int, window_ms: int) -> dict[str, object]:
        """Public view sent to newly connected clients. Never carries coordinates."""
        return {
            "id": self.id,
            "name": self.name,
            "hasLocation": self.has_location,
            "lastSeen": self.last_seen,
            "isActive": self.is_active(now, window_ms),
        }
