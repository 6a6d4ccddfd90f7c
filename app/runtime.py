from __future__ import annotations

import time
from dataclasses import dataclass, field

from fastapi import Request, WebSocket

from app.config import Settings
from services.clock import Clock, now_ms
from services.connection_hub import ConnectionHub
from services.eviction import EvictionLoop
from services.presence import PresenceProtocol
from services.store import SessionStore


@dataclass
class PresenceRuntime:
    """The component graph for one server process. Built once, shared by reference."""

    settings: Settings
    store: SessionStore
    hub: ConnectionHub
    protocol: PresenceProtocol
    eviction: EvictionLoop
    clock: Clock = now_ms
    started_at: float = field(default_factory=time.monotonic)

    @classmethod
    def build(cls, settings: Settings, *, clock: Clock = now_ms) -> PresenceRuntime:
        store = SessionStore(clock=clock)
        hub = ConnectionHub(outbox_size=settings.outbox_size)
        protocol = PresenceProtocol(
            store,
            hub,
            clock=clock,
            active_window_ms=int(settings.active_window_seconds * 1000),
        )
        eviction = EvictionLoop(
            store,
            hub,
            interval=settings.eviction_interval_seconds,
            stale_after=settings.stale_after_seconds,
            clock=clock,
        )
        return cls(settings=settings, store=store, hub=hub, protocol=protocol, eviction=eviction, clock=clock)

    @property
    def uptime(self) -> float:
        return round(time.monotonic() - self.started_at, 3)

    @property
    def active_window_ms(self) -> int:
        return int(self.settings.active_window_seconds * 1000)

    async def shutdown(self) -> None:
        """Announce shutdown, then let every connection flush and close."""
        if await self.protocol.announce_shutdown():
            await self.hub.close_all()


def get_runtime(request: Request) -> PresenceRuntime:
    return request.app.state.runtime


def get_ws_runtime(websocket: WebSocket) -> PresenceRuntime:
    return websocket.app.state.runtime
