from __future__ import annotations

import asyncio
import logging
from contextlib import suppress

from models import events
from models.player import DepartureReason, PlayerSession
from services.clock import Clock, now_ms
from services.connection_hub import BroadcastGateway
from services.store import SessionStore

logger = logging.getLogger(__name__)

SWEEP_INTERVAL_SECONDS = 60.0
STALE_AFTER_SECONDS = 300.0


class EvictionLoop:
    """Periodically remove sessions that have not been seen for `stale_after` seconds."""

    def __init__(
        self,
        store: SessionStore,
        gateway: BroadcastGateway,
        *,
        interval: float = SWEEP_INTERVAL_SECONDS,
        stale_after: float = STALE_AFTER_SECONDS,
        clock: Clock = now_ms,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._interval = interval
        self._stale_after_ms = int(stale_after * 1000)
        self._clock = clock
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep(self) -> list[PlayerSession]:
        """One tick: evict stale sessions from a snapshot and announce each once."""
        now = self._clock()
        cutoff = now - self._stale_after_ms
        evicted: list[PlayerSession] = []
        for session in await self._store.snapshot():
            if now - session.last_seen <= self._stale_after_ms:
                continue
            # Re-checked under the store lock; the player may have sent an update since the snapshot.
            removed = await self._store.delete_if_stale(session.id, cutoff)
            if removed is None:
                continue
            evicted.append(removed)
            await self._gateway.broadcast_all(
                events.PLAYER_LEFT,
                {"playerId": removed.id, "playerName": removed.name, "reason": DepartureReason.TIMEOUT.value},
            )
            logger.info("[eviction] Player %s (%s) timed out and was removed", removed.name, removed.id)

        logger.info("[eviction] Active players: %d", await self._store.size())
        return evicted

    async def run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.sweep()
            except Exception:
                logger.exception("[eviction] Sweep failed")

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self.run(), name="presence-eviction")
        logger.info(
            "[eviction] Started: interval=%.0fs stale_after=%.0fs",
            self._interval,
            self._stale_after_ms / 1000,
        )

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
