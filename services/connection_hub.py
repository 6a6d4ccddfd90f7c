from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)

# Queued after the last real message when a connection should be closed.
CLOSE = None

Message = dict[str, Any]


class BroadcastGateway(Protocol):
    """What the protocol handler and eviction loop need from the transport."""

    async def send_to(self, connection_id: str, event: str, payload: Any) -> None: ...

    async def broadcast_all(self, event: str, payload: Any) -> None: ...

    async def broadcast_except(self, connection_id: str, event: str, payload: Any) -> None: ...

    async def acknowledge(self, connection_id: str, ack_id: int | str, payload: Any) -> None: ...


class ConnectionHub:
    """
    In-memory fan-out to connected clients.

    - Each connection gets its own asyncio.Queue outbox, drained by one writer,
      so a connection sees messages in the order they were submitted.
    - Sends never wait on the socket. When an outbox is full the oldest
      message is dropped.
    """

    def __init__(self, outbox_size: int = 256) -> None:
        self._lock = asyncio.Lock()
        self._outboxes: dict[str, asyncio.Queue[Message | None]] = {}
        self._outbox_size = outbox_size

    @property
    def connection_count(self) -> int:
        return len(self._outboxes)

    async def register(self, connection_id: str) -> asyncio.Queue[Message | None]:
        q: asyncio.Queue[Message | None] = asyncio.Queue(maxsize=self._outbox_size)
        async with self._lock:
            self._outboxes[connection_id] = q
        return q

    async def unregister(self, connection_id: str) -> None:
        async with self._lock:
            self._outboxes.pop(connection_id, None)

    async def send_to(self, connection_id: str, event: str, payload: Any) -> None:
        async with self._lock:
            q = self._outboxes.get(connection_id)
        if q is None:
            logger.debug("[connection_hub] Dropping %s for unknown connection %s", event, connection_id)
            return
        self._deliver(connection_id, q, {"event": event, "data": payload})

    async def broadcast_all(self, event: str, payload: Any) -> None:
        await self._fan_out({"event": event, "data": payload}, skip=None)

    async def broadcast_except(self, connection_id: str, event: str, payload: Any) -> None:
        await self._fan_out({"event": event, "data": payload}, skip=connection_id)

    async def acknowledge(self, connection_id: str, ack_id: int | str, payload: Any) -> None:
        async with self._lock:
            q = self._outboxes.get(connection_id)
        if q is None:
            return
        self._deliver(connection_id, q, {"ack": ack_id, "data": payload})

    async def close_all(self) -> None:
        """Ask every writer to finish its pending messages and close."""
        async with self._lock:
            targets = list(self._outboxes.items())
        for connection_id, q in targets:
            self._deliver(connection_id, q, CLOSE)

    async def wait_idle(self, timeout: float = 2.0, poll: float = 0.05) -> bool:
        """Wait until every connection has unregistered. Returns False on timeout."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while self._outboxes:
            if loop.time() >= deadline:
                return False
            await asyncio.sleep(poll)
        return True

    async def _fan_out(self, message: Message, *, skip: str | None) -> None:
        async with self._lock:
            targets = [(cid, q) for cid, q in self._outboxes.items() if cid != skip]
        for connection_id, q in targets:
            self._deliver(connection_id, q, message)

    @staticmethod
    def _deliver(connection_id: str, q: asyncio.Queue[Message | None], message: Message | None) -> None:
        if q.full():
            try:
                dropped = q.get_nowait()
            except asyncio.QueueEmpty:
                dropped = None
            logger.warning(
                "[connection_hub] Outbox full for %s; dropped %s",
                connection_id,
                (dropped or {}).get("event", "message"),
            )
        try:
            q.put_nowait(message)
        except asyncio.QueueFull:
            # Raced between the full-check and put; drop this one.
            logger.warning("[connection_hub] Outbox full for %s; message dropped", connection_id)
