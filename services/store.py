from __future__ import annotations

import asyncio
from dataclasses import replace

from models.player import PlayerSession
from services.clock import Clock, now_ms
from services.errors import PlayerAuthorizationError, PlayerNotFoundError


class SessionStore:
    """
    In-memory registry of active player sessions, keyed by player id.

    Every method takes the same asyncio.Lock, so connection handlers, the
    eviction task and HTTP readers never interleave inside a mutation. Sessions
    handed out are copies; mutate through the store, not the returned object.
    """

    def __init__(self, clock: Clock = now_ms) -> None:
        self._lock = asyncio.Lock()
        self._sessions: dict[str, PlayerSession] = {}
        self._clock = clock

    async def upsert(self, session: PlayerSession) -> bool:
        """Insert or overwrite by id. Returns True when an existing session was replaced."""
        async with self._lock:
            replaced = session.id in self._sessions
            # Re-inserting keeps dict order aligned with join order.
            self._sessions.pop(session.id, None)
            self._sessions[session.id] = replace(session)
        return replaced

    async def get(self, player_id: str) -> PlayerSession | None:
        async with self._lock:
            session = self._sessions.get(player_id)
            return replace(session) if session is not None else None

    async def delete(self, player_id: str) -> PlayerSession | None:
        async with self._lock:
            return self._sessions.pop(player_id, None)

    async def delete_by_connection(self, connection_id: str) -> list[PlayerSession]:
        """Remove every session owned by a connection."""
        async with self._lock:
            owned = [pid for pid, s in self._sessions.items() if s.connection_id == connection_id]
            return [self._sessions.pop(pid) for pid in owned]

    async def delete_if_stale(self, player_id: str, cutoff: int) -> PlayerSession | None:
        """Remove the session only if it has not been seen since `cutoff`."""
        async with self._lock:
            session = self._sessions.get(player_id)
            if session is None or session.last_seen >= cutoff:
                return None
            return self._sessions.pop(player_id)

    async def update_location(
        self,
        player_id: str,
        connection_id: str,
        lat: float,
        lng: float,
    ) -> PlayerSession:
        async with self._lock:
            session = self._owned(player_id, connection_id)
            session.lat = lat
            session.lng = lng
            session.is_tracking = True
            session.last_seen = max(session.last_seen, self._clock())
            return replace(session)

    async def stop_tracking(self, player_id: str, connection_id: str) -> PlayerSession:
        async with self._lock:
            session = self._owned(player_id, connection_id)
            session.is_tracking = False
            session.last_seen = max(session.last_seen, self._clock())
            return replace(session)

    async def snapshot(self) -> list[PlayerSession]:
        """Point-in-time copy of all sessions in join order."""
        async with self._lock:
            return [replace(s) for s in self._sessions.values()]

    async def size(self) -> int:
        async with self._lock:
            return len(self._sessions)

    async def clear(self) -> None:
        async with self._lock:
            self._sessions.clear()

    def _owned(self, player_id: str, connection_id: str) -> PlayerSession:
        # Caller holds the lock.
        session = self._sessions.get(player_id)
        if session is None:
            raise PlayerNotFoundError(f"player {player_id!r} not found")
        if session.connection_id != connection_id:
            raise PlayerAuthorizationError(
                f"connection {connection_id!r} does not own player {player_id!r}"
            )
        return session
