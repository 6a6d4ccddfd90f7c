from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from models import events
from models.player import DepartureReason, PlayerSession
from services.clock import Clock, iso_now, now_ms
from services.connection_hub import BroadcastGateway
from services.errors import MissingPlayerIdError, PlayerValidationError, PresenceError
from services.store import SessionStore
from services.validation import (
    generate_player_id,
    generate_player_name,
    parse_coordinate,
    validate_location,
)

logger = logging.getLogger(__name__)

ACTIVE_WINDOW_MS = 60_000

WELCOME_MESSAGE = "Connected to location tracker server"
SHUTDOWN_MESSAGE = "Server is shutting down"

# Generic messages sent when a handler fails unexpectedly.
FAILURE_MESSAGES = {
    events.PLAYER_JOIN: "Failed to join game",
    events.LOCATION_UPDATE: "Failed to update location",
    events.STOP_TRACKING: "Failed to stop tracking",
    events.PLAYER_LEAVE: "Failed to leave game",
    events.PING: "Failed to process ping",
}


@dataclass(frozen=True)
class AckReply:
    """The client asked for an acknowledgment; answer on it."""

    ack_id: int | str


@dataclass(frozen=True)
class EventReply:
    """No acknowledgment requested; answer with a `pong` event."""


PingReply = AckReply | EventReply


def _player_id_from(data: Any) -> str | None:
    """stopTracking / playerLeave carry either a bare id or {"playerId": id}."""
    if isinstance(data, dict):
        data = data.get("playerId", data.get("id"))
    return _optional_text(data)


def _optional_text(value: Any) -> str | None:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return None
    text = str(value).strip()
    return text or None


class PresenceProtocol:
    """
    Translate inbound presence events into SessionStore changes and broadcasts.

    One instance serves every connection; per-connection ordering comes from
    the caller awaiting each dispatch() before reading the next frame.
    """

    def __init__(
        self,
        store: SessionStore,
        gateway: BroadcastGateway,
        *,
        clock: Clock = now_ms,
        active_window_ms: int = ACTIVE_WINDOW_MS,
        name_factory: Callable[[], str] = generate_player_name,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._clock = clock
        self._active_window_ms = active_window_ms
        self._name_factory = name_factory
        self._shutdown_announced = False
        self._handlers: dict[str, Callable[[str, Any], Awaitable[None]]] = {
            events.PLAYER_JOIN: self.handle_join,
            events.LOCATION_UPDATE: self.handle_location_update,
            events.STOP_TRACKING: self.handle_stop_tracking,
            events.PLAYER_LEAVE: self.handle_leave,
        }

    @property
    def store(self) -> SessionStore:
        return self._store

    async def dispatch(self, connection_id: str, event: str, data: Any, ack: int | str | None = None) -> None:
        """Run one inbound event. Never raises; failures become an `error` event to the sender."""
        try:
            if event == events.PING:
                reply: PingReply = AckReply(ack) if ack is not None else EventReply()
                await self.handle_ping(connection_id, data, reply)
                return
            handler = self._handlers.get(event)
            if handler is None:
                await self._send_error(connection_id, f"Unknown event: {event}")
                return
            await handler(connection_id, data)
        except PresenceError as exc:
            logger.info("[presence] Rejected %s from %s: %s", event, connection_id, exc)
            await self._send_error(connection_id, exc.public_message)
        except Exception:
            logger.exception("[presence] Error handling %s from %s", event, connection_id)
            await self._send_error(connection_id, FAILURE_MESSAGES.get(event, "Internal server error"))

    async def on_connect(self, connection_id: str) -> None:
        """Welcome a new connection with the current roster (no coordinates)."""
        roster = await self._store.snapshot()
        now = self._clock()
        await self._gateway.send_to(
            connection_id,
            events.CONNECTED,
            {"message": WELCOME_MESSAGE, "timestamp": iso_now(), "activePlayers": len(roster)},
        )
        await self._gateway.send_to(
            connection_id,
            events.PLAYERS_ONLINE,
            [s.online_summary(now, self._active_window_ms) for s in roster],
        )

    async def handle_join(self, connection_id: str, data: Any) -> None:
        data = data if isinstance(data, dict) else {}
        now = self._clock()
        player_id = _optional_text(data.get("id")) or generate_player_id(now)
        name = _optional_text(data.get("name")) or self._name_factory()

        session = PlayerSession(
            id=player_id,
            name=name,
            connection_id=connection_id,
            joined_at=now,
            last_seen=now,
        )
        replaced = await self._store.upsert(session)

        await self._gateway.broadcast_all(
            events.PLAYER_JOINED,
            {
                "id": session.id,
                "name": session.name,
                "hasLocation": False,
                "isActive": True,
                "lastSeen": session.last_seen,
            },
        )
        await self._gateway.send_to(connection_id, events.PLAYER_ASSIGNED, {"id": session.id, "name": session.name})
        logger.info(
            "[presence] Player joined: %s (%s)%s",
            session.name,
            session.id,
            " replacing previous session" if replaced else "",
        )

    async def handle_location_update(self, connection_id: str, data: Any) -> None:
        data = data if isinstance(data, dict) else {}
        player_id = _player_id_from(data.get("playerId"))
        if not player_id or not validate_location(data.get("lat"), data.get("lng")):
            raise PlayerValidationError("missing player id or invalid coordinates")

        lat = parse_coordinate(data["lat"])
        lng = parse_coordinate(data["lng"])
        session = await self._store.update_location(player_id, connection_id, lat, lng)  # type: ignore[arg-type]

        await self._gateway.broadcast_except(
            connection_id,
            events.LOCATION_UPDATE,
            {
                "id": session.id,
                "name": session.name,
                "lat": session.lat,
                "lng": session.lng,
                "timestamp": session.last_seen,
                "lastSeen": session.last_seen,
                "isActive": True,
            },
        )
        confirmation: dict[str, Any] = {"timestamp": session.last_seen}
        if data.get("timestamp") is not None:
            confirmation["clientTimestamp"] = data["timestamp"]
        await self._gateway.send_to(connection_id, events.LOCATION_CONFIRMED, confirmation)
        logger.debug("[presence] Location update: %s at %.4f, %.4f", session.name, session.lat, session.lng)

    async def handle_stop_tracking(self, connection_id: str, data: Any) -> None:
        player_id = _player_id_from(data)
        if not player_id:
            raise MissingPlayerIdError("missing player id")
        session = await self._store.stop_tracking(player_id, connection_id)
        await self._gateway.broadcast_all(events.PLAYER_STOPPED_TRACKING, {"id": session.id, "name": session.name})
        logger.info("[presence] Player %s stopped tracking", session.name)

    async def handle_leave(self, connection_id: str, data: Any) -> None:
        await self.resolve_departure(connection_id, _player_id_from(data), DepartureReason.LEFT)

    async def handle_ping(self, connection_id: str, data: Any, reply: PingReply) -> None:
        pong: dict[str, Any] = {
            "timestamp": self._clock(),
            "activePlayerCount": await self._store.size(),
        }
        pong["activePlayers"] = pong["activePlayerCount"]
        if isinstance(data, dict):
            pong.update(data)
        elif data is not None:
            pong["data"] = data

        match reply:
            case AckReply(ack_id=ack_id):
                await self._gateway.acknowledge(connection_id, ack_id, pong)
            case EventReply():
                await self._gateway.send_to(connection_id, events.PONG, pong)

    async def handle_disconnect(self, connection_id: str, reason: str) -> None:
        logger.info("[presence] Client disconnected: %s, reason: %s", connection_id, reason)
        try:
            await self.resolve_departure(connection_id, None, reason)
        except Exception:
            logger.exception("[presence] Error handling disconnect of %s", connection_id)

    async def resolve_departure(self, connection_id: str, player_id: str | None, reason: str) -> list[PlayerSession]:
        """
        Remove a player by id, or every player owned by the connection when no
        id is given, and announce each departure. Missing players are ignored,
        so a second leave or a leave after eviction is a no-op.
        """
        if player_id:
            removed = await self._store.delete(player_id)
            departed = [removed] if removed is not None else []
        else:
            departed = await self._store.delete_by_connection(connection_id)

        for session in departed:
            await self._gateway.broadcast_all(
                events.PLAYER_LEFT,
                {"playerId": session.id, "playerName": session.name, "reason": str(reason)},
            )
            logger.info("[presence] Player %s (%s) disconnected: %s", session.name, session.id, reason)
        return departed

    async def announce_shutdown(self) -> bool:
        """Tell every client the server is going away. Only the first call broadcasts."""
        if self._shutdown_announced:
            return False
        self._shutdown_announced = True
        await self._gateway.broadcast_all(
            events.SERVER_SHUTDOWN,
            {"message": SHUTDOWN_MESSAGE, "timestamp": iso_now()},
        )
        return True

    async def _send_error(self, connection_id: str, message: str) -> None:
        await self._gateway.send_to(connection_id, events.ERROR, {"message": message})
