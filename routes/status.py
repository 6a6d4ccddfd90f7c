"""Read-only status API. Reads SessionStore snapshots and never exposes coordinates."""

import os
import platform

from fastapi import APIRouter, Depends

from app.models import (
    HealthGame,
    HealthResponse,
    HealthServer,
    PlayerListing,
    PlayersResponse,
    PlayerStats,
    RootResponse,
    ServerStats,
    StatsConnections,
    StatsResponse,
    StatsServer,
)
from app.runtime import PresenceRuntime, get_runtime
from services.clock import iso_now

router = APIRouter(tags=["status"])


@router.get("/", response_model=RootResponse)
async def root(runtime: PresenceRuntime = Depends(get_runtime)) -> RootResponse:
    return RootResponse(
        message="Location Tracker Server",
        status="running",
        timestamp=iso_now(),
        stats=ServerStats(
            active_players=await runtime.store.size(),
            connected_sockets=runtime.hub.connection_count,
            uptime=runtime.uptime,
        ),
        endpoints={
            "health": "/health",
            "stats": "/stats",
            "players": "/players",
            "websocket": runtime.settings.ws_path,
        },
    )


@router.get("/health", response_model=HealthResponse)
async def health(runtime: PresenceRuntime = Depends(get_runtime)) -> HealthResponse:
    return HealthResponse(
        status="healthy",
        timestamp=iso_now(),
        server=HealthServer(uptime=runtime.uptime, pid=os.getpid(), version=platform.python_version()),
        game=HealthGame(
            active_players=await runtime.store.size(),
            connected_sockets=runtime.hub.connection_count,
        ),
    )


@router.get("/stats", response_model=StatsResponse)
async def stats(runtime: PresenceRuntime = Depends(get_runtime)) -> StatsResponse:
    roster = await runtime.store.snapshot()
    now = runtime.clock()
    window = runtime.active_window_ms
    return StatsResponse(
        server=StatsServer(uptime=runtime.uptime, timestamp=iso_now()),
        connections=StatsConnections(
            socket_clients=runtime.hub.connection_count,
            active_players=len(roster),
        ),
        players=[
            PlayerStats(
                id=s.id,
                name=s.name,
                is_tracking=s.is_tracking,
                last_seen=s.last_seen,
                time_ago=now - s.last_seen,
                is_active=s.is_active(now, window),
            )
            for s in roster
        ],
    )


@router.get("/players", response_model=PlayersResponse)
async def players(runtime: PresenceRuntime = Depends(get_runtime)) -> PlayersResponse:
    roster = await runtime.store.snapshot()
    now = runtime.clock()
    window = runtime.active_window_ms
    listings = [
        PlayerListing(
            id=s.id,
            name=s.name,
            is_tracking=s.is_tracking,
            last_seen=s.last_seen,
            is_active=s.is_active(now, window),
            has_location=s.has_location,
        )
        for s in roster
    ]
    return PlayersResponse(count=len(listings), timestamp=iso_now(), players=listings)
