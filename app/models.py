from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PlayerListing(CamelModel):
    """Public view of a player. Coordinates are deliberately absent."""

    id: str
    name: str
    is_tracking: bool
    last_seen: int
    is_active: bool
    has_location: bool


class PlayerStats(CamelModel):
    id: str
    name: str
    is_tracking: bool
    last_seen: int
    time_ago: int
    is_active: bool


class PlayersResponse(CamelModel):
    count: int
    timestamp: str
    players: list[PlayerListing]


class ServerStats(CamelModel):
    active_players: int
    connected_sockets: int
    uptime: float


class RootResponse(CamelModel):
    message: str
    status: str
    timestamp: str
    stats: ServerStats
    endpoints: dict[str, str]


class HealthServer(CamelModel):
    uptime: float
    pid: int
    version: str


class HealthGame(CamelModel):
    active_players: int
    connected_sockets: int


class HealthResponse(CamelModel):
    status: str
    timestamp: str
    server: HealthServer
    game: HealthGame


class StatsServer(CamelModel):
    uptime: float
    timestamp: str


class StatsConnections(CamelModel):
    socket_clients: int
    active_players: int


class StatsResponse(CamelModel):
    server: StatsServer
    connections: StatsConnections
    players: list[PlayerStats]
