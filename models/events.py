"""Event names used on the presence channel."""

# inbound
PLAYER_JOIN = "playerJoin"
LOCATION_UPDATE = "locationUpdate"
STOP_TRACKING = "stopTracking"
PLAYER_LEAVE = "playerLeave"
PING = "ping"

# outbound
CONNECTED = "connected"
PLAYERS_ONLINE = "playersOnline"
PLAYER_JOINED = "playerJoined"
PLAYER_ASSIGNED = "playerAssigned"
LOCATION_CONFIRMED = "locationConfirmed"
PLAYER_STOPPED_TRACKING = "playerStoppedTracking"
PLAYER_LEFT = "playerLeft"
ERROR = "error"
PONG = "pong"
SERVER_SHUTDOWN = "serverShutdown"
