"""Errors raised while handling presence events.

Each carries the message that is safe to send back to the client. Not-found
and authorization failures share a message so a client cannot probe which
player ids exist.
"""

from __future__ import annotations

INVALID_LOCATION = "Invalid location data"
MISSING_PLAYER_ID = "Missing player id"
NOT_FOUND_OR_UNAUTHORIZED = "Player not found or unauthorized"


class PresenceError(Exception):
    public_message = "Request failed"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.public_message)
        self.detail = detail


class PlayerValidationError(PresenceError):
    public_message = INVALID_LOCATION


class MissingPlayerIdError(PlayerValidationError):
    public_message = MISSING_PLAYER_ID


class PlayerNotFoundError(PresenceError):
    public_message = NOT_FOUND_OR_UNAUTHORIZED


class PlayerAuthorizationError(PresenceError):
    public_message = NOT_FOUND_OR_UNAUTHORIZED
