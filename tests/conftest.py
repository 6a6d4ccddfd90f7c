from __future__ import annotations

from typing import Any

import pytest

from services.store import SessionStore


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class FakeClock:
    """Settable millisecond clock."""

    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class RecordingGateway:
    """BroadcastGateway that records every send instead of delivering it."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str | None, str, Any]] = []

    async def send_to(self, connection_id: str, event: str, payload: Any) -> None:
        self.sent.append(("to", connection_id, event, payload))

    async def broadcast_all(self, event: str, payload: Any) -> None:
        self.sent.append(("all", None, event, payload))

    async def broadcast_except(self, connection_id: str, event: str, payload: Any) -> None:
        self.sent.append(("except", connection_id, event, payload))

    async def acknowledge(self, connection_id: str, ack_id: int | str, payload: Any) -> None:
        self.sent.append(("ack", connection_id, str(ack_id), payload))

    def events(self, name: str) -> list[tuple[str, str | None, str, Any]]:
        return [s for s in self.sent if s[2] == name]

    def clear(self) -> None:
        self.sent.clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway()


@pytest.fixture
def store(clock: FakeClock) -> SessionStore:
    return SessionStore(clock=clock)
