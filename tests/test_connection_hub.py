from __future__ import annotations

import pytest

from services.connection_hub import CLOSE, ConnectionHub


def _drain(q) -> list:
    items = []
    while not q.empty():
        items.append(q.get_nowait())
    return items


@pytest.mark.anyio
async def test_send_to_reaches_only_target() -> None:
    hub = ConnectionHub()
    a = await hub.register("a")
    b = await hub.register("b")

    await hub.send_to("a", "playerAssigned", {"id": "p1"})
    await hub.send_to("missing", "playerAssigned", {"id": "p2"})

    assert _drain(a) == [{"event": "playerAssigned", "data": {"id": "p1"}}]
    assert _drain(b) == []


@pytest.mark.anyio
async def test_broadcasts_respect_exclusion_and_order() -> None:
    hub = ConnectionHub()
    a = await hub.register("a")
    b = await hub.register("b")

    await hub.broadcast_all("playerJoined", {"id": 1})
    await hub.broadcast_except("a", "locationUpdate", {"id": 1})
    await hub.broadcast_all("playerLeft", {"playerId": 1})

    assert [m["event"] for m in _drain(a)] == ["playerJoined", "playerLeft"]
    assert [m["event"] for m in _drain(b)] == ["playerJoined", "locationUpdate", "playerLeft"]


@pytest.mark.anyio
async def test_acknowledge_uses_ack_envelope() -> None:
    hub = ConnectionHub()
    a = await hub.register("a")

    await hub.acknowledge("a", 5, {"timestamp": 1})

    assert _drain(a) == [{"ack": 5, "data": {"timestamp": 1}}]


@pytest.mark.anyio
async def test_full_outbox_drops_oldest() -> None:
    hub = ConnectionHub(outbox_size=2)
    a = await hub.register("a")

    for i in range(3):
        await hub.send_to("a", "tick", i)

    assert [m["data"] for m in _drain(a)] == [1, 2]


@pytest.mark.anyio
async def test_unregister_and_close_all() -> None:
    hub = ConnectionHub()
    a = await hub.register("a")
    await hub.register("b")
    await hub.unregister("b")
    assert hub.connection_count == 1

    await hub.send_to("a", "serverShutdown", {})
    await hub.close_all()

    assert _drain(a) == [{"event": "serverShutdown", "data": {}}, CLOSE]
    assert await hub.wait_idle(timeout=0.05) is False
    await hub.unregister("a")
    assert await hub.wait_idle(timeout=0.05) is True
