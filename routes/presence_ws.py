from __future__ import annotations

import asyncio
import json
import logging
import secrets
from contextlib import suppress
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.runtime import PresenceRuntime, get_ws_runtime
from models import events
from services.connection_hub import CLOSE, Message

logger = logging.getLogger(__name__)

INVALID_MESSAGE = "Invalid message"
SERVER_SHUTDOWN_REASON = "server shutting down"

_CLOSE_REASONS = {
    1000: "client namespace disconnect",
    1001: "transport close",
    1006: "transport close",
}


def disconnect_reason(code: int | None) -> str:
    return _CLOSE_REASONS.get(code or 1006, "transport close")


def decode_envelope(raw: str) -> tuple[str, Any, int | str | None] | None:
    """
    Parse one inbound frame.

    Frame schema:
      {"event": str, "data": any, "ack": int | str (optional)}
    """
    try:
        envelope = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(envelope, dict):
        return None
    event = envelope.get("event")
    if not isinstance(event, str) or not event:
        return None
    ack = envelope.get("ack")
    if isinstance(ack, bool) or not isinstance(ack, (int, str)):
        ack = None
    return event, envelope.get("data"), ack


async def _drain_outbox(
    websocket: WebSocket,
    outbox: asyncio.Queue[Message | None],
    connection_id: str,
    closed_by_server: asyncio.Event,
) -> None:
    try:
        while True:
            message = await outbox.get()
            if message is CLOSE:
                closed_by_server.set()
                await websocket.close(code=1001)
                return
            await websocket.send_json(message)
    except Exception as e:
        # The reader sees the disconnect and runs cleanup.
        logger.debug("[presence_ws] Writer for %s stopped: %s", connection_id, e)


def create_router(path: str = "/ws") -> APIRouter:
    router = APIRouter(tags=["presence"])

    @router.websocket(path)
    async def ws_presence(websocket: WebSocket) -> None:
        """
        Presence channel. Inbound events are handled one at a time in arrival
        order; disconnect cleanup runs only after the last one has finished.
        """
        runtime = get_ws_runtime(websocket)
        connection_id = secrets.token_urlsafe(12)
        try:
            await websocket.accept()
        except Exception as e:
            logger.warning("[presence_ws] accept() failed: %s", e)
            return
        logger.info("[presence_ws] New client connected: %s", connection_id)

        outbox = await runtime.hub.register(connection_id)
        closed_by_server = asyncio.Event()
        writer = asyncio.create_task(_drain_outbox(websocket, outbox, connection_id, closed_by_server))
        reason = "transport close"
        try:
            await runtime.protocol.on_connect(connection_id)
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000))
                raw = message.get("text")
                if raw is None:
                    raw = (message.get("bytes") or b"").decode("utf-8", errors="replace")
                envelope = decode_envelope(raw)
                if envelope is None:
                    await runtime.hub.send_to(connection_id, events.ERROR, {"message": INVALID_MESSAGE})
                    continue
                event, data, ack = envelope
                await runtime.protocol.dispatch(connection_id, event, data, ack)
        except WebSocketDisconnect as exc:
            reason = disconnect_reason(exc.code)
        except Exception:
            logger.exception("[presence_ws] Connection %s failed", connection_id)
            reason = "transport error"
        finally:
            if closed_by_server.is_set():
                reason = SERVER_SHUTDOWN_REASON
            # Runs to completion even if this handler is cancelled mid-await.
            cleanup = asyncio.ensure_future(_cleanup(runtime, connection_id, writer, reason))
            await asyncio.shield(cleanup)

    return router


async def _cleanup(runtime: PresenceRuntime, connection_id: str, writer: asyncio.Task[None], reason: str) -> None:
    await runtime.hub.unregister(connection_id)
    if not writer.done():
        writer.cancel()
    with suppress(asyncio.CancelledError):
        await writer
    await runtime.protocol.handle_disconnect(connection_id, reason)
