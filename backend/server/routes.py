"""
Route registration for the lyric sync API.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Wire gateway to WebSocket lifecycle
- Pull dependencies from app.state
"""

from __future__ import annotations

import asyncio
import json
import time

from fastapi import WebSocket, WebSocketDisconnect, FastAPI

from observability.logger import log_event
from orchestrator.errors import InvariantViolation
from session.capture_session import CaptureSession
from session.gateway import SessionGateway


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""
    @app.get("/health")
    async def health() -> dict[str, str]: # pyright: ignore[reportUnusedFunction]
        return {"status": "ok"}

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        await ws.accept()

        gateway = SessionGateway(
            services=app.state.services,
            source_factory=app.state.source_factory,
        )
        sender: asyncio.Task[None] | None = None

        try:
            session = await gateway.on_ws_connect()
            sender = asyncio.create_task(_pump_control(ws, session))

            while True:
                msg = await ws.receive()

                if msg.get("type") == "websocket.disconnect":
                    raise WebSocketDisconnect(code=msg.get("code", 1000))

                if msg.get("text") is not None:
                    await gateway.on_json_message(msg["text"])

                elif msg.get("bytes") is not None:
                    await gateway.on_binary_message(msg["bytes"])

        except WebSocketDisconnect:
            await _stop_sender(sender)
            await gateway.on_ws_disconnect(reason="client_disconnect")

        except InvariantViolation as exc:
            log_event({
                "ts_ms": int(time.time() * 1000),
                "event_type": "INVARIANT_VIOLATION",
                "session_id": gateway.session.session_id if gateway.session else None,
                "message": str(exc),
            })
            await _stop_sender(sender)
            await gateway.on_ws_disconnect(reason="invariant_violation")
            raise

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": int(time.time() * 1000),
                "event_type": "WS_FATAL_ERROR",
                "session_id": gateway.session.session_id if gateway.session else None,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            await _stop_sender(sender)
            await gateway.on_ws_disconnect(reason="server_error")


async def _pump_control(ws: WebSocket, session: CaptureSession) -> None:
    """Deliver queued control messages to the client as they appear."""
    while True:
        for msg in await session.wait_control():
            await ws.send_text(json.dumps(msg))


async def _stop_sender(sender: asyncio.Task[None] | None) -> None:
    if sender is None:
        return
    sender.cancel()
    try:
        await sender
    except asyncio.CancelledError:
        pass
    except Exception as exc:  # pylint: disable=broad-exception-caught
        log_event({
            "ts_ms": int(time.time() * 1000),
            "event_type": "WS_SEND_FAILED",
            "exception": type(exc).__name__,
            "message": str(exc),
        })
