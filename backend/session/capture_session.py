"""
Capture session container.

- Owns connection status (mutable, gateway-controlled)
- Holds the runtime, the audio source and the service adapters
- Buffers outbound control messages for the gateway
- NOT a state machine; contains no orchestration logic
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from orchestrator.runtime import Runtime
from session.connection_status import ConnectionStatus


@dataclass
class CaptureSession:
    """Mutable runtime container for a single client connection."""

    # ------------------------------------------------------------------
    # Identity / lifecycle
    # ------------------------------------------------------------------

    session_id: str
    created_at: float = field(default_factory=time.time)

    # ------------------------------------------------------------------
    # Connection / gateway-controlled state
    # ------------------------------------------------------------------

    connection_status: ConnectionStatus = ConnectionStatus.DOWN

    # Last binary frame sequence number seen from the client
    last_seq: int | None = None

    # ------------------------------------------------------------------
    # Runtime (executes commands + owns authoritative state)
    # ------------------------------------------------------------------

    runtime: Runtime | None = None

    # ------------------------------------------------------------------
    # Capture + service adapters (concrete, side-effectful)
    # ------------------------------------------------------------------

    audio_source: Any = None
    identify_adapter: Any = None
    enrich_adapter: Any = None
    transcript_adapter: Any = None

    def __post_init__(self) -> None:
        self._control_out: deque[dict[str, Any]] = deque()
        self._control_ready = asyncio.Event()

    # ------------------------------------------------------------------
    # Wiring helpers (called by SessionGateway)
    # ------------------------------------------------------------------

    def attach_audio_source(self, source: Any) -> None:
        self.audio_source = source

    def attach_adapters(
        self,
        *,
        identify: Any,
        enrich: Any,
        transcript: Any,
    ) -> None:
        """Attach concrete adapters. Must happen before attach_runtime()."""
        self.identify_adapter = identify
        self.enrich_adapter = enrich
        self.transcript_adapter = transcript

    def attach_runtime(self, runtime: Runtime) -> None:
        self.runtime = runtime

    # ------------------------------------------------------------------
    # Observability helpers (read-only)
    # ------------------------------------------------------------------

    def log_context(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "connection_status": self.connection_status.value,
        }

    # ------------------------------------------------------------------
    # Outbound control messages
    # ------------------------------------------------------------------

    def enqueue_control(self, msg: dict[str, Any]) -> None:
        """
        Enqueue a control message for gateway delivery to the client.

        Messages are buffered in FIFO order and later retrieved via
        drain_control().
        """
        self._control_out.append(msg)
        self._control_ready.set()

    def drain_control(self) -> tuple[dict[str, Any], ...]:
        """
        Drain all pending control messages in FIFO order.

        After this call, the control queue is empty.
        """
        self._control_ready.clear()
        if not self._control_out:
            return ()
        out = tuple(self._control_out)
        self._control_out.clear()
        return out

    async def wait_control(self) -> tuple[dict[str, Any], ...]:
        """Wait until at least one control message is pending, then drain."""
        await self._control_ready.wait()
        return self.drain_control()
