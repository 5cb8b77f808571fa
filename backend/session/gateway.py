"""
Session gateway.

Responsibilities:
- Owns CaptureSession lifecycle
- Tracks connection_status independently of orchestrator state
- Builds the per-session audio source and adapters
- Routes inbound JSON control messages -> orchestrator events
- Routes inbound binary audio frames -> the audio source
- Detects sequence gaps and logs them

NOT responsible for:
- Executing commands (Runtime)
- Any state machine logic (reducer)
- Socket I/O (server.routes)
"""

from __future__ import annotations

import json
import time
from typing import Any, Callable, TYPE_CHECKING

from uuid import uuid4

from adapters.enrich.genius import GeniusEnrichAdapter
from adapters.identify.acrcloud import ACRCloudIdentifyAdapter
from adapters.lyrics.lrclib import LrcLibTranscriptAdapter
from audio.sources import AudioSource, ClientStreamSource, mic_error_kind
from constants import (
    AUDIO_CHANNELS,
    AUDIO_FRAME_MS,
    AUDIO_SAMPLE_RATE_HZ,
    AUDIO_SAMPLE_WIDTH_BYTES,
)
from orchestrator.enums.service import Service
from orchestrator.events import (
    CancelRequested,
    CaptureFailed,
    CaptureRequested,
    CaptureStopRequested,
    Event,
    EventType,
    SessionEnded,
    SessionStarted,
)
from orchestrator.runtime import Runtime
from orchestrator.runtime_context import RuntimeExecutionContext
from orchestrator.state_dataclass import OrchestratorState
from protocol.binary import (
    BinaryProtocolError,
    check_sequence_gap,
    decode_c2s_frame,
)
from protocol.messages import (
    C2S_CANCEL,
    C2S_MIC_ERROR,
    C2S_START,
    C2S_STOP,
    S2C_SESSION_INIT,
)
from session.capture_session import CaptureSession
from session.connection_status import ConnectionStatus

from observability.logger import log_event

if TYPE_CHECKING:
    from session.services import SessionServices

SourceFactory = Callable[[CaptureSession], AudioSource]


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _new_session_id() -> str:
    return f"sess_{uuid4().hex[:12]}"


def client_stream_source(session: CaptureSession) -> AudioSource:
    """Default source: the connected client streams its microphone."""
    return ClientStreamSource(send_control=session.enqueue_control)


# ------------------------------------------------------------------
# SessionGateway
# ------------------------------------------------------------------

class SessionGateway:
    """
    One gateway == one client connection == one capture session.

    Outbound JSON is not returned from the handlers; it accumulates on the
    session and is delivered by whoever awaits session.wait_control().
    """

    def __init__(
        self,
        *,
        services: SessionServices,
        source_factory: SourceFactory = client_stream_source,
    ) -> None:
        self._services = services
        self._source_factory = source_factory
        self.session: CaptureSession | None = None

    @property
    def runtime(self) -> Runtime | None:
        return self.session.runtime if self.session is not None else None

    async def on_ws_connect(self) -> CaptureSession:
        """Called when a WebSocket connection is established."""
        session_id = _new_session_id()

        session = CaptureSession(session_id=session_id)
        session.connection_status = ConnectionStatus.CONNECTING
        self.session = session

        runtime = Runtime(
            initial_state=OrchestratorState(),
            context=RuntimeExecutionContext(session=session),
        )

        session.attach_audio_source(self._source_factory(session))
        session.attach_adapters(
            identify=ACRCloudIdentifyAdapter(
                emit_event=runtime.handle_event,
                client=self._services.identify_client,
                session_id=session_id,
            ),
            enrich=GeniusEnrichAdapter(
                emit_event=runtime.handle_event,
                client=self._services.genius_client,
                session_id=session_id,
            ),
            transcript=LrcLibTranscriptAdapter(
                emit_event=runtime.handle_event,
                resolver=self._services.transcript_resolver,
                session_id=session_id,
            ),
        )

        # Runtime goes in last; it expects adapters to be present
        session.attach_runtime(runtime)
        session.connection_status = ConnectionStatus.UP

        session.enqueue_control({
            "type": S2C_SESSION_INIT,
            "session_id": session_id,
            "audio_format": {
                "sample_rate": AUDIO_SAMPLE_RATE_HZ,
                "sample_width": AUDIO_SAMPLE_WIDTH_BYTES,
                "channels": AUDIO_CHANNELS,
                "frame_duration_ms": AUDIO_FRAME_MS,
            },
        })

        await self._dispatch(
            SessionStarted(
                event_type=EventType.SESSION_STARTED,
                ts_ms=_now_ms(),
                session_id=session_id,
            )
        )
        return session

    async def on_ws_disconnect(self, reason: str | None = None) -> None:
        """Called when the WebSocket disconnects."""
        if self.session is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "WS_DISCONNECT_WITHOUT_SESSION",
                "reason": reason,
            })
            return

        session_id = self.session.session_id

        await self._dispatch(
            SessionEnded(
                event_type=EventType.SESSION_ENDED,
                ts_ms=_now_ms(),
                session_id=session_id,
            )
        )

        runtime = self.session.runtime
        if runtime is not None:
            await runtime.shutdown()

        self.session.connection_status = ConnectionStatus.DOWN
        log_event({
            "ts_ms": _now_ms(),
            "event_type": "WS_DISCONNECTED",
            **self.session.log_context(),
            "reason": reason,
        })

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def on_json_message(self, payload: str) -> None:
        """Route inbound JSON to orchestrator events."""
        if self.session is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "MESSAGE_WITHOUT_SESSION",
                "payload_preview": payload[:100],
            })
            return

        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "JSON_DECODE_ERROR",
                "session_id": self.session.session_id,
                "error": str(e),
                "payload_preview": payload[:100],
            })
            return

        if not isinstance(data, dict):
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "JSON_NOT_OBJECT",
                "session_id": self.session.session_id,
                "payload_preview": payload[:100],
            })
            return

        event = self._event_for_message(data)
        if event is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "UNKNOWN_MESSAGE_TYPE",
                "msg_type": data.get("type"),
                "session_id": self.session.session_id,
            })
            return

        await self._dispatch(event)

    def _event_for_message(self, data: dict[str, Any]) -> Event | None:
        msg_type = data.get("type")
        ts_ms = _now_ms()

        if msg_type == C2S_START:
            return CaptureRequested(event_type=EventType.CAPTURE_REQUESTED, ts_ms=ts_ms)
        if msg_type == C2S_STOP:
            return CaptureStopRequested(
                event_type=EventType.CAPTURE_STOP_REQUESTED, ts_ms=ts_ms
            )
        if msg_type == C2S_CANCEL:
            return CancelRequested(event_type=EventType.CANCEL_REQUESTED, ts_ms=ts_ms)
        if msg_type == C2S_MIC_ERROR:
            runtime = self.runtime
            assert runtime is not None, "Runtime must exist before dispatch"
            name = data.get("name")
            return CaptureFailed(
                event_type=EventType.CAPTURE_FAILED,
                ts_ms=ts_ms,
                service=Service.CAPTURE,
                run_id=runtime.state.active_runs.capture,
                kind=mic_error_kind(name if isinstance(name, str) else None),
                detail=str(data.get("message", "")),
            )
        return None

    async def on_binary_message(self, payload: bytes) -> None:
        """
        Handle inbound binary mic audio frames.

        - Decode + validate
        - Detect sequence gaps
        - Hand to the audio source (dropped when no recording is open)
        """
        if self.session is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "BINARY_WITHOUT_SESSION",
                "payload_len": len(payload),
            })
            return

        try:
            frame = decode_c2s_frame(payload, ts_ms=_now_ms())
        except BinaryProtocolError as e:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "BINARY_DECODE_ERROR",
                "session_id": self.session.session_id,
                "error": str(e),
                "payload_len": len(payload),
            })
            return

        gap_result = check_sequence_gap(
            last_seq=self.session.last_seq,
            current_seq=frame.sequence_num,
        )
        if gap_result.gap:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "SEQ_GAP_DETECTED",
                "session_id": self.session.session_id,
                "expected": gap_result.expected,
                "actual": gap_result.actual,
                "gap_size": gap_result.gap_size,
            })
        self.session.last_seq = frame.sequence_num

        source = self.session.audio_source
        if not isinstance(source, ClientStreamSource):
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "AUDIO_FRAME_UNEXPECTED",
                "session_id": self.session.session_id,
                "seq_num": frame.sequence_num,
            })
            return

        source.ingest(frame)

    # ------------------------------------------------------------------
    # Reducer dispatch
    # ------------------------------------------------------------------

    async def _dispatch(self, event: Event) -> None:
        if self.session is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "DISPATCH_WITHOUT_SESSION",
                "dropped_event": event.event_type.value,
            })
            return

        runtime = self.session.runtime
        assert runtime is not None, "Runtime must exist before dispatch"
        await runtime.handle_event(event)
