"""
Runtime execution shell for a single capture session.

Responsibilities:
- Own orchestrator state
- Call pure reducer
- Execute commands with side effects (capture, identify, lookups)
- Schedule and cancel timers
- Convert timer expiry into events
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import TYPE_CHECKING

from orchestrator.reducer import reduce
from orchestrator.commands import (
    Command,
    CancelEnrichment,
    CancelIdentify,
    CancelTimer,
    CancelTranscriptLookup,
    FinalizeCapture,
    LogEvent,
    OpenCapture,
    ReleaseCapture,
    SendJSONToClient,
    StartEnrichment,
    StartIdentify,
    StartTimer,
    StartTranscriptLookup,
)
from orchestrator.enums.service import Service
from orchestrator.errors import DeviceError, FailureKind
from orchestrator.events import (
    CaptureCeilingReached,
    CaptureFailed,
    CaptureFinalized,
    EnrichmentTimeout,
    Event,
    EventType,
    IdentifyTimeout,
    QualitySampleTaken,
    SyncTick,
    TranscriptTimeout,
)
from orchestrator.state_dataclass import OrchestratorState

from observability.logger import log_event


if TYPE_CHECKING:
    from orchestrator.runtime_context import RuntimeExecutionContext


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class Runtime:
    """
    Runtime execution boundary for a single capture session.

    Responsibilities:
    - Own the authoritative orchestrator state
    - Act as the universal event sink for the session
      (gateway events, adapter events, timer events)
    - Invoke the pure reducer deterministically
    - Execute emitted commands with side effects
    - Schedule and cancel timers

    Guarantees:
    - Reducer is always called exactly once per incoming event
    - State transitions are serialized and deterministic
    - All side effects occur *after* state has been updated
    - Runtime never performs orchestration logic itself
    - Timers emit events back into handle_event (single entry point)
    """

    def __init__(
        self,
        *,
        initial_state: OrchestratorState,
        context: RuntimeExecutionContext,
    ) -> None:
        self._state = initial_state
        self._ctx = context
        self._timers: dict[str, asyncio.Task[None]] = {}
        self._pending: deque[Event] = deque()
        self._dispatching = False

    @property
    def state(self) -> OrchestratorState:
        """
        Return the current immutable orchestrator state.

        Consumers must never modify this state directly; the gateway reads
        it for run ids and observability only.
        """
        return self._state

    @property
    def active_timers(self) -> tuple[str, ...]:
        return tuple(
            timer_id for timer_id, task in self._timers.items() if not task.done()
        )

    async def handle_event(self, event: Event) -> None:
        """
        Process a single event through the orchestration pipeline.

        Processing steps:
        1. Pass the current state and event to the pure reducer
        2. Swap in the new orchestrator state
        3. Execute all emitted commands sequentially

        All event sources converge here:
        - Gateway (client control messages, connection lifecycle)
        - Adapters (identification, enrichment, transcript results)
        - Timers (quality cadence, ceiling, timeouts, sync ticks)

        Events raised while a batch of commands is executing (including by
        those commands) are queued and reduced after the batch, in arrival
        order. A caller that arrives mid-batch returns immediately.

        InvariantViolation raised by the reducer propagates to the caller
        that is dispatching.
        """
        self._pending.append(event)
        if self._dispatching:
            return

        self._dispatching = True
        try:
            while self._pending:
                next_event = self._pending.popleft()
                new_state, commands = reduce(self._state, next_event)
                self._state = new_state

                for cmd in commands:
                    await self._execute_command(cmd)
        except BaseException:
            self._pending.clear()
            raise
        finally:
            self._dispatching = False

    async def shutdown(self) -> None:
        """
        Cancel all in-flight timers and adapter work and release capture.

        Called by the gateway on session disconnect.
        """
        pending = list(self._timers.values())
        for timer_id in list(self._timers.keys()):
            self._cancel_timer(timer_id)

        source = self._ctx.audio_source
        if source is not None:
            source.close()

        for adapter in (
            self._ctx.identify_adapter,
            self._ctx.enrich_adapter,
            self._ctx.transcript_adapter,
        ):
            if adapter is not None:
                adapter.force_reset()

        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------
    # Command execution (side effects)
    # ------------------------------------------------------------------

    async def _execute_command(self, cmd: Command) -> None:
        """Execute a single command with side effects."""

        if isinstance(cmd, LogEvent):
            log_event({
                **cmd.event,
                "session_id": self._ctx.session_id,
                "connection_status": self._ctx.connection_status.value,
            })

        elif isinstance(cmd, SendJSONToClient):
            self._ctx.session.enqueue_control({
                "type": cmd.message_type,
                **cmd.data,
            })

        # ------------------------------------------------------------
        # Capture
        # ------------------------------------------------------------

        elif isinstance(cmd, OpenCapture):
            source = self._ctx.audio_source
            if source is None:
                await self._emit_capture_failed(
                    cmd.run_id, DeviceError(FailureKind.NO_DEVICE, "no audio source")
                )
                return
            try:
                await source.open()
            except DeviceError as e:
                await self._emit_capture_failed(cmd.run_id, e)
                return
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "CAPTURE_OPENED",
                "session_id": self._ctx.session_id,
                "capture_run_id": cmd.run_id,
            })

        elif isinstance(cmd, FinalizeCapture):
            source = self._ctx.audio_source
            if source is None:
                await self._emit_capture_failed(
                    cmd.run_id, DeviceError(FailureKind.NO_DEVICE, "no audio source")
                )
                return
            sample = source.finalize()
            await self.handle_event(
                CaptureFinalized(
                    event_type=EventType.CAPTURE_FINALIZED,
                    ts_ms=_now_ms(),
                    service=Service.CAPTURE,
                    run_id=cmd.run_id,
                    sample=sample,
                )
            )

        elif isinstance(cmd, ReleaseCapture):
            source = self._ctx.audio_source
            if source is not None:
                source.close()

        # ------------------------------------------------------------
        # Identification
        # ------------------------------------------------------------

        elif isinstance(cmd, StartIdentify):
            assert self._ctx.identify_adapter is not None, "identify adapter missing"
            await self._ctx.identify_adapter.start_identify(
                run_id=cmd.run_id,
                sample=cmd.sample,
            )
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "IDENTIFY_START_EXECUTED",
                "session_id": self._ctx.session_id,
                "identify_run_id": cmd.run_id,
                "sample_bytes": len(cmd.sample.payload),
            })

        elif isinstance(cmd, CancelIdentify):
            assert self._ctx.identify_adapter is not None, "identify adapter missing"
            await self._ctx.identify_adapter.cancel(cmd.run_id)

        # ------------------------------------------------------------
        # Lookups
        # ------------------------------------------------------------

        elif isinstance(cmd, StartEnrichment):
            assert self._ctx.enrich_adapter is not None, "enrich adapter missing"
            await self._ctx.enrich_adapter.start_enrichment(
                run_id=cmd.run_id,
                result=cmd.result,
            )

        elif isinstance(cmd, CancelEnrichment):
            assert self._ctx.enrich_adapter is not None, "enrich adapter missing"
            await self._ctx.enrich_adapter.cancel(cmd.run_id)

        elif isinstance(cmd, StartTranscriptLookup):
            assert self._ctx.transcript_adapter is not None, "transcript adapter missing"
            await self._ctx.transcript_adapter.start_lookup(
                run_id=cmd.run_id,
                result=cmd.result,
            )

        elif isinstance(cmd, CancelTranscriptLookup):
            assert self._ctx.transcript_adapter is not None, "transcript adapter missing"
            await self._ctx.transcript_adapter.cancel(cmd.run_id)

        # ------------------------------------------------------------
        # Timers
        # ------------------------------------------------------------

        elif isinstance(cmd, StartTimer):
            self._start_timer(
                timer_id=cmd.timer_id,
                duration_ms=cmd.duration_ms,
                timeout_event_type=cmd.timeout_event_type,
                run_id=cmd.run_id,
            )

        elif isinstance(cmd, CancelTimer):
            self._cancel_timer(cmd.timer_id)

        else:
            raise ValueError(f"Unknown command: {type(cmd).__name__}")

    async def _emit_capture_failed(self, run_id: int, error: DeviceError) -> None:
        log_event({
            "ts_ms": _now_ms(),
            "event_type": "CAPTURE_OPEN_FAILED",
            "session_id": self._ctx.session_id,
            "capture_run_id": run_id,
            "kind": error.kind.value,
            "error": str(error),
        })
        await self.handle_event(
            CaptureFailed(
                event_type=EventType.CAPTURE_FAILED,
                ts_ms=_now_ms(),
                service=Service.CAPTURE,
                run_id=run_id,
                kind=error.kind,
                detail=error.detail,
            )
        )

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def _start_timer(
        self,
        *,
        timer_id: str,
        duration_ms: int,
        timeout_event_type: EventType,
        run_id: int,
    ) -> None:
        """
        Start or replace a timer that emits a timeout event.

        Timer tasks re-enter handle_event() when they expire,
        maintaining the single event entry point invariant.

        Timers drive all temporal behavior:
        - Quality sampling cadence
        - Capture duration ceiling
        - Identify / enrichment / transcript timeouts
        - Playback sync ticks
        """
        self._cancel_timer(timer_id)

        async def _timer_task() -> None:
            try:
                await asyncio.sleep(duration_ms / 1000.0)
                event = self._construct_timeout_event(
                    timer_id=timer_id,
                    timeout_event_type=timeout_event_type,
                    run_id=run_id,
                )
                # Expired: a re-arm under the same id must not cancel this task.
                if self._timers.get(timer_id) is asyncio.current_task():
                    del self._timers[timer_id]
                await self.handle_event(event)
            except asyncio.CancelledError:
                return

        self._timers[timer_id] = asyncio.create_task(_timer_task())

    def _cancel_timer(self, timer_id: str) -> None:
        """
        Cancel an in-flight timer if it exists.

        Idempotent: safe to call even if timer doesn't exist.
        """
        task = self._timers.pop(timer_id, None)
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _construct_timeout_event(
        self,
        *,
        timer_id: str,
        timeout_event_type: EventType,
        run_id: int,
    ) -> Event:
        """
        Construct the timer event for an expired timer.

        run_id comes from the StartTimer command, never from current state,
        so an expiry that outlives its run is recognized as stale.
        """
        ts = _now_ms()

        if timeout_event_type is EventType.QUALITY_SAMPLE_TAKEN:
            source = self._ctx.audio_source
            level = source.current_level() if source is not None else 0.0
            return QualitySampleTaken(
                event_type=EventType.QUALITY_SAMPLE_TAKEN,
                ts_ms=ts,
                run_id=run_id,
                level=level,
            )

        elif timeout_event_type is EventType.CAPTURE_CEILING_REACHED:
            return CaptureCeilingReached(
                event_type=EventType.CAPTURE_CEILING_REACHED,
                ts_ms=ts,
                run_id=run_id,
            )

        elif timeout_event_type is EventType.IDENTIFY_TIMEOUT:
            return IdentifyTimeout(
                event_type=EventType.IDENTIFY_TIMEOUT,
                ts_ms=ts,
                run_id=run_id,
            )

        elif timeout_event_type is EventType.ENRICHMENT_TIMEOUT:
            return EnrichmentTimeout(
                event_type=EventType.ENRICHMENT_TIMEOUT,
                ts_ms=ts,
                run_id=run_id,
            )

        elif timeout_event_type is EventType.TRANSCRIPT_TIMEOUT:
            return TranscriptTimeout(
                event_type=EventType.TRANSCRIPT_TIMEOUT,
                ts_ms=ts,
                run_id=run_id,
            )

        elif timeout_event_type is EventType.SYNC_TICK:
            return SyncTick(
                event_type=EventType.SYNC_TICK,
                ts_ms=ts,
                run_id=run_id,
            )

        # This should never happen if reducer is correct
        raise ValueError(
            f"Unknown timeout event type: {timeout_event_type} "
            f"for timer_id: {timer_id}"
        )

