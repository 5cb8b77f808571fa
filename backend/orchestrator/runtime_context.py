"""
Runtime execution context.

Provides Runtime with live access to session-owned imperative resources
needed for command execution (audio source, adapters, status).

This module contains:
- Narrow Protocols (capabilities, not implementations)
- Zero orchestration logic
- Zero state mutation
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from session.connection_status import ConnectionStatus

if TYPE_CHECKING:
    from adapters.identify.base import IdentificationResult
    from audio.sample import AudioSample
    from session.capture_session import CaptureSession


# ---------------------------------------------------------------------
# Capture Protocol
# ---------------------------------------------------------------------

@runtime_checkable
class AudioSourceProtocol(Protocol):
    """
    Input stream for one recording at a time.

    open() raises DeviceError when the device cannot be acquired.
    close() is idempotent.
    """

    async def open(self) -> None: ...
    def close(self) -> None: ...
    def finalize(self) -> AudioSample: ...
    def current_level(self) -> float: ...


# ---------------------------------------------------------------------
# Adapter Protocols
# ---------------------------------------------------------------------

@runtime_checkable
class IdentifyAdapterProtocol(Protocol):
    async def start_identify(self, *, run_id: int, sample: AudioSample) -> None: ...
    async def cancel(self, run_id: int) -> None: ...
    def force_reset(self) -> None: ...


@runtime_checkable
class EnrichAdapterProtocol(Protocol):
    async def start_enrichment(
        self,
        *,
        run_id: int,
        result: IdentificationResult,
    ) -> None: ...
    async def cancel(self, run_id: int) -> None: ...
    def force_reset(self) -> None: ...


@runtime_checkable
class TranscriptLookupProtocol(Protocol):
    async def start_lookup(
        self,
        *,
        run_id: int,
        result: IdentificationResult,
    ) -> None: ...
    async def cancel(self, run_id: int) -> None: ...
    def force_reset(self) -> None: ...


# ---------------------------------------------------------------------
# Runtime Execution Context
# ---------------------------------------------------------------------

class RuntimeExecutionContext:
    """
    Imperative execution context for Runtime.

    This object provides *live views* into session-owned resources
    so Runtime does not need to synchronize or cache anything.

    Runtime is allowed to:
    - Call adapters and the audio source
    - Enqueue client messages
    - Observe connection state

    Runtime is NOT allowed to:
    - Mutate session state directly
    - Perform orchestration decisions
    """

    def __init__(self, session: CaptureSession) -> None:
        self.session = session

    # ----------------------------
    # Session metadata
    # ----------------------------

    @property
    def session_id(self) -> str:
        return self.session.session_id

    @property
    def connection_status(self) -> ConnectionStatus:
        return self.session.connection_status

    # ----------------------------
    # Capture / adapters
    # ----------------------------

    @property
    def audio_source(self) -> AudioSourceProtocol | None:
        return self.session.audio_source

    @property
    def identify_adapter(self) -> IdentifyAdapterProtocol | None:
        return self.session.identify_adapter

    @property
    def enrich_adapter(self) -> EnrichAdapterProtocol | None:
        return self.session.enrich_adapter

    @property
    def transcript_adapter(self) -> TranscriptLookupProtocol | None:
        return self.session.transcript_adapter
