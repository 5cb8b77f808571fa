"""
Failure taxonomy for a capture session.

Rules:
- Exceptions are raised inside sources and adapters only.
- Runtime and adapters convert them into events; the reducer sees kinds,
  never exception objects.
- InvariantViolation is the only error allowed to escape the event loop.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class FailureKind(str, Enum):
    """
    Classified reason a session returned to IDLE (or degraded).

    Device:          PERMISSION_DENIED, NO_DEVICE, DEVICE_UNAVAILABLE
    Quality:         SIGNAL_TOO_WEAK
    Identification:  NO_MATCH, UNREACHABLE, TIMEOUT, MALFORMED,
                     CREDENTIALS, UNKNOWN
    """

    PERMISSION_DENIED = "permission_denied"
    NO_DEVICE = "no_device"
    DEVICE_UNAVAILABLE = "device_unavailable"

    SIGNAL_TOO_WEAK = "signal_too_weak"

    NO_MATCH = "no_match"
    UNREACHABLE = "unreachable"
    TIMEOUT = "timeout"
    MALFORMED = "malformed"
    CREDENTIALS = "credentials"
    UNKNOWN = "unknown"


DEVICE_FAILURES: frozenset[FailureKind] = frozenset({
    FailureKind.PERMISSION_DENIED,
    FailureKind.NO_DEVICE,
    FailureKind.DEVICE_UNAVAILABLE,
})


USER_MESSAGES: dict[FailureKind, str] = {
    FailureKind.PERMISSION_DENIED: (
        "Microphone access denied. Please allow microphone permissions "
        "in your browser settings."
    ),
    FailureKind.NO_DEVICE: (
        "No microphone found. Please connect a microphone and try again."
    ),
    FailureKind.DEVICE_UNAVAILABLE: (
        "Could not access microphone. Please check your device settings."
    ),
    FailureKind.SIGNAL_TOO_WEAK: (
        "Audio signal too weak. Please bring the speaker much closer to "
        "your microphone and try again."
    ),
    FailureKind.NO_MATCH: (
        "Could not identify this song. Try bringing the speaker closer to "
        "your mic, reducing background noise, or playing a different part "
        "of the song."
    ),
    FailureKind.UNREACHABLE: (
        "Can't reach music database. Please check your internet connection "
        "and try again."
    ),
    FailureKind.TIMEOUT: (
        "Request timeout. The music sample may be too short or unclear. "
        "Please try again."
    ),
    FailureKind.MALFORMED: "Invalid audio format. Please try recording again.",
    FailureKind.CREDENTIALS: (
        "The music recognition service is not configured. Please try again later."
    ),
    FailureKind.UNKNOWN: (
        "Something went wrong during identification. Please try again."
    ),
}


def user_message(kind: FailureKind) -> str:
    return USER_MESSAGES[kind]


@dataclass(frozen=True)
class CaptureFailure:
    """Failure recorded on the orchestrator state when a session aborts."""
    kind: FailureKind
    detail: str = ""

    @property
    def message(self) -> str:
        return user_message(self.kind)

    def to_json(self) -> dict[str, str]:
        return {"kind": self.kind.value, "message": self.message, "detail": self.detail}


# =============================================================================
# Exceptions
# =============================================================================

class LyricSyncError(Exception):
    """Base class for all classified failures."""


class DeviceError(LyricSyncError):
    """Audio input could not be acquired (permission denied, no device)."""

    def __init__(self, kind: FailureKind, detail: str = "") -> None:
        if kind not in DEVICE_FAILURES:
            raise ValueError(f"not a device failure: {kind}")
        super().__init__(detail or kind.value)
        self.kind = kind
        self.detail = detail


class IdentificationError(LyricSyncError):
    """
    Identification collaborator failed.

    status_code is the collaborator's reported code when there was one.
    """

    def __init__(
        self,
        kind: FailureKind,
        detail: str = "",
        *,
        status_code: int | None = None,
    ) -> None:
        super().__init__(detail or kind.value)
        self.kind = kind
        self.detail = detail
        self.status_code = status_code


class EnrichmentError(LyricSyncError):
    """Metadata enrichment failed. Never aborts a session."""


class TranscriptError(LyricSyncError):
    """Transcript lookup failed. Resolves to "no lyrics"."""


class InvariantViolation(LyricSyncError):
    """State machine reached a configuration that correct discipline forbids."""
