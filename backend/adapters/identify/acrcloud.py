"""
ACRCloud identification.

ACRCloudClient is a blocking requests-based client (usable from tools and
tests without an event loop). ACRCloudIdentifyAdapter runs it per run_id on
a worker thread and reports IDENTIFY_* events.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import hmac
import time
from typing import Any

import requests

from adapters.base import EmitEvent, RunTaskAdapter
from adapters.identify.base import (
    IdentificationResult,
    IdentifyAdapter,
    parse_identify_response,
)
from audio.sample import AudioSample
from constants import HTTP_TIMEOUT_S
from observability.logger import log_event
from observability.metrics import timed
from orchestrator.enums.service import Service
from orchestrator.errors import FailureKind, IdentificationError
from orchestrator.events import EventType, IdentifyFailed, IdentifySucceeded

IDENTIFY_PATH = "/v1/identify"
DATA_TYPE = "audio"
SIGNATURE_VERSION = "1"


class ACRCloudClient:
    def __init__(
        self,
        *,
        host: str | None,
        access_key: str | None,
        secret: str | None,
        session: requests.Session | None = None,
        timeout_s: float = HTTP_TIMEOUT_S,
    ) -> None:
        self._host = host
        self._access_key = access_key
        self._secret = secret
        self._session = session or requests.Session()
        self._timeout_s = timeout_s

    @property
    def configured(self) -> bool:
        return bool(self._host and self._access_key and self._secret)

    def sign(self, timestamp: str) -> str:
        """Base64 HMAC-SHA1 over the canonical request description."""
        string_to_sign = "\n".join([
            "POST",
            IDENTIFY_PATH,
            self._access_key or "",
            DATA_TYPE,
            SIGNATURE_VERSION,
            timestamp,
        ])
        digest = hmac.new(
            (self._secret or "").encode("utf-8"),
            string_to_sign.encode("utf-8"),
            hashlib.sha1,
        ).digest()
        return base64.b64encode(digest).decode("ascii")

    def identify(
        self,
        sample: AudioSample,
        *,
        timestamp: str | None = None,
    ) -> IdentificationResult:
        """
        Raises:
            IdentificationError: classified failure (no request is sent when
            credentials are missing).
        """
        if not self.configured:
            raise IdentificationError(
                FailureKind.CREDENTIALS, "identification credentials not configured"
            )

        timestamp = timestamp or str(int(time.time()))
        data = {
            "access_key": self._access_key,
            "data_type": DATA_TYPE,
            "signature_version": SIGNATURE_VERSION,
            "signature": self.sign(timestamp),
            "timestamp": timestamp,
            "sample_bytes": str(len(sample.payload)),
        }
        files = {
            "sample": (f"audio.{sample.file_extension}", sample.payload, sample.mime),
        }

        try:
            r = self._session.post(
                f"https://{self._host}{IDENTIFY_PATH}",
                data=data,
                files=files,
                timeout=self._timeout_s,
            )
        except requests.Timeout as e:
            raise IdentificationError(FailureKind.TIMEOUT, str(e)) from e
        except requests.ConnectionError as e:
            raise IdentificationError(FailureKind.UNREACHABLE, str(e)) from e
        except requests.RequestException as e:
            raise IdentificationError(FailureKind.UNKNOWN, str(e)) from e

        if r.status_code == 413:
            raise IdentificationError(
                FailureKind.MALFORMED, "sample too large", status_code=r.status_code
            )
        if r.status_code >= 500:
            raise IdentificationError(
                FailureKind.UNREACHABLE, f"HTTP {r.status_code}", status_code=r.status_code
            )
        if r.status_code >= 400:
            raise IdentificationError(
                FailureKind.UNKNOWN, f"HTTP {r.status_code}", status_code=r.status_code
            )

        try:
            payload: Any = r.json()
        except ValueError as e:
            raise IdentificationError(FailureKind.UNKNOWN, "response is not JSON") from e

        if not isinstance(payload, dict):
            raise IdentificationError(FailureKind.UNKNOWN, "response is not an object")

        try:
            return parse_identify_response(payload)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise IdentificationError(FailureKind.UNKNOWN, f"unexpected response shape: {e}") from e


class ACRCloudIdentifyAdapter(RunTaskAdapter, IdentifyAdapter):
    def __init__(
        self,
        *,
        emit_event: EmitEvent,
        client: ACRCloudClient,
        session_id: str,
    ) -> None:
        super().__init__(emit_event=emit_event, session_id=session_id)
        self._client = client

    async def start_identify(self, *, run_id: int, sample: AudioSample) -> None:
        self._spawn(run_id, self._run(run_id, sample))

    async def _run(self, run_id: int, sample: AudioSample) -> None:
        """
        Guarantees:
        - Emits events only for its own run_id
        - Emits at most one terminal event
        """
        try:
            with timed(
                "identify_latency",
                session_id=self._session_id,
                details={"run_id": run_id, "bytes": len(sample.payload)},
            ):
                result = await asyncio.to_thread(self._client.identify, sample)
        except IdentificationError as e:
            log_event({
                "ts_ms": self._now_ms(),
                "event_type": "IDENTIFY_CALL_FAILED",
                "session_id": self._session_id,
                "run_id": run_id,
                "kind": e.kind.value,
                "status_code": e.status_code,
                "error": str(e),
            })
            await self._emit_event(
                IdentifyFailed(
                    event_type=EventType.IDENTIFY_FAILED,
                    ts_ms=self._now_ms(),
                    service=Service.IDENTIFY,
                    run_id=run_id,
                    kind=e.kind,
                    detail=e.detail,
                )
            )
            return
        except Exception as exc:  # pylint: disable=broad-exception-caught
            reason = f"{type(exc).__name__}: {exc}"
            log_event({
                "ts_ms": self._now_ms(),
                "event_type": "IDENTIFY_CALL_FAILED",
                "session_id": self._session_id,
                "run_id": run_id,
                "kind": FailureKind.UNKNOWN.value,
                "error": reason,
            })
            await self._emit_event(
                IdentifyFailed(
                    event_type=EventType.IDENTIFY_FAILED,
                    ts_ms=self._now_ms(),
                    service=Service.IDENTIFY,
                    run_id=run_id,
                    kind=FailureKind.UNKNOWN,
                    detail=reason,
                )
            )
            return

        await self._emit_event(
            IdentifySucceeded(
                event_type=EventType.IDENTIFY_SUCCEEDED,
                ts_ms=self._now_ms(),
                service=Service.IDENTIFY,
                run_id=run_id,
                result=result,
            )
        )
