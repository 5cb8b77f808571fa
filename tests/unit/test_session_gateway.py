# pylint: disable=missing-module-docstring,missing-function-docstring
import asyncio
import json

from audio.sources import ClientStreamSource
from constants import AUDIO_BYTES_PER_FRAME_PCM
from orchestrator.enums.state import State
from orchestrator.errors import FailureKind
from protocol.binary import encode_c2s_frame
from session.connection_status import ConnectionStatus
from session.gateway import SessionGateway

from gateway_helpers import make_services

LOUD_PCM = (b"\xff\x3f\xff\x3f\x01\xc0\x01\xc0") * (AUDIO_BYTES_PER_FRAME_PCM // 8)


def frame(seq: int) -> bytes:
    return encode_c2s_frame(sequence_num=seq, pcm_bytes=LOUD_PCM)


def types_of(messages: list[dict]) -> list[str]:
    return [m["type"] for m in messages]


def test_connect_announces_session_and_audio_format() -> None:
    async def scenario() -> None:
        gateway = SessionGateway(services=make_services())
        session = await gateway.on_ws_connect()

        (init,) = session.drain_control()
        assert init["type"] == "SESSION_INIT"
        assert init["session_id"] == session.session_id
        assert init["audio_format"]["sample_rate"] == 16_000
        assert session.connection_status is ConnectionStatus.UP
        assert isinstance(session.audio_source, ClientStreamSource)

        await gateway.on_ws_disconnect(reason="test")
        assert session.connection_status is ConnectionStatus.DOWN

    asyncio.run(scenario())


def test_start_opens_client_mic_and_frames_fill_buffer() -> None:
    async def scenario() -> None:
        gateway = SessionGateway(services=make_services())
        session = await gateway.on_ws_connect()
        session.drain_control()

        await gateway.on_json_message(json.dumps({"type": "START"}))

        sent = session.drain_control()
        assert "OPEN_MIC" in types_of(sent)
        assert {"type": "STATE", "state": "RECORDING", "error": None} in sent

        for seq in (1, 2, 3):
            await gateway.on_binary_message(frame(seq))

        source = session.audio_source
        assert len(source.buffer) == 3
        assert source.current_level() > 0
        assert session.last_seq == 3

        await gateway.on_ws_disconnect()

    asyncio.run(scenario())


def test_frames_outside_recording_are_dropped() -> None:
    async def scenario() -> None:
        gateway = SessionGateway(services=make_services())
        session = await gateway.on_ws_connect()

        await gateway.on_binary_message(frame(1))

        assert len(session.audio_source.buffer) == 0
        assert session.last_seq == 1
        await gateway.on_ws_disconnect()

    asyncio.run(scenario())


def test_sequence_gap_still_ingests_frame() -> None:
    async def scenario() -> None:
        gateway = SessionGateway(services=make_services())
        session = await gateway.on_ws_connect()
        await gateway.on_json_message(json.dumps({"type": "START"}))

        await gateway.on_binary_message(frame(1))
        await gateway.on_binary_message(frame(5))

        assert len(session.audio_source.buffer) == 2
        assert session.last_seq == 5
        await gateway.on_ws_disconnect()

    asyncio.run(scenario())


def test_malformed_binary_is_ignored() -> None:
    async def scenario() -> None:
        gateway = SessionGateway(services=make_services())
        session = await gateway.on_ws_connect()

        await gateway.on_binary_message(b"\x01\x02")

        assert session.last_seq is None
        await gateway.on_ws_disconnect()

    asyncio.run(scenario())


def test_mic_error_returns_to_idle_with_device_failure() -> None:
    async def scenario() -> None:
        gateway = SessionGateway(services=make_services())
        session = await gateway.on_ws_connect()
        await gateway.on_json_message(json.dumps({"type": "START"}))
        session.drain_control()

        await gateway.on_json_message(json.dumps({
            "type": "MIC_ERROR",
            "name": "NotAllowedError",
            "message": "Permission denied",
        }))

        runtime = gateway.runtime
        assert runtime is not None
        assert runtime.state.state is State.IDLE
        assert runtime.state.last_error is not None
        assert runtime.state.last_error.kind is FailureKind.PERMISSION_DENIED

        sent = session.drain_control()
        assert "CLOSE_MIC" in types_of(sent)
        (state_msg,) = [m for m in sent if m["type"] == "STATE"]
        assert state_msg["state"] == "IDLE"
        assert state_msg["error"]["kind"] == "permission_denied"
        assert runtime.active_timers == ()

        await gateway.on_ws_disconnect()

    asyncio.run(scenario())


def test_bad_and_unknown_messages_change_nothing() -> None:
    async def scenario() -> None:
        gateway = SessionGateway(services=make_services())
        session = await gateway.on_ws_connect()
        session.drain_control()

        await gateway.on_json_message("{not json")
        await gateway.on_json_message(json.dumps(["START"]))
        await gateway.on_json_message(json.dumps({"type": "DANCE"}))

        assert gateway.runtime is not None
        assert gateway.runtime.state.state is State.IDLE
        assert session.drain_control() == []
        await gateway.on_ws_disconnect()

    asyncio.run(scenario())


def test_cancel_while_recording_closes_mic() -> None:
    async def scenario() -> None:
        gateway = SessionGateway(services=make_services())
        session = await gateway.on_ws_connect()
        await gateway.on_json_message(json.dumps({"type": "START"}))
        session.drain_control()

        await gateway.on_json_message(json.dumps({"type": "CANCEL"}))

        sent = session.drain_control()
        assert "CLOSE_MIC" in types_of(sent)
        assert {"type": "STATE", "state": "IDLE", "error": None} in sent
        assert not session.audio_source.is_open
        await gateway.on_ws_disconnect()

    asyncio.run(scenario())


def test_disconnect_without_connect_is_logged_only() -> None:
    asyncio.run(SessionGateway(services=make_services()).on_ws_disconnect("early"))
