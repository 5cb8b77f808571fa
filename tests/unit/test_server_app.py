# pylint: disable=missing-module-docstring,missing-function-docstring
import pytest
from fastapi.testclient import TestClient

from server.app import build_source_factory, create_app
from session.capture_session import CaptureSession
from session.gateway import client_stream_source

from gateway_helpers import make_config, make_services


def make_client() -> TestClient:
    return TestClient(create_app(make_config(), services=make_services()))


def test_health() -> None:
    with make_client() as client:
        r = client.get("/health")

    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_websocket_session_init_then_start() -> None:
    with make_client() as client:
        with client.websocket_connect("/ws") as ws:
            init = ws.receive_json()
            assert init["type"] == "SESSION_INIT"
            assert init["session_id"].startswith("sess_")

            ws.send_json({"type": "START"})
            received = [ws.receive_json(), ws.receive_json()]
            assert {m["type"] for m in received} == {"OPEN_MIC", "STATE"}

            ws.send_json({"type": "CANCEL"})


def test_client_source_is_default() -> None:
    assert build_source_factory(make_config()) is client_stream_source


def test_unknown_audio_source_is_rejected() -> None:
    with pytest.raises(RuntimeError):
        build_source_factory(make_config(audio_source="carrier-pigeon"))


def test_client_source_factory_builds_client_stream() -> None:
    session = CaptureSession(session_id="sess_test")
    source = build_source_factory(make_config())(session)

    assert not source.is_open
