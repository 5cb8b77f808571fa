"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware
- Initialize shared resources (service clients, transcript cache)
- Register routes
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import AppConfig

from observability.logger import configure_logging
from server.routes import register_routes
from session.capture_session import CaptureSession
from session.gateway import SourceFactory, client_stream_source
from session.services import SessionServices, build_services


def create_app(
    config: AppConfig | None = None,
    *,
    services: SessionServices | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    config and services may be injected (tests); otherwise they are built
    from the environment.
    """
    config = config or AppConfig.load_from_env()
    configure_logging(enabled=config.enable_json_logs)

    app = FastAPI(title="Lyric Sync API")

    app.state.config = config
    app.state.services = services or build_services(config)
    app.state.source_factory = build_source_factory(config)

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # tighten later
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes
    register_routes(app)

    return app


def build_source_factory(config: AppConfig) -> SourceFactory:
    """Pick the audio source selected by AUDIO_SOURCE."""
    if config.audio_source == "client":
        return client_stream_source

    if config.audio_source == "microphone":
        # PortAudio loads only when the microphone source is selected
        from audio.microphone import MicrophoneSource  # pylint: disable=import-outside-toplevel

        def _microphone(_: CaptureSession) -> MicrophoneSource:
            return MicrophoneSource()

        return _microphone

    raise RuntimeError(f"Unknown AUDIO_SOURCE: {config.audio_source}")
