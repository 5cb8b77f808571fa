"""
Console runner: identify what the local microphone hears and follow along.

    python tools/listen.py [--device N] [--seconds S]

Records until the capture ceiling (or --seconds), then prints the
identification and each lyric line as it becomes active. Ctrl-C exits.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "backend"))

# pylint: disable=wrong-import-position
from dotenv import load_dotenv

from audio.microphone import MicrophoneSource
from config import AppConfig
from observability.logger import configure_logging
from protocol.messages import (
    S2C_ACTIVE_LINE,
    S2C_IDENTIFIED,
    S2C_NOW_PLAYING,
    S2C_SIGNAL_LEVEL,
    S2C_STATE,
)
from session.gateway import SessionGateway
from session.services import build_services


def _render(msg: dict, lines: list[str]) -> None:
    msg_type = msg.get("type")
    if msg_type == S2C_SIGNAL_LEVEL:
        bar = "#" * int(msg["level"] // 5)
        hint = "  (move closer)" if msg["advisory"] else ""
        print(f"\rlevel {msg['level']:5.1f} {bar:<20}{hint}", end="", flush=True)
    elif msg_type == S2C_STATE:
        print(f"\n[{msg['state']}]")
        if msg.get("error"):
            print(msg["error"]["message"])
    elif msg_type == S2C_IDENTIFIED:
        print(f"{msg['title']} / {msg['artist']}")
    elif msg_type == S2C_NOW_PLAYING:
        lines[:] = [line["text"] for line in msg["lines"]]
        if not msg["available"]:
            print("(no synced lyrics)")
    elif msg_type == S2C_ACTIVE_LINE:
        index = msg["index"]
        if 0 <= index < len(lines):
            print(f"  {lines[index]}")


async def _run(device: int | None, seconds: float | None) -> None:
    config = AppConfig.load_from_env()
    configure_logging(enabled=False)

    gateway = SessionGateway(
        services=build_services(config),
        source_factory=lambda _: MicrophoneSource(device=device),
    )
    session = await gateway.on_ws_connect()
    lines: list[str] = []

    async def _print_messages() -> None:
        while True:
            for msg in await session.wait_control():
                _render(msg, lines)

    printer = asyncio.create_task(_print_messages())
    try:
        await gateway.on_json_message(json.dumps({"type": "START"}))
        if seconds is not None:
            await asyncio.sleep(seconds)
            await gateway.on_json_message(json.dumps({"type": "STOP"}))
        await asyncio.Event().wait()
    finally:
        printer.cancel()
        await gateway.on_ws_disconnect(reason="console_exit")


def main() -> None:
    load_dotenv()
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--device", type=int, default=None)
    parser.add_argument("--seconds", type=float, default=None)
    args = parser.parse_args()

    try:
        asyncio.run(_run(args.device, args.seconds))
    except KeyboardInterrupt:
        print()


if __name__ == "__main__":
    main()
