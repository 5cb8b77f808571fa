"""
Development entry point.

    python backend/server/main.py        (or: python -m server.main)

Production deployments point uvicorn at server.asgi:app instead.
"""

from __future__ import annotations

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "server.asgi:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
        log_level="info",
        reload=os.environ.get("ENV", "dev") == "dev",
    )


if __name__ == "__main__":
    main()
