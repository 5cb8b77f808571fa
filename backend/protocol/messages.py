"""
JSON message types exchanged with the client over /ws.

Every message is an object with a "type" discriminant.
"""

from __future__ import annotations

from typing import Final

# -------------------------
# Client → Server
# -------------------------
C2S_START: Final[str] = "START"
C2S_STOP: Final[str] = "STOP"
C2S_CANCEL: Final[str] = "CANCEL"
C2S_MIC_ERROR: Final[str] = "MIC_ERROR"

# -------------------------
# Server → Client
# -------------------------
S2C_SESSION_INIT: Final[str] = "SESSION_INIT"
S2C_STATE: Final[str] = "STATE"
S2C_OPEN_MIC: Final[str] = "OPEN_MIC"
S2C_CLOSE_MIC: Final[str] = "CLOSE_MIC"
S2C_SIGNAL_LEVEL: Final[str] = "SIGNAL_LEVEL"
S2C_IDENTIFIED: Final[str] = "IDENTIFIED"
S2C_NOW_PLAYING: Final[str] = "NOW_PLAYING"
S2C_ACTIVE_LINE: Final[str] = "ACTIVE_LINE"
S2C_ERROR: Final[str] = "ERROR"
