"""
Connection status for a capture session.

Tracked separately from the orchestrator State; IDLE can occur with any
ConnectionStatus. Owned by SessionGateway.
"""
from enum import Enum


class ConnectionStatus(Enum):
    DOWN = "DOWN"              # Not connected
    CONNECTING = "CONNECTING"  # Accepting the websocket
    UP = "UP"                  # Active WebSocket connection
