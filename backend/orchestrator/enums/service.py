"""
Service enumeration for run-id–versioned activities.

Rules:
- This enum identifies versioned activities only.
- It must NOT encode behavior or lifecycle rules.
- Reducer logic decides how services are started, canceled, and reset.
"""

from __future__ import annotations

from enum import Enum


class Service(str, Enum):
    """
    Each service:
    - Has at most one active run at a time
    - Is identified by a monotonically increasing run_id
    """

    CAPTURE = "CAPTURE"
    IDENTIFY = "IDENTIFY"
    ENRICH = "ENRICH"
    LYRICS = "LYRICS"
