"""
Event envelope utilities for FitConnect push events.

Every frame sent over the push channel has the same shape:
- event: str, the event name clients bind handlers to
- data: dict payload
- timestamp: ISO 8601 UTC with 'Z'
- sequence_number: int (monotonic per-process)

Sequence numbers let a client log gaps; they carry no delivery guarantee.
"""

import itertools
import json
import threading
from datetime import UTC, datetime
from typing import Any

_sequence = itertools.count(1)
_sequence_lock = threading.Lock()


def _next_sequence() -> int:
    with _sequence_lock:
        return next(_sequence)


def utc_now_z() -> str:
    """Return current UTC time in ISO 8601 format with 'Z' suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_event(event: str, data: dict[str, Any] | None = None, *, sequence_number: int | None = None) -> dict[str, Any]:
    """
    Create a normalized push envelope.

    Args:
        event: Event name
        data: Event data payload
        sequence_number: Optional explicit sequence number
    """
    return {
        "event": event,
        "data": data or {},
        "timestamp": utc_now_z(),
        "sequence_number": sequence_number if sequence_number is not None else _next_sequence(),
    }


def encode_event(envelope: dict[str, Any]) -> str:
    """Serialize an envelope, rendering datetimes and other objects as strings."""
    return json.dumps(envelope, default=str)
