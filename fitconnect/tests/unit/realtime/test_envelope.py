"""Tests for push envelope helpers."""

import json
from datetime import UTC, datetime

from fitconnect.realtime.envelope import build_event, encode_event, utc_now_z


def test_build_event_shape() -> None:
    envelope = build_event("new_message", {"messageId": "m1"})
    assert set(envelope) == {"event", "data", "timestamp", "sequence_number"}
    assert envelope["event"] == "new_message"
    assert envelope["data"] == {"messageId": "m1"}
    assert envelope["timestamp"].endswith("Z")


def test_sequence_is_increasing() -> None:
    first = build_event("a")["sequence_number"]
    second = build_event("b")["sequence_number"]
    assert second > first
    assert build_event("c", sequence_number=7)["sequence_number"] == 7


def test_data_defaults_to_empty() -> None:
    assert build_event("pong")["data"] == {}


def test_encode_renders_datetimes() -> None:
    moment = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
    decoded = json.loads(encode_event(build_event("x", {"at": moment})))
    assert decoded["data"]["at"] == str(moment)


def test_utc_now_z() -> None:
    value = utc_now_z()
    assert value.endswith("Z")
    assert "+00:00" not in value
