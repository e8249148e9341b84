"""Tests for landmark frame parsing."""

import pytest

from coach_service.models import JointType, LandmarkFrame
from coach_service.models import landmarks as landmarks_module


def _payload(n=33, **extra):
    data = {
        "timestamp_ms": 1200,
        "landmarks": [{"x": 0.1 * (i % 10), "y": 0.5, "z": 0.0, "visibility": 0.9} for i in range(n)],
    }
    data.update(extra)
    return data


def test_from_payload_reads_landmarks_and_time():
    frame = LandmarkFrame.from_payload(_payload())

    assert len(frame) == 33
    assert frame.is_complete
    assert frame.timestamp_ms == 1200.0
    hip = frame.get(JointType.LEFT_HIP)
    assert hip.x == pytest.approx(0.3)
    assert hip.visibility == pytest.approx(0.9)


def test_missing_landmarks_give_empty_incomplete_frame():
    frame = LandmarkFrame.from_payload({"timestamp_ms": 5, "landmarks": None})

    assert len(frame) == 0
    assert not frame.is_complete
    assert frame.get(JointType.LEFT_KNEE) is None


def test_null_entries_are_kept_as_missing_points():
    payload = _payload()
    payload["landmarks"][JointType.LEFT_ANKLE.value] = None

    frame = LandmarkFrame.from_payload(payload)

    assert frame.get(JointType.LEFT_ANKLE) is None
    assert frame.get(JointType.RIGHT_ANKLE) is not None


@pytest.mark.parametrize("payload", [
    "not a frame",
    {"landmarks": "nope"},
    {"landmarks": [{"y": 0.1}]},
    {"landmarks": [], "timestamp_ms": "soon"},
])
def test_malformed_payloads_raise_value_error(payload):
    with pytest.raises(ValueError):
        LandmarkFrame.from_payload(payload)


def test_to_dict_matches_payload_shape():
    frame = LandmarkFrame.from_payload(_payload(n=34))
    data = frame.to_dict()

    assert data["timestamp_ms"] == 1200.0
    assert len(data["landmarks"]) == 34
    assert set(data["landmarks"][0]) == {"x", "y", "z", "visibility"}


@pytest.mark.parametrize("stamp", ["absent", None])
def test_missing_timestamp_uses_server_clock(monkeypatch, stamp):
    monkeypatch.setattr(landmarks_module, "server_time_ms", lambda: 4242.0)
    payload = _payload()
    if stamp == "absent":
        del payload["timestamp_ms"]
    else:
        payload["timestamp_ms"] = stamp

    frame = LandmarkFrame.from_payload(payload)

    assert frame.timestamp_ms == 4242.0


def test_server_clock_is_monotonic():
    first = landmarks_module.server_time_ms()
    assert landmarks_module.server_time_ms() >= first
