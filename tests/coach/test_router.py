"""API tests for the coach router."""

import pytest
from fastapi.testclient import TestClient

from coach_service.models import MotionSessionHandler
from coach_service.models import landmarks as landmarks_module
from coach_service.models import session_handler as session_handler_module
from core.config import Settings
from main import app


@pytest.fixture
def handler(monkeypatch):
    handler = MotionSessionHandler(config=Settings(SPEECH_ENABLED=False))
    monkeypatch.setattr(session_handler_module, "_handler_instance", handler)
    return handler


@pytest.fixture
def client(handler):
    return TestClient(app)


def start(client, exercise="Knäböj"):
    response = client.post(
        "/api/coach/session/start",
        json={"user_id": "user-1", "exercise_name": exercise},
    )
    assert response.status_code == 200
    return response.json()["session_id"]


def push(client, session_id, frame_factory, **kw):
    return client.post(f"/api/coach/session/{session_id}/frame", json=frame_factory(**kw).to_dict())


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_start_session(client, handler):
    response = client.post(
        "/api/coach/session/start",
        json={"user_id": "user-1", "exercise_name": "Hantelrodd"},
    )

    data = response.json()
    assert data["status"] == "created"
    assert data["mode"] == "press"
    assert data["websocket_url"].endswith(data["session_id"])
    assert data["session_id"] in handler.active_sessions


def test_push_frames_and_count(client, frame_factory):
    sid = start(client)
    for i in range(50):
        push(client, sid, t=i * 33, frame_factory=frame_factory)

    data = push(client, sid, t=50 * 33, knee_angle=150, frame_factory=frame_factory).json()

    assert data["calibrated"]
    assert data["motion_state"] == "ECCENTRIC"
    assert data["feedback"] == "Bromsa..."
    assert data["target_zone"] == [70.0, 100.0]


def test_frame_without_pose_is_skipped(client):
    sid = start(client)

    response = client.post(f"/api/coach/session/{sid}/frame", json={"timestamp_ms": 10})

    assert response.status_code == 200
    assert response.json()["skipped"]


def test_invalid_frame_is_rejected(client):
    sid = start(client)

    response = client.post(
        f"/api/coach/session/{sid}/frame",
        json={"landmarks": [{"x": 0.1, "y": 0.2, "visibility": 3.0}]},
    )

    assert response.status_code == 422


def test_status_and_mute(client):
    sid = start(client)

    assert client.post(f"/api/coach/session/{sid}/mute", json={"muted": True}).json()["muted"]
    status = client.get(f"/api/coach/session/{sid}").json()

    assert status["muted"] is True
    assert status["mode"] == "legs"
    assert status["state"] == "active"


def test_complete_session(client, handler):
    sid = start(client)

    data = client.post(f"/api/coach/session/{sid}/complete").json()

    assert data["status"] == "completed"
    assert data["result"]["summary"]["total_reps"] == 0
    assert sid not in handler.active_sessions


@pytest.mark.parametrize("method, path", [
    ("get", "/api/coach/session/missing"),
    ("post", "/api/coach/session/missing/complete"),
])
def test_unknown_session_404(client, method, path):
    response = getattr(client, method)(path)
    assert response.status_code == 404


def test_unknown_session_frame_404(client, frame_factory):
    assert push(client, "missing", frame_factory=frame_factory).status_code == 404


def test_resolve_mode(client):
    data = client.get("/api/coach/modes/resolve", params={"name": "Bicepscurl"}).json()
    assert data["mode"] == "pull"


def test_websocket_flow(client, handler, frame_factory):
    sid = start(client)

    with client.websocket_connect(f"/api/coach/ws/session/{sid}") as ws:
        assert ws.receive_json()["type"] == "SESSION_STARTED"

        ws.send_text("not json")
        assert ws.receive_json()["type"] == "ERROR"

        for i in range(50):
            ws.send_json(frame_factory(t=i * 33).to_dict())
            result = ws.receive_json()
        assert result["type"] == "FRAME_RESULT"
        assert result["calibrated"]

        rep = None
        for i, angle in enumerate((150, 90, 120, 170)):
            ws.send_json(frame_factory(t=(50 + i) * 33, knee_angle=angle).to_dict())
            result = ws.receive_json()
            if result["rep_event"] is not None:
                rep = ws.receive_json()

        assert rep["type"] == "REP_COMPLETED"
        assert rep["rep_number"] == 1

    # Disconnect completes the session
    assert sid not in handler.active_sessions


def test_websocket_unknown_session(client):
    with client.websocket_connect("/api/coach/ws/session/missing") as ws:
        message = ws.receive_json()
    assert message["type"] == "ERROR"


@pytest.fixture
def server_clock(monkeypatch):
    """Server clock that advances one 33 ms frame per reading."""
    ticks = {"now": 0.0}

    def tick():
        ticks["now"] += 33.0
        return ticks["now"]

    monkeypatch.setattr(landmarks_module, "server_time_ms", tick)
    return ticks


def push_untimed(client, session_id, frame_factory, **kw):
    payload = frame_factory(**kw).to_dict()
    del payload["timestamp_ms"]
    return client.post(f"/api/coach/session/{session_id}/frame", json=payload)


def test_untimed_frames_use_server_clock(client, frame_factory, server_clock):
    sid = start(client)
    for _ in range(50):
        push_untimed(client, sid, frame_factory)

    push_untimed(client, sid, frame_factory, knee_angle=150)
    for _ in range(50):
        push_untimed(client, sid, frame_factory, knee_angle=130)
    data = push_untimed(client, sid, frame_factory, knee_angle=90).json()

    assert data["motion_state"] == "TURN"
    assert data["issues"] == []
    assert data["form_score"] == 100.0


def test_untimed_fast_descent_still_penalized(client, frame_factory, server_clock):
    sid = start(client)
    for _ in range(50):
        push_untimed(client, sid, frame_factory)

    push_untimed(client, sid, frame_factory, knee_angle=150)
    data = push_untimed(client, sid, frame_factory, knee_angle=90).json()

    assert [i["label"] for i in data["issues"]] == ["För snabbt!"]
    assert data["form_score"] == 98.0


def test_websocket_accepts_binary_frames(client, handler, frame_factory):
    sid = start(client)

    with client.websocket_connect(f"/api/coach/ws/session/{sid}") as ws:
        ws.receive_json()
        ws.send_bytes(b'{"landmarks": []}')
        result = ws.receive_json()
        assert result["type"] == "FRAME_RESULT"
        assert result["skipped"]

        ws.send_bytes(b"\xff\xfe")
        assert ws.receive_json()["type"] == "ERROR"

    assert sid not in handler.active_sessions


def test_websocket_validates_like_rest(client, handler):
    sid = start(client)

    with client.websocket_connect(f"/api/coach/ws/session/{sid}") as ws:
        ws.receive_json()
        ws.send_json({"landmarks": [{"x": 0.1, "y": 0.2, "visibility": 3.0}]})
        message = ws.receive_json()

    assert message["type"] == "ERROR"
    assert "visibility" in message["message"]
    assert handler.get_session(sid) is None
