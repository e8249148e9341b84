"""
FORMCOACH Coach Service Router

Endpoints for live form-coaching sessions. Clients run pose estimation
themselves and push landmark frames; the service returns rep counts, form
faults, tempo and feedback for every frame.
"""

import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from .models import (
    LandmarkFrame,
    MotionSessionHandler,
    get_session_handler,
    resolve_exercise_mode,
)

logger = logging.getLogger("formcoach.coach")

router = APIRouter()


# ============= Pydantic Models =============

class StartSessionRequest(BaseModel):
    user_id: str
    exercise_name: str
    muted: bool = False


class LandmarkIn(BaseModel):
    x: float
    y: float
    z: float = 0.0
    visibility: float = Field(0.0, ge=0.0, le=1.0)


class FrameRequest(BaseModel):
    timestamp_ms: Optional[float] = None
    landmarks: Optional[List[Optional[LandmarkIn]]] = None


class MuteRequest(BaseModel):
    muted: bool


# ============= Helpers =============

def _require_session(handler: MotionSessionHandler, session_id: str):
    session = handler.get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


# ============= REST Endpoints =============

@router.post("/session/start")
async def start_coaching_session(
    request: StartSessionRequest,
    handler: MotionSessionHandler = Depends(get_session_handler),
):
    """
    Start a new coaching session.

    Returns a session ID for use with the frame endpoint or WebSocket stream.
    """
    session = handler.create_session(
        user_id=request.user_id,
        exercise_name=request.exercise_name,
        muted=request.muted,
    )
    logger.info(f"▶️ Session {session.session_id} started for {request.user_id}: {request.exercise_name}")

    return {
        "status": "created",
        "session_id": session.session_id,
        "user_id": request.user_id,
        "exercise_name": request.exercise_name,
        "mode": session.engine.mode.value,
        "websocket_url": f"/api/coach/ws/session/{session.session_id}",
    }


@router.post("/session/{session_id}/frame")
async def push_frame(
    session_id: str,
    request: FrameRequest,
    handler: MotionSessionHandler = Depends(get_session_handler),
):
    """Process one landmark frame and return the per-frame events."""
    _require_session(handler, session_id)

    try:
        frame = LandmarkFrame.from_payload(request.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    events = handler.process_frame(session_id, frame)
    return events.to_dict()


@router.get("/session/{session_id}")
async def get_session_status(
    session_id: str,
    handler: MotionSessionHandler = Depends(get_session_handler),
):
    """Get current session status."""
    session = _require_session(handler, session_id)
    return session.to_dict()


@router.post("/session/{session_id}/mute")
async def mute_session(
    session_id: str,
    request: MuteRequest,
    handler: MotionSessionHandler = Depends(get_session_handler),
):
    """Mute or unmute spoken feedback."""
    _require_session(handler, session_id)
    handler.set_muted(session_id, request.muted)
    return {"status": "ok", "session_id": session_id, "muted": request.muted}


@router.post("/session/{session_id}/complete")
async def complete_session(
    session_id: str,
    handler: MotionSessionHandler = Depends(get_session_handler),
):
    """Complete a coaching session and get the summary."""
    result = handler.complete_session(session_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Session not found")

    return {
        "status": "completed",
        "session_id": session_id,
        "result": result,
    }


@router.get("/modes/resolve")
async def resolve_mode(name: str):
    """Resolve an exercise name to its movement archetype."""
    return {"name": name, "mode": resolve_exercise_mode(name).value}


# ============= WebSocket Endpoints =============

async def _receive_frame_text(websocket: WebSocket) -> str:
    """Next client message as text; binary frames carry UTF-8 JSON."""
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", 1000))
    if message.get("text") is not None:
        return message["text"]
    return (message.get("bytes") or b"").decode("utf-8")


def _parse_frame(raw: str) -> LandmarkFrame:
    """Validate a frame the same way the REST endpoint does."""
    request = FrameRequest.model_validate(json.loads(raw))
    return LandmarkFrame.from_payload(request.model_dump())


@router.websocket("/ws/session/{session_id}")
async def coaching_session_stream(websocket: WebSocket, session_id: str):
    """
    Real-time coaching over a WebSocket.

    Receives JSON landmark frames (text or binary), replies with:
    - FRAME_RESULT for every frame
    - REP_COMPLETED when a repetition finishes
    - ERROR for malformed frames

    The session is completed when the stream ends, however it ends.
    """
    await websocket.accept()
    handler = get_session_handler()

    session = handler.get_session(session_id)
    if not session:
        await websocket.send_json({
            "type": "ERROR",
            "message": f"Session {session_id} not found"
        })
        await websocket.close()
        return

    await websocket.send_json({
        "type": "SESSION_STARTED",
        "session_id": session_id,
        "exercise_name": session.engine.exercise_name,
        "mode": session.engine.mode.value,
    })

    try:
        while True:
            try:
                frame = _parse_frame(await _receive_frame_text(websocket))
            except ValueError as e:
                # JSONDecodeError, UnicodeDecodeError and pydantic ValidationError
                await websocket.send_json({"type": "ERROR", "message": str(e)})
                continue

            events = handler.process_frame(session_id, frame)
            if events is None:
                await websocket.send_json({"type": "ERROR", "message": "Session closed"})
                break

            await websocket.send_json({"type": "FRAME_RESULT", **events.to_dict()})

            if events.rep_event is not None:
                await websocket.send_json({
                    "type": "REP_COMPLETED",
                    **events.rep_event.to_dict(),
                })

    except WebSocketDisconnect:
        logger.info(f"Session {session_id} disconnected")
    except Exception as e:
        logger.error(f"❌ Session {session_id} stream failed: {e}")
        raise
    finally:
        handler.complete_session(session_id)
