"""
Shared fixtures for the coach service tests.

Frames are synthesized so that the left knee (hip-knee-ankle) and left elbow
(shoulder-elbow-wrist) angles equal the requested values exactly.
"""

import math
from typing import List, Optional

import pytest

from core.config import Settings
from coach_service.models import JointType, Landmark, LandmarkFrame, MotionSession

FRAME_MS = 33.0

LEFT_X = 0.4
HIP_Y = 0.5
THIGH = 0.2
SHOULDER_Y = 0.3
UPPER_ARM = 0.15


def _limb_end(vertex: Landmark, length: float, angle_deg: float) -> Landmark:
    # Proximal segment points straight up from the vertex; rotate the distal
    # segment away from it by angle_deg
    rad = math.radians(angle_deg)
    return Landmark(
        x=vertex.x + length * math.sin(rad),
        y=vertex.y - length * math.cos(rad),
        visibility=vertex.visibility,
    )


def build_frame(
    knee_angle: float = 180.0,
    elbow_angle: float = 90.0,
    t: float = 0.0,
    visibility: float = 0.9,
    hip_width: float = 0.3,
    knee_width: float = 0.3,
    shift: float = 0.0,
    hip_y: float = HIP_Y,
) -> LandmarkFrame:
    """A full 33-landmark frame with controlled joint angles and widths."""
    landmarks: List[Optional[Landmark]] = [
        Landmark(x=0.5, y=0.5, visibility=visibility) for _ in range(33)
    ]

    lx = LEFT_X + shift
    l_hip = Landmark(x=lx, y=hip_y, visibility=visibility)
    l_knee = Landmark(x=lx, y=hip_y + THIGH, visibility=visibility)
    l_ankle = _limb_end(l_knee, THIGH, knee_angle)

    l_shoulder = Landmark(x=LEFT_X, y=SHOULDER_Y, visibility=visibility)
    l_elbow = Landmark(x=LEFT_X, y=SHOULDER_Y + UPPER_ARM, visibility=visibility)
    l_wrist = _limb_end(l_elbow, UPPER_ARM, elbow_angle)

    points = {
        JointType.LEFT_HIP: l_hip,
        JointType.RIGHT_HIP: Landmark(x=LEFT_X + hip_width, y=hip_y, visibility=visibility),
        JointType.LEFT_KNEE: l_knee,
        JointType.RIGHT_KNEE: Landmark(x=LEFT_X + knee_width, y=hip_y + THIGH, visibility=visibility),
        JointType.LEFT_ANKLE: l_ankle,
        JointType.RIGHT_ANKLE: Landmark(x=LEFT_X + knee_width, y=hip_y + 2 * THIGH, visibility=visibility),
        JointType.LEFT_SHOULDER: l_shoulder,
        JointType.RIGHT_SHOULDER: Landmark(x=LEFT_X + 0.3, y=SHOULDER_Y, visibility=visibility),
        JointType.LEFT_ELBOW: l_elbow,
        JointType.RIGHT_ELBOW: Landmark(x=LEFT_X + 0.3, y=SHOULDER_Y + UPPER_ARM, visibility=visibility),
        JointType.LEFT_WRIST: l_wrist,
        JointType.RIGHT_WRIST: Landmark(x=LEFT_X + 0.3, y=SHOULDER_Y + 2 * UPPER_ARM, visibility=visibility),
    }
    for joint, lm in points.items():
        landmarks[joint.value] = lm

    return LandmarkFrame(landmarks=landmarks, timestamp_ms=t)


class FrameClock:
    """Feeds frames to a session with a steady simulated frame time."""

    def __init__(self, session: MotionSession, start_ms: float = 0.0, step_ms: float = FRAME_MS):
        self.session = session
        self.t = start_ms
        self.step_ms = step_ms

    def feed(self, hold_frames: int = 1, step_ms: Optional[float] = None, **frame_kwargs):
        events = None
        for _ in range(hold_frames):
            events = self.session.process_frame(build_frame(t=self.t, **frame_kwargs))
            self.t += self.step_ms if step_ms is None else step_ms
        return events

    def calibrate(self, **frame_kwargs):
        events = None
        while not self.session.is_calibrated:
            events = self.feed(**frame_kwargs)
        return events


@pytest.fixture
def config() -> Settings:
    return Settings(SPEECH_ENABLED=False)


@pytest.fixture
def frame_factory():
    return build_frame


@pytest.fixture
def legs_session(config) -> MotionSession:
    return MotionSession("Knäböj", config=config)


@pytest.fixture
def clock_for():
    def _make(session: MotionSession, start_ms: float = 0.0, step_ms: float = FRAME_MS) -> FrameClock:
        return FrameClock(session, start_ms=start_ms, step_ms=step_ms)
    return _make
