"""
FORMCOACH Coach Service - Landmark Frames

Data contract for the per-frame pose stream supplied by the pose-estimation
collaborator (MediaPipe Pose index convention, 33 landmarks).
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
from enum import Enum

import numpy as np


MIN_LANDMARKS = 33


def server_time_ms() -> float:
    """Monotonic server clock, used for frames that arrive without a timestamp."""
    return time.monotonic() * 1000.0


class JointType(Enum):
    """Body landmark indices used by the motion engine."""
    NOSE = 0
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28


@dataclass(frozen=True)
class Landmark:
    """A single pose landmark with normalized coordinates and visibility."""
    x: float
    y: float
    z: float = 0.0
    visibility: float = 0.0

    def to_numpy(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z])

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Landmark":
        try:
            return cls(
                x=float(data["x"]),
                y=float(data["y"]),
                z=float(data.get("z", 0.0)),
                visibility=float(data.get("visibility", 0.0)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid landmark: {data!r}") from e


@dataclass(frozen=True)
class LandmarkFrame:
    """
    One observation of the body at an instant.

    Landmarks are indexed by position; entries may be None when the
    collaborator did not report a point.
    """
    landmarks: Sequence[Optional[Landmark]]
    timestamp_ms: float = 0.0

    def get(self, joint: JointType) -> Optional[Landmark]:
        idx = joint.value
        if idx >= len(self.landmarks):
            return None
        return self.landmarks[idx]

    def __len__(self) -> int:
        return len(self.landmarks)

    @property
    def is_complete(self) -> bool:
        """True when the frame carries the full landmark set."""
        return len(self.landmarks) >= MIN_LANDMARKS

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "LandmarkFrame":
        """
        Parse a JSON frame payload.

        Expected shape::

            {"timestamp_ms": 1234.0,
             "landmarks": [{"x": .., "y": .., "z": .., "visibility": ..}, ...]}

        A missing or null timestamp is stamped with server_time_ms().

        Raises:
            ValueError: if the payload is not a frame.
        """
        if not isinstance(payload, dict):
            raise ValueError("Frame payload must be an object")

        raw = payload.get("landmarks")
        if raw is None:
            # No pose in this frame; the engine will skip it
            raw = []
        if not isinstance(raw, list):
            raise ValueError("'landmarks' must be a list")

        landmarks: List[Optional[Landmark]] = [
            Landmark.from_dict(item) if item is not None else None
            for item in raw
        ]

        timestamp_ms = payload.get("timestamp_ms")
        if timestamp_ms is None:
            timestamp_ms = server_time_ms()
        try:
            timestamp_ms = float(timestamp_ms)
        except (TypeError, ValueError) as e:
            raise ValueError("'timestamp_ms' must be a number") from e

        return cls(landmarks=landmarks, timestamp_ms=timestamp_ms)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "timestamp_ms": self.timestamp_ms,
            "landmarks": [
                None if lm is None else {
                    "x": lm.x,
                    "y": lm.y,
                    "z": lm.z,
                    "visibility": lm.visibility,
                }
                for lm in self.landmarks
            ],
        }
