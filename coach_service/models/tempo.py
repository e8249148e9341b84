"""
FORMCOACH Coach Service - Tempo/Velocity Tracker

Keeps the rolling landmark history and derives the vertical velocity of
the left hip for the tempo gauge and the fast-movement flag.
"""

import collections
from typing import Deque, List, Optional, Tuple

from core.config import Settings, settings as default_settings

from .landmarks import JointType, Landmark, LandmarkFrame


class TempoTracker:
    """
    Bounded FIFO of recent frames plus the derived velocity.

    push() must be called once per processed frame before velocity is read.
    """

    REFERENCE_JOINT = JointType.LEFT_HIP

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings
        self.history: Deque[LandmarkFrame] = collections.deque(maxlen=self.config.HISTORY_SIZE)
        self.velocity = 0.0

    def push(self, frame: LandmarkFrame) -> float:
        """Append the frame (evicting the oldest) and recompute velocity."""
        self.history.append(frame)
        self.velocity = self._compute_velocity()
        return self.velocity

    def _compute_velocity(self) -> float:
        # Needs the current frame plus at least two earlier ones
        if len(self.history) <= 2:
            return 0.0
        current = self.history[-1].get(self.REFERENCE_JOINT)
        previous = self.history[-2].get(self.REFERENCE_JOINT)
        if current is None or previous is None:
            return 0.0
        return (current.y - previous.y) * self.config.VELOCITY_SCALE

    @property
    def is_too_fast(self) -> bool:
        return abs(self.velocity) > self.config.FAST_VELOCITY

    def lookback(self, joint: JointType, frames_back: int) -> Optional[Landmark]:
        """Landmark `frames_back` frames before the newest one, if retained."""
        if frames_back < 0 or len(self.history) <= frames_back:
            return None
        return self.history[-1 - frames_back].get(joint)

    def trail(self, joint: JointType) -> List[Tuple[float, float]]:
        """(x, y) path of a landmark across the retained frames, oldest first."""
        points = []
        for frame in self.history:
            lm = frame.get(joint)
            if lm is not None:
                points.append((lm.x, lm.y))
        return points

    def clear(self):
        self.history.clear()
        self.velocity = 0.0
