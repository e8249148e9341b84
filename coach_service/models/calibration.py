"""
FORMCOACH Coach Service - Calibration Monitor

Gates motion analysis behind a sustained run of high-visibility frames and
captures the patient's resting baseline posture.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from core.config import Settings, settings as default_settings

from .kinematics import midpoint_y
from .landmarks import JointType, LandmarkFrame

logger = logging.getLogger(__name__)


PROMPT_HOLD_STILL = "Stå stilla..."
PROMPT_SHOW_BODY = "Se till att hela kroppen syns"
ANNOUNCE_CALIBRATED = "Kalibrering klar. Börja träna."

TORSO_JOINTS = (JointType.LEFT_SHOULDER, JointType.LEFT_HIP, JointType.LEFT_ANKLE)


class CalibrationPhase(Enum):
    WAITING = "waiting"
    ACCUMULATING = "accumulating"
    CALIBRATED = "calibrated"


@dataclass(frozen=True)
class Baseline:
    """Resting vertical positions captured at the end of calibration."""
    shoulder_y: float
    hip_y: float


@dataclass
class CalibrationState:
    progress: int = 0
    baseline: Optional[Baseline] = None

    @property
    def is_calibrated(self) -> bool:
        return self.baseline is not None

    @property
    def in_progress(self) -> bool:
        return not self.is_calibrated

    @property
    def phase(self) -> CalibrationPhase:
        if self.is_calibrated:
            return CalibrationPhase.CALIBRATED
        if self.progress > 0:
            return CalibrationPhase.ACCUMULATING
        return CalibrationPhase.WAITING


@dataclass(frozen=True)
class CalibrationUpdate:
    """Outcome of feeding one frame to the monitor."""
    prompt: Optional[str] = None
    completed: bool = False


class CalibrationMonitor:
    """
    Stateful visibility gate.

    Each frame in which the left shoulder, hip and ankle are all visible
    above the threshold advances the counter; any other frame resets it.
    Once the counter reaches the target the baseline is fixed and the
    monitor ignores all further frames.
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings
        self.state = CalibrationState()

    @property
    def is_calibrated(self) -> bool:
        return self.state.is_calibrated

    def _torso_visible(self, frame: LandmarkFrame) -> bool:
        threshold = self.config.VISIBILITY_THRESHOLD
        for joint in TORSO_JOINTS:
            lm = frame.get(joint)
            if lm is None or lm.visibility < threshold:
                return False
        return True

    def update(self, frame: LandmarkFrame) -> CalibrationUpdate:
        if self.state.is_calibrated:
            return CalibrationUpdate()

        if not self._torso_visible(frame):
            if self.state.progress:
                logger.debug(f"Calibration reset at {self.state.progress}%")
            self.state.progress = 0
            return CalibrationUpdate(prompt=PROMPT_SHOW_BODY)

        self.state.progress = min(
            self.config.CALIBRATION_TARGET,
            self.state.progress + self.config.CALIBRATION_STEP,
        )
        if self.state.progress < self.config.CALIBRATION_TARGET:
            return CalibrationUpdate(prompt=PROMPT_HOLD_STILL)

        baseline = self._capture_baseline(frame)
        if baseline is None:
            # Right-side points missing on the final frame; try again next frame
            return CalibrationUpdate(prompt=PROMPT_HOLD_STILL)

        self.state.baseline = baseline
        logger.info(
            f"✅ Calibrated (shoulder_y={baseline.shoulder_y:.3f}, hip_y={baseline.hip_y:.3f})"
        )
        return CalibrationUpdate(prompt=ANNOUNCE_CALIBRATED, completed=True)

    @staticmethod
    def _capture_baseline(frame: LandmarkFrame) -> Optional[Baseline]:
        ls, rs = frame.get(JointType.LEFT_SHOULDER), frame.get(JointType.RIGHT_SHOULDER)
        lh, rh = frame.get(JointType.LEFT_HIP), frame.get(JointType.RIGHT_HIP)
        if ls is None or rs is None or lh is None or rh is None:
            return None
        return Baseline(shoulder_y=midpoint_y(ls, rs), hip_y=midpoint_y(lh, rh))
