"""
FORMCOACH Coach Service - Fault Detector

Independent form checks. Each returns at most one Issue per call.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from core.config import Settings, settings as default_settings

from .kinematics import horizontal_width
from .landmarks import JointType, LandmarkFrame
from .tempo import TempoTracker


class IssueSeverity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class IssueCategory(Enum):
    VALGUS = "valgus"
    DESCENT_SPEED = "descent_speed"
    WOBBLE = "wobble"


CATEGORY_SEVERITY = {
    IssueCategory.VALGUS: IssueSeverity.HIGH,
    IssueCategory.DESCENT_SPEED: IssueSeverity.MEDIUM,
    IssueCategory.WOBBLE: IssueSeverity.LOW,
}


@dataclass(frozen=True)
class Issue:
    """A form fault detected on the current frame."""
    label: str
    category: IssueCategory
    cue: Optional[str] = None
    score_delta: float = 0.0

    @property
    def severity(self) -> IssueSeverity:
        return CATEGORY_SEVERITY[self.category]


class FaultDetector:
    """Rule checks for knee valgus, descent speed and postural wobble."""

    VALGUS_LABEL = "Inåtvinkling"
    VALGUS_CUE = "Pressa ut knäna!"
    SPEED_LABEL = "För snabbt!"
    SPEED_CUE = "Sakta ner."
    WOBBLE_LABEL = "Balansera!"

    WOBBLE_JOINT = JointType.LEFT_KNEE

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings

    def check_valgus(self, frame: LandmarkFrame, angle: float) -> Optional[Issue]:
        """
        Inward knee collapse: knee width narrower than a fraction of hip width
        while the knee is bent past the active angle.
        """
        if angle >= self.config.VALGUS_ACTIVE_ANGLE:
            return None

        hip_width = horizontal_width(frame.get(JointType.LEFT_HIP), frame.get(JointType.RIGHT_HIP))
        knee_width = horizontal_width(frame.get(JointType.LEFT_KNEE), frame.get(JointType.RIGHT_KNEE))
        if hip_width <= 0:
            return None

        if knee_width / hip_width < self.config.VALGUS_RATIO:
            return Issue(
                label=self.VALGUS_LABEL,
                category=IssueCategory.VALGUS,
                cue=self.VALGUS_CUE,
                score_delta=-self.config.VALGUS_PENALTY,
            )
        return None

    def check_descent_speed(self, descent_ms: Optional[float]) -> Optional[Issue]:
        """One-shot tempo check made when the lowering phase ends."""
        if descent_ms is None or descent_ms >= self.config.MIN_DESCENT_MS:
            return None
        return Issue(
            label=self.SPEED_LABEL,
            category=IssueCategory.DESCENT_SPEED,
            cue=self.SPEED_CUE,
            score_delta=-self.config.FAST_DESCENT_PENALTY,
        )

    def check_wobble(self, frame: LandmarkFrame, tempo: TempoTracker) -> Optional[Issue]:
        """Horizontal knee drift against its position a few frames earlier."""
        current = frame.get(self.WOBBLE_JOINT)
        earlier = tempo.lookback(self.WOBBLE_JOINT, self.config.WOBBLE_LOOKBACK)
        if current is None or earlier is None:
            return None
        if abs(current.x - earlier.x) > self.config.WOBBLE_THRESHOLD:
            return Issue(label=self.WOBBLE_LABEL, category=IssueCategory.WOBBLE)
        return None
