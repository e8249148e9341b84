"""
FORMCOACH Coach Service - Exercise Mode Resolver

Maps a free-text exercise name onto a movement archetype.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .landmarks import JointType


class ExerciseMode(Enum):
    """Movement archetypes with their own joint of interest and thresholds."""
    LEGS = "legs"
    LUNGE = "lunge"
    PRESS = "press"
    PULL = "pull"
    GENERAL = "general"

    @property
    def is_leg_dominant(self) -> bool:
        return self in (ExerciseMode.LEGS, ExerciseMode.LUNGE)

    @property
    def is_upper_body(self) -> bool:
        return self in (ExerciseMode.PRESS, ExerciseMode.PULL)


# Evaluated in order, first match wins. LUNGE must stay ahead of LEGS.
MODE_RULES: List[Tuple[Tuple[str, ...], ExerciseMode]] = [
    (("utfall", "lunge", "split"), ExerciseMode.LUNGE),
    (("knä", "ben", "squat", "hopp", "wad", "vad"), ExerciseMode.LEGS),
    (("press", "lyft", "axel", "hantel", "triceps"), ExerciseMode.PRESS),
    (("rodd", "curl", "biceps", "drag", "row"), ExerciseMode.PULL),
]


@dataclass(frozen=True)
class ModeProfile:
    """Joint of interest and display hints for an archetype."""
    proximal: JointType
    vertex: JointType
    distal: JointType
    trail_joint: JointType
    target_zone: Tuple[float, float]


_LEG_PROFILE = ModeProfile(
    proximal=JointType.LEFT_HIP,
    vertex=JointType.LEFT_KNEE,
    distal=JointType.LEFT_ANKLE,
    trail_joint=JointType.RIGHT_KNEE,
    target_zone=(70.0, 100.0),
)

_ARM_PROFILE = ModeProfile(
    proximal=JointType.LEFT_SHOULDER,
    vertex=JointType.LEFT_ELBOW,
    distal=JointType.LEFT_WRIST,
    trail_joint=JointType.RIGHT_WRIST,
    target_zone=(160.0, 180.0),
)

MODE_PROFILES: Dict[ExerciseMode, ModeProfile] = {
    ExerciseMode.LEGS: _LEG_PROFILE,
    ExerciseMode.LUNGE: _LEG_PROFILE,
    ExerciseMode.PRESS: _ARM_PROFILE,
    ExerciseMode.PULL: _ARM_PROFILE,
}


def resolve_exercise_mode(exercise_name: Optional[str]) -> ExerciseMode:
    """
    Resolve an exercise display name to its movement archetype.

    Matching is case-insensitive substring matching against MODE_RULES.
    Names that match nothing fall back to GENERAL.
    """
    name = (exercise_name or "").lower()
    for keywords, mode in MODE_RULES:
        if any(keyword in name for keyword in keywords):
            return mode
    return ExerciseMode.GENERAL


def get_mode_profile(mode: ExerciseMode) -> Optional[ModeProfile]:
    """Profile for a mode, or None for GENERAL (pass-through display only)."""
    return MODE_PROFILES.get(mode)
