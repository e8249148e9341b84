"""
FORMCOACH Coach Service Models

Real-time motion analysis: calibration, kinematics, rep cycles, faults,
tempo, scoring and feedback.
"""

from .landmarks import (
    JointType,
    Landmark,
    LandmarkFrame,
)

from .kinematics import calculate_angle

from .calibration import (
    Baseline,
    CalibrationMonitor,
    CalibrationPhase,
    CalibrationState,
)

from .exercise_mode import (
    ExerciseMode,
    MODE_RULES,
    resolve_exercise_mode,
)

from .rep_cycle import (
    MotionState,
    RepCycle,
    LegCycle,
    UpperBodyCycle,
    create_rep_cycle,
)

from .faults import (
    FaultDetector,
    Issue,
    IssueCategory,
    IssueSeverity,
)

from .tempo import TempoTracker
from .scoring import FormScore

from .feedback import (
    FeedbackDispatcher,
    FeedbackEvent,
)

from .motion_engine import (
    MotionSession,
    SessionEvents,
    RepEvent,
    RepRecord,
)

from .session_handler import (
    CoachSession,
    MotionSessionHandler,
    SessionState,
    get_session_handler,
)

__all__ = [
    # Landmarks & kinematics
    "JointType",
    "Landmark",
    "LandmarkFrame",
    "calculate_angle",
    # Calibration
    "Baseline",
    "CalibrationMonitor",
    "CalibrationPhase",
    "CalibrationState",
    # Modes & rep cycles
    "ExerciseMode",
    "MODE_RULES",
    "resolve_exercise_mode",
    "MotionState",
    "RepCycle",
    "LegCycle",
    "UpperBodyCycle",
    "create_rep_cycle",
    # Faults, tempo, score, feedback
    "FaultDetector",
    "Issue",
    "IssueCategory",
    "IssueSeverity",
    "TempoTracker",
    "FormScore",
    "FeedbackDispatcher",
    "FeedbackEvent",
    # Engine & sessions
    "MotionSession",
    "SessionEvents",
    "RepEvent",
    "RepRecord",
    "CoachSession",
    "MotionSessionHandler",
    "SessionState",
    "get_session_handler",
]
