"""
FORMCOACH Coach Service - Rep State Machine

Two differently shaped repetition cycles driven by a single joint angle:

- LegCycle (LEGS/LUNGE), hip-knee-ankle angle, eccentric first:
      START -> ECCENTRIC -> TURN -> CONCENTRIC -> START (+1 rep)
- UpperBodyCycle (PRESS/PULL), shoulder-elbow-wrist angle, concentric first:
      START -> CONCENTRIC -> TURN -> ECCENTRIC -> START (+1 rep)
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Dict, List, Optional, Tuple

from .exercise_mode import ExerciseMode

logger = logging.getLogger(__name__)


class MotionState(Enum):
    """Movement phase of the current repetition."""
    START = "START"
    ECCENTRIC = "ECCENTRIC"
    TURN = "TURN"
    CONCENTRIC = "CONCENTRIC"


STATE_HISTORY_SIZE = 64

# (comparison, threshold, next_state); comparison is "<" or ">"
Transition = Tuple[str, float, MotionState]


@dataclass
class CycleStep:
    """What happened to the cycle on one frame."""
    previous: MotionState
    state: MotionState
    feedback: Optional[str] = None
    announcements: List[Tuple[str, bool]] = field(default_factory=list)
    rep_completed: bool = False
    descent_ms: Optional[float] = None

    @property
    def transitioned(self) -> bool:
        return self.previous != self.state


class RepCycle:
    """
    Table-driven repetition state machine.

    Subclasses supply TRANSITIONS (one exit per state) and the state whose
    exit completes a repetition.
    """

    TRANSITIONS: Dict[MotionState, Transition] = {}
    COMPLETING_STATE: MotionState = MotionState.START
    PHASE_FEEDBACK: Dict[MotionState, str] = {}

    def __init__(self):
        self.state = MotionState.START
        self.count = 0
        self.history: Deque[MotionState] = deque([MotionState.START], maxlen=STATE_HISTORY_SIZE)

    def reset(self):
        self.state = MotionState.START
        self.count = 0
        self.history = deque([MotionState.START], maxlen=STATE_HISTORY_SIZE)

    def _next_state(self, angle: float) -> Optional[MotionState]:
        comparison, threshold, target = self.TRANSITIONS[self.state]
        if comparison == "<" and angle < threshold:
            return target
        if comparison == ">" and angle > threshold:
            return target
        return None

    def update(self, angle: float, now_ms: float) -> CycleStep:
        """Advance the machine with this frame's joint angle."""
        previous = self.state
        step = CycleStep(previous=previous, state=previous)

        target = self._next_state(angle)
        if target is None:
            self._on_hold(step)
            return step

        completes = previous == self.COMPLETING_STATE
        self.state = target
        self.history.append(target)
        step.state = target
        step.feedback = self.PHASE_FEEDBACK.get(target)
        logger.debug(f"{type(self).__name__}: {previous.value} -> {target.value} @ {angle:.1f}°")

        self._on_enter(step, now_ms)

        if completes:
            self.count += 1
            step.rep_completed = True
            step.announcements.append((str(self.count), True))
            logger.info(f"🏁 Rep {self.count} completed ({type(self).__name__})")

        return step

    def _on_enter(self, step: CycleStep, now_ms: float):
        pass

    def _on_hold(self, step: CycleStep):
        pass


class LegCycle(RepCycle):
    """Squat/lunge cycle scored on descent depth first."""

    TRANSITIONS = {
        MotionState.START: ("<", 160.0, MotionState.ECCENTRIC),
        MotionState.ECCENTRIC: ("<", 100.0, MotionState.TURN),
        MotionState.TURN: (">", 110.0, MotionState.CONCENTRIC),
        MotionState.CONCENTRIC: (">", 165.0, MotionState.START),
    }
    COMPLETING_STATE = MotionState.CONCENTRIC
    PHASE_FEEDBACK = {
        MotionState.ECCENTRIC: "Bromsa...",
        MotionState.TURN: "Perfekt djup!",
        MotionState.START: "Snyggt!",
    }

    def __init__(self):
        super().__init__()
        self.descent_started_ms: Optional[float] = None

    def reset(self):
        super().reset()
        self.descent_started_ms = None

    def _on_enter(self, step: CycleStep, now_ms: float):
        if step.state == MotionState.ECCENTRIC:
            self.descent_started_ms = now_ms
        elif step.state == MotionState.TURN:
            if self.descent_started_ms is not None:
                step.descent_ms = now_ms - self.descent_started_ms
            step.announcements.append(("Bra djup! Håll.", False))

    def _on_hold(self, step: CycleStep):
        if step.state == MotionState.START:
            step.feedback = "Stå upprätt"


class UpperBodyCycle(RepCycle):
    """Press/pull cycle scored on reaching the extended end-range first."""

    TRANSITIONS = {
        MotionState.START: (">", 100.0, MotionState.CONCENTRIC),
        MotionState.CONCENTRIC: (">", 160.0, MotionState.TURN),
        # Returning below 150 from the top goes back to ECCENTRIC
        MotionState.TURN: ("<", 150.0, MotionState.ECCENTRIC),
        MotionState.ECCENTRIC: ("<", 70.0, MotionState.START),
    }
    COMPLETING_STATE = MotionState.ECCENTRIC
    PHASE_FEEDBACK = {
        MotionState.CONCENTRIC: "Jobba!",
        MotionState.TURN: "Toppläge!",
    }


def create_rep_cycle(mode: ExerciseMode) -> Optional[RepCycle]:
    """Pick the cycle topology for a mode; GENERAL has no rep counting."""
    if mode.is_leg_dominant:
        return LegCycle()
    if mode.is_upper_body:
        return UpperBodyCycle()
    return None
