"""
FORMCOACH Coach Service - Motion Engine

Per-session, frame-synchronous analysis pipeline:

    Calibration -> Kinematics -> Rep cycle -> Faults -> Tempo -> Score -> Feedback

A MotionSession owns every piece of mutable state for one coaching session.
process_frame() never raises for bad input; frames without a usable pose are
skipped without touching state.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple

from core.config import Settings, settings as default_settings

from .calibration import ANNOUNCE_CALIBRATED, CalibrationMonitor
from .exercise_mode import ExerciseMode, get_mode_profile, resolve_exercise_mode
from .faults import FaultDetector, Issue
from .feedback import GREETING, FeedbackDispatcher, FeedbackEvent
from .kinematics import calculate_angle
from .landmarks import JointType, LandmarkFrame
from .rep_cycle import LegCycle, MotionState, create_rep_cycle
from .scoring import FormScore
from .tempo import TempoTracker

logger = logging.getLogger(__name__)


class Speaker(Protocol):
    """Anything that can voice an announcement (see coach_service.speech)."""

    def say(self, event: FeedbackEvent) -> None: ...

    def cancel(self) -> None: ...


@dataclass(frozen=True)
class RepEvent:
    """A repetition was completed; (x, y) anchors celebratory effects."""
    rep_number: int
    x: float
    y: float
    timestamp_ms: float

    def to_dict(self) -> Dict[str, Any]:
        return {"rep_number": self.rep_number, "x": self.x, "y": self.y, "timestamp_ms": self.timestamp_ms}


@dataclass
class RepRecord:
    """Record of a single repetition."""
    rep_number: int
    timestamp_ms: float
    form_score: float
    descent_ms: Optional[float] = None


@dataclass
class SessionEvents:
    """Everything the UI and renderer need after one frame."""
    skipped: bool
    calibrated: bool
    calibration_progress: int
    motion_state: MotionState
    reps: int
    form_score: float
    issues: List[Issue] = field(default_factory=list)
    feedback: str = ""
    velocity: float = 0.0
    too_fast: bool = False
    angle: Optional[float] = None
    target_zone: Optional[Tuple[float, float]] = None
    rep_event: Optional[RepEvent] = None
    stability_shake: bool = False
    announcement: Optional[FeedbackEvent] = None
    trail: List[Tuple[float, float]] = field(default_factory=list)

    @property
    def form_score_display(self) -> int:
        return int(FormScore(self.form_score).display())

    @property
    def issue_labels(self) -> List[str]:
        return [issue.label for issue in self.issues]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "skipped": self.skipped,
            "calibrated": self.calibrated,
            "calibration_progress": self.calibration_progress,
            "motion_state": self.motion_state.value,
            "reps": self.reps,
            "form_score": round(self.form_score, 2),
            "form_score_display": self.form_score_display,
            "issues": [
                {"label": i.label, "category": i.category.value, "severity": i.severity.value}
                for i in self.issues
            ],
            "feedback": self.feedback,
            "velocity": round(self.velocity, 3),
            "too_fast": self.too_fast,
            "angle": None if self.angle is None else round(self.angle, 1),
            "target_zone": list(self.target_zone) if self.target_zone else None,
            "rep_event": self.rep_event.to_dict() if self.rep_event else None,
            "stability_shake": self.stability_shake,
            "announcement": self.announcement.to_dict() if self.announcement else None,
            "trail": [[round(x, 4), round(y, 4)] for x, y in self.trail],
        }


class MotionSession:
    """
    All mutable state for one coaching session plus the per-frame transition.

    Usage:
        session = MotionSession("Knäböj")
        for frame in frames:
            events = session.process_frame(frame)
        session.close()
    """

    def __init__(
        self,
        exercise_name: str,
        config: Optional[Settings] = None,
        speaker: Optional[Speaker] = None,
        session_id: str = "",
        muted: bool = False,
    ):
        self.config = config or default_settings
        self.session_id = session_id
        self.exercise_name = exercise_name
        self.mode: ExerciseMode = resolve_exercise_mode(exercise_name)
        self.profile = get_mode_profile(self.mode)
        self.speaker = speaker

        self.calibration = CalibrationMonitor(self.config)
        self.cycle = create_rep_cycle(self.mode)
        self.faults = FaultDetector(self.config)
        self.tempo = TempoTracker(self.config)
        self.score = FormScore()
        self.feedback = FeedbackDispatcher(self.config, muted=muted)

        self.issues: List[Issue] = []
        self.rep_records: List[RepRecord] = []
        self.frames_processed = 0
        self.frames_skipped = 0
        self.closed = False
        self._last_descent_ms: Optional[float] = None

        logger.info(f"🎬 Motion session {session_id or '-'} for '{exercise_name}' -> {self.mode.value}")

    # ─────────────────────────────────────────────────────────────────────
    # State accessors
    # ─────────────────────────────────────────────────────────────────────

    @property
    def is_calibrated(self) -> bool:
        return self.calibration.is_calibrated

    @property
    def motion_state(self) -> MotionState:
        return self.cycle.state if self.cycle else MotionState.START

    @property
    def reps(self) -> int:
        return self.cycle.count if self.cycle else 0

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────

    def greet(self, now_ms: float = 0.0):
        """Queue the session-start instruction."""
        self.feedback.announce(GREETING, now_ms)
        self._flush_speech()

    def set_muted(self, muted: bool):
        self.feedback.set_muted(muted)
        if muted and self.speaker is not None:
            self.speaker.cancel()

    def close(self):
        """Tear down: ignore further frames and cancel any pending speech."""
        if self.closed:
            return
        self.closed = True
        self.feedback.cancel()
        if self.speaker is not None:
            self.speaker.cancel()
        logger.info(
            f"👋 Motion session {self.session_id or '-'} closed "
            f"({self.reps} reps, score {self.score.display()})"
        )

    # ─────────────────────────────────────────────────────────────────────
    # Per-frame pipeline
    # ─────────────────────────────────────────────────────────────────────

    def process_frame(self, frame: Optional[LandmarkFrame]) -> SessionEvents:
        if self.closed or frame is None or not frame.is_complete:
            self.frames_skipped += 1
            return self._snapshot(skipped=True)

        now_ms = frame.timestamp_ms
        self.frames_processed += 1
        self.tempo.push(frame)

        feedback_msg: Optional[str] = None
        cues: List[Tuple[str, bool]] = []
        issues: List[Issue] = []
        angle: Optional[float] = None
        rep_event: Optional[RepEvent] = None
        shake = False

        if self.calibration.state.in_progress:
            update = self.calibration.update(frame)
            feedback_msg = update.prompt
            if update.completed:
                cues.append((ANNOUNCE_CALIBRATED, True))
        elif self.cycle is not None and self.profile is not None:
            a = frame.get(self.profile.proximal)
            b = frame.get(self.profile.vertex)
            c = frame.get(self.profile.distal)
            if a is not None and b is not None and c is not None:
                angle = calculate_angle(a, b, c)
                step = self.cycle.update(angle, now_ms)
                feedback_msg = step.feedback

                if self.mode.is_leg_dominant:
                    valgus = self.faults.check_valgus(frame, angle)
                    if valgus is not None:
                        issues.append(valgus)
                        cues.append((valgus.cue, True))

                    if step.previous == MotionState.TURN:
                        wobble = self.faults.check_wobble(frame, self.tempo)
                        if wobble is not None:
                            issues.append(wobble)
                            shake = True

                    if step.transitioned and step.state == MotionState.TURN:
                        self._last_descent_ms = step.descent_ms
                        speed = self.faults.check_descent_speed(step.descent_ms)
                        if speed is not None:
                            issues.append(speed)
                            cues.append((speed.cue, False))

                cues.extend(step.announcements)

                if step.rep_completed:
                    rep_event = self._complete_rep(frame, now_ms)

        for issue in issues:
            if issue.score_delta:
                self.score.apply(issue.score_delta, issue.label)
        if rep_event is not None:
            if self.mode.is_leg_dominant:
                self.score.apply(self.config.REP_BONUS, "rep completed")
            self._record_rep(rep_event)

        for text, priority in cues:
            self.feedback.announce(text, now_ms, priority=priority)

        self.issues = issues
        if not issues:
            self.feedback.set_text(feedback_msg)

        events = self._snapshot(
            skipped=False,
            angle=angle,
            rep_event=rep_event,
            shake=shake,
            announcement=self.feedback.pending,
        )
        self._flush_speech()
        return events

    def _complete_rep(self, frame: LandmarkFrame, now_ms: float) -> RepEvent:
        # Legs anchor between the hips, upper body at the working elbow
        anchor = frame.get(self.profile.vertex)
        x, y = anchor.x, anchor.y
        if isinstance(self.cycle, LegCycle):
            lh, rh = frame.get(JointType.LEFT_HIP), frame.get(JointType.RIGHT_HIP)
            if lh is not None and rh is not None:
                x, y = (lh.x + rh.x) / 2, (lh.y + rh.y) / 2
        return RepEvent(rep_number=self.reps, x=x, y=y, timestamp_ms=now_ms)

    def _record_rep(self, rep_event: RepEvent):
        self.rep_records.append(RepRecord(
            rep_number=rep_event.rep_number,
            timestamp_ms=rep_event.timestamp_ms,
            form_score=self.score.value,
            descent_ms=self._last_descent_ms if self.mode.is_leg_dominant else None,
        ))
        self._last_descent_ms = None

    def _flush_speech(self):
        if self.speaker is None:
            return
        event = self.feedback.take()
        if event is not None:
            self.speaker.say(event)

    def _snapshot(
        self,
        skipped: bool,
        angle: Optional[float] = None,
        rep_event: Optional[RepEvent] = None,
        shake: bool = False,
        announcement: Optional[FeedbackEvent] = None,
    ) -> SessionEvents:
        calibrated = self.is_calibrated
        trail = []
        if calibrated and self.profile is not None and not skipped:
            trail = self.tempo.trail(self.profile.trail_joint)
        return SessionEvents(
            skipped=skipped,
            calibrated=calibrated,
            calibration_progress=self.calibration.state.progress,
            motion_state=self.motion_state,
            reps=self.reps,
            form_score=self.score.value,
            issues=list(self.issues) if not skipped else [],
            feedback=self.feedback.text,
            velocity=self.tempo.velocity,
            too_fast=self.tempo.is_too_fast,
            angle=angle,
            target_zone=self.profile.target_zone if self.profile else None,
            rep_event=rep_event,
            stability_shake=shake,
            announcement=announcement,
            trail=trail,
        )

    def to_dict(self) -> Dict[str, Any]:
        baseline = self.calibration.state.baseline
        return {
            "session_id": self.session_id,
            "exercise_name": self.exercise_name,
            "mode": self.mode.value,
            "calibrated": self.is_calibrated,
            "calibration_progress": self.calibration.state.progress,
            "baseline": None if baseline is None else {
                "shoulder_y": baseline.shoulder_y,
                "hip_y": baseline.hip_y,
            },
            "motion_state": self.motion_state.value,
            "reps": self.reps,
            "form_score": self.score.display(),
            "active_issues": [i.label for i in self.issues],
            "feedback": self.feedback.text,
            "muted": self.feedback.muted,
            "frames_processed": self.frames_processed,
            "frames_skipped": self.frames_skipped,
            "closed": self.closed,
        }
