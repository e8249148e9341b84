"""
FORMCOACH Coach Service - Session Handler

Registry of live coaching sessions: creation, per-frame dispatch, mute,
teardown and end-of-session summary.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from core.config import Settings, settings as default_settings

from .landmarks import LandmarkFrame
from .motion_engine import MotionSession, SessionEvents, Speaker

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Coaching session states."""
    ACTIVE = "active"
    COMPLETED = "completed"


@dataclass
class CoachSession:
    """A live session and its bookkeeping."""
    session_id: str
    user_id: str
    engine: MotionSession
    state: SessionState = SessionState.ACTIVE
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data = self.engine.to_dict()
        data.update({
            "user_id": self.user_id,
            "state": self.state.value,
            "duration_seconds": round((self.end_time or time.time()) - self.start_time, 1),
        })
        return data


class MotionSessionHandler:
    """
    Manages coaching sessions with real-time motion analysis.

    Features:
    - One MotionSession per coaching session
    - Optional speech adapter per session
    - Session summary generation on completion
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        speaker_factory: Optional[Callable[[], Optional[Speaker]]] = None,
    ):
        """
        Initialize session handler.

        Args:
            config: Engine settings (uses global settings if None)
            speaker_factory: Builds a speech adapter for each new session
        """
        self.config = config or default_settings
        self.speaker_factory = speaker_factory
        self.active_sessions: Dict[str, CoachSession] = {}

    def create_session(self, user_id: str, exercise_name: str, muted: bool = False) -> CoachSession:
        """
        Create and start a new coaching session.

        Args:
            user_id: User ID
            exercise_name: Display name of the exercise (resolved to a mode)
            muted: Start with speech muted

        Returns:
            New CoachSession
        """
        session_id = str(uuid.uuid4())[:8]
        speaker = self.speaker_factory() if self.speaker_factory else None

        engine = MotionSession(
            exercise_name,
            config=self.config,
            speaker=speaker,
            session_id=session_id,
            muted=muted,
        )
        engine.greet()

        session = CoachSession(session_id=session_id, user_id=user_id, engine=engine)
        self.active_sessions[session_id] = session
        return session

    def get_session(self, session_id: str) -> Optional[CoachSession]:
        """Get session by ID."""
        return self.active_sessions.get(session_id)

    def process_frame(self, session_id: str, frame: Optional[LandmarkFrame]) -> Optional[SessionEvents]:
        """
        Feed one landmark frame to a session.

        Returns:
            SessionEvents, or None if the session does not exist
        """
        session = self.active_sessions.get(session_id)
        if not session:
            return None
        return session.engine.process_frame(frame)

    def set_muted(self, session_id: str, muted: bool) -> bool:
        session = self.active_sessions.get(session_id)
        if not session:
            return False
        session.engine.set_muted(muted)
        return True

    def complete_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        """
        Complete a session, tear down its engine and remove it.

        Returns the session summary, or None if the session does not exist.
        """
        session = self.active_sessions.pop(session_id, None)
        if not session:
            return None

        session.engine.close()
        speaker = session.engine.speaker
        if speaker is not None and hasattr(speaker, "shutdown"):
            speaker.shutdown()
        session.state = SessionState.COMPLETED
        session.end_time = time.time()
        return self._generate_summary(session)

    def _generate_summary(self, session: CoachSession) -> Dict[str, Any]:
        """Generate session summary."""
        engine = session.engine
        records = engine.rep_records
        final_score = engine.score.display()

        descents = [r.descent_ms for r in records if r.descent_ms is not None]
        avg_descent = sum(descents) / len(descents) if descents else None

        if final_score >= 90:
            performance = "excellent"
            message = "Utmärkt teknik!"
        elif final_score >= 75:
            performance = "good"
            message = "Bra jobbat!"
        elif final_score >= 50:
            performance = "fair"
            message = "Bra kämpat. Fokusera på tekniken."
        else:
            performance = "needs_improvement"
            message = "Ta det lugnt och fokusera på kontroll."

        return {
            "status": "completed",
            "session_id": session.session_id,
            "user_id": session.user_id,
            "exercise_name": engine.exercise_name,
            "mode": engine.mode.value,
            "summary": {
                "total_reps": engine.reps,
                "form_score": final_score,
                "calibrated": engine.is_calibrated,
                "avg_descent_ms": None if avg_descent is None else round(avg_descent, 1),
                "frames_processed": engine.frames_processed,
                "frames_skipped": engine.frames_skipped,
                "duration_seconds": round((session.end_time or time.time()) - session.start_time, 1),
                "performance_rating": performance,
                "message": message,
            },
            "reps": [
                {
                    "rep_number": r.rep_number,
                    "timestamp_ms": r.timestamp_ms,
                    "form_score": round(r.form_score, 1),
                    "descent_ms": r.descent_ms,
                }
                for r in records
            ],
            "recommendations": self._get_recommendations(engine),
            "completed_at": datetime.now().isoformat(),
        }

    def _get_recommendations(self, engine: MotionSession) -> List[str]:
        """Recommendations based on how the session went."""
        recommendations = []

        if not engine.is_calibrated:
            recommendations.append("Make sure your whole body is visible to the camera")

        fast = [
            r for r in engine.rep_records
            if r.descent_ms is not None and r.descent_ms < self.config.MIN_DESCENT_MS
        ]
        if fast:
            recommendations.append("Lower yourself more slowly, aim for at least 1.5 seconds")

        if engine.score.display() < 70:
            recommendations.append("Focus on controlled movement over completing more reps")

        if not recommendations:
            recommendations.append("Great progress! Maintain this consistency")

        return recommendations

    def cleanup(self):
        """Tear down every active session."""
        for session_id in list(self.active_sessions):
            self.complete_session(session_id)


# ═══════════════════════════════════════════════════════════════════════════════
# MODULE-LEVEL SINGLETON
# ═══════════════════════════════════════════════════════════════════════════════

_handler_instance: Optional[MotionSessionHandler] = None

def get_session_handler() -> MotionSessionHandler:
    """Get or create the global session handler instance."""
    global _handler_instance
    if _handler_instance is None:
        from coach_service.speech import create_speaker
        _handler_instance = MotionSessionHandler(speaker_factory=create_speaker)
    return _handler_instance
