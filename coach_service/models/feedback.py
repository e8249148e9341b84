"""
FORMCOACH Coach Service - Feedback Dispatcher

Turns engine events into on-screen text and rate-limited spoken cues.
Speech is not performed here: accepted announcements land in a one-slot
outbox that a speech adapter drains.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


GREETING = "System redo. Ställ dig så hela kroppen syns."
WAITING_TEXT = "Väntar på kamera..."


@dataclass(frozen=True)
class FeedbackEvent:
    """An announcement accepted for speech."""
    text: str
    priority: bool
    timestamp_ms: float

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "priority": self.priority, "timestamp_ms": self.timestamp_ms}


class FeedbackDispatcher:
    """
    Rate-limited feedback channel.

    - Routine announcements are dropped within the cooldown window after the
      last accepted one.
    - Priority announcements always pass, replace any unsent announcement
      and restart the cooldown.
    - On-screen text is updated whether or not speech is available.
    """

    def __init__(self, config: Optional[Settings] = None, muted: bool = False):
        self.config = config or default_settings
        self.muted = muted
        self.text = WAITING_TEXT
        self.last_spoken_at: Optional[float] = None
        self._outbox: Optional[FeedbackEvent] = None

    def set_text(self, text: Optional[str]):
        if text:
            self.text = text

    def announce(self, text: str, now_ms: float, priority: bool = False) -> bool:
        """
        Offer a message for speech.

        Returns:
            True if the message was queued, False if it was dropped
        """
        if self.muted or not text:
            return False

        if not priority and self.last_spoken_at is not None:
            if now_ms - self.last_spoken_at < self.config.FEEDBACK_COOLDOWN_MS:
                logger.debug(f"Dropped cue during cooldown: {text}")
                return False

        if self._outbox is not None:
            logger.debug(f"Superseded pending cue: {self._outbox.text}")
        self._outbox = FeedbackEvent(text=text, priority=priority, timestamp_ms=now_ms)
        self.last_spoken_at = now_ms
        return True

    @property
    def pending(self) -> Optional[FeedbackEvent]:
        return self._outbox

    def take(self) -> Optional[FeedbackEvent]:
        """Remove and return the pending announcement, if any."""
        event, self._outbox = self._outbox, None
        return event

    def cancel(self):
        """Drop any unsent announcement."""
        self._outbox = None

    def set_muted(self, muted: bool):
        self.muted = muted
        if muted:
            self.cancel()
