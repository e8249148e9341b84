"""
FORMCOACH Coach Service - Score Aggregator

Running 0-100 form-quality score changed only by discrete events.
"""

import logging
import math

logger = logging.getLogger(__name__)


SCORE_MIN = 0.0
SCORE_MAX = 100.0


class FormScore:
    """Bounded score; every mutation is clamped into [0, 100]. No decay."""

    def __init__(self, initial: float = SCORE_MAX):
        self.value = self._clamp(initial)

    @staticmethod
    def _clamp(value: float) -> float:
        return max(SCORE_MIN, min(SCORE_MAX, value))

    def apply(self, delta: float, reason: str = "") -> float:
        before = self.value
        self.value = self._clamp(self.value + delta)
        if self.value != before:
            logger.debug(f"Score {before:.1f} -> {self.value:.1f} ({reason or 'event'})")
        return self.value

    def display(self) -> int:
        """Score rounded to the nearest whole number (halves round up)."""
        return int(math.floor(self.value + 0.5))
