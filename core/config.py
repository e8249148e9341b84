"""
FORMCOACH Configuration

Environment variables and engine thresholds.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables (FORMCOACH_*)."""

    model_config = SettingsConfigDict(
        env_prefix="FORMCOACH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    APP_NAME: str = "FORMCOACH"
    DEBUG: bool = True

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Speech
    LOCALE: str = "sv-SE"
    SPEECH_RATE: float = 1.1
    SPEECH_ENABLED: bool = True
    FEEDBACK_COOLDOWN_MS: float = 4000.0

    # Calibration
    VISIBILITY_THRESHOLD: float = 0.8
    CALIBRATION_STEP: int = 2
    CALIBRATION_TARGET: int = 100

    # Rolling landmark history
    HISTORY_SIZE: int = 15

    # Tempo
    VELOCITY_SCALE: float = 100.0
    FAST_VELOCITY: float = 2.0
    MIN_DESCENT_MS: float = 1500.0

    # Faults
    VALGUS_RATIO: float = 0.75
    VALGUS_ACTIVE_ANGLE: float = 140.0
    WOBBLE_LOOKBACK: int = 5
    WOBBLE_THRESHOLD: float = 0.02

    # Score deltas
    VALGUS_PENALTY: float = 0.5
    FAST_DESCENT_PENALTY: float = 2.0
    REP_BONUS: float = 2.0


settings = Settings()
