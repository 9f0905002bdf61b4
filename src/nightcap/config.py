"""Engine settings, loaded from environment variables with defaults."""

import os

from dotenv import load_dotenv

load_dotenv()


class Settings:
    # Substance profile defaults for habits that leave them unset
    DEFAULT_HALF_LIFE_HOURS: float = float(os.getenv("NIGHTCAP_DEFAULT_HALF_LIFE_HOURS", "5"))
    DEFAULT_THRESHOLD_PERCENT: float = float(os.getenv("NIGHTCAP_DEFAULT_THRESHOLD_PERCENT", "5"))

    # Sampling steps for single-day charts and the averaged day
    TIMELINE_STEP_MINUTES: int = int(os.getenv("NIGHTCAP_TIMELINE_STEP_MINUTES", "30"))
    PATTERN_STEP_MINUTES: int = int(os.getenv("NIGHTCAP_PATTERN_STEP_MINUTES", "60"))

    # Paired days needed before a correlation is shown
    MIN_DATA_POINTS: int = int(os.getenv("NIGHTCAP_MIN_DATA_POINTS", "10"))

    DEFAULT_BEDTIME: str = os.getenv("NIGHTCAP_DEFAULT_BEDTIME", "22:00:00")
    DAY_START_HOUR: int = int(os.getenv("NIGHTCAP_DAY_START_HOUR", "6"))

    LOG_LEVEL: str = os.getenv("NIGHTCAP_LOG_LEVEL", "INFO")


settings = Settings()
