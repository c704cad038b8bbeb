"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "crowd-signal"
    debug: bool = False
    log_level: str = "INFO"

    # Civil calendar for baseline buckets and the daily cap
    default_timezone: str = "America/Detroit"
    venue_timezones: dict[str, str] = {}

    # Report relevance
    active_window_minutes: int = 180

    # Decayed consensus scorer
    decay_minutes: float = 30.0
    consensus_window_minutes: float = 30.0
    outlier_distance: int = 2
    outlier_damping: float = 0.25
    neutral_signal: float = 2.0

    # Label boundaries
    label_low_below: float = 1.6
    label_medium_below: float = 2.4
    label_high_below: float = 3.2

    # Confidence
    confidence_high_max_age_minutes: int = 10
    confidence_high_min_reports: int = 3
    confidence_medium_max_age_minutes: int = 25
    confidence_medium_min_reports: int = 2

    # Trend
    trend_current_window_minutes: float = 30.0
    trend_previous_window_minutes: float = 90.0
    trend_min_reports_per_window: int = 2
    trend_noise_floor: float = 0.25

    # Predictor
    prediction_horizons_minutes: tuple[int, ...] = (30, 60, 90)
    prediction_baseline_weight: float = 0.55
    prediction_current_weight: float = 0.45

    # Baseline tracker
    baseline_max_attempts: int = 5

    # Submission guardrail
    report_cooldown_minutes: float = 10.0
    report_daily_cap: int = 20

    # Alerts
    alert_cooldown_minutes: float = 60.0

    model_config = {"env_prefix": "CROWD_"}


settings = Settings()
