"""Recency-and-volume confidence heuristic.

Not a statistical interval: the newest report must be fresh enough and
the window must hold enough reports.  The High rule is checked first.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from crowd_signal.domain.enums import Confidence
from crowd_signal.foundation.clock import minutes_between


@dataclass(frozen=True)
class ConfidenceConfig:
    high_max_age_minutes: int = 10
    high_min_reports: int = 3
    medium_max_age_minutes: int = 25
    medium_min_reports: int = 2


def estimate_confidence(
    latest_at: datetime | None,
    report_count: int,
    now: datetime,
    config: ConfidenceConfig | None = None,
) -> Confidence:
    """Qualitative confidence from the newest report's age and the window size."""
    if latest_at is None:
        return Confidence.LOW

    c = config or ConfidenceConfig()
    # Whole minutes, matching the "updated N min ago" the user sees.
    age = max(0, math.floor(minutes_between(now, latest_at) + 0.5))

    if age <= c.high_max_age_minutes and report_count >= c.high_min_reports:
        return Confidence.HIGH
    if age <= c.medium_max_age_minutes and report_count >= c.medium_min_reports:
        return Confidence.MEDIUM
    return Confidence.LOW
