"""Trend detection over two adjacent report windows.

    current  = reports aged <= current_window
    previous = reports aged in (current_window, previous_window]

Each window is scored independently with the consensus scorer.  Too few
reports in either window yields UNKNOWN, which is distinct from FLAT.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from crowd_signal.core.scoring import ConsensusScorer
from crowd_signal.domain.enums import Trend
from crowd_signal.domain.report import Report


@dataclass(frozen=True)
class TrendConfig:
    current_window_minutes: float = 30.0
    previous_window_minutes: float = 90.0
    min_reports_per_window: int = 2
    # Signal change below this is treated as noise
    noise_floor: float = 0.25


class TrendDetector:
    """Stateless comparison of the current and previous window signals."""

    def __init__(
        self,
        scorer: ConsensusScorer | None = None,
        config: TrendConfig | None = None,
    ) -> None:
        self._scorer = scorer or ConsensusScorer()
        self._config = config or TrendConfig()

    def detect(self, reports: Iterable[Report], now: datetime) -> Trend:
        cfg = self._config
        current: list[Report] = []
        previous: list[Report] = []
        for report in reports:
            age = report.age_minutes(now)
            if age <= cfg.current_window_minutes:
                current.append(report)
            elif age <= cfg.previous_window_minutes:
                previous.append(report)

        if len(current) < cfg.min_reports_per_window or len(previous) < cfg.min_reports_per_window:
            return Trend.UNKNOWN

        diff = self._scorer.score(current, now) - self._scorer.score(previous, now)
        if diff >= cfg.noise_floor:
            return Trend.UP
        if diff <= -cfg.noise_floor:
            return Trend.DOWN
        return Trend.FLAT
