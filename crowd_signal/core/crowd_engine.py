"""CrowdEngine — the user-facing "now" view of a venue.

Pure function: accepts already-fetched reports and an instant, returns a
VenueSnapshot.  No I/O, no state, no mutation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable

from crowd_signal.core.confidence import ConfidenceConfig, estimate_confidence
from crowd_signal.core.scoring import ConsensusScorer, LabelBoundaries, classify
from crowd_signal.core.trend import TrendDetector
from crowd_signal.domain.enums import CrowdLabel
from crowd_signal.domain.report import Report
from crowd_signal.domain.snapshot import VenueSnapshot


@dataclass(frozen=True)
class WindowConfig:
    """How far back reports stay relevant."""

    active_window_minutes: int = 180


class CrowdEngine:
    """Composes scorer, classifier, confidence and trend for one venue."""

    def __init__(
        self,
        scorer: ConsensusScorer | None = None,
        boundaries: LabelBoundaries | None = None,
        confidence_config: ConfidenceConfig | None = None,
        trend_detector: TrendDetector | None = None,
        window: WindowConfig | None = None,
    ) -> None:
        self._scorer = scorer or ConsensusScorer()
        self._boundaries = boundaries or LabelBoundaries()
        self._confidence_config = confidence_config or ConfidenceConfig()
        self._trend = trend_detector or TrendDetector(self._scorer)
        self._window = window or WindowConfig()

    @property
    def boundaries(self) -> LabelBoundaries:
        return self._boundaries

    def window_start(self, now: datetime) -> datetime:
        return now - timedelta(minutes=self._window.active_window_minutes)

    def in_window(self, reports: Iterable[Report], now: datetime) -> list[Report]:
        """Reports inside the active window, newest first."""
        since = self.window_start(now)
        recent = [r for r in reports if r.created_at >= since]
        return sorted(recent, key=lambda r: r.created_at, reverse=True)

    def current_signal(self, reports: Iterable[Report], now: datetime) -> float:
        return self._scorer.score(self.in_window(reports, now), now)

    def current_label(self, reports: Iterable[Report], now: datetime) -> CrowdLabel:
        return classify(self.current_signal(reports, now), self._boundaries)

    def evaluate(self, venue_id: str, reports: Iterable[Report], now: datetime) -> VenueSnapshot:
        recent = self.in_window(reports, now)
        signal = self._scorer.score(recent, now)
        latest = recent[0] if recent else None

        return VenueSnapshot(
            venue_id=venue_id,
            signal=signal,
            label=classify(signal, self._boundaries),
            confidence=estimate_confidence(
                latest.created_at if latest else None,
                len(recent),
                now,
                self._confidence_config,
            ),
            trend=self._trend.detect(recent, now),
            report_count=len(recent),
            last_report_age_minutes=(
                max(0.0, latest.age_minutes(now)) if latest else None
            ),
            line_outside=latest.line_outside if latest else False,
        )
