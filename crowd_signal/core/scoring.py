"""Decayed consensus scoring and label classification.

Signal formula (two passes over one venue's reports):

    quick pass:  reports aged <= consensus_window
                 w = exp(-age / decay_minutes)
                 consensus = round(sum(w * status) / sum(w))      (default 2)

    final pass:  every supplied report
                 w = exp(-age / decay_minutes) * damp
                 damp = outlier_damping if |status - consensus| >= outlier_distance else 1
                 signal = sum(w * status) / sum(w)                (default 2.0)

A minority of reports that disagree sharply with the short-term consensus
is damped, never dropped.  Ages are continuous minutes.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from crowd_signal.domain.enums import CrowdLabel
from crowd_signal.domain.report import Report


@dataclass(frozen=True)
class DecayConfig:
    """Tunable constants for the consensus scorer."""

    decay_minutes: float = 30.0
    consensus_window_minutes: float = 30.0
    outlier_distance: int = 2
    outlier_damping: float = 0.25
    neutral_signal: float = 2.0


@dataclass(frozen=True)
class LabelBoundaries:
    """Upper (exclusive) signal bound of each label below Insane."""

    low_below: float = 1.6
    medium_below: float = 2.4
    high_below: float = 3.2


_ORDINALS: dict[CrowdLabel, int] = {
    CrowdLabel.LOW: 1,
    CrowdLabel.MEDIUM: 2,
    CrowdLabel.HIGH: 3,
    CrowdLabel.INSANE: 4,
}


def classify(signal: float, boundaries: LabelBoundaries | None = None) -> CrowdLabel:
    """Map a signal onto one of the four ordered labels."""
    b = boundaries or LabelBoundaries()
    if signal < b.low_below:
        return CrowdLabel.LOW
    if signal < b.medium_below:
        return CrowdLabel.MEDIUM
    if signal < b.high_below:
        return CrowdLabel.HIGH
    return CrowdLabel.INSANE


def label_ordinal(label: CrowdLabel) -> int:
    """Inverse of the classifier's ordering: Low=1 .. Insane=4."""
    return _ORDINALS[label]


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class ConsensusScorer:
    """Stateless decayed-consensus scorer.  Pure function of (reports, now)."""

    def __init__(self, config: DecayConfig | None = None) -> None:
        self._config = config or DecayConfig()

    def decay_weight(self, age_minutes: float) -> float:
        return math.exp(-age_minutes / self._config.decay_minutes)

    def consensus(self, reports: Iterable[Report], now: datetime) -> int:
        """Rounded weighted mean of the recent reports, or the neutral level."""
        weight_sum = 0.0
        score_sum = 0.0
        for report in reports:
            age = report.age_minutes(now)
            if age <= self._config.consensus_window_minutes:
                w = self.decay_weight(age)
                weight_sum += w
                score_sum += w * int(report.status)
        if weight_sum > 0:
            return _round_half_up(score_sum / weight_sum)
        return _round_half_up(self._config.neutral_signal)

    def score(self, reports: Iterable[Report], now: datetime) -> float:
        """Damped, decayed weighted mean of *reports*, in [1, 4]."""
        reports = list(reports)
        if not reports:
            return self._config.neutral_signal

        consensus = self.consensus(reports, now)
        weight_sum = 0.0
        score_sum = 0.0
        for report in reports:
            status = int(report.status)
            w = self.decay_weight(report.age_minutes(now))
            if abs(status - consensus) >= self._config.outlier_distance:
                w *= self._config.outlier_damping
            weight_sum += w
            score_sum += w * status

        if weight_sum <= 0.0:
            return self._config.neutral_signal
        return score_sum / weight_sum
