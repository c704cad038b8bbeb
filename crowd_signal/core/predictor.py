"""Predictor — short-horizon crowd level from current signal + history.

    blended = baseline_weight * baseline_mean + current_weight * current_signal

With no baseline for the target bucket the current signal is used as is.
A failing baseline lookup degrades to the same fallback instead of failing
the whole prediction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable

from crowd_signal.core.crowd_engine import CrowdEngine
from crowd_signal.core.errors import StorageUnavailableError
from crowd_signal.core.scoring import classify
from crowd_signal.domain.baseline import BaselineBucket
from crowd_signal.domain.report import Report
from crowd_signal.domain.snapshot import Prediction
from crowd_signal.foundation.time_buckets import ZoneResolver
from crowd_signal.store.contracts import BaselineStore, BucketKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PredictorConfig:
    horizons_minutes: tuple[int, ...] = (30, 60, 90)
    baseline_weight: float = 0.55
    current_weight: float = 0.45


def blend(current: float, baseline_mean: float | None, config: PredictorConfig | None = None) -> float:
    """Blend the current signal with a historical mean (if any)."""
    if baseline_mean is None:
        return current
    c = config or PredictorConfig()
    return c.baseline_weight * baseline_mean + c.current_weight * current


class Predictor:
    """Forward-looking labels at fixed horizons."""

    def __init__(
        self,
        baselines: BaselineStore,
        engine: CrowdEngine | None = None,
        zones: ZoneResolver | None = None,
        config: PredictorConfig | None = None,
    ) -> None:
        self._baselines = baselines
        self._engine = engine or CrowdEngine()
        self._zones = zones or ZoneResolver()
        self._config = config or PredictorConfig()

    async def predict(
        self, venue_id: str, reports: Iterable[Report], now: datetime
    ) -> list[Prediction]:
        current = self._engine.current_signal(reports, now)
        targets = [
            (minutes, self._zones.bucket_for(venue_id, now + timedelta(minutes=minutes)))
            for minutes in self._config.horizons_minutes
        ]
        baselines = await self._lookup(venue_id, {(b.dow, b.hour) for _, b in targets})

        predictions: list[Prediction] = []
        for minutes, bucket in targets:
            found = baselines.get((bucket.dow, bucket.hour))
            baseline_mean = found.mean_score if found is not None else None
            blended = blend(current, baseline_mean, self._config)
            predictions.append(
                Prediction(
                    horizon_minutes=minutes,
                    dow=bucket.dow,
                    hour=bucket.hour,
                    baseline_mean=baseline_mean,
                    blended_signal=blended,
                    label=classify(blended, self._engine.boundaries),
                )
            )
        return predictions

    async def _lookup(
        self, venue_id: str, keys: set[BucketKey]
    ) -> dict[BucketKey, BaselineBucket]:
        try:
            return await self._baselines.get_many(venue_id, keys)
        except StorageUnavailableError as exc:
            logger.warning(
                "Baseline lookup for %s failed, predicting from current signal: %s",
                venue_id, exc,
            )
            return {}
