"""BaselineTracker — running per-(venue, dow, hour) mean of report statuses.

The only persisted derived state the pipeline mutates.  Each accepted
report is folded into its local-time bucket with a conditional upsert;
a concurrent writer on the same bucket causes a re-read and retry rather
than a lost update.
"""

from __future__ import annotations

import logging

from crowd_signal.core.errors import StorageUnavailableError
from crowd_signal.domain.baseline import BaselineBucket
from crowd_signal.domain.report import Report
from crowd_signal.foundation.time_buckets import ZoneResolver
from crowd_signal.store.contracts import BaselineStore

logger = logging.getLogger(__name__)


class BaselineTracker:
    """Incrementally updates baseline buckets from accepted reports.

    Args:
        store: Baseline persistence.
        zones: Resolves the civil timezone of each venue.
        max_attempts: Compare-and-swap attempts before giving up.
    """

    def __init__(
        self,
        store: BaselineStore,
        zones: ZoneResolver | None = None,
        max_attempts: int = 5,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._store = store
        self._zones = zones or ZoneResolver()
        self._max_attempts = max_attempts

    async def record(self, report: Report) -> BaselineBucket:
        """Fold *report* into its bucket and return the updated bucket."""
        bucket_key = self._zones.bucket_for(report.venue_id, report.created_at)

        for attempt in range(1, self._max_attempts + 1):
            current = await self._store.get(report.venue_id, bucket_key.dow, bucket_key.hour)
            if current is None:
                current = BaselineBucket.seed(report.venue_id, bucket_key.dow, bucket_key.hour)

            updated = current.absorb(int(report.status))
            if await self._store.upsert(updated, expected_n=current.n):
                logger.debug(
                    "Baseline %s %s → mean=%.3f n=%d",
                    report.venue_id, bucket_key, updated.mean_score, updated.n,
                )
                return updated

            logger.info(
                "Baseline update for %s %s raced (attempt %d/%d), retrying",
                report.venue_id, bucket_key, attempt, self._max_attempts,
            )

        raise StorageUnavailableError(
            f"baseline bucket {report.venue_id} {bucket_key} kept changing; "
            f"gave up after {self._max_attempts} attempts"
        )
