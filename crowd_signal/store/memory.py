"""In-memory stores with async-safe access.

Design notes:
    - An asyncio.Lock guards every mutation so concurrent request handlers
      never corrupt state.
    - Baseline writes are keyed upserts with an optional compare-and-swap
      on the sample count; a bucket key never maps to two rows.
    - Subscriptions are unique on (venue, device, threshold); subscribing
      again reactivates the existing row instead of inserting.
    - Retention is not handled here.  Reports are kept until the process ends.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Iterable
from uuid import UUID

from crowd_signal.domain.baseline import BaselineBucket
from crowd_signal.domain.enums import AlertThreshold
from crowd_signal.domain.report import Report
from crowd_signal.domain.subscription import AlertSubscription
from crowd_signal.store.contracts import BucketKey

logger = logging.getLogger(__name__)


class InMemoryReportStore:
    """Append-only report log."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._reports: list[Report] = []

    async def insert(self, report: Report) -> None:
        async with self._lock:
            self._reports.append(report)
            logger.debug("Stored report %s for venue %s", report.report_id, report.venue_id)

    async def query(self, venue_ids: Iterable[str], since: datetime) -> list[Report]:
        wanted = set(venue_ids)
        async with self._lock:
            matched = [
                r for r in self._reports
                if r.venue_id in wanted and r.created_at >= since
            ]
        return sorted(matched, key=lambda r: r.created_at, reverse=True)

    async def latest_for(self, venue_id: str, device_id: str) -> Report | None:
        async with self._lock:
            candidates = [
                r for r in self._reports
                if r.venue_id == venue_id and r.device_id == device_id
            ]
        if not candidates:
            return None
        return max(candidates, key=lambda r: r.created_at)

    async def count_for_device_since(self, device_id: str, since: datetime) -> int:
        async with self._lock:
            return sum(
                1 for r in self._reports
                if r.device_id == device_id and r.created_at >= since
            )

    async def count(self) -> int:
        async with self._lock:
            return len(self._reports)


class InMemoryBaselineStore:
    """Baseline buckets keyed by (venue_id, dow, hour)."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._buckets: dict[tuple[str, int, int], BaselineBucket] = {}

    async def get(self, venue_id: str, dow: int, hour: int) -> BaselineBucket | None:
        async with self._lock:
            return self._buckets.get((venue_id, dow, hour))

    async def get_many(
        self, venue_id: str, keys: Iterable[BucketKey]
    ) -> dict[BucketKey, BaselineBucket]:
        async with self._lock:
            found: dict[BucketKey, BaselineBucket] = {}
            for dow, hour in keys:
                bucket = self._buckets.get((venue_id, dow, hour))
                if bucket is not None:
                    found[(dow, hour)] = bucket
            return found

    async def upsert(self, bucket: BaselineBucket, expected_n: int | None = None) -> bool:
        async with self._lock:
            current = self._buckets.get(bucket.key)
            if expected_n is not None:
                current_n = current.n if current is not None else 0
                if current_n != expected_n:
                    logger.debug(
                        "Baseline CAS conflict on %s: expected n=%d, found n=%d",
                        bucket.key, expected_n, current_n,
                    )
                    return False
            self._buckets[bucket.key] = bucket
            return True

    async def count(self) -> int:
        async with self._lock:
            return len(self._buckets)


class InMemorySubscriptionStore:
    """Alert subscriptions, unique on (venue, device, threshold)."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._subscriptions: dict[UUID, AlertSubscription] = {}
        self._key_index: dict[tuple[str, str, int], UUID] = {}

    async def upsert_active(
        self, venue_id: str, device_id: str, threshold: AlertThreshold
    ) -> AlertSubscription:
        key = (venue_id, device_id, int(threshold))
        async with self._lock:
            sid = self._key_index.get(key)
            if sid is not None:
                existing = self._subscriptions[sid]
                if not existing.active:
                    existing = existing.model_copy(update={"active": True})
                    self._subscriptions[sid] = existing
                    logger.info("Reactivated subscription %s", sid)
                return existing

            subscription = AlertSubscription(
                venue_id=venue_id, device_id=device_id, threshold=threshold
            )
            self._subscriptions[subscription.subscription_id] = subscription
            self._key_index[key] = subscription.subscription_id
            logger.info("Created subscription %s for key %s", subscription.subscription_id, key)
            return subscription

    async def deactivate(self, venue_id: str, device_id: str, threshold: AlertThreshold) -> bool:
        key = (venue_id, device_id, int(threshold))
        async with self._lock:
            sid = self._key_index.get(key)
            if sid is None:
                return False
            self._subscriptions[sid] = self._subscriptions[sid].model_copy(update={"active": False})
            return True

    async def list_active(self) -> list[AlertSubscription]:
        async with self._lock:
            return [s for s in self._subscriptions.values() if s.active]

    async def set_last_triggered(self, subscription_id: UUID, timestamp: datetime) -> None:
        async with self._lock:
            existing = self._subscriptions.get(subscription_id)
            if existing is None:
                return
            self._subscriptions[subscription_id] = existing.model_copy(
                update={"last_triggered_at": timestamp}
            )

    async def get(self, subscription_id: UUID) -> AlertSubscription | None:
        async with self._lock:
            return self._subscriptions.get(subscription_id)

    async def count(self) -> int:
        async with self._lock:
            return len(self._subscriptions)


class InMemoryVenueDirectory:
    """Static id -> name directory."""

    def __init__(self, venues: dict[str, str] | None = None) -> None:
        self._venues = dict(venues or {})

    async def get_names(self, venue_ids: Iterable[str]) -> dict[str, str]:
        return {vid: self._venues[vid] for vid in venue_ids if vid in self._venues}

    async def list_all(self) -> dict[str, str]:
        return dict(sorted(self._venues.items(), key=lambda item: (item[1], item[0])))
