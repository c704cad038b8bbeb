"""Storage and delivery protocols the pipeline depends on.

The pipeline never knows which database sits behind these.  Swap
implementations to change persistence without touching scoring logic.
Implementations should raise StorageUnavailableError on backend failure.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Protocol
from uuid import UUID

from crowd_signal.domain.baseline import BaselineBucket
from crowd_signal.domain.enums import AlertThreshold, CrowdLabel
from crowd_signal.domain.report import Report
from crowd_signal.domain.subscription import AlertSubscription

BucketKey = tuple[int, int]


class ReportStore(Protocol):
    async def insert(self, report: Report) -> None:
        ...

    async def query(self, venue_ids: Iterable[str], since: datetime) -> list[Report]:
        """Reports for any of *venue_ids* created at or after *since*, newest first."""
        ...

    async def latest_for(self, venue_id: str, device_id: str) -> Report | None:
        ...

    async def count_for_device_since(self, device_id: str, since: datetime) -> int:
        """Reports by *device_id* for any venue created at or after *since*."""
        ...


class BaselineStore(Protocol):
    async def get(self, venue_id: str, dow: int, hour: int) -> BaselineBucket | None:
        ...

    async def get_many(self, venue_id: str, keys: Iterable[BucketKey]) -> dict[BucketKey, BaselineBucket]:
        ...

    async def upsert(self, bucket: BaselineBucket, expected_n: int | None = None) -> bool:
        """Write *bucket* keyed by (venue, dow, hour).

        With *expected_n* set the write is conditional: it only applies if
        the stored count still equals *expected_n* (0 meaning "absent").
        Returns False when the condition fails.
        """
        ...


class SubscriptionStore(Protocol):
    async def upsert_active(
        self, venue_id: str, device_id: str, threshold: AlertThreshold
    ) -> AlertSubscription:
        ...

    async def deactivate(self, venue_id: str, device_id: str, threshold: AlertThreshold) -> bool:
        ...

    async def list_active(self) -> list[AlertSubscription]:
        ...

    async def set_last_triggered(self, subscription_id: UUID, timestamp: datetime) -> None:
        ...


class VenueDirectory(Protocol):
    async def get_names(self, venue_ids: Iterable[str]) -> dict[str, str]:
        """Names of the venues that exist; unknown ids are simply absent."""
        ...

    async def list_all(self) -> dict[str, str]:
        """Every venue as id -> name, ordered by name."""
        ...


class Notifier(Protocol):
    async def notify(
        self, subscription: AlertSubscription, venue_name: str, label: CrowdLabel
    ) -> bool:
        """Deliver an alert.  True only on confirmed delivery."""
        ...
