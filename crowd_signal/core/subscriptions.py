"""Subscribe / unsubscribe with validation in front of the store."""

from __future__ import annotations

import logging
from typing import Any

from crowd_signal.core.errors import InvalidInputError
from crowd_signal.core.submission import parse_device_id, parse_ordinal, parse_venue_id
from crowd_signal.domain.enums import AlertThreshold
from crowd_signal.domain.subscription import AlertSubscription
from crowd_signal.store.contracts import SubscriptionStore, VenueDirectory

logger = logging.getLogger(__name__)


def parse_threshold(raw: Any) -> AlertThreshold:
    try:
        return AlertThreshold(parse_ordinal(raw))
    except (TypeError, ValueError, OverflowError) as exc:
        raise InvalidInputError("Threshold must be 1 (Low) or 2 (Medium-or-lower)") from exc


class SubscriptionService:
    def __init__(self, store: SubscriptionStore, venues: VenueDirectory) -> None:
        self._store = store
        self._venues = venues

    async def subscribe(self, venue_id: Any, device_id: Any, threshold: Any) -> AlertSubscription:
        """Create or reactivate the (venue, device, threshold) subscription."""
        key = await self._validate(venue_id, device_id, threshold)
        return await self._store.upsert_active(*key)

    async def unsubscribe(self, venue_id: Any, device_id: Any, threshold: Any) -> bool:
        """Deactivate the subscription.  Returns False if it never existed."""
        key = await self._validate(venue_id, device_id, threshold)
        removed = await self._store.deactivate(*key)
        if removed:
            logger.info("Deactivated subscription %s", key)
        return removed

    async def _validate(
        self, venue_id: Any, device_id: Any, threshold: Any
    ) -> tuple[str, str, AlertThreshold]:
        parsed = parse_threshold(threshold)
        device = parse_device_id(device_id)
        venue_id = parse_venue_id(venue_id)
        if venue_id not in await self._venues.get_names([venue_id]):
            raise InvalidInputError(f"Unknown venue: {venue_id}")
        return venue_id, device, parsed
