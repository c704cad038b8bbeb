"""AlertEvaluator — batch pass over active subscriptions.

Per-subscription state machine:

    inactive                     → skip
    triggered < cooldown ago     → skip
    label misses threshold       → skip
    notify() confirmed           → last_triggered_at = now   (notified)
    notify() failed / raised     → unchanged                 (pending, retried next run)

The stored cooldown timestamp is the only concurrency guard.  Overlapping
runs can at worst deliver one duplicate within a cooldown window.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta

from crowd_signal.core.crowd_engine import CrowdEngine
from crowd_signal.core.scoring import label_ordinal
from crowd_signal.domain.enums import AlertThreshold, CrowdLabel
from crowd_signal.domain.report import Report
from crowd_signal.domain.subscription import AlertSubscription
from crowd_signal.foundation.clock import Clock, minutes_between, utc_now
from crowd_signal.store.contracts import Notifier, ReportStore, SubscriptionStore, VenueDirectory

logger = logging.getLogger(__name__)

UNKNOWN_VENUE_NAME = "Unknown venue"


@dataclass(frozen=True)
class AlertConfig:
    cooldown_minutes: float = 60.0
    lookback_minutes: int = 180


@dataclass(frozen=True)
class AlertRunResult:
    processed: int = 0
    triggered: int = 0
    failed: int = 0

    def to_dict(self) -> dict:
        return {"processed": self.processed, "triggered": self.triggered, "failed": self.failed}


def threshold_met(threshold: AlertThreshold, label: CrowdLabel) -> bool:
    ordinal = label_ordinal(label)
    if threshold == AlertThreshold.MEDIUM_OR_LOWER:
        return ordinal <= 2
    if threshold == AlertThreshold.LOW:
        return ordinal == 1
    return False


class AlertEvaluator:
    """Decides which subscriptions fire and records confirmed deliveries."""

    def __init__(
        self,
        subscriptions: SubscriptionStore,
        reports: ReportStore,
        venues: VenueDirectory,
        notifier: Notifier,
        engine: CrowdEngine | None = None,
        config: AlertConfig | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._subscriptions = subscriptions
        self._reports = reports
        self._venues = venues
        self._notifier = notifier
        self._engine = engine or CrowdEngine()
        self._config = config or AlertConfig()
        self._clock = clock

    def in_cooldown(self, subscription: AlertSubscription, now: datetime) -> bool:
        if subscription.last_triggered_at is None:
            return False
        elapsed = minutes_between(now, subscription.last_triggered_at)
        return elapsed < self._config.cooldown_minutes

    async def run(self) -> AlertRunResult:
        """Evaluate every active subscription once."""
        now = self._clock()
        subscriptions = await self._subscriptions.list_active()
        if not subscriptions:
            return AlertRunResult()

        # Bulk loads: one venue lookup and one report query for the whole batch
        venue_ids = sorted({s.venue_id for s in subscriptions})
        names = await self._venues.get_names(venue_ids)
        since = now - timedelta(minutes=self._config.lookback_minutes)
        by_venue: dict[str, list[Report]] = defaultdict(list)
        for report in await self._reports.query(venue_ids, since):
            by_venue[report.venue_id].append(report)

        labels: dict[str, CrowdLabel] = {}
        triggered = 0
        failed = 0
        for subscription in subscriptions:
            if not subscription.active or self.in_cooldown(subscription, now):
                continue

            venue_id = subscription.venue_id
            if venue_id not in labels:
                labels[venue_id] = self._engine.current_label(by_venue[venue_id], now)
            label = labels[venue_id]

            if not threshold_met(subscription.threshold, label):
                continue

            venue_name = names.get(venue_id, UNKNOWN_VENUE_NAME)
            if await self._deliver(subscription, venue_name, label):
                await self._subscriptions.set_last_triggered(subscription.subscription_id, now)
                triggered += 1
            else:
                failed += 1

        result = AlertRunResult(processed=len(subscriptions), triggered=triggered, failed=failed)
        logger.info(
            "Alert run: processed=%d triggered=%d failed=%d",
            result.processed, result.triggered, result.failed,
        )
        return result

    async def _deliver(
        self, subscription: AlertSubscription, venue_name: str, label: CrowdLabel
    ) -> bool:
        # One subscription's delivery problem must not abort the batch
        try:
            delivered = await self._notifier.notify(subscription, venue_name, label)
        except Exception as exc:
            logger.warning(
                "Notify failed for subscription %s: %s", subscription.subscription_id, exc
            )
            return False
        if not delivered:
            logger.warning(
                "Notify not confirmed for subscription %s, will retry next run",
                subscription.subscription_id,
            )
        return bool(delivered)
