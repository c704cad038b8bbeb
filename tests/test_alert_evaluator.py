"""Tests for the alert evaluator batch run."""

from __future__ import annotations

from datetime import timedelta

import pytest

from crowd_signal.core.alert_evaluator import (
    UNKNOWN_VENUE_NAME,
    AlertEvaluator,
    AlertRunResult,
    threshold_met,
)
from crowd_signal.core.errors import NotifyFailure
from crowd_signal.domain.enums import AlertThreshold, CrowdLabel
from crowd_signal.store.memory import (
    InMemoryReportStore,
    InMemorySubscriptionStore,
    InMemoryVenueDirectory,
)

from tests.factories import _BASE, MutableClock, report_at


class RecordingNotifier:
    def __init__(self, outcome: bool = True, fail_devices: set[str] | None = None) -> None:
        self.outcome = outcome
        self.fail_devices = fail_devices or set()
        self.calls: list[tuple[str, str, CrowdLabel]] = []

    async def notify(self, subscription, venue_name, label) -> bool:
        self.calls.append((subscription.device_id, venue_name, label))
        if subscription.device_id in self.fail_devices:
            raise NotifyFailure("sms gateway timeout")
        return self.outcome


class CountingReportStore(InMemoryReportStore):
    def __init__(self) -> None:
        super().__init__()
        self.queries = 0

    async def query(self, venue_ids, since):
        self.queries += 1
        return await super().query(venue_ids, since)


class Harness:
    def __init__(self, notifier: RecordingNotifier | None = None) -> None:
        self.clock = MutableClock(_BASE)
        self.reports = CountingReportStore()
        self.subscriptions = InMemorySubscriptionStore()
        self.venues = InMemoryVenueDirectory({"v1": "Rick's", "v2": "Skeeps"})
        self.notifier = notifier or RecordingNotifier()
        self.evaluator = AlertEvaluator(
            self.subscriptions, self.reports, self.venues, self.notifier, clock=self.clock
        )

    async def quiet(self, venue_id: str = "v1") -> None:
        for age in (1, 5, 8):
            await self.reports.insert(report_at(age, status=1, venue_id=venue_id))

    async def busy(self, venue_id: str = "v1") -> None:
        for age in (1, 5, 8):
            await self.reports.insert(report_at(age, status=4, venue_id=venue_id))


class TestThresholdRule:
    @pytest.mark.parametrize(
        "threshold, label, fires",
        [
            (AlertThreshold.LOW, CrowdLabel.LOW, True),
            (AlertThreshold.LOW, CrowdLabel.MEDIUM, False),
            (AlertThreshold.MEDIUM_OR_LOWER, CrowdLabel.LOW, True),
            (AlertThreshold.MEDIUM_OR_LOWER, CrowdLabel.MEDIUM, True),
            (AlertThreshold.MEDIUM_OR_LOWER, CrowdLabel.HIGH, False),
            (AlertThreshold.MEDIUM_OR_LOWER, CrowdLabel.INSANE, False),
        ],
    )
    def test_threshold(self, threshold, label, fires) -> None:
        assert threshold_met(threshold, label) is fires


class TestAlertRun:
    @pytest.mark.asyncio
    async def test_no_subscriptions(self) -> None:
        h = Harness()
        assert await h.evaluator.run() == AlertRunResult(0, 0, 0)
        assert h.reports.queries == 0

    @pytest.mark.asyncio
    async def test_quiet_venue_triggers(self) -> None:
        h = Harness()
        await h.quiet()
        sub = await h.subscriptions.upsert_active("v1", "dev-1", AlertThreshold.LOW)

        result = await h.evaluator.run()

        assert result == AlertRunResult(processed=1, triggered=1, failed=0)
        assert h.notifier.calls == [("dev-1", "Rick's", CrowdLabel.LOW)]
        stored = await h.subscriptions.get(sub.subscription_id)
        assert stored.last_triggered_at == _BASE

    @pytest.mark.asyncio
    async def test_busy_venue_does_not_trigger(self) -> None:
        h = Harness()
        await h.busy()
        await h.subscriptions.upsert_active("v1", "dev-1", AlertThreshold.MEDIUM_OR_LOWER)
        result = await h.evaluator.run()
        assert result == AlertRunResult(processed=1, triggered=0, failed=0)
        assert h.notifier.calls == []

    @pytest.mark.asyncio
    async def test_no_reports_counts_as_medium(self) -> None:
        h = Harness()
        await h.subscriptions.upsert_active("v1", "dev-1", AlertThreshold.MEDIUM_OR_LOWER)
        await h.subscriptions.upsert_active("v1", "dev-2", AlertThreshold.LOW)
        result = await h.evaluator.run()
        assert result.triggered == 1
        assert h.notifier.calls == [("dev-1", "Rick's", CrowdLabel.MEDIUM)]

    @pytest.mark.asyncio
    async def test_inactive_subscription_skipped(self) -> None:
        h = Harness()
        await h.quiet()
        await h.subscriptions.upsert_active("v1", "dev-1", AlertThreshold.LOW)
        await h.subscriptions.deactivate("v1", "dev-1", AlertThreshold.LOW)
        result = await h.evaluator.run()
        assert result.processed == 0
        assert h.notifier.calls == []

    @pytest.mark.asyncio
    async def test_unknown_venue_name(self) -> None:
        h = Harness()
        await h.quiet("ghost")
        await h.subscriptions.upsert_active("ghost", "dev-1", AlertThreshold.LOW)
        await h.evaluator.run()
        assert h.notifier.calls == [("dev-1", UNKNOWN_VENUE_NAME, CrowdLabel.LOW)]

    @pytest.mark.asyncio
    async def test_reports_loaded_in_bulk(self) -> None:
        h = Harness()
        await h.quiet("v1")
        await h.busy("v2")
        for device in ("a", "b", "c"):
            await h.subscriptions.upsert_active("v1", device, AlertThreshold.LOW)
            await h.subscriptions.upsert_active("v2", device, AlertThreshold.LOW)
        result = await h.evaluator.run()
        assert result == AlertRunResult(processed=6, triggered=3, failed=0)
        assert h.reports.queries == 1

    @pytest.mark.asyncio
    async def test_old_reports_outside_lookback_ignored(self) -> None:
        h = Harness()
        for age in (200, 210, 220):
            await h.reports.insert(report_at(age, status=4))
        await h.subscriptions.upsert_active("v1", "dev-1", AlertThreshold.MEDIUM_OR_LOWER)
        assert (await h.evaluator.run()).triggered == 1


class TestAlertCooldown:
    @pytest.mark.asyncio
    async def test_within_cooldown_never_fires(self) -> None:
        h = Harness()
        await h.quiet()
        sub = await h.subscriptions.upsert_active("v1", "dev-1", AlertThreshold.LOW)
        await h.subscriptions.set_last_triggered(sub.subscription_id, _BASE - timedelta(minutes=59))
        result = await h.evaluator.run()
        assert result.triggered == 0
        assert h.notifier.calls == []

    @pytest.mark.asyncio
    async def test_after_cooldown_eligible(self) -> None:
        h = Harness()
        await h.quiet()
        sub = await h.subscriptions.upsert_active("v1", "dev-1", AlertThreshold.LOW)
        await h.subscriptions.set_last_triggered(sub.subscription_id, _BASE - timedelta(minutes=61))
        result = await h.evaluator.run()
        assert result.triggered == 1
        stored = await h.subscriptions.get(sub.subscription_id)
        assert stored.last_triggered_at == _BASE

    @pytest.mark.asyncio
    async def test_second_run_is_suppressed(self) -> None:
        h = Harness()
        await h.quiet()
        await h.subscriptions.upsert_active("v1", "dev-1", AlertThreshold.LOW)
        assert (await h.evaluator.run()).triggered == 1
        h.clock.advance(5)
        assert (await h.evaluator.run()).triggered == 0
        assert len(h.notifier.calls) == 1


class TestNotifyFailure:
    @pytest.mark.asyncio
    async def test_unconfirmed_delivery_stays_pending(self) -> None:
        h = Harness(RecordingNotifier(outcome=False))
        await h.quiet()
        sub = await h.subscriptions.upsert_active("v1", "dev-1", AlertThreshold.LOW)

        result = await h.evaluator.run()

        assert result == AlertRunResult(processed=1, triggered=0, failed=1)
        stored = await h.subscriptions.get(sub.subscription_id)
        assert stored.last_triggered_at is None

        h.clock.advance(1)
        h.notifier.outcome = True
        assert (await h.evaluator.run()).triggered == 1

    @pytest.mark.asyncio
    async def test_raising_notifier_does_not_abort_batch(self) -> None:
        h = Harness(RecordingNotifier(fail_devices={"dev-1"}))
        await h.quiet()
        bad = await h.subscriptions.upsert_active("v1", "dev-1", AlertThreshold.LOW)
        good = await h.subscriptions.upsert_active("v1", "dev-2", AlertThreshold.LOW)

        result = await h.evaluator.run()

        assert result == AlertRunResult(processed=2, triggered=1, failed=1)
        assert (await h.subscriptions.get(bad.subscription_id)).last_triggered_at is None
        assert (await h.subscriptions.get(good.subscription_id)).last_triggered_at == _BASE
