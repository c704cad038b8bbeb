"""End-to-end tests through the FastAPI routes."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from crowd_signal.config import Settings
from crowd_signal.core.errors import StorageUnavailableError
from crowd_signal.domain.baseline import BaselineBucket
from crowd_signal.main import create_app
from crowd_signal.store.memory import (
    InMemoryBaselineStore,
    InMemoryReportStore,
    InMemoryVenueDirectory,
)

from tests.factories import _BASE, MutableClock


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock(_BASE)


@pytest.fixture
def baselines() -> InMemoryBaselineStore:
    return InMemoryBaselineStore()


@pytest.fixture
def client(clock: MutableClock, baselines: InMemoryBaselineStore) -> TestClient:
    app = create_app(
        Settings(),
        reports=InMemoryReportStore(),
        baselines=baselines,
        venues=InMemoryVenueDirectory({"v1": "Rick's"}),
        clock=clock,
    )
    return TestClient(app)


class CountingReportStore(InMemoryReportStore):
    def __init__(self) -> None:
        super().__init__()
        self.queries = 0

    async def query(self, venue_ids, since):
        self.queries += 1
        return await super().query(venue_ids, since)


class UnavailableReportStore(InMemoryReportStore):
    async def query(self, venue_ids, since):
        raise StorageUnavailableError("report store offline")


def _client_with(reports: InMemoryReportStore, venues: dict[str, str], clock: MutableClock) -> TestClient:
    app = create_app(
        Settings(),
        reports=reports,
        baselines=InMemoryBaselineStore(),
        venues=InMemoryVenueDirectory(venues),
        clock=clock,
    )
    return TestClient(app)


def _report(client: TestClient, device: str, status=1, venue="v1"):
    return client.post(
        "/api/report",
        json={"venue_id": venue, "status": status, "device_id": device, "line_outside": True},
    )


class TestReportEndpoint:
    def test_accepts_report(self, client: TestClient) -> None:
        resp = _report(client, "dev-1")
        assert resp.status_code == 200
        assert resp.json()["ok"] is True

    def test_cooldown_returns_429_with_wait(self, client: TestClient, clock: MutableClock) -> None:
        _report(client, "dev-1")
        clock.advance(9)
        resp = _report(client, "dev-1")
        assert resp.status_code == 429
        body = resp.json()
        assert body["reason"] == "cooldown"
        assert body["wait_minutes"] == 1

    def test_invalid_status_returns_400(self, client: TestClient) -> None:
        resp = _report(client, "dev-1", status=7)
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid status"

    def test_unknown_venue_returns_400(self, client: TestClient) -> None:
        assert _report(client, "dev-1", venue="nowhere").status_code == 400

    def test_oversized_status_returns_400(self, client: TestClient) -> None:
        resp = _report(client, "dev-1", status=10 ** 400)
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid status"

    def test_numeric_venue_id_returns_400(self, client: TestClient) -> None:
        resp = _report(client, "dev-1", venue=42)
        assert resp.status_code == 400
        assert resp.json()["error"] == "Unknown venue: 42"


class TestVenueEndpoint:
    def test_view_after_reports(self, client: TestClient, clock: MutableClock) -> None:
        for minutes_ago, device in ((8, "a"), (5, "b"), (1, "c")):
            clock.now = _BASE - timedelta(minutes=minutes_ago)
            assert _report(client, device).status_code == 200
        clock.now = _BASE

        body = client.get("/api/venues/v1").json()

        assert body["venue"] == {"id": "v1", "name": "Rick's"}
        snap = body["snapshot"]
        assert snap["label"] == "Low"
        assert snap["confidence"] == "High"
        assert snap["trend"] == "unknown"
        assert snap["line_outside"] is True
        assert snap["report_count"] == 3
        assert [p["horizon_minutes"] for p in body["predictions"]] == [30, 60, 90]

    def test_prediction_uses_baseline(
        self, client: TestClient, clock: MutableClock, baselines: InMemoryBaselineStore
    ) -> None:
        asyncio.run(
            baselines.upsert(BaselineBucket(venue_id="v1", dow=4, hour=14, mean_score=3.0, n=50))
        )
        for minutes_ago, device in ((8, "a"), (5, "b"), (1, "c")):
            clock.now = _BASE - timedelta(minutes=minutes_ago)
            _report(client, device)
        clock.now = _BASE

        predictions = client.get("/api/venues/v1").json()["predictions"]

        # +30 lands in 13:00 (no history); +60 lands in the seeded 14:00 bucket
        assert predictions[0]["label"] == "Low"
        assert predictions[1]["baseline_mean"] == 3.0
        assert predictions[1]["blended_signal"] == pytest.approx(2.1)
        assert predictions[1]["label"] == "Medium"

    def test_unknown_venue_404(self, client: TestClient) -> None:
        assert client.get("/api/venues/nowhere").status_code == 404

    def test_storage_outage_returns_503(self, clock: MutableClock) -> None:
        client = _client_with(UnavailableReportStore(), {"v1": "Rick's"}, clock)
        resp = client.get("/api/venues/v1")
        assert resp.status_code == 503
        assert resp.json() == {"ok": False, "error": "Storage unavailable"}


class TestVenueOverview:
    def test_every_venue_from_one_query(self, clock: MutableClock) -> None:
        reports = CountingReportStore()
        client = _client_with(
            reports, {"v1": "Rick's", "v2": "Skeeps", "v3": "Charley's"}, clock
        )
        for minutes_ago, device in ((8, "a"), (5, "b"), (1, "c")):
            clock.now = _BASE - timedelta(minutes=minutes_ago)
            assert _report(client, device).status_code == 200
        assert _report(client, "d", status=4, venue="v2").status_code == 200
        clock.now = _BASE
        reports.queries = 0

        rows = client.get("/api/venues").json()["venues"]

        assert reports.queries == 1
        assert [row["venue"]["id"] for row in rows] == ["v3", "v1", "v2"]
        charley, ricks, skeeps = (row["snapshot"] for row in rows)
        assert (ricks["label"], ricks["confidence"], ricks["report_count"]) == ("Low", "High", 3)
        assert (skeeps["label"], skeeps["confidence"], skeeps["report_count"]) == ("Insane", "Low", 1)
        assert (charley["label"], charley["report_count"]) == ("Medium", 0)
        assert charley["last_report_age_minutes"] is None
        assert "predictions" not in rows[0]

    def test_empty_directory(self, clock: MutableClock) -> None:
        reports = CountingReportStore()
        client = _client_with(reports, {}, clock)
        assert client.get("/api/venues").json() == {"venues": []}
        assert reports.queries == 0

    def test_storage_outage_returns_503(self, clock: MutableClock) -> None:
        client = _client_with(UnavailableReportStore(), {"v1": "Rick's"}, clock)
        assert client.get("/api/venues").status_code == 503


class TestAlertEndpoints:
    def test_subscribe_is_idempotent(self, client: TestClient) -> None:
        payload = {"venue_id": "v1", "device_id": "dev-1", "threshold": 1}
        first = client.post("/api/alerts/subscribe", json=payload).json()
        second = client.post("/api/alerts/subscribe", json=payload).json()
        assert first["ok"] and second["ok"]
        assert first["subscription_id"] == second["subscription_id"]

    def test_subscribe_bad_threshold(self, client: TestClient) -> None:
        resp = client.post(
            "/api/alerts/subscribe", json={"venue_id": "v1", "device_id": "dev-1", "threshold": 3}
        )
        assert resp.status_code == 400

    def test_subscribe_oversized_threshold(self, client: TestClient) -> None:
        resp = client.post(
            "/api/alerts/subscribe",
            json={"venue_id": "v1", "device_id": "dev-1", "threshold": 10 ** 400},
        )
        assert resp.status_code == 400

    def test_subscribe_numeric_venue_returns_400(self, client: TestClient) -> None:
        resp = client.post(
            "/api/alerts/subscribe", json={"venue_id": 7, "device_id": "dev-1", "threshold": 1}
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "Unknown venue: 7"

    def test_run_triggers_and_respects_cooldown(self, client: TestClient, clock: MutableClock) -> None:
        for device in ("a", "b", "c"):
            _report(client, device)
        client.post("/api/alerts/subscribe", json={"venue_id": "v1", "device_id": "dev-1", "threshold": 1})

        assert client.post("/api/alerts/run").json() == {"processed": 1, "triggered": 1, "failed": 0}
        clock.advance(30)
        assert client.post("/api/alerts/run").json()["triggered"] == 0

    def test_unsubscribe_stops_alerts(self, client: TestClient) -> None:
        payload = {"venue_id": "v1", "device_id": "dev-1", "threshold": 2}
        client.post("/api/alerts/subscribe", json=payload)
        assert client.post("/api/alerts/unsubscribe", json=payload).json()["deactivated"] is True
        assert client.post("/api/alerts/run").json()["processed"] == 0


def test_health(client: TestClient) -> None:
    assert client.get("/health").json()["status"] == "ok"
