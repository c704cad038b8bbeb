"""REST endpoints for the venue crowd views.

Paths:
    GET /api/venues             (overview of every venue, no predictions)
    GET /api/venues/{venue_id}  (snapshot plus 30/60/90 minute predictions)
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse

from crowd_signal.api.reports import error_response
from crowd_signal.core.crowd_engine import CrowdEngine
from crowd_signal.core.errors import StorageUnavailableError
from crowd_signal.core.predictor import Predictor
from crowd_signal.domain.report import Report
from crowd_signal.foundation.clock import Clock, utc_now
from crowd_signal.store.contracts import ReportStore, VenueDirectory


def create_venue_router(
    reports: ReportStore,
    venues: VenueDirectory,
    engine: CrowdEngine,
    predictor: Predictor,
    clock: Clock = utc_now,
) -> APIRouter:
    """Factory that wires the venue views to stores, engine and predictor."""

    router = APIRouter(prefix="/api", tags=["venues"])

    @router.get("/venues", response_model=None)
    async def venue_overview() -> dict[str, Any] | JSONResponse:
        try:
            names = await venues.list_all()
            now = clock()
            # One report query for the whole directory
            by_venue: dict[str, list[Report]] = defaultdict(list)
            if names:
                for report in await reports.query(list(names), engine.window_start(now)):
                    by_venue[report.venue_id].append(report)
        except StorageUnavailableError as exc:
            return error_response(exc)

        return {
            "venues": [
                {
                    "venue": {"id": venue_id, "name": name},
                    "snapshot": engine.evaluate(
                        venue_id, by_venue.get(venue_id, []), now
                    ).model_dump(mode="json"),
                }
                for venue_id, name in names.items()
            ]
        }

    @router.get("/venues/{venue_id}", response_model=None)
    async def venue_view(venue_id: str) -> dict[str, Any] | JSONResponse:
        try:
            names = await venues.get_names([venue_id])
            if venue_id not in names:
                raise HTTPException(status_code=404, detail=f"Venue {venue_id} not found")

            now = clock()
            recent = await reports.query([venue_id], engine.window_start(now))
            snapshot = engine.evaluate(venue_id, recent, now)
            predictions = await predictor.predict(venue_id, recent, now)
        except StorageUnavailableError as exc:
            return error_response(exc)

        return {
            "venue": {"id": venue_id, "name": names[venue_id]},
            "snapshot": snapshot.model_dump(mode="json"),
            "predictions": [p.model_dump(mode="json") for p in predictions],
        }

    return router
