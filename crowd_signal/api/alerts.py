"""REST endpoints for alert subscriptions and the evaluator trigger.

Paths:
    POST /api/alerts/subscribe
    POST /api/alerts/unsubscribe
    POST /api/alerts/run        (called by an external scheduler)
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from crowd_signal.api.reports import error_response
from crowd_signal.core.alert_evaluator import AlertEvaluator
from crowd_signal.core.errors import InvalidInputError, StorageUnavailableError
from crowd_signal.core.subscriptions import SubscriptionService


class SubscriptionRequest(BaseModel):
    venue_id: Any = None
    device_id: Any = None
    threshold: Any = None


def create_alert_router(
    subscriptions: SubscriptionService,
    evaluator: AlertEvaluator,
) -> APIRouter:
    """Factory that wires alert endpoints to the subscription service and evaluator."""

    router = APIRouter(prefix="/api/alerts", tags=["alerts"])

    @router.post("/subscribe", response_model=None)
    async def subscribe(body: SubscriptionRequest) -> dict[str, Any] | JSONResponse:
        try:
            sub = await subscriptions.subscribe(body.venue_id, body.device_id, body.threshold)
        except (InvalidInputError, StorageUnavailableError) as exc:
            return error_response(exc)
        return {"ok": True, "subscription_id": str(sub.subscription_id)}

    @router.post("/unsubscribe", response_model=None)
    async def unsubscribe(body: SubscriptionRequest) -> dict[str, Any] | JSONResponse:
        try:
            found = await subscriptions.unsubscribe(body.venue_id, body.device_id, body.threshold)
        except (InvalidInputError, StorageUnavailableError) as exc:
            return error_response(exc)
        return {"ok": True, "deactivated": found}

    @router.post("/run", response_model=None)
    async def run_alerts() -> dict[str, Any] | JSONResponse:
        try:
            result = await evaluator.run()
        except StorageUnavailableError as exc:
            return error_response(exc)
        return result.to_dict()

    return router
