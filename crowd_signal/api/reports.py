"""REST endpoint for report submission.

Path: POST /api/report

Validates, rate-limits and stores one report.  Guardrail rejections are
expected traffic and come back as 429 with a wait hint.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from crowd_signal.core.errors import (
    InvalidInputError,
    RateLimitedError,
    StorageUnavailableError,
)
from crowd_signal.core.submission import SubmissionService

logger = logging.getLogger(__name__)


class ReportRequest(BaseModel):
    venue_id: Any = None
    status: Any = None
    device_id: Any = None
    line_outside: bool = False


def error_response(exc: Exception) -> JSONResponse:
    """Map a pipeline error onto an HTTP response."""
    if isinstance(exc, InvalidInputError):
        return JSONResponse({"ok": False, "error": str(exc)}, status_code=400)
    if isinstance(exc, RateLimitedError):
        return JSONResponse(
            {"ok": False, "error": str(exc), "reason": exc.reason, "wait_minutes": exc.wait_minutes},
            status_code=429,
        )
    if isinstance(exc, StorageUnavailableError):
        logger.error("Storage unavailable: %s", exc)
        return JSONResponse({"ok": False, "error": "Storage unavailable"}, status_code=503)
    raise exc


def create_report_router(service: SubmissionService) -> APIRouter:
    """Factory that wires the report endpoint to a SubmissionService."""

    router = APIRouter(prefix="/api", tags=["reports"])

    @router.post("/report", response_model=None)
    async def submit_report(body: ReportRequest) -> dict[str, Any] | JSONResponse:
        try:
            report = await service.submit(
                body.venue_id,
                body.status,
                body.device_id,
                line_outside=body.line_outside,
            )
        except (InvalidInputError, RateLimitedError, StorageUnavailableError) as exc:
            return error_response(exc)
        return {"ok": True, "report_id": str(report.report_id)}

    return router
