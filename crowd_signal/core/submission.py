"""SubmissionService — validated intake of crowd reports.

Order of operations:
    validate → guardrail → insert report → update baseline bucket

Invalid input is rejected before any store is touched.
"""

from __future__ import annotations

import logging
from typing import Any

from crowd_signal.core.baseline_tracker import BaselineTracker
from crowd_signal.core.errors import InvalidInputError
from crowd_signal.core.guardrail import SubmissionGuardrail
from crowd_signal.domain.enums import CrowdStatus
from crowd_signal.domain.report import Report
from crowd_signal.foundation.clock import Clock, utc_now
from crowd_signal.store.contracts import ReportStore, VenueDirectory

logger = logging.getLogger(__name__)


def parse_ordinal(raw: Any) -> int:
    """Coerce a raw numeric value (int, integral float, numeric string) to int."""
    if isinstance(raw, bool) or raw is None:
        raise ValueError("not a number")
    if isinstance(raw, int):
        return raw
    value = float(raw)
    if not value.is_integer():
        raise ValueError("not a whole number")
    return int(value)


def parse_status(raw: Any) -> CrowdStatus:
    """Coerce a raw status value into a CrowdStatus or raise InvalidInputError."""
    try:
        return CrowdStatus(parse_ordinal(raw))
    except (TypeError, ValueError, OverflowError) as exc:
        raise InvalidInputError("Invalid status") from exc


def parse_device_id(raw: Any) -> str:
    device = str(raw).strip() if raw is not None else ""
    if not device:
        raise InvalidInputError("Missing device_id")
    return device


def parse_venue_id(raw: Any) -> str:
    """Venue ids are opaque strings; bare JSON integers are taken as their text."""
    if raw is None:
        raise InvalidInputError("Missing venue_id")
    if isinstance(raw, bool) or not isinstance(raw, (str, int)):
        raise InvalidInputError("Invalid venue_id")
    venue = str(raw).strip()
    if not venue:
        raise InvalidInputError("Missing venue_id")
    return venue


class SubmissionService:
    """Accepts reports on behalf of devices."""

    def __init__(
        self,
        reports: ReportStore,
        venues: VenueDirectory,
        guardrail: SubmissionGuardrail,
        tracker: BaselineTracker,
        clock: Clock = utc_now,
    ) -> None:
        self._reports = reports
        self._venues = venues
        self._guardrail = guardrail
        self._tracker = tracker
        self._clock = clock

    async def submit(
        self,
        venue_id: Any,
        status: Any,
        device_id: Any,
        line_outside: bool = False,
    ) -> Report:
        """Validate, rate-limit and store one report.

        Raises:
            InvalidInputError: Malformed status, missing device or unknown venue.
            RateLimitedError: Guardrail rejection.
            StorageUnavailableError: A store failed.
        """
        crowd_status = parse_status(status)
        device = parse_device_id(device_id)
        venue_id = parse_venue_id(venue_id)
        known = await self._venues.get_names([venue_id])
        if venue_id not in known:
            raise InvalidInputError(f"Unknown venue: {venue_id}")

        now = self._clock()
        await self._guardrail.check(venue_id, device, now)

        report = Report(
            venue_id=venue_id,
            status=crowd_status,
            line_outside=bool(line_outside),
            created_at=now,
            device_id=device,
        )
        await self._reports.insert(report)
        await self._tracker.record(report)
        logger.info(
            "Accepted report %s: venue=%s status=%d",
            report.report_id, venue_id, int(crowd_status),
        )
        return report
