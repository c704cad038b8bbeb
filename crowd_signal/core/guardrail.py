"""SubmissionGuardrail — rate limits applied before a report is accepted.

Two advisory checks keyed on the client-supplied device token:
    1. cooldown:  one report per (device, venue) per venue_cooldown_minutes
    2. daily cap: at most daily_cap reports per device since local midnight

The device token is unauthenticated and may be regenerated at will, so
these limits slow casual abuse but do not identify anyone.  The checks
and the later insert are not atomic; two near-simultaneous submissions
can both pass.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime

from crowd_signal.core.errors import RateLimitedError
from crowd_signal.foundation.clock import minutes_between
from crowd_signal.foundation.time_buckets import ZoneResolver, start_of_local_day
from crowd_signal.store.contracts import ReportStore

logger = logging.getLogger(__name__)

COOLDOWN = "cooldown"
DAILY_CAP = "daily_cap"


@dataclass(frozen=True)
class GuardrailConfig:
    venue_cooldown_minutes: float = 10.0
    daily_cap: int = 20


def cooldown_wait_minutes(age_minutes: float, cooldown_minutes: float) -> int:
    """Whole minutes left before the device may report again (at least 1)."""
    return max(1, math.ceil(cooldown_minutes - age_minutes))


class SubmissionGuardrail:
    """Reads prior reports and raises RateLimitedError when a limit is hit."""

    def __init__(
        self,
        reports: ReportStore,
        zones: ZoneResolver | None = None,
        config: GuardrailConfig | None = None,
    ) -> None:
        self._reports = reports
        self._zones = zones or ZoneResolver()
        self._config = config or GuardrailConfig()

    async def check(self, venue_id: str, device_id: str, now: datetime) -> None:
        cfg = self._config

        last = await self._reports.latest_for(venue_id, device_id)
        if last is not None:
            age = abs(minutes_between(now, last.created_at))
            if age < cfg.venue_cooldown_minutes:
                wait = cooldown_wait_minutes(age, cfg.venue_cooldown_minutes)
                logger.info(
                    "Cooldown hit for device %s at venue %s (wait %d min)",
                    device_id, venue_id, wait,
                )
                raise RateLimitedError(
                    COOLDOWN,
                    f"Slow down, you can report again in ~{wait} min.",
                    wait_minutes=wait,
                )

        midnight = start_of_local_day(now, self._zones.zone_for(venue_id))
        today = await self._reports.count_for_device_since(device_id, midnight)
        if today >= cfg.daily_cap:
            logger.info("Daily cap hit for device %s (%d reports today)", device_id, today)
            raise RateLimitedError(DAILY_CAP, "Daily limit reached. Try again tomorrow.")
