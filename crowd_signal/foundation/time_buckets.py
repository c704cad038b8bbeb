"""Map instants onto the (day-of-week, hour) buckets of a civil calendar.

Baselines are keyed by local wall-clock time, so the same UTC instant can
fall into different buckets for venues in different zones.  Day-of-week
follows the Sunday=0 .. Saturday=6 convention used by the stored buckets.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from crowd_signal.core.errors import InvalidInputError
from crowd_signal.foundation.clock import ensure_utc

DEFAULT_TIMEZONE_NAME = "America/Detroit"

ZoneLike = str | tzinfo


@dataclass(frozen=True)
class TimeBucket:
    dow: int
    hour: int

    def __str__(self) -> str:
        return f"dow={self.dow} hour={self.hour:02d}"


def load_zone(zone: ZoneLike) -> tzinfo:
    """Resolve an IANA zone name (or pass through a tzinfo)."""
    if isinstance(zone, tzinfo):
        return zone
    try:
        return ZoneInfo(zone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidInputError(f"invalid timezone: {zone}") from exc


def resolve_bucket(instant: datetime, zone: ZoneLike = DEFAULT_TIMEZONE_NAME) -> TimeBucket:
    """Return the local (day-of-week, hour) bucket containing *instant*."""
    local = ensure_utc(instant).astimezone(load_zone(zone))
    # isoweekday(): Monday=1 .. Sunday=7
    return TimeBucket(dow=local.isoweekday() % 7, hour=local.hour)


def start_of_local_day(instant: datetime, zone: ZoneLike = DEFAULT_TIMEZONE_NAME) -> datetime:
    """Local midnight of the day containing *instant*, expressed in UTC."""
    tz = load_zone(zone)
    local = ensure_utc(instant).astimezone(tz)
    midnight = datetime(local.year, local.month, local.day, tzinfo=tz)
    return midnight.astimezone(timezone.utc)


class ZoneResolver:
    """Per-venue timezone lookup with a single deployment-wide default."""

    def __init__(
        self,
        default: ZoneLike = DEFAULT_TIMEZONE_NAME,
        overrides: dict[str, ZoneLike] | None = None,
    ) -> None:
        self._default = load_zone(default)
        self._overrides = {
            venue_id: load_zone(zone) for venue_id, zone in (overrides or {}).items()
        }

    def zone_for(self, venue_id: str) -> tzinfo:
        return self._overrides.get(venue_id, self._default)

    def bucket_for(self, venue_id: str, instant: datetime) -> TimeBucket:
        return resolve_bucket(instant, self.zone_for(venue_id))
