"""Timezone-aware clock utilities.

All timestamps in crowd-signal MUST be UTC-aware.  This module is the
single source of "now"; components accept a ``Clock`` so tests can pin
time without patching.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def minutes_between(later: datetime, earlier: datetime) -> float:
    """Continuous (non-truncated) minutes from *earlier* to *later*."""
    return (later - earlier).total_seconds() / 60.0
