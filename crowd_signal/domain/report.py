"""Report — one crowd-submitted observation of a venue.

A Report is a *claim*, not a fact: an unauthenticated device says the
venue looked like this at this moment.  Reports are immutable and
append-only; relevance fades with age through decay, never by mutation.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from crowd_signal.domain.enums import CrowdStatus
from crowd_signal.foundation.clock import ensure_utc, minutes_between, utc_now


class Report(BaseModel):
    """A validated status report for a venue."""

    report_id: UUID = Field(default_factory=uuid4)
    venue_id: str = Field(..., min_length=1, max_length=256)
    status: CrowdStatus = Field(..., description="Ordinal crowd level, 1 (Low) .. 4 (Insane)")
    line_outside: bool = False
    created_at: datetime = Field(default_factory=utc_now)
    device_id: str = Field(
        ...,
        min_length=1,
        max_length=256,
        description="Client-generated opaque token; not an identity",
    )

    model_config = {"frozen": True}

    @field_validator("created_at")
    @classmethod
    def created_at_must_be_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    def age_minutes(self, now: datetime) -> float:
        """Continuous age in minutes relative to *now*."""
        return minutes_between(now, self.created_at)
