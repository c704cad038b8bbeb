"""Derived, read-only views of a venue's crowd level.

These are recomputed on every read and never persisted.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from crowd_signal.domain.enums import Confidence, CrowdLabel, Trend


class VenueSnapshot(BaseModel):
    """The "now" view of a venue."""

    venue_id: str
    signal: float = Field(..., ge=1.0, le=4.0)
    label: CrowdLabel
    confidence: Confidence
    trend: Trend
    report_count: int = Field(..., ge=0, description="Reports in the active window")
    last_report_age_minutes: float | None = Field(
        None, description="Age of the most recent report (None without reports)"
    )
    line_outside: bool = Field(False, description="Whether the most recent report saw a line")

    model_config = {"frozen": True}


class Prediction(BaseModel):
    """Forward-looking label for one horizon."""

    horizon_minutes: int
    dow: int
    hour: int
    baseline_mean: float | None = None
    blended_signal: float
    label: CrowdLabel

    model_config = {"frozen": True}
