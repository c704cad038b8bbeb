"""AlertSubscription — a device's request to hear when a venue quiets down."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from crowd_signal.domain.enums import AlertThreshold
from crowd_signal.foundation.clock import utc_now


class AlertSubscription(BaseModel):
    """One (venue, device, threshold) subscription.

    ``last_triggered_at`` is the only field the alert evaluator mutates.
    It doubles as the cooldown gate and the retry gate: it advances only
    on confirmed delivery.
    """

    subscription_id: UUID = Field(default_factory=uuid4)
    venue_id: str = Field(..., min_length=1)
    device_id: str = Field(..., min_length=1, max_length=256)
    threshold: AlertThreshold
    active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    last_triggered_at: datetime | None = None
