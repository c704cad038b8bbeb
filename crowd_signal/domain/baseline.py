"""BaselineBucket — historical running mean for one (venue, dow, hour)."""

from __future__ import annotations

from pydantic import BaseModel, Field

SEED_MEAN = 2.0


class BaselineBucket(BaseModel):
    """Running mean of report statuses for a venue at a local day/hour.

    ``n`` only ever grows for a given key; ``mean_score`` stays in [1, 4]
    because every absorbed status does.
    """

    venue_id: str = Field(..., min_length=1)
    dow: int = Field(..., ge=0, le=6, description="Day of week, Sunday=0")
    hour: int = Field(..., ge=0, le=23)
    mean_score: float = Field(SEED_MEAN, ge=1.0, le=4.0)
    n: int = Field(0, ge=0)

    model_config = {"frozen": True}

    @classmethod
    def seed(cls, venue_id: str, dow: int, hour: int) -> BaselineBucket:
        return cls(venue_id=venue_id, dow=dow, hour=hour, mean_score=SEED_MEAN, n=0)

    @property
    def key(self) -> tuple[str, int, int]:
        return (self.venue_id, self.dow, self.hour)

    def absorb(self, status: int) -> BaselineBucket:
        """Return the successor bucket after one more observation."""
        next_n = self.n + 1
        next_mean = (self.mean_score * self.n + status) / next_n
        return self.model_copy(update={"mean_score": next_mean, "n": next_n})
