"""Availability slot and date-range value objects."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DateRange(BaseModel):
    """An inclusive calendar range."""

    start: date = Field(..., description="Inclusive lower bound of the range.")
    end: date = Field(..., description="Inclusive upper bound of the range.")

    @model_validator(mode="after")
    def validate_start_before_end(self) -> DateRange:
        """Ensure *start* does not come after *end*."""
        if self.start > self.end:
            raise ValueError(f"DateRange start ({self.start}) must be <= end ({self.end}).")
        return self


class AvailabilitySlot(BaseModel):
    """A technician-declared window during which they can take work."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    technician_id: str
    start_date: date
    end_date: date
    created_at: datetime | None = Field(
        default=None,
        description="Creation timestamp; drives the freshness classification.",
    )
