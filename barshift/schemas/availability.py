"""Availability schemas for request/response validation."""

from datetime import date, datetime, time
from uuid import UUID

from pydantic import BaseModel, Field, RootModel, model_validator


class TimeWindow(BaseModel):
    """A window of availability within one day."""

    start: time
    end: time

    @model_validator(mode="after")
    def validate_order(self) -> "TimeWindow":
        """Validate the window is not empty."""
        if self.end == self.start:
            raise ValueError("Window end must differ from start")
        return self


class DayAvailability(BaseModel):
    """Availability for a single calendar day."""

    available: bool
    # None means the whole day
    windows: list[TimeWindow] | None = None
    note: str | None = Field(None, max_length=500)


class AvailabilityGrid(RootModel[dict[date, DayAvailability]]):
    """Availability keyed by ISO date."""

    def day(self, on: date) -> DayAvailability | None:
        """Return availability for a date, if any was recorded."""
        return self.root.get(on)


MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


class AvailabilitySubmit(BaseModel):
    """Schema for submitting a month of availability."""

    data: AvailabilityGrid
    submit: bool = Field(
        default=True,
        description="Lock the month after saving; drafts stay editable",
    )


class AvailabilityResponse(BaseModel):
    """Schema for availability response."""

    id: UUID
    staff_id: UUID
    month: str
    data: AvailabilityGrid
    submitted_at: datetime | None = None
    locked_at: datetime | None = None
    is_locked: bool

    model_config = {"from_attributes": True}
