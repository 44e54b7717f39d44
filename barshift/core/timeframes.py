"""Shift time window helpers.

Shift dates and times are venue-local wall clock. Comparisons against the
request's ``as_of`` instant go through the configured venue time zone.
"""

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from barshift.config import settings


def shift_window(shift_date: date, start: time, end: time) -> tuple[datetime, datetime]:
    """
    Naive local start and end of a shift.

    An end time at or before the start time means the shift runs past midnight.
    """
    starts_at = datetime.combine(shift_date, start)
    ends_at = datetime.combine(shift_date, end)
    if ends_at <= starts_at:
        ends_at += timedelta(days=1)
    return starts_at, ends_at


def windows_overlap(a: tuple[datetime, datetime], b: tuple[datetime, datetime]) -> bool:
    """Half-open interval overlap; back-to-back windows do not overlap."""
    return a[0] < b[1] and b[0] < a[1]


def month_key(on: date) -> str:
    """YYYY-MM key used by availability records."""
    return f"{on.year:04d}-{on.month:02d}"


def parse_month(month: str) -> tuple[int, int]:
    """Split a YYYY-MM key into year and month."""
    year, _, month_part = month.partition("-")
    return int(year), int(month_part)


def venue_zone() -> ZoneInfo:
    """Configured venue time zone."""
    return ZoneInfo(settings.venue_timezone)


def local_date(as_of: datetime) -> date:
    """Venue-local calendar date of an instant."""
    if as_of.tzinfo is None:
        return as_of.date()
    return as_of.astimezone(venue_zone()).date()


def local_instant(moment: datetime) -> datetime:
    """Attach the venue zone to a naive local datetime."""
    return moment.replace(tzinfo=venue_zone())
