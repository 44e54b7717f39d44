"""Tests for shift time window helpers."""

from datetime import UTC, date, datetime, time, timedelta, timezone

import pytest

from barshift.config import settings
from barshift.core.timeframes import (
    local_date,
    local_instant,
    month_key,
    parse_month,
    shift_window,
    windows_overlap,
)


def test_overnight_shift_ends_next_day() -> None:
    starts_at, ends_at = shift_window(date(2026, 11, 20), time(22, 0), time(2, 0))

    assert starts_at == datetime(2026, 11, 20, 22, 0)
    assert ends_at == datetime(2026, 11, 21, 2, 0)


def test_back_to_back_windows_do_not_overlap() -> None:
    day = date(2026, 11, 20)
    early = shift_window(day, time(12, 0), time(18, 0))
    late = shift_window(day, time(18, 0), time(23, 0))
    middle = shift_window(day, time(17, 0), time(19, 0))

    assert not windows_overlap(early, late)
    assert windows_overlap(early, middle)
    assert windows_overlap(middle, late)


@pytest.mark.parametrize(
    ("on", "key"),
    [(date(2026, 1, 31), "2026-01"), (date(999, 12, 1), "0999-12")],
)
def test_month_key_is_zero_padded(on, key) -> None:
    assert month_key(on) == key
    assert parse_month(key) == (on.year, on.month)


def test_local_date_uses_venue_zone(monkeypatch) -> None:
    monkeypatch.setattr(settings, "venue_timezone", "America/New_York")
    late_night = datetime(2026, 11, 21, 3, 30, tzinfo=UTC)

    assert local_date(late_night) == date(2026, 11, 20)
    assert local_instant(datetime(2026, 11, 20, 22, 30)).utcoffset() == timedelta(hours=-5)
    assert local_date(datetime(2026, 11, 21, 3, 30)) == date(2026, 11, 21)
    assert local_date(late_night.astimezone(timezone(timedelta(hours=9)))) == date(2026, 11, 20)
