"""Unit tests for the service Clock."""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from subscription_service.services.clock import Clock

NOW = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return Clock(time_source=lambda: NOW)


class TestClockNow:
    """Test reading the current time."""

    def test_now_uses_time_source(self, clock):
        assert clock.now() == NOW
        assert clock.offset == timedelta(0)

    def test_default_clock_is_aware_utc(self):
        now = Clock().now()

        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)

    def test_now_converted_to_timezone(self):
        clock = Clock(time_source=lambda: NOW, tz=ZoneInfo("Europe/Budapest"))

        now = clock.now()

        assert now == NOW
        assert now.hour == 11

    def test_for_timezone(self):
        clock = Clock.for_timezone("America/New_York")

        assert clock.tz == ZoneInfo("America/New_York")


class TestAdvance:
    """Test moving the clock forward."""

    def test_advance_days_hours_minutes(self, clock):
        result = clock.advance(days=2, hours=3, minutes=15)

        assert result["old_time"] == NOW
        assert result["new_time"] == NOW + timedelta(days=2, hours=3, minutes=15)
        assert result["advanced_by"] == timedelta(days=2, hours=3, minutes=15)
        assert clock.now() == result["new_time"]

    def test_advance_accumulates(self, clock):
        clock.advance(days=1)
        clock.advance(hours=12)

        assert clock.offset == timedelta(days=1, hours=12)

    def test_advance_negative_raises(self, clock):
        with pytest.raises(ValueError):
            clock.advance(days=-1)

        assert clock.now() == NOW


class TestSetTimeAndReset:
    """Test setting and resetting the clock."""

    def test_set_time(self, clock):
        target = datetime(2024, 2, 1, 0, 0, tzinfo=timezone.utc)

        result = clock.set_time(target)

        assert result["old_time"] == NOW
        assert clock.now() == target

    def test_set_time_backwards_raises(self, clock):
        with pytest.raises(ValueError, match="backwards"):
            clock.set_time(NOW - timedelta(seconds=1))

    def test_set_time_naive_raises(self, clock):
        with pytest.raises(ValueError, match="timezone-aware"):
            clock.set_time(datetime(2024, 2, 1))

    def test_reset(self, clock):
        clock.advance(days=10)

        result = clock.reset()

        assert result["new_time"] == NOW
        assert clock.offset == timedelta(0)
