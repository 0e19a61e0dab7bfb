"""Tests for clock injection."""

from datetime import date, datetime, timedelta, timezone

from elara_kernel.domain.clock import DeterministicClock, SystemClock


class TestDeterministicClock:

    def test_frozen_until_advanced(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now()
        assert clock.today() == date(2024, 1, 1)

    def test_tick(self):
        clock = DeterministicClock()
        start = clock.now()
        assert clock.tick() == start + timedelta(seconds=1)

    def test_advance_days_moves_today(self):
        clock = DeterministicClock(datetime(2024, 2, 28, 23, 0, tzinfo=timezone.utc))
        clock.advance_days(1)
        assert clock.today() == date(2024, 2, 29)

    def test_set_time_resets_offset(self):
        clock = DeterministicClock()
        clock.advance(500)
        target = datetime(2025, 5, 5, tzinfo=timezone.utc)
        clock.set_time(target)
        assert clock.now() == target


def test_system_clock_is_utc():
    assert SystemClock().now_utc().tzinfo is not None
