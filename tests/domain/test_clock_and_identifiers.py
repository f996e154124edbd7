"""Tests for the injectable clock and identifier sources."""

from datetime import date, datetime, timedelta, timezone

from portal_kernel.domain.clock import DeterministicClock, SystemClock
from portal_kernel.domain.identifiers import (
    CLIENT_PREFIX,
    USER_PREFIX,
    SequentialIdentifierSource,
    UuidIdentifierSource,
)


class TestDeterministicClock:
    def test_default_time(self):
        clock = DeterministicClock()
        assert clock.now() == datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
        assert clock.today() == date(2024, 6, 1)

    def test_repeated_calls_are_stable(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now()

    def test_advance(self):
        clock = DeterministicClock()
        start = clock.now()
        clock.advance(90)
        assert clock.now() - start == timedelta(seconds=90)

    def test_advance_days_moves_today(self):
        clock = DeterministicClock()
        clock.advance_days(19)
        assert clock.today() == date(2024, 6, 20)

    def test_set_time_resets_offset(self):
        clock = DeterministicClock()
        clock.advance(100)
        target = datetime(2025, 1, 1, tzinfo=timezone.utc)
        clock.set_time(target)
        assert clock.now() == target

    def test_today_is_utc(self):
        lisbon_summer = timezone(timedelta(hours=1))
        clock = DeterministicClock(datetime(2024, 6, 1, 0, 30, tzinfo=lisbon_summer))
        assert clock.today() == date(2024, 5, 31)


def test_system_clock_is_timezone_aware():
    assert SystemClock().now().tzinfo is not None


class TestIdentifierSources:
    def test_sequential_counters_per_prefix(self):
        ids = SequentialIdentifierSource()
        assert ids.next_id(USER_PREFIX) == "u1"
        assert ids.next_id(USER_PREFIX) == "u2"
        assert ids.next_id(CLIENT_PREFIX) == "c1"

    def test_sequential_skips_taken_ids(self):
        ids = SequentialIdentifierSource(taken={"t1", "t2", "t3"})
        assert ids.next_id("t") == "t4"

    def test_reserve_after_construction(self):
        ids = SequentialIdentifierSource()
        ids.reserve({"t1", "t2"})
        assert ids.next_id("t") == "t3"

    def test_uuid_reserve_is_accepted(self):
        ids = UuidIdentifierSource()
        ids.reserve({"u-1"})
        assert ids.next_id(USER_PREFIX).startswith("u-")

    def test_uuid_ids_are_prefixed_and_unique(self):
        ids = UuidIdentifierSource()
        first, second = ids.next_id("d"), ids.next_id("d")
        assert first.startswith("d-")
        assert first != second
