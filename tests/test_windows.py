"""
Tests for resolving schedule windows on single dates.
"""

import pendulum

from slotengine.domain.models import Availability, DateOverride, Schedule
from slotengine.domain.windows import (
    NO_OVERRIDE,
    OverrideKind,
    WindowResolver,
    build_window,
    resolve_override,
)


def _schedule(timezone="America/New_York", availability=None, overrides=None):
    if availability is None:
        availability = [
            Availability(day=day, start_time="09:00", end_time="17:00") for day in range(1, 6)
        ]
    return Schedule(
        id="sched-1",
        user_id="alice",
        timezone=timezone,
        availability=availability,
        date_overrides=overrides or [],
    )


class TestResolveOverride:
    """Tests for override precedence."""

    def test_no_override(self):
        assert resolve_override("2024-11-25", {}) is NO_OVERRIDE

    def test_unavailable(self):
        override = DateOverride(date=pendulum.date(2024, 11, 25), is_unavailable=True)
        resolution = resolve_override("2024-11-25", {"2024-11-25": override})
        assert resolution.kind is OverrideKind.UNAVAILABLE

    def test_explicit_window(self):
        override = DateOverride(
            date=pendulum.date(2024, 11, 25), start_time="10:00", end_time="12:00"
        )
        resolution = resolve_override("2024-11-25", {"2024-11-25": override})

        assert resolution.kind is OverrideKind.EXPLICIT
        assert resolution.windows == (("10:00", "12:00"),)

    def test_partial_override_falls_back_to_weekly(self):
        """An override with only a start time has nothing to apply."""
        override = DateOverride(date=pendulum.date(2024, 11, 25), start_time="10:00")
        assert resolve_override("2024-11-25", {"2024-11-25": override}) is NO_OVERRIDE


class TestBuildWindow:
    """Tests for anchoring a window on a date."""

    def test_window_in_utc(self):
        window = build_window(pendulum.date(2024, 11, 25), "09:00", "17:00", "America/New_York")

        assert window.start == pendulum.datetime(2024, 11, 25, 14, 0, tz="UTC")
        assert window.end == pendulum.datetime(2024, 11, 25, 22, 0, tz="UTC")


class TestWindowResolver:
    """Tests for WindowResolver."""

    def test_weekday_windows(self):
        resolver = WindowResolver(_schedule())

        windows = resolver.windows_for_date(pendulum.date(2024, 11, 25))

        assert len(windows) == 1
        assert windows[0].start == pendulum.datetime(2024, 11, 25, 14, 0, tz="UTC")

    def test_weekend_has_no_windows(self):
        resolver = WindowResolver(_schedule())
        assert resolver.windows_for_date(pendulum.date(2024, 11, 24)) == []

    def test_unavailable_override_blocks_date(self):
        resolver = WindowResolver(_schedule(overrides=[
            DateOverride(date=pendulum.date(2024, 11, 25), is_unavailable=True),
        ]))

        assert resolver.windows_for_date(pendulum.date(2024, 11, 25)) == []
        assert len(resolver.windows_for_date(pendulum.date(2024, 11, 26))) == 1

    def test_explicit_override_replaces_weekly_windows(self):
        resolver = WindowResolver(_schedule(overrides=[
            DateOverride(date=pendulum.date(2024, 11, 29), start_time="10:00", end_time="13:00"),
        ]))

        windows = resolver.windows_for_date(pendulum.date(2024, 11, 29))

        assert len(windows) == 1
        assert windows[0].start == pendulum.datetime(2024, 11, 29, 15, 0, tz="UTC")
        assert windows[0].end == pendulum.datetime(2024, 11, 29, 18, 0, tz="UTC")

    def test_override_opens_a_weekend_date(self):
        resolver = WindowResolver(_schedule(overrides=[
            DateOverride(date=pendulum.date(2024, 11, 30), start_time="10:00", end_time="12:00"),
        ]))

        assert len(resolver.windows_for_date(pendulum.date(2024, 11, 30))) == 1

    def test_split_shift(self):
        """Multiple rows on one weekday produce one window each."""
        resolver = WindowResolver(_schedule(availability=[
            Availability(day=1, start_time="09:00", end_time="12:00"),
            Availability(day=1, start_time="13:00", end_time="17:00"),
        ]))

        windows = resolver.windows_for_date(pendulum.date(2024, 11, 25))

        assert [w.duration_minutes() for w in windows] == [180, 240]

    def test_windows_follow_dst(self):
        """The same wall-clock window shifts by an hour in UTC across the transition."""
        resolver = WindowResolver(_schedule())

        friday = resolver.windows_for_date(pendulum.date(2024, 3, 8))[0]
        monday = resolver.windows_for_date(pendulum.date(2024, 3, 11))[0]

        assert friday.start == pendulum.datetime(2024, 3, 8, 14, 0, tz="UTC")
        assert monday.start == pendulum.datetime(2024, 3, 11, 13, 0, tz="UTC")

    def test_weekday_taken_in_schedule_timezone(self):
        """A Tokyo Monday schedule is matched on the Tokyo calendar date."""
        resolver = WindowResolver(_schedule(
            timezone="Asia/Tokyo",
            availability=[Availability(day=1, start_time="08:00", end_time="10:00")],
        ))

        monday = resolver.windows_for_date(pendulum.date(2024, 11, 25))

        assert monday[0].start == pendulum.datetime(2024, 11, 24, 23, 0, tz="UTC")
        assert resolver.windows_for_date(pendulum.date(2024, 11, 24)) == []
