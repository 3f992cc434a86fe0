"""
Tests for timezone and clock-time helpers.
"""

import pendulum
import pytest

from slotengine.domain.intervals import (
    format_local_time,
    local_dates_between,
    local_day_bounds,
    local_instant,
    overlaps,
    parse_clock_time,
    parse_date_key,
    parse_instant,
    validate_timezone,
    week_start,
    weekday_index,
)


class TestClockParsing:
    """Tests for HH:mm parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [("09:00", (9, 0)), ("9:05", (9, 5)), ("00:00", (0, 0)), ("23:59", (23, 59))],
    )
    def test_valid_clock_times(self, value, expected):
        assert parse_clock_time(value) == expected

    @pytest.mark.parametrize("value", ["24:00", "12:60", "noon", "", "12-30", "1230"])
    def test_invalid_clock_times(self, value):
        with pytest.raises(ValueError, match="HH:mm"):
            parse_clock_time(value)


class TestTimezoneValidation:
    """Tests for IANA zone validation."""

    def test_known_zone_returned_unchanged(self):
        assert validate_timezone("America/New_York") == "America/New_York"

    def test_unknown_zone_rejected(self):
        with pytest.raises(ValueError, match="Unsupported timezone"):
            validate_timezone("Not/AZone")

    def test_empty_zone_rejected(self):
        with pytest.raises(ValueError, match="required"):
            validate_timezone("")


class TestDateAndInstantParsing:
    """Tests for date keys and ISO instants."""

    def test_date_key(self):
        assert parse_date_key("2024-11-25") == pendulum.date(2024, 11, 25)

    def test_bad_date_key(self):
        with pytest.raises(ValueError, match="YYYY-MM-DD"):
            parse_date_key("25.11.2024")

    def test_instant_normalised_to_utc(self):
        instant = parse_instant("2024-11-25T09:00:00-05:00")

        assert instant == pendulum.datetime(2024, 11, 25, 14, 0, tz="UTC")
        assert instant.timezone_name == "UTC"

    def test_garbage_instant_rejected(self):
        with pytest.raises(ValueError, match="Could not parse instant"):
            parse_instant("next tuesday-ish")


class TestLocalInstants:
    """Tests for anchoring wall-clock times in a zone."""

    def test_winter_offset(self):
        """New York is UTC-5 before the March transition."""
        instant = local_instant(pendulum.date(2024, 3, 8), "09:00", "America/New_York")
        assert instant == pendulum.datetime(2024, 3, 8, 14, 0, tz="UTC")

    def test_summer_offset(self):
        """New York is UTC-4 after the March transition."""
        instant = local_instant(pendulum.date(2024, 3, 11), "09:00", "America/New_York")
        assert instant == pendulum.datetime(2024, 3, 11, 13, 0, tz="UTC")

    def test_day_bounds_on_short_day(self):
        """The spring-forward day in New York lasts 23 hours."""
        start, end = local_day_bounds(pendulum.date(2024, 3, 10), "America/New_York")

        assert start == pendulum.datetime(2024, 3, 10, 5, 0, tz="UTC")
        assert end == pendulum.datetime(2024, 3, 11, 4, 0, tz="UTC")
        assert (end - start).in_hours() == 23


class TestCalendarHelpers:
    """Tests for weekday and date-mapping helpers."""

    def test_weekday_index_sunday_is_zero(self):
        assert weekday_index(pendulum.date(2024, 11, 24)) == 0
        assert weekday_index(pendulum.date(2024, 11, 25)) == 1
        assert weekday_index(pendulum.date(2024, 11, 30)) == 6

    def test_week_starts_on_monday(self):
        assert week_start(pendulum.date(2024, 11, 24)) == pendulum.date(2024, 11, 18)
        assert week_start(pendulum.date(2024, 11, 25)) == pendulum.date(2024, 11, 25)

    def test_same_zone_maps_to_one_date(self):
        start, end = local_day_bounds(pendulum.date(2024, 11, 25), "America/New_York")
        assert local_dates_between(start, end, "America/New_York") == [pendulum.date(2024, 11, 25)]

    def test_tokyo_day_spans_two_new_york_dates(self):
        start, end = local_day_bounds(pendulum.date(2024, 11, 26), "Asia/Tokyo")

        assert local_dates_between(start, end, "America/New_York") == [
            pendulum.date(2024, 11, 25),
            pendulum.date(2024, 11, 26),
        ]

    def test_overlap_is_half_open(self):
        a = pendulum.datetime(2024, 11, 25, 9, tz="UTC")
        b = pendulum.datetime(2024, 11, 25, 10, tz="UTC")
        c = pendulum.datetime(2024, 11, 25, 11, tz="UTC")

        assert not overlaps(a, b, b, c)
        assert overlaps(a, c, b, c)

    def test_format_local_time(self):
        instant = pendulum.datetime(2024, 11, 25, 14, 0, tz="UTC")

        assert format_local_time(instant, "America/New_York") == "09:00"
        assert format_local_time(instant, "Asia/Kolkata") == "19:30"
