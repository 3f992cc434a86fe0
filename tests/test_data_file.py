"""
Tests for loading scenarios from YAML data files.
"""

import asyncio
from pathlib import Path

import pendulum
import pytest

from slotengine.adapters.data_file import load_scenario, scenario_from_dict
from slotengine.domain.models import BookingStatus, SchedulingType

DEMO_DATA = Path(__file__).parent.parent / "demo_data.yaml"


def test_demo_data_loads():
    scenario = load_scenario(DEMO_DATA)
    repository = scenario.repository

    intro = asyncio.run(repository.get_event_type("intro"))
    support = asyncio.run(repository.get_event_type("support"))

    assert intro.schedule.timezone == "America/New_York"
    assert support.scheduling_type is SchedulingType.ROUND_ROBIN
    assert asyncio.run(repository.get_accepted_member_ids("support-team")) == ["alice", "bob"]
    assert scenario.mock_busy_events[0]["calendarId"] == "alice-cal"


def test_unquoted_clock_times_and_dates(tmp_path):
    """YAML reads 10:30 as a base-60 integer and bare dates as date objects."""
    data_file = tmp_path / "data.yaml"
    data_file.write_text(
        "schedules:\n"
        "  - id: s1\n"
        "    user_id: alice\n"
        "    timezone: UTC\n"
        "    availability:\n"
        "      - {day: 1, start_time: 09:00, end_time: 10:30}\n"
        "    date_overrides:\n"
        "      - {date: 2024-11-26, start_time: 08:15, end_time: 12:00}\n"
        "event_types:\n"
        "  - {id: e1, user_id: alice, duration: 30, schedule_id: s1}\n"
        "bookings:\n"
        "  - id: b1\n"
        "    event_type_id: e1\n"
        "    user_id: alice\n"
        "    start_time: 2024-11-25T09:00:00Z\n"
        "    end_time: 2024-11-25T09:30:00Z\n"
        "    status: pending\n"
    )

    repository = load_scenario(data_file).repository
    schedule = repository.event_types["e1"].schedule
    booking = repository.bookings[0]

    assert schedule.availability[0].start_time == "09:00"
    assert schedule.availability[0].end_time == "10:30"
    assert schedule.date_overrides[0].date == pendulum.date(2024, 11, 26)
    assert schedule.date_overrides[0].start_time == "08:15"
    assert booking.start_time == pendulum.datetime(2024, 11, 25, 9, 0, tz="UTC")
    assert booking.status is BookingStatus.PENDING


def test_unknown_schedule_reference():
    with pytest.raises(ValueError, match="unknown schedule"):
        scenario_from_dict({
            "event_types": [{"id": "e1", "user_id": "alice", "duration": 30, "schedule_id": "nope"}]
        })


def test_missing_field(tmp_path):
    data_file = tmp_path / "data.yaml"
    data_file.write_text("schedules:\n  - {id: s1, user_id: alice}\n")

    with pytest.raises(ValueError, match="timezone"):
        load_scenario(data_file)


def test_unexpected_field(tmp_path):
    data_file = tmp_path / "data.yaml"
    data_file.write_text("event_types:\n  - {id: e1, user_id: alice, duration: 30, colour: red}\n")

    with pytest.raises(ValueError, match="Unexpected field"):
        load_scenario(data_file)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_scenario(tmp_path / "absent.yaml")


def test_root_must_be_mapping(tmp_path):
    data_file = tmp_path / "data.yaml"
    data_file.write_text("- one\n- two\n")

    with pytest.raises(ValueError, match="mapping"):
        load_scenario(data_file)
