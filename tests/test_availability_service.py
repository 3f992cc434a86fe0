"""
Tests for the AvailabilityService facade.
"""

import asyncio

import pendulum
import pytest

from slotengine.adapters.memory_repository import InMemoryRepository
from slotengine.config import EngineSettings
from slotengine.domain.exceptions import QueryValidationError, SlotConflictError
from slotengine.domain.models import (
    Availability,
    Booking,
    CalendarConnection,
    EventType,
    Schedule,
)
from slotengine.services.availability import AvailabilityService, build_calendar_providers
from slotengine.services.slot_query import SlotQuery

NOW = pendulum.datetime(2024, 11, 20, 12, 0, tz="UTC")
TZ = "America/New_York"


def _repository(bookings=(), connections=(), is_active=True):
    schedule = Schedule(
        id="sched-alice",
        user_id="alice",
        timezone=TZ,
        availability=[Availability(day=day, start_time="09:00", end_time="17:00") for day in range(1, 6)],
    )
    return InMemoryRepository(
        event_types=[
            EventType(id="intro", user_id="alice", duration=30, schedule=schedule, is_active=is_active)
        ],
        bookings=bookings,
        calendar_connections=connections,
    )


def _query():
    return SlotQuery.build(
        event_type_id="intro", start_date="2024-11-25", end_date="2024-11-25", timezone=TZ
    )


def test_personal_event_type(make_service):
    service = make_service(_repository())
    assert len(asyncio.run(service.find_slots(_query()))) == 16


def test_inactive_event_type(make_service):
    service = make_service(_repository(is_active=False))
    assert asyncio.run(service.find_slots(_query())) == []


def test_verify_slot_still_available(make_service):
    service = make_service(_repository())

    slot = asyncio.run(service.verify_slot("intro", "2024-11-25T14:00:00Z", TZ))

    assert slot.local_time == "09:00"


def test_verify_slot_taken_in_the_meantime(make_service):
    start = pendulum.datetime(2024, 11, 25, 14, 0, tz="UTC")
    taken = Booking(
        id="b1",
        event_type_id="intro",
        user_id="alice",
        start_time=start,
        end_time=start.add(minutes=30),
    )
    service = make_service(_repository(bookings=[taken]))

    with pytest.raises(SlotConflictError, match="no longer available"):
        asyncio.run(service.verify_slot("intro", start, TZ))


def test_verify_slot_honours_weekly_cap_met_earlier_in_the_week(make_service):
    repository = _repository(bookings=[
        Booking(
            id=f"b{hour}",
            event_type_id="intro",
            user_id="alice",
            start_time=pendulum.datetime(2024, 11, 25, hour, 0, tz="UTC"),
            end_time=pendulum.datetime(2024, 11, 25, hour, 30, tz="UTC"),
        )
        for hour in (15, 16)
    ])
    repository.event_types["intro"].max_bookings_per_week = 2
    service = make_service(repository)

    with pytest.raises(SlotConflictError):
        asyncio.run(service.verify_slot("intro", "2024-11-27T14:00:00Z", TZ))


def test_verify_slot_off_grid(make_service):
    service = make_service(_repository())

    with pytest.raises(SlotConflictError):
        asyncio.run(service.verify_slot("intro", "2024-11-25T14:10:00Z", TZ))


def test_verify_slot_rejects_garbage(make_service):
    service = make_service(_repository())

    with pytest.raises(QueryValidationError):
        asyncio.run(service.verify_slot("intro", "not a time", TZ))


def test_from_settings_wires_mock_provider():
    """Mock calendar events flow through the configured providers."""
    settings = EngineSettings(provider_timeout_seconds=5)
    repository = _repository(connections=[
        CalendarConnection(
            id="alice-mock", user_id="alice", provider="mock", access_token="", calendar_id="alice-cal"
        )
    ])
    providers = build_calendar_providers(settings, mock_events=[
        {"calendarId": "alice-cal", "start": "2024-11-25T19:00:00Z", "end": "2024-11-25T20:00:00Z"},
        {"calendarId": "someone-else", "start": "2024-11-25T14:00:00Z", "end": "2024-11-25T15:00:00Z"},
    ])
    service = AvailabilityService.from_settings(settings, repository, providers=providers, clock=lambda: NOW)

    times = [slot.iso_time() for slot in asyncio.run(service.find_slots(_query()))]

    assert len(times) == 14
    assert "2024-11-25T19:00:00Z" not in times
    assert "2024-11-25T14:00:00Z" in times


def test_build_calendar_providers_covers_every_provider():
    providers = build_calendar_providers(EngineSettings())
    assert set(providers) == {"google", "microsoft", "mock"}


def test_providers_share_the_provider_timeout():
    settings = EngineSettings(provider_timeout_seconds=4)
    providers = build_calendar_providers(settings)

    assert providers["google"].timeout == 4
    assert providers["microsoft"].timeout == 4


def test_providers_without_timeout_keep_a_request_limit():
    providers = build_calendar_providers(EngineSettings(provider_timeout_seconds=None))

    assert providers["google"].timeout == 30
    assert providers["microsoft"].timeout == 30
