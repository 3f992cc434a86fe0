"""
Shared fixtures for service-level tests.

All scenarios sit on Monday 2024-11-25 with hosts in New York, queried from
a fixed "now" five days earlier.
"""

import pendulum
import pytest

from slotengine.adapters.memory_repository import InMemoryRepository
from slotengine.domain.models import (
    Availability,
    EventType,
    Schedule,
    SchedulingType,
    TeamMember,
)
from slotengine.services.availability import AvailabilityService
from slotengine.services.busy_times import BusyTimeAggregator

NOW = pendulum.datetime(2024, 11, 20, 12, 0, tz="UTC")


def weekday_schedule(user_id, start="09:00", end="17:00", timezone="America/New_York"):
    return Schedule(
        id=f"sched-{user_id}",
        user_id=user_id,
        timezone=timezone,
        availability=[Availability(day=day, start_time=start, end_time=end) for day in range(1, 6)],
    )


@pytest.fixture
def team_repository():
    """
    Build a repository with a team event type owned by alice.

    ``members`` maps user ids to (start, end) personal hours or None for a
    member without a personal event type.
    """

    def build(
        scheduling_type=SchedulingType.ROUND_ROBIN,
        owner_hours=("09:00", "17:00"),
        members=None,
        bookings=(),
        pending_members=(),
    ):
        if members is None:
            members = {"bob": ("09:00", "17:00")}

        event_types = [
            EventType(
                id="support",
                user_id="alice",
                duration=30,
                scheduling_type=scheduling_type,
                team_id="team-1",
                schedule=weekday_schedule("alice", *owner_hours),
                created_at=pendulum.datetime(2024, 1, 1, tz="UTC"),
            )
        ]
        team_members = [TeamMember(user_id="alice", team_id="team-1", accepted=True)]

        for user_id, hours in members.items():
            team_members.append(TeamMember(user_id=user_id, team_id="team-1", accepted=True))
            if hours is not None:
                event_types.append(
                    EventType(
                        id=f"{user_id}-personal",
                        user_id=user_id,
                        duration=60,
                        schedule=weekday_schedule(user_id, *hours),
                        created_at=pendulum.datetime(2024, 2, 1, tz="UTC"),
                    )
                )

        for user_id in pending_members:
            team_members.append(TeamMember(user_id=user_id, team_id="team-1", accepted=False))
            event_types.append(
                EventType(
                    id=f"{user_id}-personal",
                    user_id=user_id,
                    duration=30,
                    schedule=weekday_schedule(user_id, "17:00", "20:00"),
                )
            )

        return InMemoryRepository(
            event_types=event_types,
            bookings=bookings,
            team_members=team_members,
        )

    return build


@pytest.fixture
def make_service():
    def build(repository, providers=None, timeout=None):
        aggregator = BusyTimeAggregator(repository, providers or {}, timeout=timeout)
        return AvailabilityService(repository, aggregator, clock=lambda: NOW)

    return build
