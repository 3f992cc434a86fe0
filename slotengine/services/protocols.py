"""
Protocols describing the collaborators the services depend on.

The persistence layer and the calendar providers live outside the engine;
anything matching these shapes can be injected.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Protocol

from pendulum import DateTime

from ..domain.models import Booking, CalendarConnection, EventType, TimeRange


class SchedulingRepository(Protocol):
    """Read-only persistence interface needed by the engine."""

    async def get_event_type(self, event_type_id: str) -> Optional[EventType]:
        """Return the event type with its schedule, availability and overrides."""

    async def find_personal_event_type(self, user_id: str) -> Optional[EventType]:
        """Return the user's oldest active non-team event type that has a schedule."""

    async def get_live_bookings(
        self,
        event_type_id: str,
        start: DateTime,
        end: DateTime,
        user_id: Optional[str] = None,
    ) -> List[Booking]:
        """Return PENDING/ACCEPTED bookings of an event type overlapping [start, end)."""

    async def get_calendar_connections(self, user_id: str) -> List[CalendarConnection]:
        """Return the user's connected external calendar accounts."""

    async def get_accepted_member_ids(self, team_id: str) -> List[str]:
        """Return user ids of accepted team members, in a stable order."""

    async def count_bookings_by_member(
        self,
        event_type_id: str,
        member_ids: List[str],
        since: DateTime,
    ) -> Dict[str, int]:
        """Return live-booking counts per member created since ``since``."""

    async def get_last_booking_times(
        self,
        event_type_id: str,
        member_ids: List[str],
    ) -> Dict[str, DateTime]:
        """Return each member's most recent live-booking creation time."""


class CalendarProviderProtocol(Protocol):
    """Protocol describing an external calendar provider."""

    def get_busy_times(
        self,
        connection: CalendarConnection,
        start_time: DateTime,
        end_time: DateTime,
    ) -> List[TimeRange]:
        """Return busy intervals; may raise CalendarProviderError."""
