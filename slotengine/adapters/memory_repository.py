"""
In-memory implementation of the scheduling repository.

Used by tests and by the CLI, which fills it from a YAML data file.
"""

from typing import Dict, Iterable, List, Optional

from pendulum import DateTime

from ..domain.models import Booking, CalendarConnection, EventType, TeamMember


class InMemoryRepository:
    """Read-only scheduling data held in plain lists and dicts."""

    def __init__(
        self,
        event_types: Iterable[EventType] = (),
        bookings: Iterable[Booking] = (),
        team_members: Iterable[TeamMember] = (),
        calendar_connections: Iterable[CalendarConnection] = (),
    ):
        self.event_types: Dict[str, EventType] = {et.id: et for et in event_types}
        self.bookings: List[Booking] = list(bookings)
        self.team_members: List[TeamMember] = list(team_members)
        self.calendar_connections: List[CalendarConnection] = list(calendar_connections)

    async def get_event_type(self, event_type_id: str) -> Optional[EventType]:
        return self.event_types.get(event_type_id)

    async def find_personal_event_type(self, user_id: str) -> Optional[EventType]:
        """Oldest active non-team event type of ``user_id`` that has a schedule."""
        candidates = [
            et for et in self.event_types.values()
            if et.user_id == user_id
            and et.is_active
            and et.team_id is None
            and et.schedule is not None
        ]
        if not candidates:
            return None

        # Undated rows rank after dated ones; insertion order breaks ties
        dated = [et for et in candidates if et.created_at is not None]
        if dated:
            return min(dated, key=lambda et: et.created_at)
        return candidates[0]

    async def get_live_bookings(
        self,
        event_type_id: str,
        start: DateTime,
        end: DateTime,
        user_id: Optional[str] = None,
    ) -> List[Booking]:
        return [
            booking for booking in self.bookings
            if booking.event_type_id == event_type_id
            and booking.is_live
            and booking.start_time < end
            and booking.end_time > start
            and (user_id is None or booking.user_id == user_id)
        ]

    async def get_calendar_connections(self, user_id: str) -> List[CalendarConnection]:
        return [conn for conn in self.calendar_connections if conn.user_id == user_id]

    async def get_accepted_member_ids(self, team_id: str) -> List[str]:
        member_ids: List[str] = []
        for member in self.team_members:
            if member.team_id == team_id and member.accepted and member.user_id not in member_ids:
                member_ids.append(member.user_id)
        return member_ids

    async def count_bookings_by_member(
        self,
        event_type_id: str,
        member_ids: List[str],
        since: DateTime,
    ) -> Dict[str, int]:
        """Live bookings per member created at or after ``since``; absent members count 0."""
        counts = {member_id: 0 for member_id in member_ids}
        for booking in self._live_bookings_for(event_type_id, member_ids):
            created = booking.created_at or booking.start_time
            if created >= since:
                counts[booking.user_id] += 1
        return counts

    async def get_last_booking_times(
        self,
        event_type_id: str,
        member_ids: List[str],
    ) -> Dict[str, DateTime]:
        """Creation time of each member's most recent live booking."""
        latest: Dict[str, DateTime] = {}
        for booking in self._live_bookings_for(event_type_id, member_ids):
            created = booking.created_at or booking.start_time
            if booking.user_id not in latest or created > latest[booking.user_id]:
                latest[booking.user_id] = created
        return latest

    def _live_bookings_for(self, event_type_id: str, member_ids: List[str]) -> List[Booking]:
        wanted = set(member_ids)
        return [
            booking for booking in self.bookings
            if booking.event_type_id == event_type_id
            and booking.is_live
            and booking.user_id in wanted
        ]
