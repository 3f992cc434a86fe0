"""
Host selection for round-robin bookings.

Selection priority:
1. Member must be free at the requested instant
2. Fewest live bookings of this event type in the lookback window
3. Least recently assigned (members never assigned come first)
4. Accepted-member order
"""

from __future__ import annotations

import logging
from typing import List, Optional

from pendulum import DateTime

from ..domain.models import EventType, utc_epoch
from .protocols import SchedulingRepository
from .slot_query import Clock, SlotQuery, utc_now
from .team_slots import TeamSlotService

logger = logging.getLogger(__name__)


class RoundRobinAssigner:
    """Picks the coldest available member for a round-robin slot."""

    def __init__(
        self,
        repository: SchedulingRepository,
        team_slot_service: TeamSlotService,
        clock: Optional[Clock] = None,
        lookback_days: int = 30,
    ) -> None:
        self._repository = repository
        self._team_slots = team_slot_service
        self._clock = clock or utc_now
        self.lookback_days = lookback_days

    async def available_members(
        self,
        event_type: EventType,
        slot_time: DateTime,
        timezone: str,
    ) -> List[str]:
        """Accepted members whose fresh slot set still contains ``slot_time``."""
        member_ids = await self._team_slots.accepted_member_ids(event_type)
        if not member_ids:
            return []

        query = SlotQuery.for_instant(event_type.id, slot_time, timezone)
        slot_sets = await self._team_slots.member_slot_sets(event_type, query, member_ids)

        instant = slot_time.in_timezone("UTC")
        return [
            member_id for member_id in member_ids
            if any(slot.time == instant for slot in slot_sets[member_id])
        ]

    async def select_host(
        self,
        event_type: EventType,
        slot_time: DateTime,
        timezone: str,
    ) -> Optional[str]:
        """
        Choose the member to assign, or None when nobody is free.

        Args:
            event_type: The round-robin team event type
            slot_time: Requested slot start
            timezone: Attendee timezone the slot was offered in

        Returns:
            The chosen member's user id, or None
        """
        available = await self.available_members(event_type, slot_time, timezone)

        if not available:
            logger.info("No member of event type %s is free at %s", event_type.id, slot_time)
            return None

        if len(available) == 1:
            return available[0]

        since = self._clock().subtract(days=self.lookback_days)
        counts = await self._repository.count_bookings_by_member(event_type.id, available, since)

        min_count = min(counts.get(member_id, 0) for member_id in available)
        tied = [member_id for member_id in available if counts.get(member_id, 0) == min_count]

        if len(tied) == 1:
            return tied[0]

        last_assigned = await self._repository.get_last_booking_times(event_type.id, tied)
        epoch = utc_epoch()

        # Stable sort keeps accepted-member order among exact ties
        tied.sort(key=lambda member_id: last_assigned.get(member_id, epoch))

        logger.debug(
            "Round-robin tie on %d booking(s) for event type %s; picked %s",
            min_count, event_type.id, tied[0],
        )
        return tied[0]
