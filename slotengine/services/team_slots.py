"""
Slot merging for team-owned event types.

Round-robin availability is the union of the members' slots; collective
availability is their intersection.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

from pendulum import DateTime

from ..domain.models import AvailableSlot, EventType, SchedulingType
from .protocols import SchedulingRepository
from .slot_query import SlotQuery, SlotQueryService

logger = logging.getLogger(__name__)


class TeamSlotService:
    """
    Computes per-member slot sets and combines them.

    Each member is evaluated with the team event type's constraints
    (duration, buffers, notice, caps) against a schedule resolved for that
    member and that member's own calendar connections.
    """

    def __init__(
        self,
        repository: SchedulingRepository,
        slot_query_service: SlotQueryService,
    ) -> None:
        self._repository = repository
        self._slot_queries = slot_query_service

    async def accepted_member_ids(self, event_type: EventType) -> List[str]:
        if not event_type.team_id:
            return []
        return await self._repository.get_accepted_member_ids(event_type.team_id)

    async def member_event_type(
        self,
        team_event_type: EventType,
        member_id: str,
    ) -> Tuple[EventType, Optional[EventType]]:
        """
        Resolve the event type used to compute ``member_id``'s availability.

        Returns the event type to evaluate and the member's personal event
        type, if one was used. The owner uses the team event type as-is.
        Other members get their own schedule from their oldest personal
        event type. A member without one falls back to the team event type's
        schedule, which only approximates their real hours.
        """
        if member_id == team_event_type.user_id:
            return team_event_type, None

        personal = await self._repository.find_personal_event_type(member_id)
        if personal is not None and personal.schedule is not None:
            return replace(team_event_type, user_id=member_id, schedule=personal.schedule), personal

        logger.info(
            "Member %s has no personal schedule; using the schedule of event type %s",
            member_id, team_event_type.id,
        )
        return replace(team_event_type, user_id=member_id), None

    async def member_slots(
        self,
        team_event_type: EventType,
        member_id: str,
        query: SlotQuery,
    ) -> List[AvailableSlot]:
        event_type, personal = await self.member_event_type(team_event_type, member_id)

        # Round-robin bookings belong to one host; collective ones block everybody
        booking_user_id: Optional[str] = None
        if team_event_type.scheduling_type is SchedulingType.ROUND_ROBIN:
            booking_user_id = member_id

        # A member is also busy with bookings on their own event type
        blocking_ids = [personal.id] if personal is not None else []

        return await self._slot_queries.slots_for_event_type(
            event_type,
            query,
            booking_user_id=booking_user_id,
            blocking_event_type_ids=blocking_ids,
        )

    async def member_slot_sets(
        self,
        team_event_type: EventType,
        query: SlotQuery,
        member_ids: Optional[Sequence[str]] = None,
    ) -> Dict[str, List[AvailableSlot]]:
        """Slots per member, computed concurrently, keyed in member order."""
        if member_ids is None:
            member_ids = await self.accepted_member_ids(team_event_type)

        results = await asyncio.gather(
            *(self.member_slots(team_event_type, member_id, query) for member_id in member_ids)
        )
        return dict(zip(member_ids, results))

    async def round_robin_slots(self, event_type: EventType, query: SlotQuery) -> List[AvailableSlot]:
        """A time is bookable if at least one member is free."""
        slot_sets = await self.member_slot_sets(event_type, query)
        return union_slots(slot_sets.values())

    async def collective_slots(self, event_type: EventType, query: SlotQuery) -> List[AvailableSlot]:
        """A time is bookable only if every member is free at that exact instant."""
        slot_sets = await self.member_slot_sets(event_type, query)
        return intersect_slots(slot_sets.values())


def union_slots(slot_sets) -> List[AvailableSlot]:
    """Merge slot lists, keeping the first slot seen for each instant."""
    merged: Dict[DateTime, AvailableSlot] = {}
    for slots in slot_sets:
        for slot in slots:
            merged.setdefault(slot.time, slot)
    return sorted(merged.values(), key=lambda slot: slot.time)


def intersect_slots(slot_sets) -> List[AvailableSlot]:
    """Slots of the first list whose instant appears in every other list."""
    slot_sets = list(slot_sets)
    if not slot_sets:
        return []

    first, others = slot_sets[0], slot_sets[1:]
    common = {slot.time for slot in first}
    for slots in others:
        common &= {slot.time for slot in slots}

    return sorted(
        (slot for slot in first if slot.time in common),
        key=lambda slot: slot.time,
    )
