"""
Entry point used by the API and booking-write layers.

``AvailabilityService`` dispatches slot queries on the event type's
scheduling type and exposes the checks the booking-write path must run
before committing.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from pendulum import DateTime

from ..adapters.google_calendar import GoogleCalendarClient
from ..adapters.graph_client import GraphCalendarClient
from ..adapters.mock_calendar import MockCalendarClient
from ..config import EngineSettings
from ..domain.exceptions import AssignmentImpossibleError, QueryValidationError, SlotConflictError
from ..domain.intervals import parse_instant
from ..domain.models import AvailableSlot, EventType, SchedulingType
from .assignment import RoundRobinAssigner
from .busy_times import BusyTimeAggregator
from .protocols import CalendarProviderProtocol, SchedulingRepository
from .slot_query import Clock, SlotQuery, SlotQueryService
from .team_slots import TeamSlotService

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 30.0


def build_calendar_providers(
    settings: EngineSettings,
    mock_events: Optional[List[dict]] = None,
) -> Dict[str, CalendarProviderProtocol]:
    """
    Create one provider per supported calendar type from the settings.

    HTTP requests share the provider timeout: a fetch abandoned by the
    aggregator keeps its worker thread until the request itself gives up.
    """
    request_timeout = settings.provider_timeout_seconds or DEFAULT_REQUEST_TIMEOUT
    return {
        "google": GoogleCalendarClient(
            client_id=settings.google.client_id,
            client_secret=settings.google.client_secret,
            token_url=settings.google.token_url,
            api_url=settings.google.api_url,
            refresh_margin_minutes=settings.token_refresh_margin_minutes,
            timeout=request_timeout,
        ),
        "microsoft": GraphCalendarClient(
            client_id=settings.microsoft.client_id,
            client_secret=settings.microsoft.client_secret,
            authority_url=settings.microsoft.get_authority_url(),
            scopes=settings.microsoft.scopes,
            refresh_margin_minutes=settings.token_refresh_margin_minutes,
            timeout=request_timeout,
        ),
        "mock": MockCalendarClient(mock_events or []),
    }


class AvailabilityService:
    """
    Facade over slot queries, team merging and round-robin assignment.

    The repository handle is injected and owned by the hosting process.
    """

    def __init__(
        self,
        repository: SchedulingRepository,
        busy_time_aggregator: BusyTimeAggregator,
        clock: Optional[Clock] = None,
        lookback_days: int = 30,
    ) -> None:
        self._repository = repository
        self.slot_queries = SlotQueryService(repository, busy_time_aggregator, clock=clock)
        self.team_slots = TeamSlotService(repository, self.slot_queries)
        self.assigner = RoundRobinAssigner(
            repository, self.team_slots, clock=clock, lookback_days=lookback_days
        )

    @classmethod
    def from_settings(
        cls,
        settings: EngineSettings,
        repository: SchedulingRepository,
        providers: Optional[Dict[str, CalendarProviderProtocol]] = None,
        clock: Optional[Clock] = None,
    ) -> "AvailabilityService":
        aggregator = BusyTimeAggregator(
            repository,
            providers if providers is not None else build_calendar_providers(settings),
            timeout=settings.provider_timeout_seconds,
        )
        return cls(
            repository,
            aggregator,
            clock=clock,
            lookback_days=settings.round_robin_lookback_days,
        )

    async def find_slots(self, query: SlotQuery) -> List[AvailableSlot]:
        """
        Return bookable slots for ``query``, sorted ascending by time.

        Missing or inactive event types yield an empty list.
        """
        event_type = await self._load_active(query.event_type_id)
        if event_type is None:
            return []

        if event_type.scheduling_type is SchedulingType.ROUND_ROBIN:
            return await self.team_slots.round_robin_slots(event_type, query)

        if event_type.scheduling_type is SchedulingType.COLLECTIVE:
            return await self.team_slots.collective_slots(event_type, query)

        return await self.slot_queries.slots_for_event_type(event_type, query)

    async def verify_slot(
        self,
        event_type_id: str,
        slot_time: DateTime | str,
        timezone: str,
    ) -> AvailableSlot:
        """
        Re-check a slot against fresh data right before a booking is written.

        Returns:
            The still-available slot

        Raises:
            QueryValidationError: If the instant or timezone is invalid
            SlotConflictError: If the slot is no longer offered
        """
        instant = _coerce_instant(slot_time)
        query = SlotQuery.for_instant(event_type_id, instant, timezone)

        for slot in await self.find_slots(query):
            if slot.time == instant:
                return slot

        raise SlotConflictError(
            f"The slot at {instant.to_iso8601_string()} is no longer available. "
            "Please pick another time."
        )

    async def assign_host(
        self,
        event_type_id: str,
        slot_time: DateTime | str,
        timezone: str,
    ) -> str:
        """
        Choose the host for a round-robin booking.

        Raises:
            QueryValidationError: If the event type is not round-robin
            AssignmentImpossibleError: If no member is free at the slot
        """
        instant = _coerce_instant(slot_time)
        event_type = await self._load_active(event_type_id)

        if event_type is None:
            raise AssignmentImpossibleError(f"Event type {event_type_id} is not bookable")

        if event_type.scheduling_type is not SchedulingType.ROUND_ROBIN:
            raise QueryValidationError(f"Event type {event_type_id} is not a round-robin event type")

        host = await self.assigner.select_host(event_type, instant, timezone)
        if host is None:
            raise AssignmentImpossibleError(
                f"No team member is available at {instant.to_iso8601_string()}. "
                "Please pick another time."
            )

        logger.info("Assigned %s to event type %s at %s", host, event_type_id, instant)
        return host

    async def _load_active(self, event_type_id: str) -> Optional[EventType]:
        event_type = await self._repository.get_event_type(event_type_id)
        if event_type is None or not event_type.is_active:
            return None
        return event_type


def _coerce_instant(value: DateTime | str) -> DateTime:
    if isinstance(value, DateTime):
        return value.in_timezone("UTC")
    try:
        return parse_instant(value)
    except ValueError as exc:
        raise QueryValidationError(str(exc)) from exc
