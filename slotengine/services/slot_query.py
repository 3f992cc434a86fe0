"""
Slot query orchestration for a single host.

The service validates the request, loads the event type and live bookings,
collects external busy times once, and delegates the actual computation to
the domain-level ``SlotCalculator``.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

import pendulum
from pendulum import Date, DateTime
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..domain.exceptions import QueryValidationError
from ..domain.intervals import (
    local_day_bounds,
    parse_date_key,
    start_of_local_day,
    validate_timezone,
    week_start,
)
from ..domain.models import AvailableSlot, Booking, EventType, TimeRange
from ..domain.slot_calculator import SlotCalculator
from .busy_times import BusyTimeAggregator
from .protocols import SchedulingRepository

logger = logging.getLogger(__name__)

Clock = Callable[[], DateTime]


def utc_now() -> DateTime:
    return pendulum.now("UTC")


class SlotQuery(BaseModel):
    """
    A request for bookable slots.

    ``start_date`` and ``end_date`` are inclusive attendee-local dates.
    """
    model_config = ConfigDict(frozen=True)

    event_type_id: str = Field(min_length=1)
    start_date: str
    end_date: str
    timezone: str
    require_complete: bool = False

    @field_validator("start_date", "end_date")
    @classmethod
    def validate_date(cls, value: str) -> str:
        parse_date_key(value)
        return value

    @field_validator("timezone")
    @classmethod
    def validate_zone(cls, value: str) -> str:
        return validate_timezone(value)

    @model_validator(mode="after")
    def validate_range_order(self) -> "SlotQuery":
        if self.start_day > self.end_day:
            raise ValueError("start_date must be before or equal to end_date")
        return self

    @property
    def start_day(self) -> Date:
        return parse_date_key(self.start_date)

    @property
    def end_day(self) -> Date:
        return parse_date_key(self.end_date)

    @classmethod
    def build(cls, **values) -> "SlotQuery":
        """
        Construct a query, surfacing problems as QueryValidationError.

        Raises:
            QueryValidationError: If any field is invalid or the range is inverted
        """
        try:
            return cls(**values)
        except ValidationError as exc:
            messages = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'query'}: {error['msg']}"
                for error in exc.errors()
            )
            raise QueryValidationError(f"Invalid slot query: {messages}") from exc

    @classmethod
    def for_instant(
        cls,
        event_type_id: str,
        instant: DateTime,
        timezone: str,
        require_complete: bool = False,
    ) -> "SlotQuery":
        """Query covering the attendee-local date on which ``instant`` falls."""
        try:
            validate_timezone(timezone)
        except ValueError as exc:
            raise QueryValidationError(f"Invalid slot query: {exc}") from exc
        day = instant.in_timezone(timezone).date().isoformat()
        return cls.build(
            event_type_id=event_type_id,
            start_date=day,
            end_date=day,
            timezone=timezone,
            require_complete=require_complete,
        )


class SlotQueryService:
    """
    Computes the bookable slots of one event type for one host.

    An inactive or missing event type yields an empty list, not an error.
    """

    def __init__(
        self,
        repository: SchedulingRepository,
        busy_time_aggregator: BusyTimeAggregator,
        clock: Optional[Clock] = None,
    ) -> None:
        self._repository = repository
        self._busy_times = busy_time_aggregator
        self._clock = clock or utc_now

    async def get_available_slots(self, query: SlotQuery) -> List[AvailableSlot]:
        """Load the event type named by ``query`` and compute its slots."""
        event_type = await self._repository.get_event_type(query.event_type_id)

        if event_type is None or not event_type.is_active:
            logger.debug("Event type %s missing or inactive", query.event_type_id)
            return []

        return await self.slots_for_event_type(event_type, query)

    async def slots_for_event_type(
        self,
        event_type: EventType,
        query: SlotQuery,
        *,
        booking_user_id: Optional[str] = None,
        blocking_event_type_ids: Sequence[str] = (),
    ) -> List[AvailableSlot]:
        """
        Compute slots for an already-loaded event type.

        Args:
            event_type: Event type whose schedule and constraints apply;
                its ``user_id`` names the host whose calendars are consulted
            query: Date range and attendee timezone
            booking_user_id: Only count bookings held by this user
            blocking_event_type_ids: Other event types whose live bookings
                held by the host block time without counting toward caps

        Returns:
            Slots sorted ascending by time
        """
        if not event_type.is_active or event_type.schedule is None:
            return []

        now = self._clock()
        range_start, _ = local_day_bounds(query.start_day, query.timezone)
        _, range_end = local_day_bounds(query.end_day, query.timezone)

        # Commitments just outside the range can still reach in through buffers
        padding = event_type.duration + event_type.before_buffer + event_type.after_buffer
        fetch_start = range_start.subtract(minutes=padding)
        fetch_end = range_end.add(minutes=padding)

        bookings = await self._repository.get_live_bookings(
            event_type.id, fetch_start, fetch_end, user_id=booking_user_id
        )
        blocking = [booking.time_range for booking in bookings if booking.is_live]
        for other_id in blocking_event_type_ids:
            held = await self._repository.get_live_bookings(
                other_id, fetch_start, fetch_end, user_id=event_type.user_id
            )
            blocking.extend(booking.time_range for booking in held if booking.is_live)

        cap_bookings = await self._cap_bookings(event_type, query, booking_user_id, bookings)
        busy_times = await self._busy_times.collect(
            event_type.user_id,
            fetch_start,
            fetch_end,
            require_complete=query.require_complete,
        )

        calculator = SlotCalculator(event_type=event_type, schedule=event_type.schedule)
        slots = calculator.find_available_slots(
            start_day=query.start_day,
            end_day=query.end_day,
            attendee_timezone=query.timezone,
            bookings=blocking,
            busy_times=busy_times,
            now=now,
            cap_bookings=cap_bookings,
        )

        logger.debug(
            "Event type %s: %d slot(s) between %s and %s (%s)",
            event_type.id, len(slots), query.start_date, query.end_date, query.timezone,
        )
        return slots

    async def _cap_bookings(
        self,
        event_type: EventType,
        query: SlotQuery,
        booking_user_id: Optional[str],
        fetched: List[Booking],
    ) -> List[TimeRange]:
        """
        Bookings counted toward the caps.

        A weekly cap looks at whole Monday-to-Sunday weeks in the attendee's
        zone, so the fetch grows to the weeks holding the first and last day.
        """
        if event_type.max_bookings_per_week is None:
            return [booking.time_range for booking in fetched if booking.is_live]

        weeks_start = start_of_local_day(week_start(query.start_day), query.timezone)
        weeks_end = start_of_local_day(week_start(query.end_day).add(days=7), query.timezone)
        bookings = await self._repository.get_live_bookings(
            event_type.id, weeks_start, weeks_end, user_id=booking_user_id
        )
        return [booking.time_range for booking in bookings if booking.is_live]
