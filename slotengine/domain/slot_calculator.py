"""
Core business logic for calculating bookable slots of one event type.

This is the heart of the engine - pure domain logic without any external
dependencies (no API calls, no database, no I/O). Bookings and busy times
are fetched by the service layer and handed in.
"""

import logging
from typing import Dict, List, Optional, Sequence

from pendulum import Date, DateTime

from .capacity import CapacityLimiter
from .conflicts import ConflictFilter
from .intervals import local_dates_between, local_day_bounds
from .models import AvailableSlot, EventType, Schedule, TimeRange
from .slot_generator import SlotGenerator
from .windows import WindowResolver

logger = logging.getLogger(__name__)


class SlotCalculator:
    """
    Calculates available slots for an event type over attendee-local dates.

    Algorithm, for each attendee date in the range:
    1. Stop once the day starts beyond now + future limit
    2. Skip the day (or the rest of its week) if a booking cap is met
    3. Resolve the windows of every schedule date overlapping the day
    4. Generate the slot grid per window, keeping starts inside the day
    5. Collapse duplicate instants and return slots sorted by time
    """

    def __init__(self, event_type: EventType, schedule: Schedule):
        self.event_type = event_type
        self.schedule = schedule
        self.window_resolver = WindowResolver(schedule)

    def find_available_slots(
        self,
        *,
        start_day: Date,
        end_day: Date,
        attendee_timezone: str,
        bookings: Sequence[TimeRange],
        busy_times: Sequence[TimeRange],
        now: DateTime,
        cap_bookings: Optional[Sequence[TimeRange]] = None,
    ) -> List[AvailableSlot]:
        """
        Find all bookable slots between two attendee-local dates, inclusive.

        Args:
            start_day: First attendee-local date
            end_day: Last attendee-local date
            attendee_timezone: IANA zone of the attendee
            bookings: Live internal bookings (block time, and count toward caps
                unless ``cap_bookings`` is given)
            busy_times: External busy intervals (block time only)
            now: Reference instant for notice and future limit
            cap_bookings: Bookings counted toward the caps when they differ
                from ``bookings``; must cover every week the range touches

        Returns:
            List of AvailableSlot sorted ascending by time
        """
        event_type = self.event_type
        future_cutoff = now.add(days=event_type.future_limit)

        limiter = CapacityLimiter(
            bookings if cap_bookings is None else cap_bookings,
            attendee_timezone,
            max_per_day=event_type.max_bookings_per_day,
            max_per_week=event_type.max_bookings_per_week,
        )
        generator = SlotGenerator(
            duration=event_type.duration,
            step_minutes=event_type.step_minutes,
            earliest_start=now.add(minutes=event_type.minimum_notice),
            latest_start=future_cutoff,
            conflict_filter=ConflictFilter(
                list(bookings) + list(busy_times),
                before_buffer=event_type.before_buffer,
                after_buffer=event_type.after_buffer,
            ),
            attendee_timezone=attendee_timezone,
        )

        slots: Dict[DateTime, AvailableSlot] = {}
        day = start_day

        while day <= end_day:
            day_start, day_end = local_day_bounds(day, attendee_timezone)

            if day_start > future_cutoff:
                break

            decision = limiter.check(day)
            if not decision.allowed:
                logger.debug(
                    "Skipping %s for event type %s: %s cap reached",
                    day, event_type.id, decision.reason,
                )
                day = decision.next_day
                continue

            day_range = TimeRange(start=day_start, end=day_end)
            for window in self.windows_for_day(day_range):
                for slot in generator.generate(window, within=day_range):
                    slots.setdefault(slot.time, slot)

            day = decision.next_day

        return sorted(slots.values(), key=lambda slot: slot.time)

    def windows_for_day(self, day_range: TimeRange) -> List[TimeRange]:
        """
        Resolve the schedule windows relevant to one attendee day.

        The attendee day is mapped onto the schedule's own calendar dates, so
        weekday lookups always happen in the schedule's timezone.
        """
        windows: List[TimeRange] = []

        for schedule_day in local_dates_between(
            day_range.start, day_range.end, self.schedule.timezone
        ):
            windows.extend(self.window_resolver.windows_for_date(schedule_day))

        return sorted(windows, key=lambda window: window.start)
