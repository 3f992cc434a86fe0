"""
Per-day and per-week booking caps.

Caps are checked before any slot is generated for a day. Reaching a cap
removes the whole day (or the rest of the week) instead of filtering
individual slots.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from pendulum import Date

from .intervals import local_day_bounds, overlaps, start_of_local_day, week_start
from .models import TimeRange


@dataclass(frozen=True)
class CapacityDecision:
    allowed: bool
    next_day: Date
    reason: Optional[str] = None


class CapacityLimiter:
    """
    Counts live bookings against ``max_per_day`` and ``max_per_week``.

    Day and week boundaries are taken in ``timezone`` (the attendee's); weeks
    run Monday to Sunday.
    """

    def __init__(
        self,
        bookings: Sequence[TimeRange],
        timezone: str,
        max_per_day: Optional[int] = None,
        max_per_week: Optional[int] = None,
    ):
        self.bookings: List[TimeRange] = list(bookings)
        self.timezone = timezone
        self.max_per_day = max_per_day
        self.max_per_week = max_per_week

    def count_for_day(self, day: Date) -> int:
        start, end = local_day_bounds(day, self.timezone)
        return self._count_between(start, end)

    def count_for_week(self, day: Date) -> int:
        monday = week_start(day)
        start = start_of_local_day(monday, self.timezone)
        end = start_of_local_day(monday.add(days=7), self.timezone)
        return self._count_between(start, end)

    def check(self, day: Date) -> CapacityDecision:
        """
        Decide whether slots may be generated for ``day``.

        A met weekly cap skips straight to the next Monday.
        """
        if self.max_per_day is not None and self.count_for_day(day) >= self.max_per_day:
            return CapacityDecision(allowed=False, next_day=day.add(days=1), reason="daily")

        if self.max_per_week is not None and self.count_for_week(day) >= self.max_per_week:
            return CapacityDecision(
                allowed=False,
                next_day=week_start(day).add(days=7),
                reason="weekly",
            )

        return CapacityDecision(allowed=True, next_day=day.add(days=1))

    def _count_between(self, start, end) -> int:
        return sum(
            1 for booking in self.bookings
            if overlaps(booking.start, booking.end, start, end)
        )
