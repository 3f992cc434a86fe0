"""
Candidate slot generation inside a single availability window.
"""

from typing import List, Optional

from pendulum import DateTime

from .conflicts import ConflictFilter
from .models import AvailableSlot, TimeRange


class SlotGenerator:
    """
    Steps through a window at ``step_minutes`` and emits bookable starts.

    Algorithm, per candidate start:
    1. Stop once the slot would run past the window end
    2. Stop once the start is beyond the future-limit cutoff
    3. Skip starts earlier than now + minimum notice
    4. Skip starts whose slot overlaps a blocked zone
    5. Emit everything else
    """

    def __init__(
        self,
        *,
        duration: int,
        step_minutes: int,
        earliest_start: DateTime,
        latest_start: DateTime,
        conflict_filter: ConflictFilter,
        attendee_timezone: str,
    ):
        self.duration = duration
        self.step_minutes = step_minutes
        self.earliest_start = earliest_start
        self.latest_start = latest_start
        self.conflict_filter = conflict_filter
        self.attendee_timezone = attendee_timezone

    def generate(self, window: TimeRange, within: Optional[TimeRange] = None) -> List[AvailableSlot]:
        """
        Generate slots for ``window``.

        Args:
            window: Absolute availability window; the slot grid is anchored at its start
            within: Optional bounds a slot start must fall into (an attendee day)

        Returns:
            Slots in ascending time order
        """
        slots: List[AvailableSlot] = []
        slot_start = window.start

        while True:
            slot_end = slot_start.add(minutes=self.duration)

            if slot_end > window.end:
                break

            if slot_start > self.latest_start:
                break

            if within is not None and slot_start >= within.end:
                break

            if self._is_bookable(slot_start, slot_end, within):
                slots.append(
                    AvailableSlot.at(slot_start, self.duration, self.attendee_timezone)
                )

            slot_start = slot_start.add(minutes=self.step_minutes)

        return slots

    def _is_bookable(
        self,
        slot_start: DateTime,
        slot_end: DateTime,
        within: Optional[TimeRange],
    ) -> bool:
        if within is not None and slot_start < within.start:
            return False

        if slot_start < self.earliest_start:
            return False

        return not self.conflict_filter.conflicts(slot_start, slot_end)
