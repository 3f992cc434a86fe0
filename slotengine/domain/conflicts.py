"""
Conflict detection between candidate slots and existing commitments.
"""

from typing import Iterable, List

from pendulum import DateTime

from .models import TimeRange


def is_slot_conflicting(
    slot_start: DateTime,
    slot_end: DateTime,
    existing: Iterable[TimeRange],
    before_buffer: int = 0,
    after_buffer: int = 0,
) -> bool:
    """
    Check a candidate [slot_start, slot_end) against existing commitments.

    Only the existing intervals are padded by the buffers; the candidate is
    tested as-is against each blocked zone.
    """
    for interval in existing:
        blocked_start = interval.start.subtract(minutes=before_buffer)
        blocked_end = interval.end.add(minutes=after_buffer)

        if slot_start < blocked_end and blocked_start < slot_end:
            return True

    return False


class ConflictFilter:
    """
    Blocked-interval set built from internal bookings and external busy times.

    Zones are pre-expanded by the buffers and kept sorted by start, so a
    lookup can stop at the first zone starting after the candidate ends.
    """

    def __init__(
        self,
        existing: Iterable[TimeRange],
        before_buffer: int = 0,
        after_buffer: int = 0,
    ):
        self.before_buffer = before_buffer
        self.after_buffer = after_buffer
        self._zones: List[TimeRange] = sorted(
            (interval.expand(before_buffer, after_buffer) for interval in existing),
            key=lambda zone: zone.start,
        )

    @property
    def blocked_zones(self) -> List[TimeRange]:
        return list(self._zones)

    def conflicts(self, slot_start: DateTime, slot_end: DateTime) -> bool:
        for zone in self._zones:
            if zone.start >= slot_end:
                break
            if slot_start < zone.end:
                return True
        return False
