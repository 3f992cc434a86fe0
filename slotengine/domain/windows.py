"""
Resolution of a schedule's availability windows for single calendar dates.

Date overrides are consulted first; only when no applicable override exists
do the recurring weekday windows apply.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple

from pendulum import Date

from .intervals import date_key, local_instant, weekday_index
from .models import DateOverride, Schedule, TimeRange


class OverrideKind(Enum):
    UNAVAILABLE = "unavailable"
    EXPLICIT = "explicit"
    NONE = "none"


@dataclass(frozen=True)
class OverrideResolution:
    """Outcome of looking up a date override for one calendar date."""
    kind: OverrideKind
    windows: Tuple[Tuple[str, str], ...] = ()


NO_OVERRIDE = OverrideResolution(kind=OverrideKind.NONE)


def resolve_override(day_key: str, overrides: Mapping[str, DateOverride]) -> OverrideResolution:
    """
    Decide whether an override replaces the weekly pattern for ``day_key``.

    An override that is neither unavailable nor carries a full start/end pair
    has nothing to apply and falls back to the weekday windows.
    """
    override = overrides.get(day_key)

    if override is None:
        return NO_OVERRIDE

    if override.is_unavailable:
        return OverrideResolution(kind=OverrideKind.UNAVAILABLE)

    if override.has_window:
        return OverrideResolution(
            kind=OverrideKind.EXPLICIT,
            windows=((override.start_time, override.end_time),),
        )

    return NO_OVERRIDE


def build_window(day: Date, start_time: str, end_time: str, timezone: str) -> Optional[TimeRange]:
    """
    Anchor an HH:mm pair on ``day`` in ``timezone`` and return it as a UTC range.

    Returns None if the pair collapses once converted (possible across a DST
    transition).
    """
    start = local_instant(day, start_time, timezone)
    end = local_instant(day, end_time, timezone)

    if start >= end:
        return None

    return TimeRange(start=start, end=end)


class WindowResolver:
    """
    Produces the absolute windows a schedule offers on given calendar dates.

    Overrides and weekday rows are indexed once per resolver; resolved dates
    are memoised because neighbouring attendee days can share a schedule date.
    """

    def __init__(self, schedule: Schedule):
        self.schedule = schedule
        self._overrides = schedule.overrides_by_date()
        self._weekly = schedule.availability_by_weekday()
        self._cache: Dict[Date, List[TimeRange]] = {}

    def override_for(self, day: Date) -> OverrideResolution:
        return resolve_override(date_key(day), self._overrides)

    def windows_for_date(self, day: Date) -> List[TimeRange]:
        """
        Windows for ``day``, a calendar date in the schedule's timezone.

        The weekday lookup uses the schedule's timezone; windows of the same
        day are returned in row order and may overlap.
        """
        if day not in self._cache:
            self._cache[day] = self._resolve(day)
        return list(self._cache[day])

    def _resolve(self, day: Date) -> List[TimeRange]:
        timezone = self.schedule.timezone
        resolution = self.override_for(day)

        if resolution.kind is OverrideKind.UNAVAILABLE:
            return []

        if resolution.kind is OverrideKind.EXPLICIT:
            pairs = list(resolution.windows)
        else:
            pairs = [
                (availability.start_time, availability.end_time)
                for availability in self._weekly.get(weekday_index(day), [])
            ]

        windows: List[TimeRange] = []
        for start_time, end_time in pairs:
            window = build_window(day, start_time, end_time, timezone)
            if window:
                windows.append(window)
        return windows
