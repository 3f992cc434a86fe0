"""
Domain models for schedules, bookings and computed slots.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import pendulum
from pendulum import Date, DateTime

from .intervals import date_key, format_local_time, parse_clock_time, validate_timezone


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable half-open time range [start, end).

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range shares at least one instant with another."""
        return self.start < other.end and other.start < self.end

    def contains(self, other: "TimeRange") -> bool:
        """Check if ``other`` lies entirely inside this range."""
        return self.start <= other.start and other.end <= self.end

    def expand(self, before_minutes: int = 0, after_minutes: int = 0) -> "TimeRange":
        """Return a copy padded by the given buffers on either side."""
        return TimeRange(
            start=self.start.subtract(minutes=before_minutes),
            end=self.end.add(minutes=after_minutes),
        )

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    RESCHEDULED = "RESCHEDULED"

    @property
    def is_live(self) -> bool:
        """Only pending and accepted bookings block time and count toward caps."""
        return self in (BookingStatus.PENDING, BookingStatus.ACCEPTED)


class SchedulingType(str, Enum):
    PERSONAL = "personal"
    ROUND_ROBIN = "round-robin"
    COLLECTIVE = "collective"

    @classmethod
    def _missing_(cls, value):
        # Accept ROUND_ROBIN / round_robin spellings from stored data
        if isinstance(value, str):
            normalized = value.strip().lower().replace("_", "-")
            for member in cls:
                if member.value == normalized:
                    return member
        return None


@dataclass(frozen=True)
class Availability:
    """
    A recurring weekly window, interpreted in the owning schedule's timezone.

    ``day`` uses 0 = Sunday ... 6 = Saturday.
    """
    day: int
    start_time: str
    end_time: str

    def __post_init__(self):
        if self.day not in range(7):
            raise ValueError(f"Day of week must be between 0 and 6, got {self.day}")
        if parse_clock_time(self.start_time) >= parse_clock_time(self.end_time):
            raise ValueError(
                f"Start time {self.start_time} must be before end time {self.end_time}"
            )


@dataclass(frozen=True)
class DateOverride:
    """
    A one-off exception for a single calendar date of a schedule.

    When ``is_unavailable`` is set the date is blocked entirely; otherwise a
    complete start/end pair replaces the weekday windows for that date.
    """
    date: Date
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_unavailable: bool = False

    def __post_init__(self):
        for value in (self.start_time, self.end_time):
            if value is not None:
                parse_clock_time(value)
        if self.has_window and parse_clock_time(self.start_time) >= parse_clock_time(self.end_time):
            raise ValueError(
                f"Override start {self.start_time} must be before end {self.end_time}"
            )

    @property
    def has_window(self) -> bool:
        return self.start_time is not None and self.end_time is not None

    @property
    def key(self) -> str:
        return date_key(self.date)


@dataclass
class Schedule:
    """A host's weekly hours plus date overrides, in one IANA timezone."""
    id: str
    user_id: str
    timezone: str
    availability: List[Availability] = field(default_factory=list)
    date_overrides: List[DateOverride] = field(default_factory=list)

    def __post_init__(self):
        validate_timezone(self.timezone)
        seen: set[str] = set()
        for override in self.date_overrides:
            if override.key in seen:
                raise ValueError(f"Duplicate date override for {override.key}")
            seen.add(override.key)

    def overrides_by_date(self) -> Dict[str, DateOverride]:
        """Index overrides by their YYYY-MM-DD key."""
        return {override.key: override for override in self.date_overrides}

    def availability_by_weekday(self) -> Dict[int, List[Availability]]:
        """Group weekly windows by day of week, preserving their order."""
        grouped: Dict[int, List[Availability]] = {}
        for availability in self.availability:
            grouped.setdefault(availability.day, []).append(availability)
        return grouped


@dataclass
class EventType:
    """
    Configuration of a bookable event.

    Durations, buffers and notice are in minutes; ``future_limit`` is in days.
    """
    id: str
    user_id: str
    duration: int
    slot_interval: Optional[int] = None
    before_buffer: int = 0
    after_buffer: int = 0
    minimum_notice: int = 120
    future_limit: int = 60
    max_bookings_per_day: Optional[int] = None
    max_bookings_per_week: Optional[int] = None
    scheduling_type: SchedulingType = SchedulingType.PERSONAL
    is_active: bool = True
    schedule: Optional[Schedule] = None
    team_id: Optional[str] = None
    created_at: Optional[DateTime] = None

    def __post_init__(self):
        self.scheduling_type = SchedulingType(self.scheduling_type)
        if self.duration <= 0:
            raise ValueError(f"Duration must be positive, got {self.duration}")
        if self.slot_interval is not None and self.slot_interval <= 0:
            raise ValueError(f"Slot interval must be positive, got {self.slot_interval}")
        for name in ("before_buffer", "after_buffer", "minimum_notice", "future_limit"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative")
        for name in ("max_bookings_per_day", "max_bookings_per_week"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} cannot be negative")

    @property
    def step_minutes(self) -> int:
        return self.slot_interval or self.duration

    @property
    def is_team_event(self) -> bool:
        return self.scheduling_type is not SchedulingType.PERSONAL


@dataclass(frozen=True)
class Booking:
    """A committed booking; start and end are stored as UTC instants."""
    id: str
    event_type_id: str
    user_id: str
    start_time: DateTime
    end_time: DateTime
    status: BookingStatus = BookingStatus.ACCEPTED
    created_at: Optional[DateTime] = None

    @property
    def is_live(self) -> bool:
        return BookingStatus(self.status).is_live

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start_time, end=self.end_time)


@dataclass(frozen=True)
class TeamMember:
    user_id: str
    team_id: str
    accepted: bool = False


@dataclass
class CalendarConnection:
    """
    A host's connected external calendar account.

    The token fields are mutable: providers refresh them in place.
    """
    id: str
    user_id: str
    provider: str
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[DateTime] = None
    calendar_id: str = "primary"

    def expires_within(self, now: DateTime, minutes: int) -> bool:
        """True when the access token is expired or expires within ``minutes``."""
        if self.expires_at is None:
            return False
        return self.expires_at <= now.add(minutes=minutes)


@dataclass(frozen=True)
class AvailableSlot:
    """
    A bookable instant.

    ``time`` is in UTC; ``local_time`` is the same instant on the attendee's
    wall clock.
    """
    time: DateTime
    local_time: str
    duration: int

    @classmethod
    def at(cls, instant: DateTime, duration: int, attendee_timezone: str) -> "AvailableSlot":
        utc = instant.in_timezone("UTC")
        return cls(
            time=utc,
            local_time=format_local_time(utc, attendee_timezone),
            duration=duration,
        )

    @property
    def end(self) -> DateTime:
        return self.time.add(minutes=self.duration)

    def iso_time(self) -> str:
        return self.time.in_timezone("UTC").to_iso8601_string()

    def to_dict(self) -> Dict[str, object]:
        """Wire shape consumed by the API layer."""
        return {
            "time": self.iso_time(),
            "localTime": self.local_time,
            "duration": self.duration,
        }


def utc_epoch() -> DateTime:
    """Sort key for 'never happened'."""
    return pendulum.from_timestamp(0, tz="UTC")
