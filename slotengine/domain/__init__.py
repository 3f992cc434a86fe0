"""
Domain layer - Pure business logic without external dependencies.
"""

from .capacity import CapacityDecision, CapacityLimiter
from .conflicts import ConflictFilter, is_slot_conflicting
from .models import (
    Availability,
    AvailableSlot,
    Booking,
    BookingStatus,
    CalendarConnection,
    DateOverride,
    EventType,
    Schedule,
    SchedulingType,
    TeamMember,
    TimeRange,
)
from .slot_calculator import SlotCalculator
from .slot_generator import SlotGenerator
from .windows import OverrideKind, OverrideResolution, WindowResolver, resolve_override

__all__ = [
    "Availability",
    "AvailableSlot",
    "Booking",
    "BookingStatus",
    "CalendarConnection",
    "CapacityDecision",
    "CapacityLimiter",
    "ConflictFilter",
    "DateOverride",
    "EventType",
    "OverrideKind",
    "OverrideResolution",
    "Schedule",
    "SchedulingType",
    "SlotCalculator",
    "SlotGenerator",
    "TeamMember",
    "TimeRange",
    "WindowResolver",
    "is_slot_conflicting",
    "resolve_override",
]
