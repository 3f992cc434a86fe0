"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .assignment import RoundRobinAssigner
from .availability import AvailabilityService, build_calendar_providers
from .busy_times import BusyTimeAggregator
from .protocols import CalendarProviderProtocol, SchedulingRepository
from .slot_query import SlotQuery, SlotQueryService
from .team_slots import TeamSlotService, intersect_slots, union_slots

__all__ = [
    "AvailabilityService",
    "BusyTimeAggregator",
    "CalendarProviderProtocol",
    "RoundRobinAssigner",
    "SchedulingRepository",
    "SlotQuery",
    "SlotQueryService",
    "TeamSlotService",
    "build_calendar_providers",
    "intersect_slots",
    "union_slots",
]
