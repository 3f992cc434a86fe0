"""
Adapters layer - External calendar providers and persistence implementations.
"""

from .data_file import Scenario, load_scenario
from .google_calendar import GoogleCalendarClient
from .graph_client import GraphCalendarClient
from .memory_repository import InMemoryRepository
from .mock_calendar import MockCalendarClient

__all__ = [
    "GoogleCalendarClient",
    "GraphCalendarClient",
    "InMemoryRepository",
    "MockCalendarClient",
    "Scenario",
    "load_scenario",
]
