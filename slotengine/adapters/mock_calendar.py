"""
Mock calendar provider for running the engine without external accounts.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pendulum
from pendulum import DateTime

from ..domain.exceptions import CalendarProviderError
from ..domain.models import CalendarConnection, TimeRange

logger = logging.getLogger(__name__)


class MockCalendarClient:
    """
    Mock client that serves busy times from static event data.

    Each event is a mapping with ``calendarId``, ``start`` and ``end``; an
    optional ``error`` key makes every fetch for that calendar fail with the
    given provider error code.
    """

    def __init__(self, events: Optional[List[Dict[str, Any]]] = None, timezone: str = "UTC"):
        """
        Initialize the mock client.

        Args:
            events: Calendar events keyed by calendarId
            timezone: Zone applied to event times without an offset
        """
        self.calendar_events = list(events or [])
        self.timezone = timezone

    @classmethod
    def from_file(cls, data_file: Path, timezone: str = "UTC") -> "MockCalendarClient":
        """Load mock calendar data from a JSON file."""
        if not data_file.exists():
            return cls([], timezone=timezone)

        with open(data_file, "r", encoding="utf-8") as f:
            return cls(json.load(f), timezone=timezone)

    def get_busy_times(
        self,
        connection: CalendarConnection,
        start_time: DateTime,
        end_time: DateTime,
    ) -> List[TimeRange]:
        """
        Return busy times of the connection's calendar overlapping the window.
        """
        busy_times: List[TimeRange] = []

        for event in self.calendar_events:
            if event.get("calendarId") != connection.calendar_id:
                continue

            if event.get("error"):
                raise CalendarProviderError(
                    f"Mock failure for calendar {connection.calendar_id}", code=event["error"]
                )

            try:
                event_start = pendulum.parse(event["start"], tz=self.timezone).in_timezone("UTC")
                event_end = pendulum.parse(event["end"], tz=self.timezone).in_timezone("UTC")
            except (KeyError, ValueError) as e:
                logger.warning("Skipping invalid mock event %r: %s", event, e)
                continue

            if event_start < end_time and event_end > start_time:
                busy_times.append(TimeRange(start=event_start, end=event_end))

        return busy_times
