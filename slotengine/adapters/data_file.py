"""
Loading of scheduling data from a YAML document.

Layout:

    schedules:
      - {id, user_id, timezone, availability: [{day, start_time, end_time}],
         date_overrides: [{date, start_time, end_time, is_unavailable}]}
    event_types:
      - {id, user_id, duration, schedule_id, scheduling_type, team_id, ...}
    bookings:
      - {id, event_type_id, user_id, start_time, end_time, status, created_at}
    team_members:
      - {user_id, team_id, accepted}
    calendar_connections:
      - {id, user_id, provider, access_token, refresh_token, expires_at, calendar_id}
    mock_busy_events:
      - {calendarId, start, end}
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pendulum
import yaml
from pendulum import Date, DateTime

from ..domain.intervals import parse_date_key, parse_instant
from ..domain.models import (
    Availability,
    Booking,
    BookingStatus,
    CalendarConnection,
    DateOverride,
    EventType,
    Schedule,
    TeamMember,
)
from .memory_repository import InMemoryRepository


@dataclass
class Scenario:
    """A loaded data file: the repository plus mock calendar events."""
    repository: InMemoryRepository
    mock_busy_events: List[Dict[str, Any]] = field(default_factory=list)


def _clock(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, int):
        # YAML 1.1 reads an unquoted 10:30 as the sexagesimal integer 630
        hours, minutes = divmod(value, 60)
        return f"{hours:02d}:{minutes:02d}"
    return str(value)


def _date(value: Any) -> Date:
    if isinstance(value, date) and not isinstance(value, datetime):
        return pendulum.date(value.year, value.month, value.day)
    return parse_date_key(str(value))


def _instant(value: Any) -> Optional[DateTime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return pendulum.instance(value, tz="UTC").in_timezone("UTC")
    return parse_instant(str(value))


def schedule_from_dict(data: Dict[str, Any]) -> Schedule:
    return Schedule(
        id=str(data["id"]),
        user_id=str(data["user_id"]),
        timezone=data["timezone"],
        availability=[
            Availability(
                day=int(row["day"]),
                start_time=_clock(row["start_time"]),
                end_time=_clock(row["end_time"]),
            )
            for row in data.get("availability", [])
        ],
        date_overrides=[
            DateOverride(
                date=_date(row["date"]),
                start_time=_clock(row.get("start_time")),
                end_time=_clock(row.get("end_time")),
                is_unavailable=bool(row.get("is_unavailable", False)),
            )
            for row in data.get("date_overrides", [])
        ],
    )


def event_type_from_dict(data: Dict[str, Any], schedules: Dict[str, Schedule]) -> EventType:
    values = dict(data)
    schedule_id = values.pop("schedule_id", None)
    if schedule_id is not None and schedule_id not in schedules:
        raise ValueError(f"Event type {data['id']} references unknown schedule {schedule_id}")

    values["id"] = str(values["id"])
    values["user_id"] = str(values["user_id"])
    values["created_at"] = _instant(values.get("created_at"))
    values["schedule"] = schedules.get(schedule_id) if schedule_id is not None else None
    return EventType(**values)


def booking_from_dict(data: Dict[str, Any]) -> Booking:
    return Booking(
        id=str(data["id"]),
        event_type_id=str(data["event_type_id"]),
        user_id=str(data["user_id"]),
        start_time=_instant(data["start_time"]),
        end_time=_instant(data["end_time"]),
        status=BookingStatus(str(data.get("status", "ACCEPTED")).upper()),
        created_at=_instant(data.get("created_at")),
    )


def connection_from_dict(data: Dict[str, Any]) -> CalendarConnection:
    return CalendarConnection(
        id=str(data["id"]),
        user_id=str(data["user_id"]),
        provider=str(data.get("provider", "mock")).lower(),
        access_token=str(data.get("access_token", "")),
        refresh_token=data.get("refresh_token"),
        expires_at=_instant(data.get("expires_at")),
        calendar_id=str(data.get("calendar_id", "primary")),
    )


def scenario_from_dict(data: Dict[str, Any]) -> Scenario:
    """Build a Scenario from an already-parsed mapping."""
    schedules = {
        schedule.id: schedule
        for schedule in (schedule_from_dict(row) for row in data.get("schedules", []))
    }

    repository = InMemoryRepository(
        event_types=[event_type_from_dict(row, schedules) for row in data.get("event_types", [])],
        bookings=[booking_from_dict(row) for row in data.get("bookings", [])],
        team_members=[
            TeamMember(
                user_id=str(row["user_id"]),
                team_id=str(row["team_id"]),
                accepted=bool(row.get("accepted", False)),
            )
            for row in data.get("team_members", [])
        ],
        calendar_connections=[
            connection_from_dict(row) for row in data.get("calendar_connections", [])
        ],
    )

    return Scenario(repository=repository, mock_busy_events=list(data.get("mock_busy_events", [])))


def load_scenario(data_path: Path) -> Scenario:
    """
    Load a scenario from a YAML file.

    Raises:
        FileNotFoundError: If the data file doesn't exist
        ValueError: If the file is malformed or violates a model invariant
    """
    if not data_path.exists():
        raise FileNotFoundError(f"Data file not found: {data_path}")

    try:
        with open(data_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {data_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ValueError("Data file must contain a mapping at the root level.")

    try:
        return scenario_from_dict(data)
    except KeyError as exc:
        raise ValueError(f"Missing required field {exc} in {data_path}") from exc
    except TypeError as exc:
        raise ValueError(f"Unexpected field in {data_path}: {exc}") from exc
