"""
Timezone-aware helpers for turning calendar dates and "HH:mm" clock strings
into absolute instants.

Every instant returned from this module is normalised to UTC. Calendar dates
are ``pendulum.Date`` values and carry no timezone of their own; the zone is
always passed explicitly.
"""

import re
from typing import List, Tuple

import pendulum
from pendulum import Date, DateTime

_CLOCK_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")

DATE_KEY_FORMAT = "YYYY-MM-DD"


def parse_clock_time(value: str) -> Tuple[int, int]:
    """
    Parse an "HH:mm" string into an (hour, minute) tuple.

    Raises:
        ValueError: If the string is not a valid 24h clock time
    """
    match = _CLOCK_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"Time must be in HH:mm format, got {value!r}")
    return int(match.group(1)), int(match.group(2))


def validate_timezone(name: str) -> str:
    """
    Ensure ``name`` is a recognised IANA zone and return it unchanged.

    Raises:
        ValueError: If pendulum does not know the zone
    """
    if not name:
        raise ValueError("Timezone is required")
    try:
        pendulum.timezone(name)
    except (ValueError, KeyError) as exc:
        raise ValueError(f"Unsupported timezone: {name!r}") from exc
    return name


def parse_date_key(value: str) -> Date:
    """Parse a YYYY-MM-DD key into a calendar date."""
    try:
        parsed = pendulum.from_format(value, DATE_KEY_FORMAT)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"Date must be in YYYY-MM-DD format, got {value!r}") from exc
    return pendulum.date(parsed.year, parsed.month, parsed.day)


def date_key(day: Date) -> str:
    """Render a calendar date as its YYYY-MM-DD key."""
    return day.isoformat()


def parse_instant(value: str) -> DateTime:
    """Parse an ISO-8601 instant and normalise it to UTC."""
    try:
        parsed = pendulum.parse(value)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"Could not parse instant: {value!r}") from exc

    if not isinstance(parsed, DateTime):
        raise ValueError(f"Expected a date and time, got {value!r}")

    return parsed.in_timezone("UTC")


def local_instant(day: Date, clock: str, timezone: str) -> DateTime:
    """
    Build the absolute instant for ``clock`` on ``day`` in ``timezone``.

    Wall-clock times that fall into a DST gap are shifted forward, the way
    pendulum resolves them.
    """
    hour, minute = parse_clock_time(clock)
    local = pendulum.datetime(day.year, day.month, day.day, hour, minute, tz=timezone)
    return local.in_timezone("UTC")


def start_of_local_day(day: Date, timezone: str) -> DateTime:
    """Return the UTC instant at which ``day`` begins in ``timezone``."""
    return pendulum.datetime(day.year, day.month, day.day, tz=timezone).in_timezone("UTC")


def local_day_bounds(day: Date, timezone: str) -> Tuple[DateTime, DateTime]:
    """Half-open [start, end) bounds of a calendar day in ``timezone``, in UTC."""
    return start_of_local_day(day, timezone), start_of_local_day(day.add(days=1), timezone)


def week_start(day: Date) -> Date:
    """Monday of the ISO week containing ``day``."""
    return day.subtract(days=day.weekday())


def weekday_index(day: Date) -> int:
    """Day of week with 0 = Sunday ... 6 = Saturday."""
    return day.isoweekday() % 7


def local_dates_between(start: DateTime, end: DateTime, timezone: str) -> List[Date]:
    """
    List the calendar dates in ``timezone`` touched by the instants [start, end).

    An attendee day usually maps onto one schedule date, but two when the
    zones disagree about where midnight falls.
    """
    first = start.in_timezone(timezone)
    last = end.subtract(microseconds=1).in_timezone(timezone)

    current = pendulum.date(first.year, first.month, first.day)
    last_day = pendulum.date(last.year, last.month, last.day)

    dates: List[Date] = []
    while current <= last_day:
        dates.append(current)
        current = current.add(days=1)
    return dates


def overlaps(a_start: DateTime, a_end: DateTime, b_start: DateTime, b_end: DateTime) -> bool:
    """Half-open overlap test: [a_start, a_end) and [b_start, b_end) share an instant."""
    return a_start < b_end and b_start < a_end


def format_local_time(instant: DateTime, timezone: str) -> str:
    """Render ``instant`` as HH:mm on the wall clock of ``timezone``."""
    return instant.in_timezone(timezone).format("HH:mm")
