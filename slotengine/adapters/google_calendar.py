"""
Google Calendar client for fetching free/busy data.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

import pendulum
import requests
from pendulum import DateTime

from ..domain.exceptions import CalendarProviderError
from ..domain.models import CalendarConnection, TimeRange

logger = logging.getLogger(__name__)


def parse_google_error(status: int, body: str) -> CalendarProviderError:
    """Map an HTTP failure from Google onto a provider error code."""
    if status in (401, 403):
        return CalendarProviderError(
            f"Google Calendar authentication failed ({status}): {body}", code="auth"
        )
    if status == 429:
        return CalendarProviderError(f"Google Calendar quota exceeded: {body}", code="quota")
    if status == 404:
        return CalendarProviderError(
            f"Google Calendar resource not found: {body}", code="not_found"
        )
    return CalendarProviderError(
        f"Google Calendar request failed ({status}): {body}", code="unknown"
    )


class GoogleCalendarClient:
    """
    Client for the Google Calendar FreeBusy API.

    Access tokens are refreshed on the connection object when they expire
    within ``refresh_margin_minutes``.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str = "https://oauth2.googleapis.com/token",
        api_url: str = "https://www.googleapis.com/calendar/v3",
        refresh_margin_minutes: int = 5,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
        clock: Optional[Callable[[], DateTime]] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.api_url = api_url.rstrip("/")
        self.refresh_margin_minutes = refresh_margin_minutes
        self.timeout = timeout
        self.session = session or requests.Session()
        self._clock = clock or (lambda: pendulum.now("UTC"))

    def get_valid_access_token(self, connection: CalendarConnection) -> str:
        """
        Return a usable access token, refreshing it first if it is about to expire.

        Raises:
            CalendarProviderError: If the refresh is impossible or fails
        """
        now = self._clock()
        if not connection.expires_within(now, self.refresh_margin_minutes):
            return connection.access_token

        if not connection.refresh_token:
            raise CalendarProviderError(
                "No refresh token available. User must re-authenticate with Google.",
                code="auth",
            )

        if not (self.client_id and self.client_secret):
            raise CalendarProviderError("Google OAuth credentials not configured.", code="auth")

        logger.info("Refreshing Google access token for connection %s", connection.id)

        try:
            response = self.session.post(
                self.token_url,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": connection.refresh_token,
                    "grant_type": "refresh_token",
                },
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise CalendarProviderError(f"Token refresh network error: {e}", code="network") from e

        if not response.ok:
            raise parse_google_error(response.status_code, response.text)

        tokens = response.json()
        access_token = tokens.get("access_token")
        if not access_token:
            raise CalendarProviderError("No access token in refresh response", code="auth")

        expires_in = tokens.get("expires_in")
        connection.access_token = access_token
        connection.expires_at = (
            now.add(seconds=int(expires_in)) if isinstance(expires_in, (int, float)) else None
        )

        return access_token

    def get_busy_times(
        self,
        connection: CalendarConnection,
        start_time: DateTime,
        end_time: DateTime,
    ) -> List[TimeRange]:
        """
        Get busy intervals of the connection's calendar between two instants.

        Raises:
            CalendarProviderError: If the token or the API call fails
        """
        access_token = self.get_valid_access_token(connection)
        calendar_id = connection.calendar_id or "primary"

        payload = {
            "timeMin": start_time.in_timezone("UTC").to_iso8601_string(),
            "timeMax": end_time.in_timezone("UTC").to_iso8601_string(),
            "items": [{"id": calendar_id}],
        }

        try:
            response = self.session.post(
                f"{self.api_url}/freeBusy",
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise CalendarProviderError(f"getBusyTimes network error: {e}", code="network") from e

        if not response.ok:
            raise parse_google_error(response.status_code, response.text)

        return self._parse_busy_response(response.json(), calendar_id)

    def _parse_busy_response(self, data: Dict[str, Any], calendar_id: str) -> List[TimeRange]:
        """
        Parse the freeBusy response into our domain model.

        Response format:
        {
            "calendars": {
                "primary": {
                    "busy": [{"start": "...Z", "end": "...Z"}]
                }
            }
        }
        """
        calendar = (data.get("calendars") or {}).get(calendar_id) or {}
        busy_ranges: List[TimeRange] = []

        for period in calendar.get("busy", []):
            try:
                start = pendulum.parse(period["start"]).in_timezone("UTC")
                end = pendulum.parse(period["end"]).in_timezone("UTC")
                busy_ranges.append(TimeRange(start=start, end=end))
            except (KeyError, ValueError) as e:
                logger.warning("Could not parse busy period %r: %s", period, e)

        return busy_ranges
