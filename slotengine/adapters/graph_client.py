"""
Microsoft Graph API client for fetching calendar free/busy data.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

import msal
import pendulum
import requests
from pendulum import DateTime

from ..domain.exceptions import CalendarProviderError
from ..domain.models import CalendarConnection, TimeRange

logger = logging.getLogger(__name__)

# Schedule item statuses that block time
BUSY_STATUSES = ("busy", "tentative", "oof", "workingelsewhere")


class GraphCalendarClient:
    """
    Client for Microsoft Graph calendar operations.

    Uses the /calendar/getSchedule endpoint to fetch free/busy information
    for the mailbox named by the connection's ``calendar_id``. Expiring
    tokens are renewed through MSAL with the connection's refresh token.
    """

    GRAPH_API_ENDPOINT = "https://graph.microsoft.com/v1.0"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        authority_url: str,
        scopes: Optional[List[str]] = None,
        refresh_margin_minutes: int = 5,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
        msal_app: Optional[msal.ConfidentialClientApplication] = None,
        clock: Optional[Callable[[], DateTime]] = None,
    ):
        """
        Initialize the Graph API client.

        Args:
            client_id: Azure AD application (client) ID
            client_secret: Azure AD application secret
            authority_url: Authority used for token refresh
            scopes: Scopes requested on refresh
            refresh_margin_minutes: Refresh tokens expiring within this margin
            timeout: Per-request timeout in seconds
            session: Optional requests session (injected in tests)
            msal_app: Optional pre-built MSAL application
            clock: Optional source of "now"
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.authority = authority_url
        self.scopes = scopes or ["Calendars.Read"]
        self.refresh_margin_minutes = refresh_margin_minutes
        self.timeout = timeout
        self.session = session or requests.Session()
        self._msal_app = msal_app
        self._clock = clock or (lambda: pendulum.now("UTC"))

    @property
    def app(self) -> msal.ConfidentialClientApplication:
        if self._msal_app is None:
            self._msal_app = msal.ConfidentialClientApplication(
                client_id=self.client_id,
                client_credential=self.client_secret,
                authority=self.authority,
            )
        return self._msal_app

    def get_valid_access_token(self, connection: CalendarConnection) -> str:
        """
        Return a usable access token, refreshing it through MSAL when needed.

        Raises:
            CalendarProviderError: If the refresh is impossible or rejected
        """
        now = self._clock()
        if not connection.expires_within(now, self.refresh_margin_minutes):
            return connection.access_token

        if not connection.refresh_token:
            raise CalendarProviderError(
                "No refresh token available. User must re-authenticate with Microsoft.",
                code="auth",
            )

        logger.info("Refreshing Microsoft Graph token for connection %s", connection.id)

        result = self.app.acquire_token_by_refresh_token(
            connection.refresh_token,
            scopes=self.scopes,
        )

        if not result or "access_token" not in result:
            error = (result or {}).get("error_description", "Unknown error")
            raise CalendarProviderError(f"Token refresh failed: {error}", code="auth")

        connection.access_token = result["access_token"]
        if result.get("refresh_token"):
            connection.refresh_token = result["refresh_token"]
        expires_in = result.get("expires_in")
        connection.expires_at = now.add(seconds=int(expires_in)) if expires_in else None

        return connection.access_token

    def get_busy_times(
        self,
        connection: CalendarConnection,
        start_time: DateTime,
        end_time: DateTime,
    ) -> List[TimeRange]:
        """
        Get busy times for the connection's mailbox.

        Raises:
            CalendarProviderError: If the API call fails
        """
        access_token = self.get_valid_access_token(connection)
        url = f"{self.GRAPH_API_ENDPOINT}/me/calendar/getSchedule"

        # Ask for UTC so schedule item times come back without offsets to guess
        payload = {
            "schedules": [connection.calendar_id],
            "startTime": {
                "dateTime": start_time.in_timezone("UTC").format("YYYY-MM-DDTHH:mm:ss"),
                "timeZone": "UTC",
            },
            "endTime": {
                "dateTime": end_time.in_timezone("UTC").format("YYYY-MM-DDTHH:mm:ss"),
                "timeZone": "UTC",
            },
            "availabilityViewInterval": 30,
        }

        try:
            response = self.session.post(
                url,
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise CalendarProviderError(
                f"Failed to fetch schedule from Microsoft Graph: {e}", code="network"
            ) from e

        if not response.ok:
            raise self._parse_error(response.status_code, response.text)

        return self._parse_schedule_response(response.json())

    @staticmethod
    def _parse_error(status: int, body: str) -> CalendarProviderError:
        if status in (401, 403):
            code = "auth"
        elif status == 429:
            code = "quota"
        elif status == 404:
            code = "not_found"
        else:
            code = "unknown"
        return CalendarProviderError(f"Microsoft Graph request failed ({status}): {body}", code=code)

    def _parse_schedule_response(self, response_data: Dict[str, Any]) -> List[TimeRange]:
        """
        Parse the getSchedule API response into our domain model.

        Response format:
        {
            "value": [
                {
                    "scheduleId": "user@example.com",
                    "scheduleItems": [
                        {
                            "status": "busy",
                            "start": {"dateTime": "...", "timeZone": "UTC"},
                            "end": {"dateTime": "...", "timeZone": "UTC"}
                        }
                    ]
                }
            ]
        }
        """
        busy_ranges: List[TimeRange] = []

        for schedule in response_data.get("value", []):
            for item in schedule.get("scheduleItems", []):
                status = item.get("status", "").lower()

                if status not in BUSY_STATUSES:
                    continue

                try:
                    start = self._parse_datetime(item["start"])
                    end = self._parse_datetime(item["end"])
                    busy_ranges.append(TimeRange(start=start, end=end))
                except (KeyError, ValueError) as e:
                    logger.warning("Could not parse schedule item: %s", e)

        return busy_ranges

    def _parse_datetime(self, value: Dict[str, str]) -> DateTime:
        """
        Parse a Graph dateTimeTimeZone value into a UTC DateTime.
        """
        dt = pendulum.parse(value["dateTime"], tz=value.get("timeZone") or "UTC")

        if isinstance(dt, DateTime):
            return dt.in_timezone("UTC")

        raise ValueError(f"Could not parse datetime: {value['dateTime']}")
