"""
Concurrent collection of busy intervals from a host's external calendars.

Each connected account is fetched in its own worker thread. The join
settles every fetch: a failing or timed-out account is logged and simply
contributes nothing, unless the caller asks for complete data.
"""

import asyncio
import logging
from typing import Dict, List, Mapping, Optional

from pendulum import DateTime

from ..domain.exceptions import CalendarProviderError, IncompleteBusyDataError
from ..domain.models import CalendarConnection, TimeRange
from .protocols import CalendarProviderProtocol, SchedulingRepository

logger = logging.getLogger(__name__)


class BusyTimeAggregator:
    """
    Fans out one fetch per calendar connection and merges the results.

    Results are concatenated in connection order, so repeated calls against
    unchanged data return identical lists.

    ``timeout`` bounds how long ``collect`` waits, not the worker threads. A
    cancelled fetch keeps running until its provider returns, and
    ``asyncio.run`` waits for it on shutdown, so providers need their own
    request timeout to bound wall-clock time.
    """

    def __init__(
        self,
        repository: SchedulingRepository,
        providers: Mapping[str, CalendarProviderProtocol],
        timeout: Optional[float] = None,
    ) -> None:
        self._repository = repository
        self._providers = dict(providers)
        self._timeout = timeout

    async def collect(
        self,
        user_id: str,
        start: DateTime,
        end: DateTime,
        *,
        require_complete: bool = False,
    ) -> List[TimeRange]:
        """
        Return the union of busy intervals across the user's connected calendars.

        Args:
            user_id: Host whose connections are queried
            start: Start of the UTC range
            end: End of the UTC range
            require_complete: Raise instead of dropping failed accounts

        Raises:
            IncompleteBusyDataError: If ``require_complete`` and any account failed
        """
        connections = await self._repository.get_calendar_connections(user_id)
        if not connections:
            return []

        tasks: Dict[asyncio.Task, CalendarConnection] = {
            asyncio.ensure_future(self._fetch(connection, start, end)): connection
            for connection in connections
        }

        try:
            _, pending = await asyncio.wait(list(tasks), timeout=self._timeout)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        busy: List[TimeRange] = []
        failed: List[str] = []

        for task, connection in tasks.items():
            if task in pending:
                task.cancel()
                logger.warning(
                    "Busy-time fetch for connection %s (%s) timed out after %ss",
                    connection.id, connection.provider, self._timeout,
                )
                failed.append(connection.id)
                continue

            error = task.exception()
            if error is not None:
                self._log_failure(connection, error)
                failed.append(connection.id)
                continue

            busy.extend(task.result())

        if failed and require_complete:
            raise IncompleteBusyDataError(
                f"Busy times unavailable for {len(failed)} of {len(connections)} calendar(s)",
                failed_connections=failed,
            )

        logger.debug(
            "Collected %d busy interval(s) for user %s from %d calendar(s)",
            len(busy), user_id, len(connections) - len(failed),
        )
        return busy

    async def _fetch(
        self,
        connection: CalendarConnection,
        start: DateTime,
        end: DateTime,
    ) -> List[TimeRange]:
        provider = self._providers.get(connection.provider)
        if provider is None:
            raise CalendarProviderError(
                f"No calendar provider registered for '{connection.provider}'",
                code="not_found",
            )
        return await asyncio.to_thread(provider.get_busy_times, connection, start, end)

    @staticmethod
    def _log_failure(connection: CalendarConnection, error: BaseException) -> None:
        if isinstance(error, CalendarProviderError):
            logger.warning(
                "Dropping busy times of connection %s (%s): %s error: %s",
                connection.id, connection.provider, error.code, error,
            )
        else:
            logger.warning(
                "Dropping busy times of connection %s (%s): unexpected error",
                connection.id, connection.provider,
                exc_info=(type(error), error, error.__traceback__),
            )
