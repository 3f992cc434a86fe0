"""
Domain-specific exception hierarchy for the slot engine.
"""


class SchedulingError(Exception):
    """Base class for all engine-level errors."""


class ConfigError(SchedulingError):
    """Raised when the engine configuration cannot be loaded or is invalid."""


class QueryValidationError(SchedulingError):
    """Raised when a slot query is rejected before any computation starts."""


class CalendarProviderError(SchedulingError):
    """
    Raised when busy times cannot be fetched from an external calendar.

    ``code`` is one of ``auth``, ``quota``, ``network``, ``not_found`` or
    ``unknown``.
    """

    CODES = ("auth", "quota", "network", "not_found", "unknown")

    def __init__(self, message: str, code: str = "unknown"):
        if code not in self.CODES:
            code = "unknown"
        super().__init__(message)
        self.code = code


class IncompleteBusyDataError(SchedulingError):
    """Raised when a caller demands busy data from every account and some failed."""

    def __init__(self, message: str, failed_connections: list[str]):
        super().__init__(message)
        self.failed_connections = failed_connections


class SlotConflictError(SchedulingError):
    """Raised when a previously offered slot is no longer available."""


class AssignmentImpossibleError(SlotConflictError):
    """Raised when no team member is free at the requested slot."""
