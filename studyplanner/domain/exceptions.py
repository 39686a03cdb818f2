"""
Domain-specific exception hierarchy for the planner scheduling core.
"""


class PlannerError(Exception):
    """Base class for all application-level errors."""


class SchedulingConflictError(PlannerError):
    """Raised when no non-overlapping slot exists for an explicit placement."""


class InvalidPlacementError(PlannerError, ValueError):
    """Raised when a requested placement is malformed (e.g. end before start)."""


class EventNotFoundError(PlannerError, LookupError):
    """Raised when a committed event cannot be found."""


class SuggestionProviderError(PlannerError):
    """Raised when the external suggestion source fails or answers garbage."""
