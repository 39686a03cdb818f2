"""
Domain layer - Pure business logic without external dependencies.
"""

from .models import (
    CommittedEvent,
    CourseMeeting,
    Interval,
    LlmProvider,
    Placement,
    ScheduleSuggestion,
    SuggestionOrigin,
    Task,
    TaskPriority,
    UserSchedulingPreferences,
    WorkWindow,
)
from .slot_finder import SlotFinder
from .timezone import TimezoneConverter

__all__ = [
    "CommittedEvent",
    "CourseMeeting",
    "Interval",
    "LlmProvider",
    "Placement",
    "ScheduleSuggestion",
    "SlotFinder",
    "SuggestionOrigin",
    "Task",
    "TaskPriority",
    "TimezoneConverter",
    "UserSchedulingPreferences",
    "WorkWindow",
]
