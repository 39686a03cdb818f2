"""
Domain models for tasks, intervals and scheduling results.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pendulum import DateTime


class TaskPriority(str, Enum):
    """Task priority as stored by the task layer."""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def weight(self) -> int:
        """Numeric weight, higher is more urgent."""
        return {"HIGH": 3, "MEDIUM": 2, "LOW": 1}[self.value]


class SuggestionOrigin(str, Enum):
    """Provenance of a suggested placement."""
    MODEL = "model"
    FALLBACK = "fallback"


class LlmProvider(str, Enum):
    """External suggestion backend selected by the user."""
    NONE = "none"
    OPENAI = "openai"
    LM_STUDIO = "lm_studio"


@dataclass(frozen=True)
class Interval:
    """
    Represents an immutable time span with start and end datetime.

    Works for both absolute instants and local wall-clock values, as long as
    both ends are of the same kind.

    Invariant: start must be before end.
    """
    start_at: DateTime
    end_at: DateTime

    def __post_init__(self):
        if self.end_at <= self.start_at:
            raise ValueError(
                f"Start time {self.start_at} must be before end time {self.end_at}"
            )

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end_at - self.start_at).total_seconds() / 60)

    def overlaps(self, other: "Interval") -> bool:
        """Check if this interval overlaps with another (touching ends do not)."""
        return self.start_at < other.end_at and other.start_at < self.end_at

    def __str__(self) -> str:
        return f"{self.start_at.format('YYYY-MM-DD HH:mm')} - {self.end_at.format('HH:mm')}"


@dataclass(frozen=True)
class Task:
    """A pending task that needs calendar time."""
    id: str
    title: str
    priority: TaskPriority
    created_at: DateTime
    due_at: Optional[DateTime] = None
    effort_minutes: Optional[int] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class ScheduleSuggestion:
    """A proposed placement for one task."""
    task_id: str
    start_at: DateTime
    end_at: DateTime
    origin: SuggestionOrigin
    rationale: Optional[str] = None
    confidence: Optional[float] = None

    @property
    def interval(self) -> Interval:
        return Interval(start_at=self.start_at, end_at=self.end_at)

    def to_dict(self) -> dict:
        """Serialise to the JSON shape used by the task layer."""
        data = {
            "taskId": self.task_id,
            "startAt": self.start_at.to_iso8601_string(),
            "endAt": self.end_at.to_iso8601_string(),
            "origin": self.origin.value,
        }
        if self.rationale is not None:
            data["rationale"] = self.rationale
        if self.confidence is not None:
            data["confidence"] = self.confidence
        return data


@dataclass(frozen=True)
class WorkWindow:
    """Daily local-time span in which new commitments are accepted."""
    start_hour: int = 8
    end_hour: int = 18


@dataclass(frozen=True)
class UserSchedulingPreferences:
    """
    Per-user scheduling settings.

    The calling layer guarantees ``day_window_end_hour > day_window_start_hour``.
    A ``timezone`` of ``None`` means plain UTC math.
    """
    timezone: Optional[str] = None
    day_window_start_hour: int = 8
    day_window_end_hour: int = 18
    default_duration_minutes: int = 30
    llm_provider: LlmProvider = LlmProvider.NONE
    openai_api_key: Optional[str] = None
    lm_studio_url: Optional[str] = None

    def work_window(self) -> WorkWindow:
        return WorkWindow(
            start_hour=self.day_window_start_hour,
            end_hour=self.day_window_end_hour,
        )


@dataclass(frozen=True)
class CommittedEvent:
    """A calendar entry already committed by the persistence layer."""
    id: str
    task_id: str
    interval: Interval


@dataclass(frozen=True)
class CourseMeeting:
    """
    A recurring weekly class meeting.

    ``day_of_week`` uses 0=Monday ... 6=Sunday; minutes count from local
    midnight.
    """
    day_of_week: int
    start_minutes: int
    end_minutes: int


@dataclass(frozen=True)
class Placement:
    """Outcome of a schedule or move request."""
    task_id: str
    start_at: DateTime
    end_at: DateTime
    adjusted: bool = False
    event_id: Optional[str] = None

    @property
    def interval(self) -> Interval:
        return Interval(start_at=self.start_at, end_at=self.end_at)
