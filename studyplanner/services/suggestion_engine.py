"""
Batch generation of non-overlapping schedule suggestions.

The engine asks the configured external source for preferred start times
once per batch, then allocates every task in a deterministic order through
``SlotFinder``. External input only moves the desired start of a task; the
allocation itself is always done here, so the output is valid even when the
model answers nonsense or nothing at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Sequence

import pendulum
from pendulum import DateTime

from ..adapters.http_client import HttpClient, RequestsHttpClient
from ..adapters.suggestion_providers import (
    RawSuggestion,
    SuggestionProvider,
    create_suggestion_provider,
)
from ..domain.models import (
    Interval,
    ScheduleSuggestion,
    SuggestionOrigin,
    Task,
    UserSchedulingPreferences,
)
from ..domain.slot_finder import SlotFinder
from ..domain.timezone import TimezoneConverter, ensure_utc

logger = logging.getLogger(__name__)


SEARCH_DAYS = 30
MIN_DURATION_MINUTES = 15
SUGGESTION_HORIZON_DAYS = 366

ProviderFactory = Callable[[UserSchedulingPreferences, HttpClient], Optional[SuggestionProvider]]


@dataclass(frozen=True)
class PreferredSlot:
    """A validated external suggestion for one task."""
    start_at: DateTime
    end_at: DateTime
    rationale: Optional[str] = None
    confidence: Optional[float] = None


def _parse_timestamp(value: str) -> Optional[DateTime]:
    try:
        parsed = pendulum.parse(value, tz="UTC")
    except (ValueError, TypeError, OverflowError):
        return None
    if not isinstance(parsed, DateTime):
        return None
    try:
        return ensure_utc(parsed)
    except OverflowError:
        return None


def _convertible(value: DateTime, converter: Optional[TimezoneConverter]) -> bool:
    if converter is None:
        return True
    try:
        converter.to_zoned(value)
    except (OverflowError, ValueError):
        return False
    return True


def validate_suggestions(
    suggestions: Iterable[RawSuggestion],
    task_ids: Iterable[str],
    converter: Optional[TimezoneConverter] = None,
    latest_start: Optional[DateTime] = None,
) -> Dict[str, PreferredSlot]:
    """
    Keep the entries that reference a known task and carry a usable span.

    A bad entry only drops itself. Entries starting after ``latest_start``
    or falling outside the local calendar range of ``converter`` count as
    bad. When a task appears more than once the last entry wins.
    """
    known = set(task_ids)
    preferred: Dict[str, PreferredSlot] = {}

    for suggestion in suggestions:
        if suggestion.task_id not in known:
            logger.debug("Ignoring suggestion for unknown task %s", suggestion.task_id)
            continue

        start = _parse_timestamp(suggestion.start_at)
        end = _parse_timestamp(suggestion.end_at)
        if start is None or end is None or end <= start:
            logger.debug("Ignoring malformed suggestion for task %s", suggestion.task_id)
            continue

        if latest_start is not None and start > latest_start:
            logger.debug("Ignoring suggestion for task %s beyond %s", suggestion.task_id, latest_start)
            continue

        if not (_convertible(start, converter) and _convertible(end, converter)):
            logger.debug("Ignoring out-of-range suggestion for task %s", suggestion.task_id)
            continue

        preferred[suggestion.task_id] = PreferredSlot(
            start_at=start,
            end_at=end,
            rationale=suggestion.rationale,
            confidence=suggestion.confidence,
        )

    return preferred


def sort_tasks(tasks: Sequence[Task]) -> List[Task]:
    """
    Order tasks for allocation.

    Due date ascending with undated tasks last, then priority descending,
    then creation time ascending.
    """
    def key(task: Task):
        due = task.due_at.timestamp() if task.due_at is not None else 0.0
        return (task.due_at is None, due, -task.priority.weight, task.created_at.timestamp())

    return sorted(tasks, key=key)


def baseline_start(task: Task, now: DateTime, duration_minutes: int) -> DateTime:
    """Latest start that still finishes by the due date, or now if that has passed."""
    if task.due_at is not None:
        candidate = ensure_utc(task.due_at).subtract(minutes=duration_minutes)
        if candidate > now:
            return candidate
    return now


def next_day_start(value: datetime, day_window_start_hour: int) -> datetime:
    day = value.replace(hour=0, minute=0, second=0, microsecond=0) + timedelta(days=1)
    return day + timedelta(hours=day_window_start_hour)


class SuggestionEngine:
    """
    Produces one suggestion per task, mutually non-overlapping and sorted by start.

    Dependency inversion toward ``HttpClient`` keeps the external path
    testable without network access.
    """

    def __init__(
        self,
        http_client: Optional[HttpClient] = None,
        provider_factory: ProviderFactory = create_suggestion_provider,
        slot_finder: Optional[SlotFinder] = None,
    ) -> None:
        self._http_client = http_client or RequestsHttpClient()
        self._provider_factory = provider_factory
        self._slot_finder = slot_finder or SlotFinder(step_minutes=15)

    async def generate_suggestions(
        self,
        *,
        tasks: Sequence[Task],
        preferences: UserSchedulingPreferences,
        existing_intervals: Sequence[Interval],
        now: Optional[datetime] = None,
    ) -> List[ScheduleSuggestion]:
        """
        Compute suggestions for ``tasks`` around the committed intervals.

        Args:
            tasks: Pending tasks, unchanged by this call
            preferences: The user's zone, work window and provider settings
            existing_intervals: Committed busy time as absolute instants
            now: Reference instant, defaults to the current time

        Returns:
            Suggestions sorted by ``start_at``
        """
        if not tasks:
            return []

        now_utc = ensure_utc(now) if now is not None else pendulum.now("UTC")
        converter = TimezoneConverter(preferences.timezone)
        now_local = converter.to_zoned(now_utc)

        busy: List[Interval] = [converter.interval_to_zoned(i) for i in existing_intervals]
        preferred_by_task = await self._load_preferred_slots(tasks, preferences, now_utc, converter)

        results: List[ScheduleSuggestion] = []

        for task in sort_tasks(tasks):
            effort = task.effort_minutes
            if effort is None:
                effort = preferences.default_duration_minutes
            duration = max(effort, MIN_DURATION_MINUTES)

            preferred = preferred_by_task.get(task.id)
            if preferred is not None:
                desired_start = preferred.start_at
            else:
                desired_start = baseline_start(task, now_utc, duration)

            slot_local = self._allocate_slot(
                desired_start=converter.to_zoned(desired_start),
                duration_minutes=duration,
                busy=busy,
                preferences=preferences,
                now_local=now_local,
            )
            slot = converter.interval_to_utc(slot_local)
            busy.append(slot_local)
            realized_local = converter.interval_to_zoned(slot)
            if realized_local != slot_local:
                # DST switch: the wall-clock slot and its instants differ
                busy.append(realized_local)

            results.append(
                ScheduleSuggestion(
                    task_id=task.id,
                    start_at=slot.start_at,
                    end_at=slot.end_at,
                    origin=SuggestionOrigin.MODEL if preferred else SuggestionOrigin.FALLBACK,
                    rationale=preferred.rationale if preferred else None,
                    confidence=preferred.confidence if preferred else None,
                )
            )

        return sorted(results, key=lambda s: s.start_at)

    async def _load_preferred_slots(
        self,
        tasks: Sequence[Task],
        preferences: UserSchedulingPreferences,
        now: DateTime,
        converter: TimezoneConverter,
    ) -> Dict[str, PreferredSlot]:
        """External suggestions keyed by task id; any failure yields none."""
        try:
            provider = self._provider_factory(preferences, self._http_client)
            if provider is None:
                return {}
            raw = await provider.fetch_suggestions(tasks, preferences, now)
        except Exception as exc:
            logger.warning("External suggestions unavailable, using fallback allocation: %s", exc)
            return {}

        return validate_suggestions(
            raw,
            (task.id for task in tasks),
            converter=converter,
            latest_start=now.add(days=SUGGESTION_HORIZON_DAYS),
        )

    def _allocate_slot(
        self,
        *,
        desired_start: datetime,
        duration_minutes: int,
        busy: List[Interval],
        preferences: UserSchedulingPreferences,
        now_local: datetime,
    ) -> Interval:
        """Search day by day for a slot, then fall back past all busy time."""
        start = max(desired_start, now_local).replace(second=0, microsecond=0)
        window_start_hour = preferences.day_window_start_hour
        window_end_hour = preferences.day_window_end_hour

        cursor = start
        for _ in range(SEARCH_DAYS):
            slot = self._slot_finder.find_slot(
                desired_start=cursor,
                duration_minutes=duration_minutes,
                day_window_start_hour=window_start_hour,
                day_window_end_hour=window_end_hour,
                busy=busy,
            )
            if slot is not None:
                return slot
            cursor = next_day_start(cursor, window_start_hour)

        fallback_start = self._fallback_start(
            start, busy, duration_minutes, window_start_hour, window_end_hour
        )
        logger.debug(
            "No slot within %d days of %s; placing after latest busy time at %s",
            SEARCH_DAYS,
            start,
            fallback_start,
        )
        return Interval(
            start_at=fallback_start,
            end_at=fallback_start + timedelta(minutes=duration_minutes),
        )

    @staticmethod
    def _fallback_start(
        start: datetime,
        busy: Iterable[Interval],
        duration_minutes: int,
        window_start_hour: int,
        window_end_hour: int,
    ) -> datetime:
        """
        First instant after every busy interval seen so far.

        The start is moved up to the window start, and to the next day when
        the slot would not end by the window end.

        Anchoring on the latest end of all busy time can push a task far out
        when a long stale interval is present.
        """
        candidate = max([start] + [interval.end_at for interval in busy])

        day_start = candidate.replace(hour=0, minute=0, second=0, microsecond=0)
        window_start = day_start + timedelta(hours=window_start_hour)
        window_end = day_start + timedelta(hours=window_end_hour)

        if candidate < window_start:
            candidate = window_start
        if candidate + timedelta(minutes=duration_minutes) > window_end:
            candidate = next_day_start(candidate, window_start_hour)
        return candidate
