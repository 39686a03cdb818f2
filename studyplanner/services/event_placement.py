"""
Single-event placement for direct user actions (schedule and move).

Unlike the batch engine there is no multi-day search and no guaranteed
fallback: a request either fits on the requested day or is reported as a
conflict.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Protocol, Sequence

from pendulum import DateTime

from ..domain.course_meetings import meetings_to_intervals_for_date
from ..domain.exceptions import (
    EventNotFoundError,
    InvalidPlacementError,
    SchedulingConflictError,
)
from ..domain.models import CommittedEvent, CourseMeeting, Interval, Placement, WorkWindow
from ..domain.slot_finder import SlotFinder, overlaps_any
from ..domain.timezone import TimezoneConverter, ensure_utc

logger = logging.getLogger(__name__)


class CommittedEventStore(Protocol):
    """Protocol describing the read access to committed events needed by the service."""

    def get_event(self, event_id: str) -> Optional[CommittedEvent]:
        """Return the event or None."""

    def list_overlapping(
        self,
        start: DateTime,
        end: DateTime,
        exclude_event_id: Optional[str] = None,
    ) -> List[CommittedEvent]:
        """Return events overlapping ``[start, end)``."""


class EventPlacementService:
    """
    Places or moves one event on one local day.

    The service only decides times; persisting the result is up to the caller.
    """

    def __init__(
        self,
        event_store: CommittedEventStore,
        timezone: Optional[str] = None,
        slot_finder: Optional[SlotFinder] = None,
    ) -> None:
        self._event_store = event_store
        self._converter = TimezoneConverter(timezone)
        self._slot_finder = slot_finder or SlotFinder(step_minutes=15)

    def schedule(
        self,
        task_id: str,
        desired_start: datetime,
        duration_minutes: int,
        work_window: Optional[WorkWindow] = None,
        meetings: Sequence[CourseMeeting] = (),
    ) -> Placement:
        """
        Place a task at the earliest free slot from ``desired_start`` that day.

        Raises:
            InvalidPlacementError: If the duration is not positive
            SchedulingConflictError: If the day has no room left
        """
        if duration_minutes <= 0:
            raise InvalidPlacementError("Duration must be positive")

        window = work_window or WorkWindow()
        desired_local = self._converter.to_zoned(desired_start)

        blocking = self._same_day_busy_local(desired_local) + meetings_to_intervals_for_date(
            meetings, desired_local
        )

        slot_local = self._slot_finder.find_slot(
            desired_start=desired_local,
            duration_minutes=duration_minutes,
            day_window_start_hour=window.start_hour,
            day_window_end_hour=window.end_hour,
            busy=blocking,
        )
        if slot_local is None:
            raise SchedulingConflictError(
                "No available time slot without overlapping events or class meetings"
            )

        slot = self._converter.interval_to_utc(slot_local)
        logger.debug("Scheduled task %s at %s", task_id, slot)

        return Placement(
            task_id=task_id,
            start_at=slot.start_at,
            end_at=slot.end_at,
            adjusted=slot.start_at != ensure_utc(desired_start),
        )

    def move(
        self,
        event_id: str,
        new_start: datetime,
        new_end: datetime,
        work_window: Optional[WorkWindow] = None,
        meetings: Sequence[CourseMeeting] = (),
    ) -> Placement:
        """
        Move an event, keeping the requested times unless they collide.

        On a collision the event is reslotted to the nearest later free time
        of the same day with the requested duration.

        Raises:
            InvalidPlacementError: If ``new_end`` is not after ``new_start``
            EventNotFoundError: If the event does not exist
            SchedulingConflictError: If no later slot that day is free
        """
        new_start = ensure_utc(new_start)
        new_end = ensure_utc(new_end)
        if new_end <= new_start:
            raise InvalidPlacementError("End must be after start")

        event = self._event_store.get_event(event_id)
        if event is None:
            raise EventNotFoundError(f"Event not found: {event_id}")

        requested = Interval(start_at=new_start, end_at=new_end)
        requested_local = self._converter.interval_to_zoned(requested)

        others = self._same_day_events(requested_local.start_at, exclude_event_id=event_id)
        meeting_intervals = meetings_to_intervals_for_date(meetings, requested_local.start_at)

        overlaps_event = overlaps_any(requested, (e.interval for e in others))
        overlaps_class = overlaps_any(requested_local, meeting_intervals)

        if not (overlaps_event or overlaps_class):
            return Placement(
                task_id=event.task_id,
                event_id=event_id,
                start_at=new_start,
                end_at=new_end,
            )

        window = work_window or WorkWindow()
        blocking = [self._converter.interval_to_zoned(e.interval) for e in others]
        slot_local = self._slot_finder.find_slot(
            desired_start=requested_local.start_at,
            duration_minutes=requested.duration_minutes(),
            day_window_start_hour=window.start_hour,
            day_window_end_hour=window.end_hour,
            busy=blocking + meeting_intervals,
        )
        if slot_local is None:
            raise SchedulingConflictError(
                "Cannot move without overlapping events or class meetings"
            )

        slot = self._converter.interval_to_utc(slot_local)
        logger.debug("Reslotted event %s from %s to %s", event_id, requested, slot)

        return Placement(
            task_id=event.task_id,
            event_id=event_id,
            start_at=slot.start_at,
            end_at=slot.end_at,
            adjusted=True,
        )

    def _same_day_events(
        self,
        reference_local: datetime,
        exclude_event_id: Optional[str] = None,
    ) -> List[CommittedEvent]:
        """Committed events overlapping the local calendar day of ``reference_local``."""
        day_start_local = reference_local.replace(hour=0, minute=0, second=0, microsecond=0)
        day_end_local = reference_local.replace(hour=23, minute=59, second=59, microsecond=999999)

        return self._event_store.list_overlapping(
            self._converter.to_utc(day_start_local),
            self._converter.to_utc(day_end_local),
            exclude_event_id=exclude_event_id,
        )

    def _same_day_busy_local(self, reference_local: datetime) -> List[Interval]:
        return [
            self._converter.interval_to_zoned(event.interval)
            for event in self._same_day_events(reference_local)
        ]
