"""
Core search for a single free slot inside one day's work window.

Pure domain logic: no I/O, no timezone handling. Every value passed in is a
local wall-clock datetime of the user.
"""

import math
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from .models import Interval


def overlaps_any(candidate: Interval, busy: Iterable[Interval]) -> bool:
    """Check if ``candidate`` overlaps at least one of the busy intervals."""
    return any(candidate.overlaps(existing) for existing in busy)


class SlotFinder:
    """
    Finds the earliest non-overlapping slot on the day of a desired start.

    Algorithm:
    1. Snap the desired start to whole minutes and move it up to the
       window start if it is earlier
    2. Round up onto the step grid of that day (e.g. :00, :15, :30, :45)
    3. Walk forward one step at a time while the slot still ends inside the
       window, returning the first candidate that overlaps nothing
    """

    def __init__(self, step_minutes: int = 15):
        if step_minutes <= 0:
            raise ValueError(f"step_minutes must be positive, got {step_minutes}")
        self.step_minutes = step_minutes

    def find_slot(
        self,
        desired_start: datetime,
        duration_minutes: int,
        day_window_start_hour: int,
        day_window_end_hour: int,
        busy: Iterable[Interval],
    ) -> Optional[Interval]:
        """
        Find the earliest free slot of ``duration_minutes`` on the same day.

        Args:
            desired_start: Earliest acceptable local start
            duration_minutes: Length of the slot
            day_window_start_hour: Local hour the work window opens (0-23)
            day_window_end_hour: Local hour the work window closes (1-24)
            busy: Intervals that must not be overlapped

        Returns:
            The slot, or None if the day has no room
        """
        if duration_minutes <= 0:
            return None

        day_start = desired_start.replace(hour=0, minute=0, second=0, microsecond=0)
        window_start = day_start + timedelta(hours=day_window_start_hour)
        window_end = day_start + timedelta(hours=day_window_end_hour)
        duration = timedelta(minutes=duration_minutes)

        if duration > window_end - window_start:
            return None

        relevant = self._relevant_busy(busy, window_start, window_end)

        start = desired_start.replace(second=0, microsecond=0)
        candidate_start = self._align_to_step(max(start, window_start), day_start)
        step = timedelta(minutes=self.step_minutes)

        while candidate_start + duration <= window_end:
            candidate = Interval(start_at=candidate_start, end_at=candidate_start + duration)
            if not overlaps_any(candidate, relevant):
                return candidate
            candidate_start += step

        return None

    def _align_to_step(self, value: datetime, day_start: datetime) -> datetime:
        step_seconds = self.step_minutes * 60
        elapsed = (value - day_start).total_seconds()
        aligned = math.ceil(elapsed / step_seconds) * step_seconds
        return day_start + timedelta(seconds=aligned)

    @staticmethod
    def _relevant_busy(
        busy: Iterable[Interval],
        window_start: datetime,
        window_end: datetime,
    ) -> List[Interval]:
        """Busy intervals touching the window, sorted by start."""
        return sorted(
            (b for b in busy if b.end_at > window_start and b.start_at < window_end),
            key=lambda b: b.start_at,
        )
