"""
Expansion of recurring class meetings into blocking intervals.
"""

from datetime import datetime, timedelta
from typing import Iterable, List

from .models import CourseMeeting, Interval


def meetings_to_intervals_for_date(
    meetings: Iterable[CourseMeeting],
    reference_local: datetime,
) -> List[Interval]:
    """
    Local intervals for the meetings held on the weekday of ``reference_local``.

    Meetings with a non-positive length are ignored.
    """
    day_start = reference_local.replace(hour=0, minute=0, second=0, microsecond=0)
    weekday = reference_local.weekday()

    return [
        Interval(
            start_at=day_start + timedelta(minutes=meeting.start_minutes),
            end_at=day_start + timedelta(minutes=meeting.end_minutes),
        )
        for meeting in meetings
        if meeting.day_of_week == weekday and meeting.end_minutes > meeting.start_minutes
    ]
