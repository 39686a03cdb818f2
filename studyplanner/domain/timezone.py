"""
Conversion between absolute instants and local wall-clock time.

Wall-clock values are naive pendulum ``DateTime`` objects; absolute instants
are timezone-aware and normalised to UTC. All slot arithmetic happens on the
wall-clock side so that "09:00" really means nine o'clock for the user,
whatever the DST state of the day.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

import pendulum
from pendulum import DateTime

from .models import Interval

logger = logging.getLogger(__name__)


def ensure_utc(value: datetime) -> DateTime:
    """Return ``value`` as an aware UTC pendulum DateTime (naive input is read as UTC)."""
    return pendulum.instance(value, tz="UTC").in_timezone("UTC")


def _span(interval: Interval) -> timedelta:
    return timedelta(seconds=(interval.end_at - interval.start_at).total_seconds())


def wall_clock_as_utc(value: datetime) -> DateTime:
    """Attach UTC to a wall-clock value without shifting its fields."""
    return pendulum.datetime(
        value.year,
        value.month,
        value.day,
        value.hour,
        value.minute,
        value.second,
        value.microsecond,
        tz="UTC",
    )


class TimezoneConverter:
    """
    Bidirectional instant <-> wall-clock conversion for one named zone.

    Without a zone every operation is an identity on the clock fields, so
    the scheduler degrades to raw UTC math. An unknown zone name never
    raises; it is treated as a zero offset.
    """

    MAX_ITERATIONS = 5

    def __init__(self, timezone: Optional[str] = None):
        self.timezone = timezone or None
        self._zone = None

        if self.timezone:
            try:
                self._zone = pendulum.timezone(self.timezone)
            except Exception as exc:
                logger.warning(
                    "Unknown timezone %r, falling back to UTC offsets: %s",
                    self.timezone,
                    exc,
                )

    @property
    def is_identity(self) -> bool:
        return self.timezone is None

    def to_zoned(self, instant: datetime) -> DateTime:
        """Wall-clock reading of ``instant`` in the target zone."""
        utc = ensure_utc(instant)
        offset = self._offset_seconds(utc)
        return utc.add(seconds=offset).naive()

    def to_utc(self, wall_clock: datetime) -> DateTime:
        """
        Absolute instant for a wall-clock value in the target zone.

        The offset depends on the instant we are looking for, so it is
        re-derived from each candidate until two rounds agree. A time that
        falls into a spring-forward gap never settles; it resolves to the
        later candidate, i.e. it is shifted forward past the transition.
        """
        if wall_clock.tzinfo is not None:
            return ensure_utc(wall_clock)

        naive_as_utc = wall_clock_as_utc(wall_clock)
        utc = naive_as_utc
        previous = utc

        for _ in range(self.MAX_ITERATIONS):
            candidate = naive_as_utc.subtract(seconds=self._offset_seconds(utc))
            if candidate == utc:
                return candidate
            previous, utc = utc, candidate

        return max(utc, previous)

    def interval_to_zoned(self, interval: Interval) -> Interval:
        """
        Wall-clock view of ``interval``.

        Around a fall-back switch both endpoints can read the same clock
        time, so the end is never placed before ``start + duration``.
        """
        start = self.to_zoned(interval.start_at)
        end = max(self.to_zoned(interval.end_at), start + _span(interval))
        return Interval(start_at=start, end_at=end)

    def interval_to_utc(self, interval: Interval) -> Interval:
        """
        Absolute instants for a wall-clock interval.

        Inside a spring-forward gap both endpoints can resolve to the same
        instant, so the end is never placed before ``start + duration``.
        """
        start = self.to_utc(interval.start_at)
        end = max(self.to_utc(interval.end_at), start + _span(interval))
        return Interval(start_at=start, end_at=end)

    def _offset_seconds(self, utc: DateTime) -> int:
        if self._zone is None:
            return 0
        try:
            return utc.in_timezone(self._zone).offset
        except Exception as exc:
            logger.debug("Offset lookup failed for %s at %s: %s", self.timezone, utc, exc)
            return 0
