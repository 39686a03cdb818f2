"""
Tests for domain models.
"""

import pendulum
import pytest

from studyplanner.domain.course_meetings import meetings_to_intervals_for_date
from studyplanner.domain.models import (
    CourseMeeting,
    Interval,
    ScheduleSuggestion,
    SuggestionOrigin,
    TaskPriority,
    UserSchedulingPreferences,
)


class TestInterval:
    """Tests for Interval model."""

    def test_create_valid_interval(self):
        """Test creating a valid interval."""
        start = pendulum.parse("2024-11-25T09:00:00Z")
        end = pendulum.parse("2024-11-25T17:00:00Z")

        interval = Interval(start_at=start, end_at=end)

        assert interval.start_at == start
        assert interval.end_at == end
        assert interval.duration_minutes() == 480  # 8 hours

    def test_invalid_interval_raises_error(self):
        """Test that an interval ending before it starts raises ValueError."""
        start = pendulum.parse("2024-11-25T17:00:00Z")
        end = pendulum.parse("2024-11-25T09:00:00Z")

        with pytest.raises(ValueError, match="Start time .* must be before end time"):
            Interval(start_at=start, end_at=end)

    def test_zero_length_interval_raises_error(self):
        """An interval must have a positive length."""
        instant = pendulum.parse("2024-11-25T09:00:00Z")

        with pytest.raises(ValueError):
            Interval(start_at=instant, end_at=instant)

    def test_overlaps(self):
        """Test overlap detection."""
        tr1 = Interval(
            start_at=pendulum.parse("2024-11-25T09:00:00Z"),
            end_at=pendulum.parse("2024-11-25T12:00:00Z")
        )
        tr2 = Interval(
            start_at=pendulum.parse("2024-11-25T11:00:00Z"),
            end_at=pendulum.parse("2024-11-25T14:00:00Z")
        )
        tr3 = Interval(
            start_at=pendulum.parse("2024-11-25T14:00:00Z"),
            end_at=pendulum.parse("2024-11-25T17:00:00Z")
        )

        assert tr1.overlaps(tr2)
        assert tr2.overlaps(tr1)
        assert not tr1.overlaps(tr3)
        # Touching ends are not an overlap
        assert not tr2.overlaps(tr3)


class TestTaskPriority:
    """Tests for TaskPriority weights."""

    def test_weights_are_ordered(self):
        """HIGH outranks MEDIUM outranks LOW."""
        assert TaskPriority.HIGH.weight > TaskPriority.MEDIUM.weight > TaskPriority.LOW.weight

    def test_parse_from_string(self):
        """Priorities are stored as upper-case strings."""
        assert TaskPriority("LOW") is TaskPriority.LOW


class TestScheduleSuggestion:
    """Tests for ScheduleSuggestion serialisation."""

    def test_to_dict_fallback_omits_model_fields(self):
        """Fallback suggestions carry no rationale or confidence."""
        suggestion = ScheduleSuggestion(
            task_id="a",
            start_at=pendulum.parse("2024-01-02T15:30:00Z"),
            end_at=pendulum.parse("2024-01-02T16:00:00Z"),
            origin=SuggestionOrigin.FALLBACK,
        )

        data = suggestion.to_dict()

        assert data["taskId"] == "a"
        assert data["origin"] == "fallback"
        assert data["startAt"] == "2024-01-02T15:30:00Z"
        assert "rationale" not in data
        assert "confidence" not in data

    def test_to_dict_model_includes_model_fields(self):
        """Model suggestions pass rationale and confidence through."""
        suggestion = ScheduleSuggestion(
            task_id="b",
            start_at=pendulum.parse("2024-01-01T13:00:00Z"),
            end_at=pendulum.parse("2024-01-01T13:30:00Z"),
            origin=SuggestionOrigin.MODEL,
            rationale="Afternoon focus",
            confidence=0.9,
        )

        data = suggestion.to_dict()

        assert data["origin"] == "model"
        assert data["rationale"] == "Afternoon focus"
        assert data["confidence"] == 0.9


class TestUserSchedulingPreferences:
    """Tests for UserSchedulingPreferences."""

    def test_work_window(self):
        """The work window mirrors the configured hours."""
        prefs = UserSchedulingPreferences(day_window_start_hour=9, day_window_end_hour=17)

        window = prefs.work_window()

        assert window.start_hour == 9
        assert window.end_hour == 17


class TestCourseMeetings:
    """Tests for expanding class meetings into intervals."""

    def test_meetings_on_matching_weekday(self):
        """Only meetings on the reference weekday are expanded."""
        monday = pendulum.naive(2024, 1, 1, 14, 30)  # Monday
        meetings = [
            CourseMeeting(day_of_week=0, start_minutes=600, end_minutes=690),  # Mon 10:00-11:30
            CourseMeeting(day_of_week=2, start_minutes=600, end_minutes=690),  # Wed
        ]

        intervals = meetings_to_intervals_for_date(meetings, monday)

        assert intervals == [
            Interval(
                start_at=pendulum.naive(2024, 1, 1, 10, 0),
                end_at=pendulum.naive(2024, 1, 1, 11, 30),
            )
        ]

    def test_empty_meetings(self):
        """No meetings means nothing blocks."""
        assert meetings_to_intervals_for_date([], pendulum.naive(2024, 1, 1, 9)) == []

    def test_degenerate_meeting_is_ignored(self):
        """A meeting that ends before it starts is skipped."""
        meetings = [CourseMeeting(day_of_week=0, start_minutes=700, end_minutes=600)]

        assert meetings_to_intervals_for_date(meetings, pendulum.naive(2024, 1, 1, 9)) == []
