"""Tests for form validation."""
from datetime import date, datetime, timezone

import pytest

from planner_core.errors import ValidationError
from planner_core.validation import (
    validate_assignment,
    validate_class_meeting,
    validate_course,
    validate_study_session,
)

COURSE_FORM = {
    "code": "CS 101",
    "name": "Introduction to Computer Science",
    "instructor": "Dr. Smith",
    "schedule": "MW 9:00-10:30",
    "credits": "4",
}


def test_course_form_is_normalized() -> None:
    record = validate_course(COURSE_FORM)
    assert record["credits"] == 4
    assert record["color"] == "bg-blue-500"


@pytest.mark.parametrize(
    "field, value",
    [("code", "C"), ("name", "CS"), ("instructor", "Dr"), ("schedule", "MW"), ("credits", 7), ("credits", "x")],
)
def test_course_form_rejects(field, value) -> None:
    with pytest.raises(ValidationError) as exc_info:
        validate_course({**COURSE_FORM, field: value})
    assert exc_info.value.field == field


def test_assignment_date_only_is_due_end_of_day() -> None:
    record = validate_assignment({"title": "Problem Set 3", "course_id": "math201", "due_date": "2025-05-07"})
    due = datetime.fromisoformat(record["due_date"])
    assert (due.date(), due.hour, due.minute, due.second) == (date(2025, 5, 7), 23, 59, 59)
    assert due.tzinfo is not None
    assert record["priority"] == "medium"
    assert record["completed"] is False


def test_assignment_keeps_explicit_datetime() -> None:
    due = datetime(2025, 5, 12, 17, 0, tzinfo=timezone.utc)
    record = validate_assignment({"title": "Lab Report 2", "course_id": "phys202", "due_date": due, "priority": "high"})
    assert datetime.fromisoformat(record["due_date"]) == due
    assert record["priority"] == "high"


@pytest.mark.parametrize(
    "form, field",
    [
        ({"course_id": "c1", "due_date": "2025-05-07"}, "title"),
        ({"title": "  ", "course_id": "c1", "due_date": "2025-05-07"}, "title"),
        ({"title": "T", "due_date": "2025-05-07"}, "course_id"),
        ({"title": "T", "course_id": "c1"}, "due_date"),
        ({"title": "T", "course_id": "c1", "due_date": "next week"}, "due_date"),
        ({"title": "T", "course_id": "c1", "due_date": "2025-05-07", "priority": "urgent"}, "priority"),
    ],
)
def test_assignment_rejects(form, field) -> None:
    with pytest.raises(ValidationError) as exc_info:
        validate_assignment(form)
    assert exc_info.value.field == field


def test_study_session_combines_date_and_times() -> None:
    record = validate_study_session({
        "course_id": "cs101",
        "title": "Recursion review",
        "date": "2025-05-07",
        "start_time": "14:00",
        "end_time": "15:30",
        "location": " Library ",
    })
    starts = datetime.fromisoformat(record["start_time"])
    ends = datetime.fromisoformat(record["end_time"])
    assert (starts.hour, starts.minute) == (14, 0)
    assert (ends - starts).total_seconds() == 90 * 60
    assert record["location"] == "Library"


@pytest.mark.parametrize("start, end", [("15:00", "15:00"), ("15:00", "14:00")])
def test_study_session_must_end_after_start(start, end) -> None:
    with pytest.raises(ValidationError) as exc_info:
        validate_study_session({
            "course_id": "cs101", "title": "Review", "date": "2025-05-07",
            "start_time": start, "end_time": end,
        })
    assert exc_info.value.field == "end_time"


def test_study_session_requires_times() -> None:
    with pytest.raises(ValidationError) as exc_info:
        validate_study_session({"course_id": "cs101", "title": "Review", "date": "2025-05-07", "start_time": "14:00"})
    assert exc_info.value.field == "end_time"


@pytest.mark.parametrize("day, expected", [("Mon", 1), ("tuesday", 2), ("0", 0), (6, 6), ("  Sat ", 6)])
def test_class_meeting_day(day, expected) -> None:
    record = validate_class_meeting({"course_id": "cs101", "day": day, "start": "09:00", "end": "10:30"})
    assert record["day"] == expected
    assert (record["start"], record["end"]) == ("09:00", "10:30")
    assert record["location"] == ""


@pytest.mark.parametrize(
    "form, field",
    [
        ({"day": 1, "start": "09:00", "end": "10:00"}, "course_id"),
        ({"course_id": "cs101", "start": "09:00", "end": "10:00"}, "day"),
        ({"course_id": "cs101", "day": "Funday", "start": "09:00", "end": "10:00"}, "day"),
        ({"course_id": "cs101", "day": 7, "start": "09:00", "end": "10:00"}, "day"),
        ({"course_id": "cs101", "day": 1, "start": "nine", "end": "10:00"}, "start"),
        ({"course_id": "cs101", "day": 1, "start": "10:00", "end": "10:00"}, "end"),
    ],
)
def test_class_meeting_rejects(form, field) -> None:
    with pytest.raises(ValidationError) as exc_info:
        validate_class_meeting(form)
    assert exc_info.value.field == field
