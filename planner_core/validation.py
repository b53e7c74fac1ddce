"""
Form validation for course, assignment and study-session submissions.

Each ``validate_*`` function takes the raw form values, raises
``ValidationError`` naming the first offending field, and otherwise returns the
record to hand to the store. Nothing here talks to the store.
"""
from __future__ import annotations

import typing as t
from datetime import date, datetime, time

from planner_core.errors import ValidationError
from planner_core.models import PRIORITIES
from planner_core.timetable import DAYS

REQUIRED_FIELDS_MESSAGE = "Please fill in all required fields"
END_OF_DAY = time(23, 59, 59)


def _required_text(form: t.Mapping[str, t.Any], field: str) -> str:
    value = form.get(field)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field, REQUIRED_FIELDS_MESSAGE)
    return value.strip()


def _min_length(form: t.Mapping[str, t.Any], field: str, minimum: int, label: str) -> str:
    value = form.get(field)
    value = value.strip() if isinstance(value, str) else ""
    if len(value) < minimum:
        raise ValidationError(field, f"{label} must be at least {minimum} characters")
    return value


def _parse_time(form: t.Mapping[str, t.Any], field: str) -> time:
    value = form.get(field)
    if isinstance(value, time):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field, REQUIRED_FIELDS_MESSAGE)
    try:
        return time.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError(field, f"Invalid time '{value}', expected HH:MM")


def _parse_day(form: t.Mapping[str, t.Any], field: str) -> date:
    value = form.get(field)
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field, REQUIRED_FIELDS_MESSAGE)
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError(field, f"Invalid date '{value}', expected YYYY-MM-DD")


def _local(day: date, at: time) -> datetime:
    return datetime.combine(day, at).astimezone()


def validate_course(form: t.Mapping[str, t.Any]) -> dict[str, t.Any]:
    """Validate a course form.

    Rules: code >= 2 characters, name/instructor/schedule >= 3 characters,
    credits between 1 and 6.
    """
    code = _min_length(form, "code", 2, "Course code")
    name = _min_length(form, "name", 3, "Course name")
    instructor = _min_length(form, "instructor", 3, "Instructor name")
    schedule = _min_length(form, "schedule", 3, "Schedule")

    raw_credits = form.get("credits", 3)
    try:
        credits = int(raw_credits)
    except (TypeError, ValueError):
        raise ValidationError("credits", f"Credits must be a number, got {raw_credits!r}")
    if not 1 <= credits <= 6:
        raise ValidationError("credits", "Credits must be between 1 and 6")

    return {
        "code": code,
        "name": name,
        "instructor": instructor,
        "schedule": schedule,
        "credits": credits,
        "color": form.get("color") or "bg-blue-500",
    }


def validate_assignment(form: t.Mapping[str, t.Any]) -> dict[str, t.Any]:
    """Validate an assignment form.

    ``due_date`` may be a datetime (kept as is) or a date / ``YYYY-MM-DD``
    string, which is due at 23:59:59 local time that day.
    """
    title = _required_text(form, "title")
    course_id = _required_text(form, "course_id")

    due = form.get("due_date")
    if isinstance(due, datetime):
        due_at = due if due.tzinfo else due.astimezone()
    elif isinstance(due, str) and "T" in due:
        try:
            due_at = datetime.fromisoformat(due.replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError("due_date", f"Invalid date '{due}'")
        if due_at.tzinfo is None:
            due_at = due_at.astimezone()
    else:
        due_at = _local(_parse_day(form, "due_date"), END_OF_DAY)

    priority = form.get("priority") or "medium"
    if priority not in PRIORITIES:
        raise ValidationError("priority", f"Priority must be one of {', '.join(PRIORITIES)}")

    return {
        "title": title,
        "description": (form.get("description") or "").strip(),
        "due_date": due_at.isoformat(),
        "course_id": course_id,
        "priority": priority,
        "completed": False,
    }


def validate_study_session(form: t.Mapping[str, t.Any]) -> dict[str, t.Any]:
    """Validate a study session form.

    ``date`` plus ``start_time``/``end_time`` (``HH:MM``) are combined into
    local instants; the session must end after it starts.
    """
    course_id = _required_text(form, "course_id")
    title = _required_text(form, "title")
    day = _parse_day(form, "date")
    starts = _local(day, _parse_time(form, "start_time"))
    ends = _local(day, _parse_time(form, "end_time"))
    if ends <= starts:
        raise ValidationError("end_time", "End time must be after start time")

    return {
        "title": title,
        "description": (form.get("description") or "").strip(),
        "course_id": course_id,
        "start_time": starts.isoformat(),
        "end_time": ends.isoformat(),
        "location": (form.get("location") or "").strip(),
    }


def _parse_weekday(form: t.Mapping[str, t.Any], field: str) -> int:
    """Sunday-first day number from 0-6 or a day name ("Mon", "monday")."""
    value = form.get(field)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValidationError(field, REQUIRED_FIELDS_MESSAGE)
        if not value.isdigit():
            for index, name in enumerate(DAYS):
                if value[:3].lower() == name.lower():
                    return index
            raise ValidationError(field, f"Unknown day '{value}', expected one of {', '.join(DAYS)}")
    if value is None:
        raise ValidationError(field, REQUIRED_FIELDS_MESSAGE)
    try:
        day = int(value)
    except (TypeError, ValueError):
        raise ValidationError(field, f"Unknown day {value!r}")
    if not 0 <= day <= 6:
        raise ValidationError(field, "Day must be between 0 (Sunday) and 6 (Saturday)")
    return day


def validate_class_meeting(form: t.Mapping[str, t.Any]) -> dict[str, t.Any]:
    """Validate a timetable class form.

    ``day`` is Sunday-first; ``start``/``end`` are ``HH:MM`` wall-clock times
    and the class must end after it starts.
    """
    course_id = _required_text(form, "course_id")
    day = _parse_weekday(form, "day")
    starts = _parse_time(form, "start")
    ends = _parse_time(form, "end")
    if ends <= starts:
        raise ValidationError("end", "End time must be after start time")

    return {
        "course_id": course_id,
        "day": day,
        "start": starts.strftime("%H:%M"),
        "end": ends.strftime("%H:%M"),
        "location": (form.get("location") or "").strip(),
        "instructor": (form.get("instructor") or "").strip(),
    }
