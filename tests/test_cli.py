"""Tests for the command-line dashboard against a seeded in-memory store."""
import asyncio
import typing as t
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

import pytest
from click.testing import CliRunner

from dashboard_cli import run
from planner_core.errors import StoreError
from planner_core.models import ASSIGNMENTS, COURSES, STUDY_SESSIONS
from planner_core.store import InMemoryRecordStore, UserSession

OWNER = UserSession("cli-user")


async def _seed(store: InMemoryRecordStore) -> None:
    now = datetime.now().astimezone()
    await store.insert_item(OWNER, COURSES, {
        "id": "cs101", "code": "CS101", "name": "Intro", "instructor": "Dr. Smith",
        "schedule": "MW 9:00-10:30", "credits": 3,
    })
    await store.insert_item(OWNER, ASSIGNMENTS, {
        "id": "essay", "title": "Essay", "course_id": "cs101", "priority": "high",
        "due_date": (now + timedelta(days=3)).isoformat(), "completed": False,
    })
    await store.insert_item(OWNER, ASSIGNMENTS, {
        "id": "quiz", "title": "Quiz", "course_id": "cs101",
        "due_date": (now - timedelta(days=2)).isoformat(), "completed": False,
    })
    await store.insert_item(OWNER, STUDY_SESSIONS, {
        "id": "drill", "title": "Drill", "course_id": "cs101",
        "start_time": (now + timedelta(days=10)).isoformat(),
        "end_time": (now + timedelta(days=10, hours=1)).isoformat(),
    })


@pytest.fixture
def store(monkeypatch) -> InMemoryRecordStore:
    store = InMemoryRecordStore()
    asyncio.run(_seed(store))

    @asynccontextmanager
    async def open_store(store_url: str) -> t.AsyncIterator[InMemoryRecordStore]:
        yield store

    monkeypatch.setattr(run, "open_store", open_store)
    return store


def _invoke(*args: str, **kwargs: t.Any):
    return CliRunner().invoke(run.main, ["--owner", OWNER.owner_id, *args], **kwargs)


def _assignments(store: InMemoryRecordStore) -> list[dict[str, t.Any]]:
    return asyncio.run(store.list_items(OWNER, ASSIGNMENTS))


def _courses(store: InMemoryRecordStore) -> list[dict[str, t.Any]]:
    return asyncio.run(store.list_items(OWNER, COURSES))


def test_show_lists_items(store) -> None:
    result = _invoke("show")
    assert result.exit_code == 0, result.output
    assert "Essay" in result.output
    assert "Quiz" in result.output
    assert "Drill" in result.output


def test_show_filters_by_bucket_and_kind(store) -> None:
    result = _invoke("show", "--bucket", "overdue")
    assert result.exit_code == 0, result.output
    assert "Quiz" in result.output
    assert "Essay" not in result.output

    result = _invoke("show", "--kind", "sessions")
    assert "Drill" in result.output
    assert "Quiz" not in result.output


def test_show_with_no_matches(store) -> None:
    result = _invoke("show", "--search", "nothing like this")
    assert result.exit_code == 0
    assert "No items found." in result.output


def test_summary(store) -> None:
    result = _invoke("summary")
    assert result.exit_code == 0, result.output
    assert "Upcoming assignments: 1" in result.output
    assert "Total courses: 1" in result.output
    assert "Essay" in result.output


def test_add_assignment(store) -> None:
    result = _invoke("add-assignment", "--title", "Lab", "--course", "cs101", "--due", "2099-01-15")
    assert result.exit_code == 0, result.output
    assert "Assignment added successfully" in result.output
    assert "Lab" in [row["title"] for row in _assignments(store)]


def test_add_assignment_to_unknown_course_fails(store) -> None:
    result = _invoke("add-assignment", "--title", "Lab", "--course", "hist9", "--due", "2099-01-15")
    assert result.exit_code == 1
    assert "Unknown course" in result.output
    assert len(_assignments(store)) == 2


def test_add_session_end_before_start(store) -> None:
    result = _invoke("add-session", "--title", "Late", "--course", "cs101",
                     "--date", "2099-01-15", "--start", "15:00", "--end", "14:00")
    assert result.exit_code == 1
    assert "End time must be after start time" in result.output


def test_complete_and_reopen(store) -> None:
    result = _invoke("complete", "essay")
    assert "Assignment marked as completed" in result.output
    assert next(r for r in _assignments(store) if r["id"] == "essay")["completed"] is True

    result = _invoke("complete", "essay", "--undo")
    assert "Assignment reopened" in result.output
    assert next(r for r in _assignments(store) if r["id"] == "essay")["completed"] is False


def test_complete_missing_assignment_reports_error(store) -> None:
    result = _invoke("complete", "missing")
    assert result.exit_code == 0
    assert "Failed to update assignment" in result.output


def test_delete_asks_for_confirmation(store) -> None:
    result = _invoke("delete", "assignment", "quiz", input="n\n")
    assert result.exit_code == 1
    assert len(_assignments(store)) == 2

    result = _invoke("delete", "assignment", "quiz", input="y\n")
    assert result.exit_code == 0, result.output
    assert "Assignment deleted successfully" in result.output
    assert [row["id"] for row in _assignments(store)] == ["essay"]


def test_watch_stops_after_duration(store) -> None:
    result = _invoke("watch", "--interval", "0.01", "--duration", "0.05")
    assert result.exit_code == 0, result.output
    assert "Essay" in result.output


class UnreachableStore(InMemoryRecordStore):
    async def list_items(self, session, collection, *args: t.Any, **kwargs: t.Any):
        raise StoreError("connection refused")


def test_unreachable_store_exits_with_the_failure(monkeypatch) -> None:
    @asynccontextmanager
    async def open_store(store_url: str) -> t.AsyncIterator[InMemoryRecordStore]:
        yield UnreachableStore()

    monkeypatch.setattr(run, "open_store", open_store)
    result = _invoke("show")
    assert result.exit_code == 1
    assert "Failed to fetch dashboard data: connection refused" in result.output
    assert "No items found." not in result.output


def test_add_course(store) -> None:
    result = _invoke("add-course", "--code", "PHYS 150", "--name", "Mechanics",
                     "--instructor", "Dr. Lee", "--schedule", "F 13:00-15:00")
    assert result.exit_code == 0, result.output
    assert "Course added successfully" in result.output
    assert "PHYS 150" in [row["code"] for row in _courses(store)]


def test_add_course_rejects_bad_credits(store) -> None:
    result = _invoke("add-course", "--code", "PHYS 150", "--name", "Mechanics",
                     "--instructor", "Dr. Lee", "--schedule", "F 13:00-15:00", "--credits", "9")
    assert result.exit_code == 1
    assert "credits: Credits must be between 1 and 6" in result.output
    assert len(_courses(store)) == 1


def test_edit_course(store) -> None:
    result = _invoke("edit-course", "cs101", "--name", "Intro to Programming")
    assert result.exit_code == 0, result.output
    assert "Course updated successfully" in result.output
    [course] = _courses(store)
    assert course["name"] == "Intro to Programming"
    assert course["instructor"] == "Dr. Smith"


def test_delete_course(store) -> None:
    result = _invoke("delete", "course", "cs101", input="y\n")
    assert result.exit_code == 0, result.output
    assert "Course deleted successfully" in result.output
    assert _courses(store) == []


def test_add_class_and_show_timetable(store) -> None:
    result = _invoke("timetable")
    assert result.exit_code == 0, result.output
    assert "No classes scheduled." in result.output

    result = _invoke("add-class", "--course", "cs101", "--day", "Wed", "--start", "09:00", "--end", "10:30")
    assert result.exit_code == 0, result.output
    assert "Class added successfully" in result.output

    result = _invoke("timetable")
    assert result.exit_code == 0, result.output
    assert "Weekly Timetable" in result.output
    assert "CS101" in result.output


def test_add_class_end_before_start(store) -> None:
    result = _invoke("add-class", "--course", "cs101", "--day", "Wed", "--start", "10:00", "--end", "09:00")
    assert result.exit_code == 1
    assert "End time must be after start time" in result.output


def test_calendar_lists_sessions_of_the_day(store) -> None:
    drill_day = (datetime.now().astimezone() + timedelta(days=10)).date()
    result = _invoke("calendar", "--date", drill_day.isoformat())
    assert result.exit_code == 0, result.output
    assert drill_day.strftime("%B %Y") in result.output
    assert "Drill" in result.output

    result = _invoke("calendar", "--date", (drill_day + timedelta(days=1)).isoformat())
    assert "No sessions scheduled for this day." in result.output


def test_calendar_rejects_bad_date(store) -> None:
    result = _invoke("calendar", "--date", "soon")
    assert result.exit_code == 2
    assert "Invalid date 'soon'" in result.output
