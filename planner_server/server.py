# -*- coding: utf-8 -*-
"""
MCP server exposing the student planner dashboard.

Each tool opens a dashboard for the configured owner, refreshes it from the
record store service and answers from that snapshot. The ``_``-prefixed
helpers hold the logic and work on any ``Dashboard``; the tools only wire them
to the configured store.
"""
from __future__ import annotations

import typing as t
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import date, datetime

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from planner_core.buckets import Bucket, classify
from planner_core.dashboard import Dashboard
from planner_core.errors import ValidationError
from planner_core.filters import FilterConfig
from planner_core.formatting import (
    format_calendar,
    format_items_table,
    format_timetable,
    format_when,
    item_countdown,
)
from planner_core.models import DatedItem, ItemKind
from planner_core.settings import get_settings
from planner_core.store import RecordStore, UserSession
from store_client.http_store import HttpRecordStore

mcp = FastMCP("PlannerServer")


def _now() -> datetime:
    return datetime.now().astimezone()


@asynccontextmanager
async def _open_dashboard(store: t.Optional[RecordStore] = None) -> t.AsyncIterator[Dashboard]:
    """Dashboard for the configured owner, refreshed and ready to read.

    Raises ToolError carrying the failure notice when the data could not be
    fetched.
    """
    settings = get_settings()
    async with AsyncExitStack() as stack:
        if store is None:
            store = await stack.enter_async_context(
                HttpRecordStore(settings.store_url, settings.http_timeout)
            )
        dashboard = Dashboard(store, UserSession(settings.owner_id), settings.week_starts_on)
        if not await dashboard.refresh() and not dashboard.loaded:
            raise ToolError(_notice_text(dashboard) or "Failed to fetch dashboard data")
        yield dashboard


def _item_to_dict(item: DatedItem, now: datetime, week_starts_on: int) -> dict[str, t.Any]:
    return {
        "id": item.id,
        "kind": item.kind,
        "title": item.title,
        "course_code": item.course.code if item.course else None,
        "course_name": item.course.name if item.course else None,
        "start": item.start.isoformat(),
        "end": item.end.isoformat() if item.end else None,
        "completed": item.completed,
        "priority": item.priority,
        "bucket": classify(item, now, week_starts_on).value,
        "when": format_when(item, now),
        "countdown": item_countdown(item, now),
    }


def _parse_bucket(bucket: t.Optional[str]) -> t.Optional[Bucket]:
    if not bucket:
        return None
    try:
        return Bucket(bucket)
    except ValueError:
        valid = ", ".join(b.value for b in Bucket)
        raise ToolError(f"Unknown bucket '{bucket}'. Valid buckets: {valid}")


def _filter_config(
        bucket: t.Optional[str],
        search: str,
        course_id: t.Optional[str],
        priority: t.Optional[str],
        limit: t.Optional[int],
) -> FilterConfig:
    return FilterConfig(
        bucket=_parse_bucket(bucket),
        search_term=search,
        course_id=course_id or None,
        priority=priority or None,  # type: ignore[arg-type]
        limit=limit,
    )


def _list_items(
        dashboard: Dashboard,
        now: datetime,
        kind: t.Optional[ItemKind] = None,
        bucket: t.Optional[str] = None,
        search: str = "",
        course_id: t.Optional[str] = None,
        priority: t.Optional[str] = None,
        limit: t.Optional[int] = None,
) -> list[dict[str, t.Any]]:
    config = _filter_config(bucket, search, course_id, priority, limit)
    return [
        _item_to_dict(item, now, dashboard.week_starts_on)
        for item in dashboard.view(kind, config, now)
    ]


def _show_items(
        dashboard: Dashboard,
        now: datetime,
        kind: t.Optional[ItemKind] = None,
        bucket: t.Optional[str] = None,
        search: str = "",
) -> str:
    items = dashboard.view(kind, _filter_config(bucket, search, None, None, None), now)
    title = f"{bucket.replace('_', ' ').upper()} ITEMS" if bucket else "ITEMS"
    return format_items_table(items, now, title=title, week_starts_on=dashboard.week_starts_on)


def _nearest_pending(dashboard: Dashboard, now: datetime) -> t.Optional[dict[str, t.Any]]:
    nearest = dashboard.nearest_pending(now)
    if nearest is None:
        return None
    return _item_to_dict(nearest, now, dashboard.week_starts_on)


def _summary(dashboard: Dashboard, now: datetime) -> dict[str, t.Any]:
    summary = dashboard.summary(now)
    return {
        "classes_today": summary.classes_today,
        "next_class": summary.next_class.course.code
        if summary.next_class and summary.next_class.course else None,
        "next_class_start": summary.next_class.start if summary.next_class else None,
        "assignments_due": summary.assignments_due,
        "next_assignment": summary.next_assignment.title if summary.next_assignment else None,
        "total_courses": summary.total_courses,
        "weekly_class_hours": summary.weekly_class_hours,
        "busiest_day": summary.busiest_day,
        "tab_counts": {bucket.value: count for bucket, count in dashboard.tab_counts(None, now).items()},
    }


def _notice_text(dashboard: Dashboard) -> str:
    return "\n".join(notice.message for notice in dashboard.drain_notices())


def _timetable(dashboard: Dashboard) -> str:
    return format_timetable(dashboard.snapshot.class_meetings)


def _calendar(dashboard: Dashboard, now: datetime, day: t.Optional[str] = None) -> str:
    try:
        selected = date.fromisoformat(day) if day else now.date()
    except ValueError:
        raise ToolError(f"Invalid date '{day}', expected YYYY-MM-DD")
    return format_calendar(
        dashboard.calendar_markers(now), dashboard.sessions_on(selected, now), selected, now
    )


@mcp.tool()
async def list_items(
        kind: t.Optional[ItemKind] = None,
        bucket: t.Optional[str] = None,
        search: str = "",
        course_id: t.Optional[str] = None,
        priority: t.Optional[str] = None,
        limit: t.Optional[int] = None,
) -> list[dict[str, t.Any]]:
    """Lists assignments and/or study sessions after filtering.

    :param kind: "assignment", "study_session" or omitted for both.
    :param bucket: today, tomorrow, this_week, upcoming, overdue, past or completed.
    :param search: Case-insensitive text matched against title, description and course.
    :param course_id: Only items of this course.
    :param priority: low, medium or high (assignments only).
    :param limit: Maximum number of items.
    :return: Items with bucket, due label and countdown.
    """
    async with _open_dashboard() as dashboard:
        return _list_items(dashboard, _now(), kind, bucket, search, course_id, priority, limit)


@mcp.tool()
async def show_items(
        kind: t.Optional[ItemKind] = None,
        bucket: t.Optional[str] = None,
        search: str = "",
) -> str:
    """Displays items in a formatted table.

    :param kind: "assignment", "study_session" or omitted for both.
    :param bucket: Optional bucket to show.
    :param search: Optional search text.
    :return: Formatted table string, or a message if nothing matches.
    """
    async with _open_dashboard() as dashboard:
        return _show_items(dashboard, _now(), kind, bucket, search)


@mcp.tool()
async def nearest_pending() -> t.Optional[dict[str, t.Any]]:
    """Returns the soonest not-completed item, or null if nothing is pending."""
    async with _open_dashboard() as dashboard:
        return _nearest_pending(dashboard, _now())


@mcp.tool()
async def countdown() -> str:
    """Returns the countdown label to the nearest pending item."""
    async with _open_dashboard() as dashboard:
        return dashboard.countdown_label(_now()) or "Nothing pending"


@mcp.tool()
async def dashboard_summary() -> dict[str, t.Any]:
    """Returns today's classes, pending assignments, course count and tab counts."""
    async with _open_dashboard() as dashboard:
        return _summary(dashboard, _now())


@mcp.tool()
async def add_assignment(
        title: str,
        course_id: str,
        due_date: str,
        priority: str = "medium",
        description: str = ""
) -> str:
    """Creates an assignment.

    :param title: Assignment title.
    :param course_id: Id of an existing course.
    :param due_date: ISO datetime, or YYYY-MM-DD for end of that day.
    :param priority: low, medium or high.
    :param description: Optional notes.
    :return: Result message.
    """
    async with _open_dashboard() as dashboard:
        try:
            await dashboard.add_assignment({
                "title": title,
                "course_id": course_id,
                "due_date": due_date,
                "priority": priority,
                "description": description,
            })
        except ValidationError as e:
            return str(e)
        return _notice_text(dashboard)


@mcp.tool()
async def add_study_session(
        title: str,
        course_id: str,
        date: str,
        start_time: str,
        end_time: str,
        location: str = "",
        description: str = ""
) -> str:
    """Creates a study session.

    :param title: Session title.
    :param course_id: Id of an existing course.
    :param date: YYYY-MM-DD.
    :param start_time: HH:MM.
    :param end_time: HH:MM, after start_time.
    :param location: Optional location.
    :param description: Optional notes.
    :return: Result message.
    """
    async with _open_dashboard() as dashboard:
        try:
            await dashboard.add_study_session({
                "title": title,
                "course_id": course_id,
                "date": date,
                "start_time": start_time,
                "end_time": end_time,
                "location": location,
                "description": description,
            })
        except ValidationError as e:
            return str(e)
        return _notice_text(dashboard)


@mcp.tool()
async def complete_assignment(assignment_id: str, completed: bool = True) -> str:
    """Marks an assignment as completed (or reopens it).

    :param assignment_id: Id of the assignment.
    :param completed: False to reopen.
    :return: Result message.
    """
    async with _open_dashboard() as dashboard:
        await dashboard.set_assignment_completed(assignment_id, completed)
        return _notice_text(dashboard)


@mcp.tool()
async def timetable() -> str:
    """Displays the weekly class timetable (8:00-18:00, Sunday to Saturday)."""
    async with _open_dashboard() as dashboard:
        return _timetable(dashboard)


@mcp.tool()
async def calendar(day: t.Optional[str] = None) -> str:
    """Displays the study calendar for a month and the sessions on one day.

    :param day: YYYY-MM-DD; defaults to today.
    :return: Marked dates of the month and that day's study sessions.
    """
    async with _open_dashboard() as dashboard:
        return _calendar(dashboard, _now(), day)


@mcp.tool()
async def add_class_meeting(
        course_id: str,
        day: str,
        start: str,
        end: str,
        location: str = "",
        instructor: str = ""
) -> str:
    """Adds a weekly class to the timetable.

    :param course_id: Id of an existing course.
    :param day: Sun..Sat, or 0 (Sunday) to 6 (Saturday).
    :param start: HH:MM.
    :param end: HH:MM, after start.
    :param location: Optional room.
    :param instructor: Optional instructor.
    :return: Result message.
    """
    async with _open_dashboard() as dashboard:
        try:
            await dashboard.add_class_meeting({
                "course_id": course_id,
                "day": day,
                "start": start,
                "end": end,
                "location": location,
                "instructor": instructor,
            })
        except ValidationError as e:
            return str(e)
        return _notice_text(dashboard)


@mcp.tool()
async def edit_course(
        course_id: str,
        code: t.Optional[str] = None,
        name: t.Optional[str] = None,
        instructor: t.Optional[str] = None,
        schedule: t.Optional[str] = None,
        credits: t.Optional[int] = None,
        color: t.Optional[str] = None
) -> str:
    """Edits a course. Omitted fields keep their current value.

    :param course_id: Id of the course.
    :return: Result message.
    """
    async with _open_dashboard() as dashboard:
        try:
            await dashboard.update_course(course_id, {
                "code": code,
                "name": name,
                "instructor": instructor,
                "schedule": schedule,
                "credits": credits,
                "color": color,
            })
        except ValidationError as e:
            return str(e)
        return _notice_text(dashboard)


if __name__ == "__main__":
    mcp.run()
