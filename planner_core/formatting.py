"""
Human-readable labels and plain-text tables for dated items.
"""
from __future__ import annotations

import calendar
import typing as t
from datetime import date, datetime, timedelta

from planner_core import timetable
from planner_core.buckets import classify, to_local
from planner_core.countdown import format_countdown
from planner_core.models import ClassMeeting, DatedItem


def format_clock(moment: datetime) -> str:
    """``"3:05 PM"`` style time without a leading zero."""
    return moment.strftime("%I:%M %p").lstrip("0")


def format_due_label(due: datetime, now: datetime) -> str:
    """Format a due instant relative to ``now``.

    Returns ``"Today, 3:00 PM"``, ``"Tomorrow, 11:59 PM"`` or ``"May 7, 11:59 PM"``.
    """
    local = to_local(due, now)
    if local.date() == now.date():
        return f"Today, {format_clock(local)}"
    if local.date() == now.date() + timedelta(days=1):
        return f"Tomorrow, {format_clock(local)}"
    return f"{local.strftime('%b')} {local.day}, {format_clock(local)}"


def format_session_time(start: datetime, end: datetime, now: datetime) -> str:
    """``"2:00 PM - 3:30 PM, May 7, 2025"``."""
    start, end = to_local(start, now), to_local(end, now)
    return (
        f"{format_clock(start)} - {format_clock(end)}, "
        f"{start.strftime('%b')} {start.day}, {start.year}"
    )


def format_when(item: DatedItem, now: datetime) -> str:
    if item.end is None:
        return format_due_label(item.start, now)
    return format_session_time(item.start, item.end, now)


def item_countdown(item: DatedItem, now: datetime) -> str:
    return format_countdown(item.start, now, item.end)


def _truncate(text: str, width: int) -> str:
    return text[:width - 1] if len(text) > width - 1 else text


def format_items_table(
        items: t.Sequence[DatedItem],
        now: datetime,
        title: str = "ITEMS",
        week_starts_on: int = calendar.SUNDAY
) -> str:
    """Format items as a clean fixed-width table.

    :param items: Items in display order.
    :param now: Evaluation instant for labels and buckets.
    :param title: Heading line.
    :return: Table text, or a short message when there is nothing to show.
    """
    if not items:
        return f"No {title.lower()} found."

    lines = []
    lines.append(title)
    lines.append("=" * 100)
    lines.append(f"{'#':<4} {'Title':<32} {'Course':<12} {'When':<32} {'Bucket':<10} {'Priority':<8}")
    lines.append("-" * 100)

    for idx, item in enumerate(items, 1):
        course = item.course.code if item.course else "-"
        lines.append(
            f"{idx:<4} {_truncate(item.title, 32):<32} {_truncate(course, 12):<12} "
            f"{_truncate(format_when(item, now), 32):<32} "
            f"{classify(item, now, week_starts_on).value:<10} {item.priority or '-':<8}"
        )

    lines.append("=" * 100)
    lines.append(f"Total: {len(items)} item(s)")
    return "\n".join(lines)


def meeting_label(meeting: ClassMeeting) -> str:
    code = meeting.course.code if meeting.course else meeting.course_id
    return f"{code} {meeting.location}".strip()


def format_timetable(meetings: t.Sequence[ClassMeeting]) -> str:
    """Weekly timetable as a fixed-width grid, one row per hourly slot."""
    if not meetings:
        return "No classes scheduled."

    grid = timetable.weekly_grid(meetings)
    lines = []
    lines.append("TIMETABLE")
    lines.append("=" * 100)
    lines.append(f"{'Time':<7}" + "".join(f"{day:<13}" for day in timetable.DAYS))
    lines.append("-" * 100)
    for label, row in zip(timetable.time_slots(), grid):
        cells = [_truncate(", ".join(meeting_label(m) for m in cell), 13) for cell in row]
        lines.append(f"{label:<7}" + "".join(f"{cell:<13}" for cell in cells).rstrip())
    lines.append("=" * 100)
    lines.append(f"Total: {len(meetings)} class(es), {sum(map(timetable.meeting_hours, meetings)):g} hour(s) per week")
    return "\n".join(lines)


def format_calendar(
        markers: t.Mapping[date, int],
        sessions: t.Sequence[DatedItem],
        day: date,
        now: datetime
) -> str:
    """Study calendar for the month of ``day`` plus the sessions on ``day``.

    :param markers: Dots per date, as from ``date_markers``.
    :param sessions: Sessions starting on ``day``.
    :param day: Selected date.
    :param now: Evaluation instant for time labels.
    :return: Calendar text.
    """
    lines = [day.strftime("%B %Y").upper(), "=" * 40]
    marked = sorted(d for d in markers if (d.year, d.month) == (day.year, day.month))
    if marked:
        for marked_day in marked:
            lines.append(f"{marked_day.strftime('%a %b')} {marked_day.day:<3} {'*' * markers[marked_day]}")
    else:
        lines.append("No study sessions this month.")
    lines.append("-" * 40)
    lines.append(f"{day.strftime('%A, %B')} {day.day}")
    if not sessions:
        lines.append("No sessions scheduled for this day.")
    for session in sessions:
        course = f" ({session.course.code})" if session.course else ""
        lines.append(f"- {session.title}{course}: {format_when(session, now)}")
    return "\n".join(lines)
