"""
Weekly timetable grid.

Days are numbered Sunday-first (0 = Sunday .. 6 = Saturday). The grid has one
row per hour from 8:00 to 18:00. A meeting shows in every hourly row it starts
in or spans.
"""
from __future__ import annotations

import typing as t
from datetime import datetime

from planner_core.models import ClassMeeting

DAYS: tuple[str, ...] = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
FIRST_HOUR = 8
SLOT_COUNT = 11


def time_slots() -> list[str]:
    """Row labels of the grid: ``["8:00", "9:00", ..., "18:00"]``."""
    return [f"{FIRST_HOUR + i}:00" for i in range(SLOT_COUNT)]


def day_index(moment: datetime) -> int:
    """Sunday-first day number of ``moment``."""
    return (moment.weekday() + 1) % 7


def _hour(hhmm: str) -> int:
    return int(hhmm.split(":")[0])


def minutes_of_day(hhmm: str) -> int:
    hours, _, minutes = hhmm.partition(":")
    return int(hours) * 60 + int(minutes or 0)


def meetings_on(meetings: t.Iterable[ClassMeeting], day: int) -> list[ClassMeeting]:
    """Meetings on ``day`` ordered by start time."""
    return sorted((m for m in meetings if m.day == day), key=lambda m: minutes_of_day(m.start))


def meetings_in_slot(meetings: t.Iterable[ClassMeeting], day: int, hour: int) -> list[ClassMeeting]:
    """Meetings to draw in the cell for ``day`` and ``hour``."""
    found = []
    for meeting in meetings:
        if meeting.day != day:
            continue
        start_hour = _hour(meeting.start)
        end_hour = _hour(meeting.end)
        if start_hour == hour or (start_hour < hour < end_hour):
            found.append(meeting)
    return found


def weekly_grid(meetings: t.Sequence[ClassMeeting]) -> list[list[list[ClassMeeting]]]:
    """Full grid as ``grid[slot][day] -> meetings``."""
    return [
        [meetings_in_slot(meetings, day, FIRST_HOUR + slot) for day in range(len(DAYS))]
        for slot in range(SLOT_COUNT)
    ]


def meeting_hours(meeting: ClassMeeting) -> float:
    return max(minutes_of_day(meeting.end) - minutes_of_day(meeting.start), 0) / 60


def hours_per_day(meetings: t.Iterable[ClassMeeting]) -> dict[int, float]:
    totals = {day: 0.0 for day in range(len(DAYS))}
    for meeting in meetings:
        totals[meeting.day] += meeting_hours(meeting)
    return totals
