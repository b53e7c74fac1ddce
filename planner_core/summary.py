"""Dashboard summary cards computed from one snapshot."""
from __future__ import annotations

import typing as t
from dataclasses import dataclass
from datetime import datetime

from planner_core import timetable
from planner_core.buckets import to_local
from planner_core.models import Assignment, ClassMeeting, Snapshot
from planner_core.nearest import select_nearest_pending


@dataclass
class DashboardSummary:
    """Values behind the four summary cards."""
    classes_today: int
    next_class: t.Optional[ClassMeeting]
    assignments_due: int
    next_assignment: t.Optional[Assignment]
    total_courses: int
    weekly_class_hours: float
    busiest_day: t.Optional[str]


def build_summary(snapshot: Snapshot, now: datetime) -> DashboardSummary:
    """Summarize today's classes, pending assignments, courses and the week's load."""
    today = timetable.day_index(now)
    todays = timetable.meetings_on(snapshot.class_meetings, today)
    minutes_now = now.hour * 60 + now.minute
    next_class = next(
        (m for m in todays if timetable.minutes_of_day(m.start) >= minutes_now),
        None,
    )

    pending = [
        a for a in snapshot.assignments
        if not a.completed and to_local(a.due_date, now) >= now
    ]

    per_day = timetable.hours_per_day(snapshot.class_meetings)
    weekly_hours = sum(per_day.values())
    busiest_day = None
    if weekly_hours > 0:
        busiest = max(per_day, key=lambda day: per_day[day])
        busiest_day = timetable.DAYS[busiest]

    return DashboardSummary(
        classes_today=len(todays),
        next_class=next_class,
        assignments_due=len(pending),
        next_assignment=select_nearest_pending(snapshot.assignments, now),
        total_courses=len(snapshot.courses),
        weekly_class_hours=weekly_hours,
        busiest_day=busiest_day,
    )
