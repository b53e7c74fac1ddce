"""
Temporal bucket classification for dated items.

Every item falls into exactly one bucket per evaluation instant. The rules are
checked in a fixed order (completed, overdue/past, today, tomorrow, this week,
upcoming), so an item that is due today is never also counted as "this week".
"""
from __future__ import annotations

import calendar
import typing as t
from datetime import date, datetime, timedelta
from enum import Enum

from planner_core.models import DatedItem


class Bucket(str, Enum):
    """Named temporal group used for tabs and filters."""
    TODAY = "today"
    TOMORROW = "tomorrow"
    THIS_WEEK = "this_week"
    UPCOMING = "upcoming"
    OVERDUE = "overdue"
    PAST = "past"
    COMPLETED = "completed"


# Buckets that read most-recent first
RECENCY_BUCKETS = frozenset({Bucket.PAST, Bucket.COMPLETED})


def to_local(instant: datetime, now: datetime) -> datetime:
    """Express ``instant`` in the timezone of ``now`` when both are aware."""
    if instant.tzinfo is not None and now.tzinfo is not None:
        return instant.astimezone(now.tzinfo)
    return instant


def start_of_week(day: date, week_starts_on: int = calendar.SUNDAY) -> date:
    """First day of the week containing ``day`` (weekday numbers as in ``date.weekday``)."""
    return day - timedelta(days=(day.weekday() - week_starts_on) % 7)


def is_same_week(a: date, b: date, week_starts_on: int = calendar.SUNDAY) -> bool:
    return start_of_week(a, week_starts_on) == start_of_week(b, week_starts_on)


def classify(
        item: DatedItem,
        now: datetime,
        week_starts_on: int = calendar.SUNDAY
) -> Bucket:
    """Classify an item into exactly one bucket.

    :param item: Assignment or study session.
    :param now: The evaluation instant.
    :param week_starts_on: First weekday of a calendar week (Monday=0 .. Sunday=6).
    :return: The item's bucket.
    """
    if item.completed:
        return Bucket.COMPLETED

    start = to_local(item.start, now)
    end = to_local(item.end, now) if item.end is not None else None

    if end is None:
        if start < now:
            return Bucket.OVERDUE
    else:
        if end < now:
            return Bucket.PAST
        # Ranged item still running
        if start <= now:
            return Bucket.TODAY

    today = now.date()
    start_day = start.date()
    if start_day == today:
        return Bucket.TODAY
    if start_day == today + timedelta(days=1):
        return Bucket.TOMORROW
    if is_same_week(start_day, today, week_starts_on):
        return Bucket.THIS_WEEK
    return Bucket.UPCOMING


def group_by_bucket(
        items: t.Iterable[DatedItem],
        now: datetime,
        week_starts_on: int = calendar.SUNDAY
) -> dict[Bucket, list[DatedItem]]:
    """Group items by bucket, keeping fetch order inside each group.

    Every bucket is present in the result, empty ones included, so callers can
    show a count per tab.
    """
    groups: dict[Bucket, list[DatedItem]] = {bucket: [] for bucket in Bucket}
    for item in items:
        groups[classify(item, now, week_starts_on)].append(item)
    return groups
