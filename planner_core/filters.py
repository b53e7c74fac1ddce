"""
Filter pipeline for dated items.

The steps always run in the same order: bucket membership, text search,
exact course/priority filters, then sort and truncate. The pipeline never
mutates its input and returns the same list for the same arguments.
"""
from __future__ import annotations

import calendar
import typing as t
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime

from planner_core.buckets import RECENCY_BUCKETS, Bucket, classify, to_local
from planner_core.models import DatedItem, Priority

ItemT = t.TypeVar("ItemT", bound=DatedItem)


@dataclass(frozen=True)
class FilterConfig:
    """What the current view asks for. Unset fields do not filter."""
    bucket: t.Optional[Bucket] = None
    search_term: str = ""
    course_id: t.Optional[str] = None
    priority: t.Optional[Priority] = None
    limit: t.Optional[int] = None


def matches_search(item: DatedItem, term: str) -> bool:
    """Case-insensitive substring match on title, description, course code or course name.

    Any one field containing the term is enough.
    """
    needle = term.strip().lower()
    if not needle:
        return True
    fields = [item.title, item.description]
    if item.course is not None:
        fields.extend([item.course.code, item.course.name])
    return any(needle in (value or "").lower() for value in fields)


def sort_items(items: t.Iterable[ItemT], bucket: t.Optional[Bucket] = None) -> list[ItemT]:
    """Sort by start: ascending, or most recent first for past/completed buckets.

    Items with the same start keep their incoming order.
    """
    newest_first = bucket in RECENCY_BUCKETS
    return sorted(items, key=lambda item: item.start, reverse=newest_first)


def filter_items(
        items: t.Sequence[ItemT],
        config: FilterConfig,
        now: datetime,
        week_starts_on: int = calendar.SUNDAY
) -> list[ItemT]:
    """Apply a view configuration to a list of items.

    Args:
        items: Items in fetch order.
        config: Bucket, search term, course/priority filters and limit.
        now: Evaluation instant for bucket membership.
        week_starts_on: First weekday of a calendar week.

    Returns:
        A new, sorted and possibly truncated list.
    """
    selected: list[ItemT] = list(items)

    if config.bucket is not None:
        selected = [
            item for item in selected
            if classify(item, now, week_starts_on) is config.bucket
        ]

    if config.search_term.strip():
        selected = [item for item in selected if matches_search(item, config.search_term)]

    if config.course_id:
        selected = [item for item in selected if item.course_id == config.course_id]

    if config.priority:
        selected = [item for item in selected if item.priority == config.priority]

    selected = sort_items(selected, config.bucket)

    if config.limit is not None:
        selected = selected[:max(config.limit, 0)]

    return selected


def items_on_date(items: t.Iterable[ItemT], day: date, now: datetime) -> list[ItemT]:
    """Items starting on ``day`` (in the timezone of ``now``), sorted by start."""
    return sort_items(item for item in items if to_local(item.start, now).date() == day)


def date_markers(items: t.Iterable[DatedItem], now: datetime, max_markers: int = 3) -> dict[date, int]:
    """Number of calendar dots to draw per date.

    A date with more items than ``max_markers`` gets a single dot.
    """
    counts = Counter(to_local(item.start, now).date() for item in items)
    return {day: (count if count <= max_markers else 1) for day, count in counts.items()}
