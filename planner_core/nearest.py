"""Selection of the nearest pending item."""
from __future__ import annotations

import typing as t
from datetime import datetime

from planner_core.buckets import to_local
from planner_core.models import DatedItem

ItemT = t.TypeVar("ItemT", bound=DatedItem)


def select_nearest_pending(items: t.Iterable[ItemT], now: datetime) -> t.Optional[ItemT]:
    """Return the not-completed item with the smallest start at or after ``now``.

    Ties go to the item that came first in ``items``. Nothing is cached: call
    it again after the item set changes and it answers for the new set.

    :param items: Items in fetch order.
    :param now: The evaluation instant.
    :return: The nearest pending item, or None.
    """
    nearest: t.Optional[ItemT] = None
    for item in items:
        if item.completed or to_local(item.start, now) < now:
            continue
        # Strict comparison keeps the earliest-fetched item on ties
        if nearest is None or item.start < nearest.start:
            nearest = item
    return nearest
