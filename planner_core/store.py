"""
Record store contract and the in-memory implementation.

Every call carries an explicit ``UserSession``; a store never reads or writes
records of another owner. The in-memory store backs the REST service and the
tests. In a real deployment the REST service would sit on a database instead.
"""
from __future__ import annotations

import copy
import typing as t
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from planner_core.errors import NotFoundError, StoreError
from planner_core.models import COLLECTIONS, COURSES, parse_timestamp

Record = dict[str, t.Any]


@dataclass(frozen=True)
class UserSession:
    """The authenticated user every store call is scoped to."""
    owner_id: str

    def __post_init__(self) -> None:
        if not self.owner_id:
            raise ValueError("owner_id must not be empty")


class RecordStore(t.Protocol):
    """Minimal store interface the dashboard depends on."""

    async def list_items(
            self,
            session: UserSession,
            collection: str,
            filters: t.Optional[t.Mapping[str, t.Any]] = None,
            order_by: t.Optional[str] = None,
            ascending: bool = True,
            embed_course: bool = False,
    ) -> list[Record]: ...

    async def insert_item(self, session: UserSession, collection: str, record: Record) -> str: ...

    async def update_item(
            self, session: UserSession, collection: str, item_id: str, changes: Record
    ) -> None: ...

    async def delete_item(self, session: UserSession, collection: str, item_id: str) -> None: ...


def _check_collection(collection: str) -> None:
    if collection not in COLLECTIONS:
        raise StoreError(f"Unknown collection '{collection}'. Known collections: {list(COLLECTIONS)}")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _order_key(value: t.Any) -> tuple[int, t.Any]:
    """Sort key for ``order_by``. ISO timestamps compare as instants, whatever their offset."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return (1, str(value))
    if not isinstance(value, str):
        return (0, value)
    try:
        return (1, parse_timestamp(value).astimezone(timezone.utc).isoformat())
    except ValueError:
        return (1, value)


class InMemoryRecordStore:
    """Dict-backed record store.

    Records are kept per collection in insertion order and copied on the way
    in and out, so callers can never patch stored state by accident.
    """

    def __init__(self) -> None:
        self._tables: dict[str, dict[str, Record]] = {name: {} for name in COLLECTIONS}

    async def list_items(
            self,
            session: UserSession,
            collection: str,
            filters: t.Optional[t.Mapping[str, t.Any]] = None,
            order_by: t.Optional[str] = None,
            ascending: bool = True,
            embed_course: bool = False,
    ) -> list[Record]:
        _check_collection(collection)
        rows = [
            row for row in self._tables[collection].values()
            if row["user_id"] == session.owner_id
            and all(row.get(key) == value for key, value in (filters or {}).items())
        ]
        if order_by:
            present = [row for row in rows if row.get(order_by) is not None]
            missing = [row for row in rows if row.get(order_by) is None]
            present.sort(key=lambda row: _order_key(row[order_by]), reverse=not ascending)
            # Rows missing the column sort last either way
            rows = present + missing
        result = [copy.deepcopy(row) for row in rows]
        if embed_course:
            courses = self._tables[COURSES]
            for row in result:
                course = courses.get(row.get("course_id") or "")
                if course is not None and course["user_id"] == session.owner_id:
                    row["course"] = {
                        "code": course.get("code", ""),
                        "name": course.get("name", ""),
                        "color": course.get("color", ""),
                    }
                else:
                    row["course"] = None
        return result

    async def insert_item(self, session: UserSession, collection: str, record: Record) -> str:
        _check_collection(collection)
        item_id = str(record.get("id") or uuid.uuid4())
        if item_id in self._tables[collection]:
            raise StoreError(f"Duplicate id '{item_id}' in '{collection}'")
        row = copy.deepcopy(record)
        row.pop("course", None)
        row.update(id=item_id, user_id=session.owner_id, created_at=_now_iso())
        self._tables[collection][item_id] = row
        return item_id

    async def update_item(
            self, session: UserSession, collection: str, item_id: str, changes: Record
    ) -> None:
        _check_collection(collection)
        row = self._owned_row(session, collection, item_id)
        protected = {"id", "user_id", "created_at", "course"}
        row.update({key: copy.deepcopy(value) for key, value in changes.items() if key not in protected})
        row["updated_at"] = _now_iso()

    async def delete_item(self, session: UserSession, collection: str, item_id: str) -> None:
        _check_collection(collection)
        self._owned_row(session, collection, item_id)
        del self._tables[collection][item_id]

    def _owned_row(self, session: UserSession, collection: str, item_id: str) -> Record:
        row = self._tables[collection].get(item_id)
        if row is None or row["user_id"] != session.owner_id:
            raise NotFoundError(collection, item_id)
        return row
