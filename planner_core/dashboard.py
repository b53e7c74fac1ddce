"""
Dashboard state: one consistent snapshot plus everything derived from it.

All derived views (filtered lists, tab counts, nearest pending item, countdown,
summary) are recomputed from the current snapshot on every access. Mutations go
to the store and are followed by a full refresh, so the snapshot never lags a
mutation the dashboard itself made.
"""
from __future__ import annotations

import asyncio
import calendar
import logging
import typing as t
from collections import deque
from dataclasses import dataclass
from datetime import date, datetime

from planner_core.buckets import Bucket, group_by_bucket
from planner_core.errors import StoreError, ValidationError
from planner_core.filters import FilterConfig, date_markers, filter_items, items_on_date
from planner_core.formatting import item_countdown
from planner_core.models import (
    ASSIGNMENTS,
    CLASS_MEETINGS,
    COURSES,
    STUDY_SESSIONS,
    ClassMeeting,
    Course,
    DatedItem,
    ItemKind,
    Snapshot,
    assignment_from_record,
    class_meeting_from_record,
    course_from_record,
    study_session_from_record,
)
from planner_core.nearest import select_nearest_pending
from planner_core.store import RecordStore, UserSession
from planner_core.summary import DashboardSummary, build_summary
from planner_core.timetable import weekly_grid
from planner_core.validation import (
    validate_assignment,
    validate_class_meeting,
    validate_course,
    validate_study_session,
)

logger = logging.getLogger(__name__)

NoticeLevel = t.Literal["success", "error"]


@dataclass(frozen=True)
class Notice:
    """A transient message for the user (toast)."""
    level: NoticeLevel
    message: str


class Dashboard:
    """Per-user dashboard backed by a record store.

    Args:
        store: Any ``RecordStore`` implementation.
        session: The user every store call is scoped to.
        week_starts_on: First weekday of a calendar week (Monday=0 .. Sunday=6).
        max_notices: How many undrained notices to keep.
    """

    def __init__(
            self,
            store: RecordStore,
            session: UserSession,
            week_starts_on: int = calendar.SUNDAY,
            max_notices: int = 50,
    ) -> None:
        self.store = store
        self.session = session
        self.week_starts_on = week_starts_on
        self.snapshot = Snapshot()
        self.loaded = False
        self._notices: deque[Notice] = deque(maxlen=max_notices)
        self._generation = 0
        self._applied_generation = 0

    # ------------------------------------------------------------------
    # Notices
    # ------------------------------------------------------------------

    @property
    def notices(self) -> list[Notice]:
        return list(self._notices)

    def drain_notices(self) -> list[Notice]:
        """Return pending notices and forget them."""
        drained = list(self._notices)
        self._notices.clear()
        return drained

    def _notify(self, level: NoticeLevel, message: str) -> None:
        if level == "error":
            logger.warning(message)
        else:
            logger.info(message)
        self._notices.append(Notice(level, message))

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    async def refresh(self) -> bool:
        """Fetch everything and replace the snapshot in one step.

        The fetches run concurrently; the snapshot is only replaced once all of
        them succeeded. A refresh that finishes after a newer one has already
        been applied is dropped. On failure the previous snapshot stays and an
        error notice is recorded.

        Returns:
            True if a new snapshot was applied.
        """
        self._generation += 1
        generation = self._generation
        try:
            course_rows, assignment_rows, session_rows, meeting_rows = await asyncio.gather(
                self.store.list_items(self.session, COURSES, order_by="code"),
                self.store.list_items(self.session, ASSIGNMENTS, order_by="due_date", embed_course=True),
                self.store.list_items(self.session, STUDY_SESSIONS, order_by="start_time", embed_course=True),
                self.store.list_items(self.session, CLASS_MEETINGS),
            )
        except StoreError as e:
            self._notify("error", f"Failed to fetch dashboard data: {e}")
            return False

        try:
            courses = [course_from_record(row) for row in course_rows]
            by_id = {course.id: course for course in courses}
            snapshot = Snapshot(
                courses=courses,
                assignments=[assignment_from_record(row, by_id) for row in assignment_rows],
                study_sessions=[study_session_from_record(row, by_id) for row in session_rows],
                class_meetings=[class_meeting_from_record(row, by_id) for row in meeting_rows],
            )
        except (KeyError, TypeError, ValueError) as e:
            self._notify("error", f"Failed to read dashboard data: {e}")
            return False

        if generation < self._applied_generation:
            logger.debug("Dropping refresh %d, snapshot %d already applied", generation, self._applied_generation)
            return False
        self.snapshot = snapshot
        self._applied_generation = generation
        self.loaded = True
        logger.debug(
            "Snapshot %d: %d course(s), %d assignment(s), %d study session(s)",
            generation, len(snapshot.courses), len(snapshot.assignments), len(snapshot.study_sessions),
        )
        return True

    def items(self, kind: t.Optional[ItemKind] = None) -> list[DatedItem]:
        """Items of one kind, or assignments followed by study sessions."""
        if kind == "assignment":
            return list(self.snapshot.assignments)
        if kind == "study_session":
            return list(self.snapshot.study_sessions)
        return [*self.snapshot.assignments, *self.snapshot.study_sessions]

    def find(self, item_id: str) -> t.Optional[DatedItem]:
        return next((item for item in self.items() if item.id == item_id), None)

    def course(self, course_id: str) -> t.Optional[Course]:
        return next((course for course in self.snapshot.courses if course.id == course_id), None)

    def view(self, kind: t.Optional[ItemKind], config: FilterConfig, now: datetime) -> list[DatedItem]:
        """Filtered, sorted list for one tab."""
        return filter_items(self.items(kind), config, now, self.week_starts_on)

    def tab_counts(self, kind: t.Optional[ItemKind], now: datetime) -> dict[Bucket, int]:
        groups = group_by_bucket(self.items(kind), now, self.week_starts_on)
        return {bucket: len(members) for bucket, members in groups.items()}

    def sessions_on(self, day: date, now: datetime) -> list[DatedItem]:
        return items_on_date(self.snapshot.study_sessions, day, now)

    def calendar_markers(self, now: datetime) -> dict[date, int]:
        """Dots per date for the study calendar."""
        return date_markers(self.snapshot.study_sessions, now)

    def timetable(self) -> list[list[list[ClassMeeting]]]:
        """Weekly grid of class meetings, ``grid[slot][day]``."""
        return weekly_grid(self.snapshot.class_meetings)

    def nearest_pending(self, now: datetime, kind: t.Optional[ItemKind] = None) -> t.Optional[DatedItem]:
        return select_nearest_pending(self.items(kind), now)

    def countdown_label(self, now: datetime, kind: t.Optional[ItemKind] = None) -> t.Optional[str]:
        """Countdown to the nearest pending item, or None when nothing is pending."""
        nearest = self.nearest_pending(now, kind)
        if nearest is None:
            return None
        return item_countdown(nearest, now)

    def summary(self, now: datetime) -> DashboardSummary:
        return build_summary(self.snapshot, now)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add_course(self, form: t.Mapping[str, t.Any]) -> bool:
        record = validate_course(form)
        return await self._mutate(
            self.store.insert_item(self.session, COURSES, record),
            success="Course added successfully",
            failure="Failed to add course",
        )

    async def update_course(self, course_id: str, form: t.Mapping[str, t.Any]) -> bool:
        """Edit a course. Fields left out of ``form`` (or None) keep their current value."""
        current = self.course(course_id)
        merged = {} if current is None else {
            "code": current.code,
            "name": current.name,
            "instructor": current.instructor,
            "schedule": current.schedule,
            "credits": current.credits,
            "color": current.color,
        }
        merged.update((key, value) for key, value in form.items() if value is not None)
        record = validate_course(merged)
        return await self._mutate(
            self.store.update_item(self.session, COURSES, course_id, record),
            success="Course updated successfully",
            failure="Failed to update course",
        )

    async def delete_course(self, course_id: str) -> bool:
        return await self._mutate(
            self.store.delete_item(self.session, COURSES, course_id),
            success="Course deleted successfully",
            failure="Failed to delete course",
        )

    async def add_assignment(self, form: t.Mapping[str, t.Any]) -> bool:
        record = validate_assignment(form)
        if not await self._check_course(record["course_id"], "Failed to add assignment"):
            return False
        return await self._mutate(
            self.store.insert_item(self.session, ASSIGNMENTS, record),
            success="Assignment added successfully",
            failure="Failed to add assignment",
        )

    async def set_assignment_completed(self, assignment_id: str, completed: bool = True) -> bool:
        return await self._mutate(
            self.store.update_item(self.session, ASSIGNMENTS, assignment_id, {"completed": completed}),
            success="Assignment marked as completed" if completed else "Assignment reopened",
            failure="Failed to update assignment",
        )

    async def delete_assignment(self, assignment_id: str) -> bool:
        return await self._mutate(
            self.store.delete_item(self.session, ASSIGNMENTS, assignment_id),
            success="Assignment deleted successfully",
            failure="Failed to delete assignment",
        )

    async def add_study_session(self, form: t.Mapping[str, t.Any]) -> bool:
        record = validate_study_session(form)
        if not await self._check_course(record["course_id"], "Failed to create study session"):
            return False
        return await self._mutate(
            self.store.insert_item(self.session, STUDY_SESSIONS, record),
            success="Study session created successfully",
            failure="Failed to create study session",
        )

    async def delete_study_session(self, session_id: str) -> bool:
        return await self._mutate(
            self.store.delete_item(self.session, STUDY_SESSIONS, session_id),
            success="Study session deleted successfully",
            failure="Failed to delete study session",
        )

    async def add_class_meeting(self, form: t.Mapping[str, t.Any]) -> bool:
        record = validate_class_meeting(form)
        if not await self._check_course(record["course_id"], "Failed to add class"):
            return False
        return await self._mutate(
            self.store.insert_item(self.session, CLASS_MEETINGS, record),
            success="Class added successfully",
            failure="Failed to add class",
        )

    async def delete_class_meeting(self, meeting_id: str) -> bool:
        return await self._mutate(
            self.store.delete_item(self.session, CLASS_MEETINGS, meeting_id),
            success="Class deleted successfully",
            failure="Failed to delete class",
        )

    async def _check_course(self, course_id: str, failure: str) -> bool:
        """Make sure ``course_id`` names one of the user's courses.

        Unknown courses are a ``ValidationError``. If the course list could not
        be loaded at all, the check cannot be made: an error notice is recorded
        and False returned instead.
        """
        if not self.loaded:
            await self.refresh()
        if not self.loaded:
            self._notify("error", f"{failure}: course list is unavailable")
            return False
        if self.course(course_id) is None:
            raise ValidationError("course_id", f"Unknown course '{course_id}'")
        return True

    async def _mutate(self, operation: t.Awaitable[t.Any], success: str, failure: str) -> bool:
        """Run a store mutation, then refresh before returning.

        Store failures (including a vanished target) become error notices and
        leave the snapshot untouched.
        """
        try:
            await operation
        except StoreError as e:
            self._notify("error", f"{failure}: {e}")
            return False
        self._notify("success", success)
        await self.refresh()
        return True
