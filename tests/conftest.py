"""Shared fixtures: a fixed clock and item factories."""
from __future__ import annotations

import itertools
import typing as t
from datetime import datetime, timedelta, timezone

import pytest

from planner_core.models import Assignment, CourseInfo, StudySession

# Tuesday, May 6 2025, 10:00 UTC. The Sunday-first week runs May 4 - May 10.
NOW = datetime(2025, 5, 6, 10, 0, tzinfo=timezone.utc)

CS101 = CourseInfo(id="cs101", code="CS 101", name="Introduction to Computer Science", color="bg-course-blue")
MATH201 = CourseInfo(id="math201", code="MATH 201", name="Calculus II", color="bg-course-green")

_ids = itertools.count(1)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def cs101() -> CourseInfo:
    return CS101


@pytest.fixture
def math201() -> CourseInfo:
    return MATH201


@pytest.fixture
def make_assignment() -> t.Callable[..., Assignment]:
    """Factory for assignments; ``due`` defaults to one day after NOW."""

    def factory(
            title: str = "Problem Set",
            due: t.Optional[datetime] = None,
            course: t.Optional[CourseInfo] = MATH201,
            **kwargs: t.Any,
    ) -> Assignment:
        return Assignment(
            id=kwargs.pop("id", f"a{next(_ids)}"),
            title=title,
            course_id=course.id if course else "",
            due_date=due or NOW + timedelta(days=1),
            course=course,
            **kwargs,
        )

    return factory


@pytest.fixture
def make_session() -> t.Callable[..., StudySession]:
    """Factory for study sessions lasting ``minutes`` from ``start``."""

    def factory(
            title: str = "Review",
            start: t.Optional[datetime] = None,
            minutes: int = 90,
            course: t.Optional[CourseInfo] = CS101,
            **kwargs: t.Any,
    ) -> StudySession:
        start = start or NOW + timedelta(hours=2)
        return StudySession(
            id=kwargs.pop("id", f"s{next(_ids)}"),
            title=title,
            course_id=course.id if course else "",
            start_time=start,
            end_time=start + timedelta(minutes=minutes),
            course=course,
            **kwargs,
        )

    return factory
