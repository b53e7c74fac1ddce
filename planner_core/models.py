"""
Data models for courses, assignments, study sessions and timetable slots.

Assignments and study sessions both satisfy the ``DatedItem`` protocol, so the
bucket classifier, the filter pipeline and the nearest-pending selector work
against one shape. Kind-specific data is reached through that shape only:
``end`` is None for point-in-time items, ``priority`` is None where the kind
has no priority, and ``completed`` is always False for study sessions.
"""
from __future__ import annotations

import typing as t
from dataclasses import dataclass, field
from datetime import datetime

Priority = t.Literal["low", "medium", "high"]
PRIORITIES: tuple[str, ...] = ("low", "medium", "high")
ItemKind = t.Literal["assignment", "study_session"]

# Store collection names
COURSES = "courses"
ASSIGNMENTS = "assignments"
STUDY_SESSIONS = "study_sessions"
CLASS_MEETINGS = "class_meetings"
COLLECTIONS: tuple[str, ...] = (COURSES, ASSIGNMENTS, STUDY_SESSIONS, CLASS_MEETINGS)


@dataclass(frozen=True)
class CourseInfo:
    """Display data of the course an item belongs to."""
    id: str
    code: str
    name: str
    color: str = ""


@dataclass
class Course:
    """A course as stored in the ``courses`` collection."""
    id: str
    code: str
    name: str
    instructor: str = ""
    schedule: str = ""
    credits: int = 3
    color: str = "bg-blue-500"

    def info(self) -> CourseInfo:
        return CourseInfo(id=self.id, code=self.code, name=self.name, color=self.color)


class DatedItem(t.Protocol):
    """Shared shape of every dated record."""

    id: str
    title: str
    course_id: str
    course: t.Optional[CourseInfo]
    description: str

    @property
    def kind(self) -> ItemKind: ...

    @property
    def start(self) -> datetime: ...

    @property
    def end(self) -> t.Optional[datetime]: ...

    @property
    def completed(self) -> bool: ...

    @property
    def priority(self) -> t.Optional[Priority]: ...


@dataclass
class Assignment:
    """A point-in-time item with a due date, completion flag and priority."""
    id: str
    title: str
    course_id: str
    due_date: datetime
    completed: bool = False
    priority: Priority = "medium"
    description: str = ""
    course: t.Optional[CourseInfo] = None

    @property
    def kind(self) -> ItemKind:
        return "assignment"

    @property
    def start(self) -> datetime:
        return self.due_date

    @property
    def end(self) -> t.Optional[datetime]:
        return None


@dataclass
class StudySession:
    """A ranged item: a planned block of study time for one course."""
    id: str
    title: str
    course_id: str
    start_time: datetime
    end_time: datetime
    description: str = ""
    location: str = ""
    course: t.Optional[CourseInfo] = None

    def __post_init__(self) -> None:
        if self.end_time <= self.start_time:
            raise ValueError(
                f"Study session '{self.title}' must end after it starts "
                f"({self.start_time.isoformat()} -> {self.end_time.isoformat()})"
            )

    @property
    def kind(self) -> ItemKind:
        return "study_session"

    @property
    def start(self) -> datetime:
        return self.start_time

    @property
    def end(self) -> t.Optional[datetime]:
        return self.end_time

    @property
    def completed(self) -> bool:
        return False

    @property
    def priority(self) -> t.Optional[Priority]:
        return None


@dataclass
class ClassMeeting:
    """A weekly timetable slot. ``day`` is 0-6, Sunday first."""
    id: str
    course_id: str
    day: int
    start: str  # "HH:MM" 24h
    end: str    # "HH:MM" 24h
    location: str = ""
    instructor: str = ""
    course: t.Optional[CourseInfo] = None


@dataclass
class Snapshot:
    """One consistent read of everything the dashboard shows."""
    courses: list[Course] = field(default_factory=list)
    assignments: list[Assignment] = field(default_factory=list)
    study_sessions: list[StudySession] = field(default_factory=list)
    class_meetings: list[ClassMeeting] = field(default_factory=list)


# ----------------------------------------------------------------------------
# Record conversion
# ----------------------------------------------------------------------------

def parse_timestamp(value: t.Union[str, datetime]) -> datetime:
    """Parse an ISO 8601 timestamp into an aware datetime.

    A trailing ``Z`` is accepted. Naive values are interpreted as local time.
    """
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.astimezone()
    return dt


def _course_info(record: dict[str, t.Any], courses: t.Mapping[str, Course]) -> t.Optional[CourseInfo]:
    """Resolve the course of a record.

    An embedded ``course`` join wins; otherwise the id is looked up in the
    fetched courses. Dangling references resolve to None.
    """
    course_id = record.get("course_id") or ""
    embedded = record.get("course")
    if isinstance(embedded, dict) and embedded.get("code"):
        return CourseInfo(
            id=course_id,
            code=embedded.get("code", ""),
            name=embedded.get("name", ""),
            color=embedded.get("color", ""),
        )
    course = courses.get(course_id)
    return course.info() if course else None


def course_from_record(record: dict[str, t.Any]) -> Course:
    return Course(
        id=str(record["id"]),
        code=record.get("code", ""),
        name=record.get("name", ""),
        instructor=record.get("instructor") or "",
        schedule=record.get("schedule") or "",
        credits=int(record.get("credits") or 3),
        color=record.get("color") or "bg-blue-500",
    )


def assignment_from_record(
        record: dict[str, t.Any],
        courses: t.Optional[t.Mapping[str, Course]] = None
) -> Assignment:
    return Assignment(
        id=str(record["id"]),
        title=record.get("title", ""),
        course_id=record.get("course_id") or "",
        due_date=parse_timestamp(record["due_date"]),
        completed=bool(record.get("completed", False)),
        priority=record.get("priority") or "medium",
        description=record.get("description") or "",
        course=_course_info(record, courses or {}),
    )


def study_session_from_record(
        record: dict[str, t.Any],
        courses: t.Optional[t.Mapping[str, Course]] = None
) -> StudySession:
    return StudySession(
        id=str(record["id"]),
        title=record.get("title", ""),
        course_id=record.get("course_id") or "",
        start_time=parse_timestamp(record["start_time"]),
        end_time=parse_timestamp(record["end_time"]),
        description=record.get("description") or "",
        location=record.get("location") or "",
        course=_course_info(record, courses or {}),
    )


def class_meeting_from_record(
        record: dict[str, t.Any],
        courses: t.Optional[t.Mapping[str, Course]] = None
) -> ClassMeeting:
    return ClassMeeting(
        id=str(record["id"]),
        course_id=record.get("course_id") or "",
        day=int(record["day"]),
        start=record["start"],
        end=record["end"],
        location=record.get("location") or "",
        instructor=record.get("instructor") or "",
        course=_course_info(record, courses or {}),
    )
