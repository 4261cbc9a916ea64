"""Pydantic models for WebUntis timetable data.

All data structures use Pydantic v2 for validation, serialization, and type safety.
Models are frozen: a parsed timetable is a point-in-time snapshot and is never
mutated after construction. Field aliases carry the camelCase wire names.
"""

import datetime
from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict, Field


class ElementType(IntEnum):
    """Numeric type tag on timetable elements."""

    CLASS = 1
    TEACHER = 2
    SUBJECT = 3
    ROOM = 4
    STUDENT = 5


class ElementState(str, Enum):
    """Per-assignment change state relative to the regular schedule."""

    REGULAR = "REGULAR"
    ABSENT = "ABSENT"
    SUBSTITUTED = "SUBSTITUTED"


class PeriodState(str, Enum):
    """Per-period change state (wire field ``cellState``)."""

    STANDARD = "STANDARD"
    SUBSTITUTION = "SUBSTITUTION"
    CANCEL = "CANCEL"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, strict=True, populate_by_name=True)


# --- Reference entities (catalog records) ---


class Room(_Frozen):
    """A room as described in the payload's flat element list."""

    id: int
    name: str  # short name, e.g. "R104"
    long_name: str = Field(alias="longName")
    displayname: str
    alternatename: str
    can_view_timetable: bool = Field(alias="canViewTimetable")
    room_capacity: int = Field(alias="roomCapacity")


class Teacher(_Frozen):
    """A teacher as described in the payload's flat element list."""

    id: int
    name: str
    can_view_timetable: bool = Field(alias="canViewTimetable")
    extern_key: str = Field(alias="externKey")
    room_capacity: int = Field(alias="roomCapacity")  # always present, never meaningful


class Subject(_Frozen):
    """A subject as described in the payload's flat element list."""

    id: int
    name: str
    long_name: str = Field(alias="longName")
    displayname: str
    alternatename: str
    back_color: str = Field(alias="backColor")
    can_view_timetable: bool = Field(alias="canViewTimetable")
    room_capacity: int = Field(alias="roomCapacity")
    fore_color: str | None = Field(default=None, alias="foreColor")


# --- Assignments (a period's binding to one resource) ---


class _Assignment(_Frozen):
    id: int
    original_id: int = Field(alias="orgId")
    missing: bool
    state: ElementState


class RoomAssignment(_Assignment):
    """Room of a period, with the originally scheduled room when it resolves."""

    original: Room | None = None
    name: str
    long_name: str = Field(alias="longName")
    displayname: str
    alternatename: str
    can_view_timetable: bool = Field(alias="canViewTimetable")
    room_capacity: int = Field(alias="roomCapacity")


class TeacherAssignment(_Assignment):
    """Teacher of a period, with the originally scheduled teacher when it resolves."""

    original: Teacher | None = None
    name: str
    can_view_timetable: bool = Field(alias="canViewTimetable")
    extern_key: str = Field(alias="externKey")
    room_capacity: int = Field(alias="roomCapacity")


class SubjectAssignment(_Assignment):
    """Subject of a period.

    back_color and fore_color come from the period element when it overrides
    them (cancelled or substituted lessons are drawn in a different colour).
    """

    original: Subject | None = None
    name: str
    long_name: str = Field(alias="longName")
    displayname: str
    alternatename: str
    back_color: str = Field(alias="backColor")
    fore_color: str | None = Field(default=None, alias="foreColor")
    can_view_timetable: bool = Field(alias="canViewTimetable")
    room_capacity: int = Field(alias="roomCapacity")


class Period(_Frozen):
    """One timetable slot: a lesson or an explicit change announcement."""

    lesson_text: str = Field(alias="lessonText")
    text: str = Field(alias="periodText")
    info: str = Field(alias="periodInfo")
    substitution_text: str = Field(alias="substText")
    date: datetime.date
    start_time: datetime.time = Field(alias="startTime")
    end_time: datetime.time = Field(alias="endTime")
    state: PeriodState
    room: RoomAssignment | None = None
    teacher: TeacherAssignment | None = None
    subject: SubjectAssignment | None = None


class UserInfo(BaseModel):
    """Result of a successful JSON-RPC ``authenticate`` call."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    session_id: str = Field(alias="sessionId")
    person_type: int = Field(alias="personType")
    person_id: int = Field(alias="personId")
    klasse_id: int = Field(alias="klasseId")
