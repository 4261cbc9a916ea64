"""Extract typed periods from a raw WebUntis weekly timetable payload.

Payload layout (public weekly timetable API, formatId=1):

  data.result.data
    elements[]                 -> flat catalog: {type, id, name, longName, ...}
                                  type 2=teacher, 3=subject, 4=room
    elementPeriods{personId}[] -> periods of the requesting person:
      elements[]               -> assignments {type, id, orgId, missing, state, ...}
      cellState                -> STANDARD | SUBSTITUTION | CANCEL
      lessonText, periodText, periodInfo, substText
      date (YYYYMMDD), startTime / endTime (HMM or HHMM)

Assignments reference the catalog twice: ``id`` is the current resource and
``orgId`` the originally scheduled one. Both are resolved here and embedded,
freezing a point-in-time view of the timetable.
"""

import datetime
from typing import Any

from src.untis.catalog import Catalog
from src.untis.errors import MalformedValueError, MissingFieldError, UnknownAssignmentKindError
from src.untis.fields import (
    as_uint,
    join_path,
    optional_str,
    require,
    require_bool,
    require_enum,
    require_list,
    require_object,
    require_str,
    require_uint,
)
from src.untis.logging import get_logger
from src.untis.models import (
    ElementState,
    ElementType,
    Period,
    PeriodState,
    RoomAssignment,
    SubjectAssignment,
    TeacherAssignment,
)

log = get_logger(__name__)


def decode_time(value: Any, path: str = "time") -> datetime.time:
    """Decode an HMM/HHMM integer (900 -> 09:00, 1430 -> 14:30).

    Raises:
        TypeMismatchError: value is not an unsigned integer.
        MalformedValueError: wrong number of digits or out-of-range clock value.
    """
    digits = str(as_uint(value, path))
    if len(digits) == 4:
        hours, minutes = digits[:2], digits[2:]
    elif len(digits) == 3:
        hours, minutes = digits[:1], digits[1:]
    else:
        raise MalformedValueError(f"invalid length for time ({digits}) at '{path}'", path=path)
    try:
        return datetime.time(int(hours), int(minutes))
    except ValueError:
        raise MalformedValueError(f"invalid time {hours}:{minutes} at '{path}'", path=path) from None


def decode_date(value: Any, path: str = "date") -> datetime.date:
    """Decode a YYYYMMDD integer into a calendar date."""
    digits = str(as_uint(value, path))
    if len(digits) != 8:
        raise MalformedValueError(f"invalid date ({digits}) at '{path}'", path=path)
    try:
        return datetime.datetime.strptime(digits, "%Y%m%d").date()
    except ValueError:
        raise MalformedValueError(f"invalid date ({digits}) at '{path}'", path=path) from None


def extract(raw: Any, person_id: int) -> list[Period]:
    """Parse a raw timetable document into the requesting person's periods.

    Args:
        raw: Decoded JSON document returned by the weekly timetable API.
        person_id: WebUntis person id used to pick the ``elementPeriods`` entry.

    Returns:
        Periods in source order.

    Raises:
        TimetableParseError: Any missing field, wrong type, unknown enum value,
            unresolved reference or malformed date/time. No partial result.
    """
    data = require_object(raw, "data")
    result = require_object(data, "result", "data")
    data = require_object(result, "data", "data.result")
    path = "data.result.data"

    catalog = Catalog.from_elements(
        require_list(data, "elements", path), join_path(path, "elements")
    )

    element_periods = require_object(data, "elementPeriods", path)
    path = join_path(path, "elementPeriods")
    key = str(person_id)
    if key not in element_periods:
        raise MissingFieldError(
            f"no timetable found for person {person_id}", path=join_path(path, key)
        )
    raw_periods = require_list(element_periods, key, path)
    periods_path = join_path(path, key)

    periods = [
        _parse_period(raw_period, catalog, join_path(periods_path, index))
        for index, raw_period in enumerate(raw_periods)
    ]
    log.info("timetable_parsed", person_id=person_id, periods=len(periods))
    return periods


def _parse_period(raw: Any, catalog: Catalog, path: str) -> Period:
    room: RoomAssignment | None = None
    teacher: TeacherAssignment | None = None
    subject: SubjectAssignment | None = None

    elements_path = join_path(path, "elements")
    for index, element in enumerate(require_list(raw, "elements", path)):
        element_path = join_path(elements_path, index)
        element_type = require_uint(element, "type", element_path)
        common = _assignment_fields(element, element_path)
        if element_type == ElementType.TEACHER:
            teacher = _teacher_assignment(element, common, catalog, element_path)
        elif element_type == ElementType.SUBJECT:
            subject = _subject_assignment(element, common, catalog, element_path)
        elif element_type == ElementType.ROOM:
            room = _room_assignment(element, common, catalog, element_path)
        else:
            raise UnknownAssignmentKindError(
                f"unknown element type {element_type} at '{element_path}'",
                path=join_path(element_path, "type"),
            )

    return Period(
        state=require_enum(raw, "cellState", PeriodState, path),
        lesson_text=require_str(raw, "lessonText", path),
        text=require_str(raw, "periodText", path),
        info=require_str(raw, "periodInfo", path),
        substitution_text=require_str(raw, "substText", path),
        date=decode_date(require(raw, "date", path), join_path(path, "date")),
        start_time=decode_time(require(raw, "startTime", path), join_path(path, "startTime")),
        end_time=decode_time(require(raw, "endTime", path), join_path(path, "endTime")),
        room=room,
        teacher=teacher,
        subject=subject,
    )


def _assignment_fields(element: Any, path: str) -> dict[str, Any]:
    """Fields shared by every assignment kind: current id, original id and state."""
    return {
        "id": require_uint(element, "id", path),
        "original_id": require_uint(element, "orgId", path),
        "state": require_enum(element, "state", ElementState, path),
    }


def _teacher_assignment(
    element: Any, common: dict[str, Any], catalog: Catalog, path: str
) -> TeacherAssignment:
    info = catalog.teacher(common["id"], join_path(path, "id"))
    return TeacherAssignment(
        **common,
        missing=require_bool(element, "missing", path),
        original=catalog.teachers.get(common["original_id"]),
        name=info.name,
        can_view_timetable=info.can_view_timetable,
        extern_key=info.extern_key,
        room_capacity=info.room_capacity,
    )


def _subject_assignment(
    element: Any, common: dict[str, Any], catalog: Catalog, path: str
) -> SubjectAssignment:
    info = catalog.subject(common["id"], join_path(path, "id"))
    back_color = optional_str(element, "backColor", path)
    return SubjectAssignment(
        **common,
        missing=require_bool(element, "missing", path),
        original=catalog.subjects.get(common["original_id"]),
        name=info.name,
        long_name=info.long_name,
        displayname=info.displayname,
        alternatename=info.alternatename,
        back_color=info.back_color if back_color is None else back_color,
        fore_color=optional_str(element, "foreColor", path),
        can_view_timetable=info.can_view_timetable,
        room_capacity=info.room_capacity,
    )


def _room_assignment(
    element: Any, common: dict[str, Any], catalog: Catalog, path: str
) -> RoomAssignment:
    info = catalog.room(common["id"], join_path(path, "id"))
    return RoomAssignment(
        **common,
        missing=require_bool(element, "missing", path),
        original=catalog.rooms.get(common["original_id"]),
        name=info.name,
        long_name=info.long_name,
        displayname=info.displayname,
        alternatename=info.alternatename,
        can_view_timetable=info.can_view_timetable,
        room_capacity=info.room_capacity,
    )
