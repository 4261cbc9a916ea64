"""Render timetable deviations as German sentences for voice output."""

import datetime
from collections.abc import Iterable

from src.untis.logging import get_logger
from src.untis.models import (
    ElementState,
    Period,
    PeriodState,
    RoomAssignment,
    TeacherAssignment,
)

log = get_logger(__name__)

TIME_FORMAT = "%H:%M"


def _clock(value: datetime.time) -> str:
    return value.strftime(TIME_FORMAT)


def _teacher_clause(teacher: TeacherAssignment | None) -> str:
    if teacher is None or teacher.original is None:
        return ""
    if teacher.state is ElementState.ABSENT:
        return f"Unterricht ohne Lehrer (von '{teacher.original.name}'); "
    if teacher.state is ElementState.SUBSTITUTED:
        return f"Lehrerwechsel von '{teacher.original.name}' zu '{teacher.name}'; "
    return ""


def _room_clause(room: RoomAssignment | None) -> str:
    if room is None or room.original is None:
        return ""
    if room.state is ElementState.ABSENT:
        return f"Unterricht ohne Raum (von '{room.original.long_name}'); "
    if room.state is ElementState.SUBSTITUTED:
        return f"Raumwechsel von '{room.original.long_name}' zu '{room.long_name}'; "
    return ""


def speakable_text(period: Period) -> str:
    """Describe one period's change state in a single sentence.

    A period without a subject renders as an empty string: a change cannot be
    announced without saying which lesson it affects.
    """
    if period.subject is None:
        return ""

    subject = period.subject.long_name
    start, end = _clock(period.start_time), _clock(period.end_time)

    if period.state is PeriodState.CANCEL:
        return f"{subject} fällt zwischen {start} und {end} Uhr aus!"
    if period.state is PeriodState.STANDARD:
        return f"Im Fach {subject} zwischen {start} und {end} Uhr gibt es keine Änderungen!"

    return (
        f"Änderung bei {subject} zwischen {start} und {end} Uhr: "
        + _teacher_clause(period.teacher)
        + _room_clause(period.room)
        + period.substitution_text
    )


def deviations(periods: Iterable[Period], today: datetime.date) -> list[Period]:
    """Non-standard periods on ``today``, ordered by (date, start time).

    Args:
        periods: Parsed periods in any order.
        today: Reference date; periods on other days are dropped.
    """
    # sorted() is stable: equal (date, start) keep their input order
    ordered = sorted(periods, key=lambda p: datetime.datetime.combine(p.date, p.start_time))
    return [
        period
        for period in ordered
        if period.state is not PeriodState.STANDARD and period.date == today
    ]


def render_lines(periods: Iterable[Period], today: datetime.date) -> list[str]:
    """One sentence per deviating period on ``today``, earliest first."""
    lines = [speakable_text(period) for period in deviations(periods, today)]
    log.debug("deviations_rendered", date=today.isoformat(), lines=len(lines))
    return lines


def render(periods: Iterable[Period], today: datetime.date) -> str:
    """Render today's deviations as newline-separated sentences ("" if none)."""
    return "\n".join(render_lines(periods, today))
