"""Timetable-to-speech pipeline: login, fetch, logout, extract, render."""

from datetime import date
from typing import Any

import requests

from src.untis.config import UntisConfig
from src.untis.errors import UntisError
from src.untis.extractor import extract
from src.untis.logging import get_logger
from src.untis.renderer import render
from src.untis.session import UntisSession

logger = get_logger(__name__)


def speakable_from_payload(payload: Any, person_id: int, today: date) -> str:
    """Render today's deviations from an already fetched timetable payload."""
    periods = extract(payload, person_id)
    return render(periods, today)


def fetch_speakable(
    username: str,
    password: str,
    *,
    config: UntisConfig | None = None,
    today: date | None = None,
    session: requests.Session | None = None,
) -> str:
    """Fetch a student's timetable and describe today's changes.

    Logs out even when fetching the timetable fails; the fetch error is the
    one raised, a failed logout is only logged. Parsing happens after
    logout, so a malformed payload never leaves a session open.

    Args:
        username: WebUntis username.
        password: WebUntis password.
        config: WebUntis configuration; defaults to the environment config.
        today: Reference date (defaults to the local date).
        session: Optional requests session, mainly for tests.

    Returns:
        Newline-separated sentences, "" when nothing changes today.

    Raises:
        UntisError: Authentication, transport or parse failure.
    """
    today = today or date.today()
    with UntisSession(config, session=session) as untis:
        user = untis.authenticate(username, password)
        try:
            payload = untis.get_timetable(user.session_id, user.person_id, today)
        except UntisError:
            _logout_after_failure(untis, user.session_id)
            raise
        logger.info("logging_out")
        untis.logout(user.session_id)

    logger.info("parsing_timetable", person_id=user.person_id)
    return speakable_from_payload(payload, user.person_id, today)


def _logout_after_failure(untis: UntisSession, session_id: str) -> None:
    logger.info("logging_out", reason="fetch_failed")
    try:
        untis.logout(session_id)
    except UntisError as e:
        logger.warning("logout_failed", error=str(e), type=type(e).__name__)
