import pytest
import requests
from structlog.testing import capture_logs

from src.untis.errors import PermanentError, UnresolvedReferenceError, UntisError
from src.untis.service import fetch_speakable, speakable_from_payload
from tests.factories import (
    LOGIN_RESULT,
    PERSON_ID,
    FakeHTTP,
    FakeResponse,
    assignment,
    period_record,
    rpc_reply,
    school_elements,
    timetable_payload,
)


def _webuntis(timetable_response):
    """Fake WebUntis: JSON-RPC on POST, the given response on GET."""

    def handler(method, url, kwargs):
        if method == "GET":
            return timetable_response
        if kwargs["json"]["method"] == "authenticate":
            return rpc_reply(kwargs, LOGIN_RESULT)
        return rpc_reply(kwargs, None)

    return FakeHTTP(handler)


def _rpc_methods(http):
    return [kwargs["json"]["method"] for method, _, kwargs in http.calls if method == "POST"]


def test_speakable_from_payload(today):
    payload = timetable_payload(
        school_elements(),
        [period_record([assignment(3, 10)], cell_state="CANCEL")],
    )

    assert speakable_from_payload(payload, PERSON_ID, today) == (
        "Mathematik fällt zwischen 08:00 und 08:50 Uhr aus!"
    )


def test_fetch_speakable_runs_login_fetch_logout(config, today):
    payload = timetable_payload(
        school_elements(),
        [period_record([assignment(3, 11)], cell_state="CANCEL", start=1000, end=1050)],
    )
    http = _webuntis(FakeResponse(payload=payload))

    text = fetch_speakable("max", "geheim", config=config, today=today, session=http)

    assert text == "Physik fällt zwischen 10:00 und 10:50 Uhr aus!"
    assert _rpc_methods(http) == ["authenticate", "logout"]
    assert http.calls[1][2]["params"]["date"] == "2024-03-18"
    assert http.closed


def test_logout_happens_even_when_fetch_fails(config, today):
    http = _webuntis(FakeResponse(status_code=404))

    with pytest.raises(PermanentError):
        fetch_speakable("max", "geheim", config=config, today=today, session=http)

    assert _rpc_methods(http) == ["authenticate", "logout"]
    assert http.closed


def test_failed_logout_does_not_mask_fetch_error(config, today, no_retry_wait):
    def handler(method, url, kwargs):
        if method == "GET":
            return FakeResponse(status_code=404)
        if kwargs["json"]["method"] == "authenticate":
            return rpc_reply(kwargs, LOGIN_RESULT)
        return FakeResponse(status_code=503)

    http = FakeHTTP(handler)

    with capture_logs() as logs:
        with pytest.raises(PermanentError, match="returned 404"):
            fetch_speakable("max", "geheim", config=config, today=today, session=http)

    assert _rpc_methods(http) == ["authenticate", "logout", "logout", "logout"]
    assert any(entry["event"] == "logout_failed" for entry in logs)
    assert http.closed


def test_request_exceptions_surface_as_untis_errors(config, today):
    def handler(method, url, kwargs):
        if method == "GET":
            raise requests.TooManyRedirects("Exceeded 30 redirects.")
        if kwargs["json"]["method"] == "authenticate":
            return rpc_reply(kwargs, LOGIN_RESULT)
        return rpc_reply(kwargs, None)

    http = FakeHTTP(handler)

    with pytest.raises(UntisError):
        fetch_speakable("max", "geheim", config=config, today=today, session=http)

    assert _rpc_methods(http) == ["authenticate", "logout"]


def test_parse_errors_surface_after_logout(config, today):
    payload = timetable_payload(school_elements(), [period_record([assignment(4, 404)])])
    http = _webuntis(FakeResponse(payload=payload))

    with pytest.raises(UnresolvedReferenceError):
        fetch_speakable("max", "geheim", config=config, today=today, session=http)

    assert _rpc_methods(http) == ["authenticate", "logout"]


def test_no_changes_today_gives_empty_text(config, today):
    payload = timetable_payload(school_elements(), [period_record([assignment(3, 10)])])
    http = _webuntis(FakeResponse(payload=payload))

    assert fetch_speakable("max", "geheim", config=config, today=today, session=http) == ""
