"""Error hierarchy for WebUntis access and timetable parsing.

Transport failures are split into transient (should retry) and permanent
(should not retry) so tenacity retry decorators can classify them.
Timetable parse failures are always permanent: a partially parsed timetable
could announce wrong information, so parsing aborts on the first error.

Example usage with tenacity:
    @retry(retry=retry_if_exception_type(TransientError), stop=stop_after_attempt(3))
    def get_timetable(...):
        ...
"""


class UntisError(Exception):
    """Base exception for all WebUntis errors."""

    pass


class TransientError(UntisError):
    """Temporary failure that may succeed on retry.

    Examples: network timeouts, 503 Service Unavailable, dropped connections.
    """

    pass


class RateLimitError(TransientError):
    """Rate limit exceeded - needs longer backoff.

    Inherits from TransientError so tenacity will retry it.
    """

    pass


class PermanentError(UntisError):
    """Failure that won't succeed on retry.

    Examples: rejected request, malformed response, invalid timetable payload.
    """

    pass


class AuthenticationError(PermanentError):
    """Login rejected or session invalid - cannot be fixed by retry."""

    pass


class ProtocolError(PermanentError):
    """Response does not follow the JSON-RPC contract (bad body, id mismatch)."""

    pass


class TimetableParseError(PermanentError):
    """Timetable payload could not be decoded into periods.

    Attributes:
        path: Dotted JSON path of the offending field, e.g.
            "data.result.data.elements[3].id".
    """

    def __init__(self, message: str, path: str = "") -> None:
        super().__init__(message)
        self.path = path


class MissingFieldError(TimetableParseError):
    """An expected key is absent."""


class TypeMismatchError(TimetableParseError):
    """A field exists but holds the wrong JSON type."""


class UnknownEnumValueError(TimetableParseError):
    """A restricted string field holds a value outside its value set."""


class UnresolvedReferenceError(TimetableParseError):
    """An assignment's current id has no entry in the catalog."""


class MalformedValueError(TimetableParseError):
    """A date or time value cannot be decoded."""


class UnknownAssignmentKindError(TimetableParseError):
    """A period element carries a type tag other than teacher, subject or room."""
