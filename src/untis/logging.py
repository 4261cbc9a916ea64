"""structlog setup for the library, the CLI and the HTTP endpoint.

Logs always go to stderr: the CLI prints the rendered timetable on stdout and
a voice assistant reads that verbatim. Use get_logger() instead of print()
for anything that is not the program's actual output.
"""

import logging
import sys
from typing import Any

import structlog

# Event keys whose values must never reach a log line
SECRET_KEYS = frozenset({"password", "session_id"})
REDACTED = "***"


def redact_secrets(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Mask credential values in the event dict before it is rendered."""
    for key in SECRET_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def _renderer(json_output: bool) -> Any:
    if json_output:
        # German subject names stay readable in JSON lines
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def setup_logging(json_output: bool = False, log_level: str = "INFO") -> None:
    """Configure structlog and route stdlib logging to stderr.

    Args:
        json_output: JSON lines (deployments) instead of console output.
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL; unknown names fall
            back to INFO.
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            redact_secrets,
            _renderer(json_output),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # urllib3 and http.server use stdlib logging
    root = logging.getLogger()
    root.handlers = [logging.StreamHandler(sys.stderr)]
    root.setLevel(numeric_level)


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)
