#!/usr/bin/env python3
"""Speakable timetable endpoint.

Runs behind a reverse proxy. A voice assistant POSTs the student's WebUntis
credentials to /speakable and gets today's changes back as plain text.

  GET  /           -> "Hello, world!"
  POST /speakable  -> body {"username": "...", "password": "..."}
"""

import json
import os
import sys
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from dotenv import load_dotenv

load_dotenv()

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.untis.config import get_config  # noqa: E402
from src.untis.errors import AuthenticationError, TimetableParseError, UntisError  # noqa: E402
from src.untis.logging import get_logger, setup_logging  # noqa: E402
from src.untis.service import fetch_speakable  # noqa: E402

log = get_logger(__name__)


class SpeakableHandler(BaseHTTPRequestHandler):
    def do_GET(self):
        if self.path == "/":
            self._reply(HTTPStatus.OK, "Hello, world!")
            return
        self._reply(HTTPStatus.NOT_FOUND, "Not Found")

    def do_POST(self):
        try:
            content_length = int(self.headers.get("Content-Length", 0))
        except ValueError:
            content_length = -1
        if content_length < 0:
            self._reply(HTTPStatus.BAD_REQUEST, "Invalid Content-Length")
            return
        raw = self.rfile.read(content_length)
        if self.path != "/speakable":
            self._reply(HTTPStatus.NOT_FOUND, "Not Found")
            return

        try:
            body = json.loads(raw or b"null")
        except ValueError:
            body = None
        if (
            not isinstance(body, dict)
            or not isinstance(body.get("username"), str)
            or not isinstance(body.get("password"), str)
        ):
            self._reply(HTTPStatus.BAD_REQUEST, "Expected JSON {\"username\", \"password\"}")
            return

        log.info("speakable_requested", user=body["username"])
        try:
            text = fetch_speakable(body["username"], body["password"], config=get_config())
        except AuthenticationError as e:
            self._reply(HTTPStatus.UNAUTHORIZED, str(e))
            return
        except TimetableParseError as e:
            log.error("timetable_parse_failed", error=str(e), path=e.path)
            self._reply(HTTPStatus.BAD_GATEWAY, f"Could not parse timetable: {e}")
            return
        except UntisError as e:
            log.error("webuntis_unavailable", error=str(e), type=type(e).__name__)
            self._reply(HTTPStatus.SERVICE_UNAVAILABLE, f"WebUntis unavailable: {e}")
            return

        self._reply(HTTPStatus.OK, text)

    def log_message(self, format, *args):
        log.debug("http_request", client=self.client_address[0], message=format % args)

    def _reply(self, status: HTTPStatus, text: str) -> None:
        payload = text.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)


def build_server(host: str, port: int) -> ThreadingHTTPServer:
    return ThreadingHTTPServer((host, port), SpeakableHandler)


if __name__ == "__main__":
    config = get_config()
    setup_logging(json_output=config.log_json, log_level=config.log_level)
    if not config.untis_school:
        print("ERROR: UNTIS_SCHOOL environment variable required")
        sys.exit(1)
    server = build_server(config.server_host, config.server_port)
    log.info("speakable_listening", host=config.server_host, port=config.server_port)
    server.serve_forever()
