"""WebUntis HTTP session: JSON-RPC login/logout and weekly timetable fetch.

UntisSession wraps a requests.Session. Authentication goes through the
JSON-RPC endpoint (jsonrpc.do); the timetable itself comes from the public
weekly timetable API, authorised by the JSESSIONID cookie from login.
"""

import uuid
from datetime import date
from importlib.metadata import PackageNotFoundError, version
from typing import Any

import requests
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.untis.config import UntisConfig, get_config
from src.untis.errors import (
    AuthenticationError,
    PermanentError,
    ProtocolError,
    RateLimitError,
    TransientError,
)
from src.untis.logging import get_logger
from src.untis.models import ElementType, UserInfo

logger = get_logger(__name__)

CLIENT_NAME = "untis-speakable"

try:
    CLIENT_VERSION = version(CLIENT_NAME)
except PackageNotFoundError:
    CLIENT_VERSION = "0.0.0"

CLIENT_ID = f"{CLIENT_NAME}/{CLIENT_VERSION}"

_retry_transient = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type(TransientError),
    reraise=True,
)


class UntisSession:
    """One WebUntis conversation: authenticate, fetch, logout.

    Holds no state beyond the underlying HTTP connection pool; the session id
    returned by authenticate() is passed explicitly to later calls.
    """

    def __init__(
        self,
        config: UntisConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize UntisSession.

        Args:
            config: WebUntis configuration; defaults to the environment config.
            session: Pre-built requests session (tests inject a fake).
        """
        self.config = config or get_config()
        self.http = session or requests.Session()
        self.http.headers.update(
            {"Content-Type": "application/json", "User-Agent": CLIENT_ID}
        )

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> "UntisSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def authenticate(self, username: str, password: str) -> UserInfo:
        """Log in and return the session and person ids.

        Raises:
            AuthenticationError: WebUntis returned no result (bad credentials).
            ProtocolError: Response is not a matching JSON-RPC reply.
            TransientError: Network problem persisted through all retries.
        """
        logger.info("authentication_started", user=username, school=self.config.untis_school)
        result = self._rpc(
            "authenticate",
            {"user": username, "password": password, "client": CLIENT_ID},
        )
        if result is None:
            logger.error("authentication_failed", user=username, reason="empty_result")
            raise AuthenticationError(
                "Result is empty! Could not retrieve login information"
            )
        try:
            info = UserInfo.model_validate(result)
        except ValidationError as e:
            raise ProtocolError(f"Unexpected authenticate result: {e}") from e
        logger.info("authentication_succeeded", person_id=info.person_id)
        return info

    def logout(self, session_id: str) -> None:
        self._rpc("logout", None, session_id=session_id)
        logger.info("logout_succeeded")

    @_retry_transient
    def get_timetable(
        self, session_id: str, person_id: int, week_of: date | None = None
    ) -> dict[str, Any]:
        """Fetch the raw weekly timetable of a student.

        Args:
            session_id: JSESSIONID from authenticate().
            person_id: WebUntis person id of the student.
            week_of: Any date in the requested week (defaults to today).

        Returns:
            Decoded JSON document, unvalidated.
        """
        week_of = week_of or date.today()
        params = {
            "elementType": int(ElementType.STUDENT),
            "elementId": person_id,
            "date": week_of.isoformat(),
            "formatId": 1,
        }
        logger.info("timetable_requested", person_id=person_id, week_of=week_of.isoformat())
        response = self._send(
            "GET",
            self.config.timetable_url,
            params=params,
            headers={"Cookie": f"JSESSIONID={session_id}"},
        )
        data = self._json(response)
        if not isinstance(data, dict):
            raise ProtocolError("Timetable response is not a JSON object")
        return data

    @_retry_transient
    def _rpc(self, method: str, params: Any, session_id: str | None = None) -> Any:
        request_id = str(uuid.uuid4())
        body = {"id": request_id, "method": method, "params": params, "jsonrpc": "2.0"}
        headers = {"Cookie": f"JSESSIONID={session_id}"} if session_id else None

        response = self._send("POST", self.config.rpc_url, json=body, headers=headers)
        data = self._json(response)
        if not isinstance(data, dict):
            raise ProtocolError(f"JSON-RPC '{method}' response is not an object")
        if data.get("id") != request_id:
            raise ProtocolError(
                f"JSON-RPC '{method}' response id {data.get('id')!r} does not match {request_id!r}"
            )
        if "error" in data:
            logger.warning("rpc_error", method=method, error=data["error"])
        return data.get("result")

    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            response = self.http.request(
                method, url, timeout=self.config.request_timeout_seconds, **kwargs
            )
        except (requests.Timeout, requests.ConnectionError) as e:
            logger.warning("request_failed", url=url, error=str(e), type=type(e).__name__)
            raise TransientError(f"Request to {url} failed: {e}") from e
        except requests.RequestException as e:
            logger.error("request_error", url=url, error=str(e), type=type(e).__name__)
            raise PermanentError(f"Request to {url} failed: {e}") from e

        status = response.status_code
        if status == 429:
            raise RateLimitError(f"Rate limited by {url}")
        if status >= 500:
            logger.warning("server_error", url=url, status=status)
            raise TransientError(f"{url} returned {status}")
        if status >= 400:
            logger.error("request_rejected", url=url, status=status)
            raise PermanentError(f"{url} returned {status}")
        return response

    @staticmethod
    def _json(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ProtocolError(f"Response is not valid JSON: {e}") from e
