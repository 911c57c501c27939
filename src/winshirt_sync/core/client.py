import logging
import threading
from collections.abc import Callable, Mapping
from typing import Any

import requests

from ..config import Config
from ..errors import RemoteRequestError

logger = logging.getLogger(__name__)

AuthListener = Callable[[str, dict | None], None]

# Filter operators understood by the REST gateway.
_OPERATORS = frozenset(
    {"eq", "neq", "gt", "gte", "lt", "lte", "like", "ilike", "in", "is"}
)


def _format_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_filters(predicate: Mapping[str, Any] | None) -> dict[str, str]:
    """Translate a predicate mapping into REST query parameters.

    Each entry is either ``column: value`` (equality; ``None`` becomes
    ``is.null``) or ``column: (operator, value)``.

    Examples:
        >>> encode_filters({"id": ("gt", 0), "status": "active"})
        {'id': 'gt.0', 'status': 'eq.active'}
    """
    params: dict[str, str] = {}
    for column, condition in (predicate or {}).items():
        if isinstance(condition, tuple):
            op, value = condition
            if op not in _OPERATORS:
                raise ValueError(f"Unsupported filter operator: {op}")
            if op == "in":
                joined = ",".join(_format_value(v) for v in value)
                params[column] = f"in.({joined})"
            else:
                params[column] = f"{op}.{_format_value(value)}"
        elif condition is None:
            params[column] = "is.null"
        else:
            params[column] = f"eq.{_format_value(condition)}"
    return params


def column_list(rows: list[dict]) -> str:
    """Return the union of the keys of *rows*, sorted and comma-joined.

    Bulk writes send it as ``columns`` so rows with differing optional
    fields are accepted in one request; absent keys are stored as null.
    """
    return ",".join(sorted({key for row in rows for key in row}))


class RestClient:
    """Blocking client for the hosted backend's REST and auth endpoints.

    Every method raises ``RemoteRequestError`` when the backend answers
    with an error status, and lets ``requests`` exceptions (connection
    failures, timeouts) propagate.  ``RemoteStoreAdapter`` turns both into
    ``RemoteError`` values.
    """

    def __init__(self, config: Config):
        self.config = config
        self.rest_url = f"{config.remote_url.rstrip('/')}/rest/v1"
        self.auth_url = f"{config.remote_url.rstrip('/')}/auth/v1"
        self._thread_local = threading.local()
        self._sessions: list[requests.Session] = []
        self._lock = threading.Lock()
        self._auth_session: dict | None = None
        self._auth_listeners: list[AuthListener] = []

    # ------------------------------------------------------------------
    # Session plumbing
    # ------------------------------------------------------------------

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            session = requests.Session()
            session.verify = not self.config.insecure
            session.headers.update({"apikey": self.config.api_key})
            with self._lock:
                self._sessions.append(session)
            self._thread_local.session = session
        return self._thread_local.session

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        token = (
            self._auth_session.get("access_token")
            if self._auth_session
            else None
        )
        headers = {"Authorization": f"Bearer {token or self.config.api_key}"}
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> requests.Response:
        response = self._get_session().request(
            method,
            url,
            params=params,
            json=json,
            headers=self._headers(prefer),
            timeout=self.config.request_timeout,
        )
        if not response.ok:
            raise self._error_from_response(response)
        return response

    @staticmethod
    def _error_from_response(response: requests.Response) -> RemoteRequestError:
        """Build a RemoteRequestError from a gateway or auth error body."""
        code = None
        message = response.reason or f"HTTP {response.status_code}"
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            code = body.get("code") or body.get("error_code") or body.get("error")
            message = (
                body.get("message")
                or body.get("msg")
                or body.get("error_description")
                or message
            )
            if code is not None:
                code = str(code)
        return RemoteRequestError(
            message, status=response.status_code, code=code
        )

    @staticmethod
    def _json(response: requests.Response) -> Any:
        if not response.content:
            return None
        return response.json()

    def close(self) -> None:
        """Close every session opened by any thread."""
        with self._lock:
            for session in self._sessions:
                session.close()
            self._sessions.clear()
        self._thread_local = threading.local()

    # ------------------------------------------------------------------
    # Table operations
    # ------------------------------------------------------------------

    def select(
        self,
        table: str,
        columns: str = "*",
        predicate: Mapping[str, Any] | None = None,
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict]:
        """Return rows of *table* matching *predicate*."""
        params = {"select": columns, **encode_filters(predicate)}
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)
        response = self._request(
            "GET", f"{self.rest_url}/{table}", params=params
        )
        return self._json(response) or []

    def insert(self, table: str, rows: list[dict]) -> list[dict]:
        """Insert *rows* and return the stored representation."""
        response = self._request(
            "POST",
            f"{self.rest_url}/{table}",
            params={"columns": column_list(rows)},
            json=rows,
            prefer="return=representation",
        )
        return self._json(response) or []

    def upsert(
        self, table: str, rows: list[dict], on_conflict: str = "id"
    ) -> list[dict]:
        """Insert or merge *rows* keyed on *on_conflict*."""
        response = self._request(
            "POST",
            f"{self.rest_url}/{table}",
            params={"on_conflict": on_conflict, "columns": column_list(rows)},
            json=rows,
            prefer="resolution=merge-duplicates,return=representation",
        )
        return self._json(response) or []

    def update(
        self,
        table: str,
        values: dict,
        predicate: Mapping[str, Any],
    ) -> list[dict]:
        """Apply *values* to rows matching *predicate*."""
        response = self._request(
            "PATCH",
            f"{self.rest_url}/{table}",
            params=encode_filters(predicate),
            json=values,
            prefer="return=representation",
        )
        return self._json(response) or []

    def delete(self, table: str, predicate: Mapping[str, Any]) -> None:
        """Delete rows matching *predicate*.

        The gateway refuses unfiltered deletes, so an empty predicate is a
        programming error.
        """
        if not predicate:
            raise ValueError("delete requires a non-empty predicate")
        self._request(
            "DELETE",
            f"{self.rest_url}/{table}",
            params=encode_filters(predicate),
        )

    def count(self, table: str) -> int:
        """Return the exact row count of *table* without fetching rows."""
        response = self._request(
            "HEAD",
            f"{self.rest_url}/{table}",
            params={"select": "*"},
            prefer="count=exact",
        )
        # Content-Range: 0-24/25 or */0
        content_range = response.headers.get("Content-Range", "")
        _, _, total = content_range.partition("/")
        if not total or total == "*":
            return 0
        return int(total)

    def rpc(self, function: str, payload: dict | None = None) -> Any:
        """Call a server-side function with a JSON payload."""
        response = self._request(
            "POST", f"{self.rest_url}/rpc/{function}", json=payload or {}
        )
        return self._json(response)

    # ------------------------------------------------------------------
    # Auth sub-API
    # ------------------------------------------------------------------

    def get_session(self) -> dict | None:
        """Return the current auth session, or None when signed out."""
        return self._auth_session

    def set_session(self, session: dict | None) -> None:
        """Restore a previously persisted session without notifying."""
        self._auth_session = session

    def sign_in_with_password(self, email: str, password: str) -> dict:
        response = self._request(
            "POST",
            f"{self.auth_url}/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        self._auth_session = self._json(response)
        self._emit_auth_event("SIGNED_IN")
        return self._auth_session

    def sign_up(self, email: str, password: str) -> dict:
        response = self._request(
            "POST",
            f"{self.auth_url}/signup",
            json={"email": email, "password": password},
        )
        data = self._json(response) or {}
        # Projects without email confirmation return a session right away.
        if data.get("access_token"):
            self._auth_session = data
            self._emit_auth_event("SIGNED_IN")
        return data

    def sign_out(self) -> None:
        if self._auth_session is None:
            return
        try:
            self._request("POST", f"{self.auth_url}/logout")
        finally:
            self._auth_session = None
            self._emit_auth_event("SIGNED_OUT")

    def on_auth_state_change(
        self, listener: AuthListener
    ) -> Callable[[], None]:
        """Register *listener(event, session)*; returns an unsubscribe callable."""
        self._auth_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._auth_listeners:
                self._auth_listeners.remove(listener)

        return unsubscribe

    def _emit_auth_event(self, event: str) -> None:
        for listener in list(self._auth_listeners):
            try:
                listener(event, self._auth_session)
            except Exception:
                logger.exception("Auth listener failed on %s", event)
