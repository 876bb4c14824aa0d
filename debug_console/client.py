"""HTTP client for the admin debug endpoints (log batches, debug users)."""

import logging
from datetime import datetime, timezone

import httpx

from debug_console.models import BatchResponse, DebugUser, parse_timestamp, parse_user

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Raised when a request fails or the server answers with an error."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AdminApiClient:
    """Thin wrapper around httpx.Client with bearer-token auth.

    Every transport error and non-2xx answer surfaces as ApiError, with the
    server's ``error`` field as message when it sends one.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._http = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout, connect=5.0),
            transport=transport,
            follow_redirects=True,
        )

    def close(self):
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise ApiError(f"{method} {path} failed: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.is_error:
            message = payload.get("error") if isinstance(payload, dict) else None
            raise ApiError(message or "Something went wrong", response.status_code)

        return payload if isinstance(payload, dict) else {}

    def fetch_logs(self, subject_id: str, since_id: int = 0) -> BatchResponse:
        """Fetch a subject's log batch; since_id=0 means full history."""
        payload = self._request(
            "GET", f"/debug/users/{subject_id}/logs", params={"since_id": since_id},
        )
        logs = payload.get("logs") or []
        if not isinstance(logs, list):
            raise ApiError(f"Invalid logs in log batch: expected a list, got {type(logs).__name__}")
        try:
            max_id = int(payload.get("max_id") or 0)
        except (TypeError, ValueError, OverflowError) as e:
            raise ApiError(f"Invalid max_id in log batch: {payload.get('max_id')!r}") from e
        logger.debug(
            "Fetched %d log(s) for %s since %s (max_id=%s)",
            len(logs), subject_id, since_id, max_id,
        )
        return BatchResponse(logs=list(logs), max_id=max_id)

    def list_debug_users(self) -> list[DebugUser]:
        """Debug-enabled users first, then most recently active."""
        payload = self._request("GET", "/debug/users")
        users = [parse_user(u) for u in payload.get("users") or []]
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        users.sort(key=lambda u: parse_timestamp(u.last_active) or epoch, reverse=True)
        users.sort(key=lambda u: u.debug_enabled, reverse=True)
        return users

    def toggle_debug(self, user_id: str) -> bool:
        """Flip a user's debug flag and return the server-confirmed value."""
        payload = self._request("POST", f"/debug/users/{user_id}/toggle")
        enabled = bool(payload.get("debug_enabled"))
        logger.info("Debug mode for %s is now %s", user_id, "on" if enabled else "off")
        return enabled

    def clear_logs(self, user_id: str):
        """Delete every uploaded log of a user."""
        self._request("DELETE", f"/debug/users/{user_id}/logs")
        logger.info("Cleared debug logs for %s", user_id)
