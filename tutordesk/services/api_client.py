import logging
from typing import Any, Optional

import httpx
import streamlit as st

from tutordesk.config import HTTP_TIMEOUT_SECONDS, get_setting

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """Base error for backend request failures."""


class BackendAuthError(BackendError):
    """Raised when the backend rejects the session (401/403)."""


class BackendNotFoundError(BackendError):
    """Raised when the backend resource is not found."""


class BackendConnectionError(BackendError):
    """Raised when the backend cannot be reached or times out."""


class BackendRequestError(BackendError):
    """Raised for any other 4xx/5xx response."""

    def __init__(self, status_code: int, message: str = ""):
        self.status_code = status_code
        self.message = message
        super().__init__(f"backend_error_{status_code}: {message}" if message else f"backend_error_{status_code}")


class ApiClient:
    """JSON client for the dashboard backend."""

    def __init__(
        self,
        base_url: str,
        token: str = "",
        http: Optional[httpx.Client] = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.http = http or httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
        )

    def close(self) -> None:
        self.http.close()

    def call(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict[str, Any]] = None,
        expect_object: bool = False,
    ) -> Any:
        try:
            response = self.http.request(method, path, json=json)
        except httpx.TimeoutException as exc:
            logger.warning("backend timeout on %s %s", method, path)
            raise BackendConnectionError(f"backend_timeout: {method} {path}") from exc
        except httpx.HTTPError as exc:
            logger.warning("backend connection failed on %s %s: %s", method, path, exc)
            raise BackendConnectionError(f"backend_connection_failed: {exc}") from exc

        logger.debug("%s %s -> %s", method, path, response.status_code)

        if response.status_code in {401, 403}:
            raise BackendAuthError("backend_auth_failed")
        if response.status_code == 404:
            raise BackendNotFoundError(f"backend_not_found: {path}")
        if response.status_code >= 400:
            raise BackendRequestError(response.status_code, _error_message(response))

        if response.status_code == 204 or not response.content:
            body = None
        else:
            try:
                body = response.json()
            except ValueError as exc:
                raise BackendRequestError(response.status_code, "invalid JSON body") from exc

        # create/update must echo the stored record
        if expect_object and not isinstance(body, dict):
            raise BackendRequestError(response.status_code, "expected a JSON object")
        return body

    def get(self, path: str) -> Any:
        return self.call("GET", path)

    def post(self, path: str, json: dict[str, Any]) -> Any:
        return self.call("POST", path, json=json, expect_object=True)

    def patch(self, path: str, json: dict[str, Any]) -> Any:
        return self.call("PATCH", path, json=json, expect_object=True)

    def delete(self, path: str) -> None:
        self.call("DELETE", path)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return ""
    if isinstance(body, dict):
        return str(body.get("message", ""))
    return ""


# -----------------------------
# Shared client (safe to cache)
# -----------------------------
@st.cache_resource
def get_api_client() -> ApiClient:
    base_url = get_setting("API_BASE_URL", "http://localhost:5000/api")
    return ApiClient(base_url, token=get_setting("API_TOKEN"))
