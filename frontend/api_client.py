"""
HTTP client for the event platform API.

Wraps a requests.Session: knows the API base URL, attaches the bearer
token to authenticated calls, and turns error responses into ApiError.
"""

import os
import threading
import logging
from typing import Any, Callable, Dict, Optional

import requests
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

API_URL = os.getenv("EVENT_API_URL", "http://localhost:5000/api")
REQUEST_TIMEOUT = float(os.getenv("EVENT_API_TIMEOUT", 10))


class ApiError(Exception):
    """
    A failed API call.

    Attributes:
        message (str): The server-provided message, or a transport error description.
        status_code (int | None): HTTP status, or None if no response arrived.
        server_message (str | None): The body's ``message`` field, or None if the
            response carried none.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, server_message: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.server_message = server_message


class ApiClient:
    """
    Client for every API endpoint.

    Without an explicit ``session`` each thread gets its own
    requests.Session, so views may issue calls from worker threads. A
    session passed in is shared by all threads as-is.
    """

    def __init__(
        self,
        base_url: str = API_URL,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        session: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self.timeout = timeout
        self._shared_session = session
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._local.session = requests.Session()
        return session

    def _headers(self, auth: bool, token: Optional[str]) -> Dict[str, str]:
        if token is None and auth and self.token_provider:
            token = self.token_provider()
        # No token, no header: the server decides what an anonymous call may do.
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    @staticmethod
    def _server_message(response: requests.Response) -> Optional[str]:
        """The body's ``message`` field, or None if the body has none."""
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict) and body.get("message"):
            return body["message"]
        return None

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        auth: bool = False,
        token: Optional[str] = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        Args:
            method (str): HTTP method.
            path (str): Path below the API base URL, e.g. "/events".
            params (dict, optional): Query parameters.
            json (any, optional): JSON body.
            auth (bool): Attach the current token from token_provider.
            token (str, optional): Explicit token, overrides token_provider.

        Raises:
            ApiError: On a non-2xx response, a body that is not JSON, or a
                transport failure.
        """
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(auth, token),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise ApiError(f"Network error: {e}") from e

        if not response.ok:
            server_message = self._server_message(response)
            message = server_message or response.reason or f"HTTP {response.status_code}"
            raise ApiError(message, response.status_code, server_message)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"{method} {url} returned a non-JSON body: {e}")
            raise ApiError("Invalid response from server", response.status_code) from e

    # --- EVENTS ---
    def list_events(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        category: Optional[str] = None,
        location: Optional[str] = None,
        created_by: Optional[int] = None,
        saved: bool = False,
    ) -> Dict[str, Any]:
        """Fetch one page: {events, page, limit, total, totalPages}."""
        params = {
            "page": page,
            "limit": limit,
            "category": category,
            "location": location,
            "createdBy": created_by,
        }
        params = {k: v for k, v in params.items() if v not in (None, "")}
        if saved:
            params["saved"] = "true"
        return self.request("GET", "/events", params=params, auth=saved)

    def get_event(self, event_id: int) -> Dict[str, Any]:
        return self.request("GET", f"/events/{event_id}")

    def create_event(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("POST", "/events", json=data, auth=True)

    def update_event(self, event_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("PUT", f"/events/{event_id}", json=data, auth=True)

    def delete_event(self, event_id: int) -> Dict[str, Any]:
        return self.request("DELETE", f"/events/{event_id}", auth=True)

    def toggle_save(self, event_id: int) -> Dict[str, Any]:
        """Returns {message, saved}."""
        return self.request("POST", f"/events/{event_id}/save", json={}, auth=True)

    # --- USERS ---
    def login(self, email: str, password: str) -> Dict[str, Any]:
        return self.request("POST", "/users/login", json={"email": email, "password": password})

    def register(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("POST", "/users/register", json=user_data)

    def get_profile(self, token: Optional[str] = None) -> Dict[str, Any]:
        return self.request("GET", "/users/profile", auth=True, token=token)
