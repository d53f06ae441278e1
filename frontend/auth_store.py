"""
Client auth store.

Holds the current user, token and loading/error flags, and mediates
login, registration, logout and the startup profile check. One instance
is created at app start (see frontend.context) and passed to the views.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from frontend.api_client import ApiClient, ApiError

logger = logging.getLogger(__name__)

Listener = Callable[[Dict[str, Any]], None]


class AuthStore:
    def __init__(self, api: ApiClient, storage):
        """
        Args:
            api (ApiClient): Client used for the users endpoints.
            storage: Durable token slot with get/set/remove.
        """
        self.api = api
        self.storage = storage

        token = storage.get()
        self.user: Optional[Dict[str, Any]] = None
        self.token: Optional[str] = token
        self.is_authenticated: bool = bool(token)
        self.loading: bool = False
        self.error: Optional[str] = None

        self._listeners: List[Listener] = []

    # --- STATE ---
    def snapshot(self) -> Dict[str, Any]:
        return {
            "user": self.user,
            "token": self.token,
            "is_authenticated": self.is_authenticated,
            "loading": self.loading,
            "error": self.error,
        }

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a callback invoked with a snapshot after every state change.

        Returns:
            callable: Unsubscribes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, **changes: Any) -> None:
        for key, value in changes.items():
            setattr(self, key, value)
        state = self.snapshot()
        for listener in list(self._listeners):
            listener(state)

    def set_user(self, user: Optional[Dict[str, Any]]) -> None:
        self._set(user=user)

    def set_token(self, token: str) -> None:
        self.storage.set(token)
        self._set(token=token)

    def set_error(self, error: Optional[str]) -> None:
        self._set(error=error)

    def set_loading(self, loading: bool) -> None:
        self._set(loading=loading)

    def clear_error(self) -> None:
        self._set(error=None)

    # --- ACTIONS ---
    def _authenticate(self, call: Callable[[], Dict[str, Any]], fallback: str) -> bool:
        self._set(loading=True, error=None)
        try:
            data = call()
        except ApiError as e:
            logger.warning(f"{fallback}: {e.message}")
            self._set(error=e.server_message or fallback, loading=False)
            return False

        token, user = data["token"], data["user"]
        self.storage.set(token)
        self._set(user=user, token=token, is_authenticated=True, loading=False)
        return True

    def login(self, email: str, password: str) -> bool:
        """Log in; on failure ``error`` holds the server message."""
        return self._authenticate(lambda: self.api.login(email, password), "Login failed")

    def register(self, user_data: Dict[str, Any]) -> bool:
        """Register and log in; on failure ``error`` holds the server message."""
        return self._authenticate(lambda: self.api.register(user_data), "Registration failed")

    def logout(self) -> None:
        self.storage.remove()
        self._set(user=None, token=None, is_authenticated=False)

    def check_auth(self) -> bool:
        """
        Validate the stored token against the profile endpoint.

        Returns False without any request when no token is stored. A
        rejected token is removed from storage.
        """
        token = self.storage.get()
        if not token:
            return False

        self._set(loading=True)
        try:
            user = self.api.get_profile(token=token)
            self._set(user=user, token=token, is_authenticated=True)
            return True
        except ApiError as e:
            logger.info(f"Stored token rejected: {e.message}")
            self.storage.remove()
            self._set(user=None, token=None, is_authenticated=False)
            return False
        finally:
            self._set(loading=False)
