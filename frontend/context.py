"""
Application context for the client: the API client and the auth store,
wired together once and handed to every view.
"""

from dataclasses import dataclass

from frontend.api_client import API_URL, ApiClient
from frontend.auth_store import AuthStore
from frontend.token_storage import FileTokenStorage


@dataclass
class AppContext:
    api: ApiClient
    auth: AuthStore


def create_app_context(base_url: str = API_URL, storage=None, check_auth: bool = True, session=None) -> AppContext:
    """
    Build the client context.

    Args:
        base_url (str): API base URL.
        storage: Token slot; defaults to FileTokenStorage().
        check_auth (bool): Validate a stored token right away.
        session: Optional requests.Session to reuse.

    Returns:
        AppContext: The API client and its auth store.
    """
    api = ApiClient(base_url, session=session)
    auth = AuthStore(api, storage or FileTokenStorage())
    # Authenticated calls always read the store's current token.
    api.token_provider = lambda: auth.token

    if check_auth:
        auth.check_auth()

    return AppContext(api=api, auth=auth)
