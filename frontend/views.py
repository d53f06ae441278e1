"""
View controllers for the event pages.

Each view holds the local state a page renders from (loading flag, error,
lists, forms) and issues API calls on ``load()`` or on user actions.
Actions that navigate return the target path; callers do the routing.

``close()`` marks a view as unmounted. Responses that arrive afterwards
are dropped instead of being written into retired state. ``error`` is
reset whenever a new call starts.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlencode

from frontend.api_client import ApiError
from frontend.context import AppContext

logger = logging.getLogger(__name__)

CATEGORIES = ["Music", "Sports", "Art", "Food", "Technology", "Business", "Other"]
PLACEHOLDER_IMAGE = "https://via.placeholder.com/300x200"

# Largest page the API serves; the dashboard pages through whole lists.
DASHBOARD_PAGE_SIZE = 100


def creator_id(event: Dict[str, Any]) -> Any:
    """createdBy is either a bare id or a resolved {id, username}."""
    created_by = event.get("createdBy")
    if isinstance(created_by, dict):
        return created_by.get("id")
    return created_by


class BaseView:
    def __init__(self, ctx: AppContext):
        self.api = ctx.api
        self.auth = ctx.auth
        self.loading = False
        self.error: Optional[str] = None
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        self._closed.set()

    def _fail(self, action: str, error: ApiError) -> None:
        logger.error(f"Error {action}: {error.message}")
        if not self.closed:
            self.error = error.message

    def _done_loading(self) -> None:
        if not self.closed:
            self.loading = False


class HomeView(BaseView):
    """Landing page: category shortcuts and the next few events."""

    UPCOMING_COUNT = 6

    def __init__(self, ctx: AppContext):
        super().__init__(ctx)
        self.loading = True
        self.upcoming_events: List[Dict[str, Any]] = []
        self.categories = list(CATEGORIES)

    @staticmethod
    def category_link(category: str) -> str:
        return f"/events?{urlencode({'category': category})}"

    def load(self) -> None:
        self.error = None
        try:
            data = self.api.list_events(limit=self.UPCOMING_COUNT)
        except ApiError as e:
            self._fail("fetching events", e)
        else:
            if not self.closed:
                self.upcoming_events = data["events"][:self.UPCOMING_COUNT]
        finally:
            self._done_loading()


class EventListView(BaseView):
    """
    Filterable, paginated event list.

    Filters mirror the URL query string in both directions: they are read
    from ``query_params`` on construction and written back on change.
    """

    FILTER_NAMES = ("category", "location")

    def __init__(self, ctx: AppContext, query_params: Optional[Dict[str, str]] = None):
        super().__init__(ctx)
        query_params = query_params or {}
        self.filters = {name: query_params.get(name, "") for name in self.FILTER_NAMES}
        self.query_params = {k: v for k, v in self.filters.items() if v}
        self.page = 1
        self.total_pages = 1
        self.events: List[Dict[str, Any]] = []
        self.loading = True
        self.categories = list(CATEGORIES)

    @property
    def url(self) -> str:
        if not self.query_params:
            return "/events"
        return f"/events?{urlencode(self.query_params)}"

    @property
    def status_text(self) -> Optional[str]:
        if self.loading:
            return "Loading events..."
        if not self.events:
            return "No events found"
        return None

    @property
    def show_pagination(self) -> bool:
        return self.total_pages > 1

    def load(self) -> None:
        self.loading = True
        self.error = None
        try:
            data = self.api.list_events(
                page=self.page,
                category=self.filters["category"],
                location=self.filters["location"],
            )
        except ApiError as e:
            self._fail("fetching events", e)
        else:
            if not self.closed:
                self.events = data["events"]
                self.total_pages = data["totalPages"]
        finally:
            self._done_loading()

    def set_filter(self, name: str, value: str) -> None:
        """Change one filter, sync the URL, go back to page 1 and refetch."""
        if name not in self.FILTER_NAMES:
            raise ValueError(f"Unknown filter: {name}")
        self.filters[name] = value
        self.query_params = {k: v for k, v in self.filters.items() if v}
        self.page = 1
        self.load()

    def set_page(self, page: int) -> None:
        self.page = page
        self.load()


class EventDetailView(BaseView):
    """Single event with save toggle, and edit/delete for its creator."""

    FORM_FIELDS = ("title", "description", "date", "time", "location", "category")

    def __init__(self, ctx: AppContext, event_id: int):
        super().__init__(ctx)
        self.event_id = int(event_id)
        self.event: Optional[Dict[str, Any]] = None
        self.loading = True
        self.is_saved = False
        self.edit_form: Dict[str, Any] = {name: "" for name in self.FORM_FIELDS}

    @property
    def status_text(self) -> Optional[str]:
        if self.loading:
            return "Loading..."
        if not self.event:
            return "Event not found"
        return None

    @property
    def is_owner(self) -> bool:
        user = self.auth.user
        if not user or not self.event:
            return False
        return str(user["id"]) == str(creator_id(self.event))

    def load(self) -> None:
        self.error = None
        try:
            event = self.api.get_event(self.event_id)
        except ApiError as e:
            self._fail("fetching event", e)
        else:
            if self.closed:
                return
            self.event = event
            self.edit_form = {name: event.get(name) or "" for name in self.FORM_FIELDS}
            # The API serves dates as YYYY-MM-DD; keep only the date part of anything longer.
            self.edit_form["date"] = str(self.edit_form["date"])[:10]
            user = self.auth.user
            if user:
                self.is_saved = event["id"] in (user.get("savedEvents") or [])
        finally:
            self._done_loading()

    def toggle_save(self) -> Optional[str]:
        """
        Save or unsave the event. Returns "/login" when nobody is logged in.

        ``is_saved`` follows the membership reported by the server, and the
        store's copy of the user is updated to match.
        """
        user = self.auth.user
        if not user:
            return "/login"

        self.error = None
        try:
            result = self.api.toggle_save(self.event_id)
        except ApiError as e:
            self._fail("saving event", e)
            return None

        if self.closed:
            return None
        self.is_saved = bool(result["saved"])

        saved_events = [i for i in (user.get("savedEvents") or []) if i != self.event_id]
        if self.is_saved:
            saved_events.append(self.event_id)
        self.auth.set_user({**user, "savedEvents": saved_events})
        return None

    def update_form(self, **changes: Any) -> None:
        unknown = set(changes) - set(self.FORM_FIELDS)
        if unknown:
            raise ValueError(f"Unknown form fields: {', '.join(sorted(unknown))}")
        self.edit_form.update(changes)

    def submit_edit(self) -> bool:
        """PUT the edit form; on success merge the result into the local event."""
        self.error = None
        try:
            updated = self.api.update_event(self.event_id, dict(self.edit_form))
        except ApiError as e:
            self._fail("updating event", e)
            return False

        if self.closed:
            return False
        # Keep the resolved creator; the update response only carries the id.
        created_by = self.event.get("createdBy") if self.event else updated.get("createdBy")
        self.event = {**(self.event or {}), **updated, "createdBy": created_by}
        return True

    def delete(self) -> Optional[str]:
        """Delete the event. Returns "/events" on success."""
        self.error = None
        try:
            self.api.delete_event(self.event_id)
        except ApiError as e:
            self._fail("deleting event", e)
            return None
        return "/events"


class DashboardView(BaseView):
    """The current user's own events and saved events, plus event creation."""

    MY_EVENTS_TAB = 0
    SAVED_EVENTS_TAB = 1

    def __init__(self, ctx: AppContext):
        super().__init__(ctx)
        self.tab = self.MY_EVENTS_TAB
        self.my_events: List[Dict[str, Any]] = []
        self.saved_events: List[Dict[str, Any]] = []
        self.loading = True
        self.create_form = self.empty_form()

    @staticmethod
    def empty_form() -> Dict[str, str]:
        return {
            "title": "",
            "description": "",
            "date": "",
            "time": "",
            "location": "",
            "category": "",
            "image": PLACEHOLDER_IMAGE,
        }

    @property
    def visible_events(self) -> List[Dict[str, Any]]:
        return self.my_events if self.tab == self.MY_EVENTS_TAB else self.saved_events

    @property
    def status_text(self) -> Optional[str]:
        if self.loading:
            return "Loading..."
        if not self.visible_events:
            return "No events found"
        return None

    def set_tab(self, tab: int) -> None:
        if tab not in (self.MY_EVENTS_TAB, self.SAVED_EVENTS_TAB):
            raise ValueError(f"Unknown tab: {tab}")
        self.tab = tab

    def _fetch_all(self, **filters: Any) -> List[Dict[str, Any]]:
        """Request pages in turn until ``totalPages`` is reached."""
        events: List[Dict[str, Any]] = []
        page = 1
        while True:
            data = self.api.list_events(page=page, limit=DASHBOARD_PAGE_SIZE, **filters)
            events.extend(data["events"])
            if page >= data["totalPages"] or self.closed:
                return events
            page += 1

    def _fetch_both(self, user_id: Any) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
        with ThreadPoolExecutor(max_workers=2) as pool:
            mine = pool.submit(self._fetch_all, created_by=user_id)
            saved = pool.submit(self._fetch_all, saved=True)
            return mine.result(), saved.result()

    def load(self) -> Optional[str]:
        """
        Fetch both lists concurrently. Returns "/login" when nobody is logged in.
        """
        user = self.auth.user
        if not user:
            return "/login"

        self.loading = True
        self.error = None
        try:
            mine, saved = self._fetch_both(user["id"])
        except ApiError as e:
            self._fail("fetching events", e)
        else:
            if not self.closed:
                self.my_events = mine
                self.saved_events = saved
        finally:
            self._done_loading()
        return None

    def update_form(self, **changes: Any) -> None:
        unknown = set(changes) - set(self.create_form)
        if unknown:
            raise ValueError(f"Unknown form fields: {', '.join(sorted(unknown))}")
        self.create_form.update(changes)

    def create_event(self) -> bool:
        """POST the create form, reset it, and refetch both lists."""
        self.error = None
        try:
            self.api.create_event(dict(self.create_form))
        except ApiError as e:
            self._fail("creating event", e)
            return False

        if self.closed:
            return False
        self.create_form = self.empty_form()
        self.load()
        return True

    def delete_event(self, event_id: int) -> bool:
        """Delete one of the user's events and refetch both lists."""
        self.error = None
        try:
            self.api.delete_event(event_id)
        except ApiError as e:
            self._fail("deleting event", e)
            return False

        if self.closed:
            return False
        self.load()
        return True


class HeaderView(BaseView):
    """Navigation bar entries, which depend on whether someone is logged in."""

    TITLE = "Event Platform"

    @property
    def nav_items(self) -> List[Tuple[str, Optional[str]]]:
        """(label, path) pairs; Logout has no path and maps to ``logout()``."""
        if self.auth.user:
            return [("Events", "/events"), ("Dashboard", "/dashboard"), ("Logout", None)]
        return [("Events", "/events"), ("Login", "/login"), ("Register", "/register")]

    def logout(self) -> str:
        self.auth.logout()
        return "/"
