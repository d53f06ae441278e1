import os
from datetime import datetime, timedelta, timezone
from itertools import count

import psycopg2.errors
import pytest

# Ensure JWT_SECRET is set before the auth helpers are imported
os.environ["JWT_SECRET"] = "test_secret"

from backend.gateway.server import create_app  # noqa: E402
from backend.auth_service.utils import create_token  # noqa: E402
from backend.database import events_store, users_store  # noqa: E402


@pytest.fixture
def app():
    app = create_app()
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_header():
    """Build an Authorization header for a user id."""
    def _header(user_id):
        return {"Authorization": f"Bearer {create_token(user_id)}"}
    return _header


class FakeStore:
    """
    In-memory stand-in for the users/events tables.

    Mirrors the store accessor functions so route tests can exercise full
    request flows without PostgreSQL.
    """

    def __init__(self):
        self.users = {}
        self.events = {}
        self._user_ids = count(1)
        self._event_ids = count(1)
        self._clock = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def _now(self):
        self._clock += timedelta(seconds=1)
        return self._clock

    def add_user(self, username, email=None, saved_events=None):
        user_id = next(self._user_ids)
        self.users[user_id] = {
            "user_id": user_id,
            "username": username,
            "email": email or f"{username.lower()}@example.com",
            "password_hash": "hashed",
            "saved_events": list(saved_events or []),
            "created_at": self._now(),
        }
        return dict(self.users[user_id])

    def add_event(self, created_by, **fields):
        row = {
            "title": "Event",
            "description": "Description",
            "date": datetime(2025, 6, 1).date(),
            "time": "18:00",
            "location": "Paris",
            "category": "Music",
            "image": "https://via.placeholder.com/300x200",
        }
        row.update(fields)
        return self.insert_event(row, created_by)

    # --- users_store ---
    def find_user_by_id(self, user_id):
        row = self.users.get(user_id)
        return dict(row, saved_events=list(row["saved_events"])) if row else None

    def find_user_by_email(self, email):
        for row in self.users.values():
            if row["email"] == email:
                return dict(row)
        return None

    def insert_user(self, username, email, password_hash):
        for row in self.users.values():
            if row["email"] == email or row["username"] == username:
                raise psycopg2.errors.UniqueViolation("duplicate key")
        user = self.add_user(username, email)
        self.users[user["user_id"]]["password_hash"] = password_hash
        return self.find_user_by_id(user["user_id"])

    def set_saved_events(self, user_id, saved_events):
        if user_id not in self.users:
            return None
        self.users[user_id]["saved_events"] = list(saved_events)
        return self.find_user_by_id(user_id)

    # --- events_store ---
    def _with_creator(self, row):
        creator = self.users.get(row["created_by"])
        return dict(row, creator_username=creator["username"] if creator else None)

    def find_events(self, category=None, location=None, created_by=None, ids=None, page=1, limit=12):
        rows = list(self.events.values())
        if category:
            rows = [r for r in rows if r["category"] == category]
        if location:
            rows = [r for r in rows if location.lower() in r["location"].lower()]
        if created_by is not None:
            rows = [r for r in rows if r["created_by"] == created_by]
        if ids is not None:
            rows = [r for r in rows if r["event_id"] in ids]
        rows.sort(key=lambda r: (r["date"], r["time"], r["event_id"]))
        start = (page - 1) * limit
        return [self._with_creator(r) for r in rows[start:start + limit]], len(rows)

    def find_event_by_id(self, event_id):
        row = self.events.get(event_id)
        return self._with_creator(row) if row else None

    def insert_event(self, fields, created_by):
        event_id = next(self._event_ids)
        now = self._now()
        row = {k: fields[k] for k in events_store.WRITABLE_COLUMNS if k in fields}
        row.update(event_id=event_id, created_by=created_by, created_at=now, updated_at=now)
        self.events[event_id] = row
        return dict(row)

    def update_event(self, event_id, fields):
        row = self.events.get(event_id)
        if not row:
            return None
        row.update({k: fields[k] for k in events_store.WRITABLE_COLUMNS if k in fields})
        row["updated_at"] = self._now()
        return dict(row)

    def delete_event(self, event_id):
        return self.events.pop(event_id, None) is not None


@pytest.fixture
def store(mocker):
    """
    Replace every store accessor function with the in-memory FakeStore.

    The patched mocks are available as ``store.mocks[name]`` for call assertions.
    """
    fake = FakeStore()
    fake.mocks = {}
    for module, names in (
        (users_store, ["find_user_by_id", "find_user_by_email", "insert_user", "set_saved_events"]),
        (events_store, ["find_events", "find_event_by_id", "insert_event", "update_event", "delete_event"]),
    ):
        for name in names:
            fake.mocks[name] = mocker.patch.object(module, name, side_effect=getattr(fake, name))
    return fake
