from datetime import date
from unittest.mock import MagicMock

import pytest

from backend.database import events_store, users_store


@pytest.fixture
def mock_cursor(mocker):
    """
    Mocks db_cursor() in both store modules and returns the cursor.
    """
    mock_cursor = MagicMock()
    cm = MagicMock()
    cm.__enter__.return_value = mock_cursor
    cm.__exit__.return_value = None
    mocker.patch("backend.database.events_store.db_cursor", return_value=cm)
    mocker.patch("backend.database.users_store.db_cursor", return_value=cm)
    return mock_cursor


def test_escape_like():
    assert events_store.escape_like("50%_off\\") == "50\\%\\_off\\\\"


def test_find_events_filters_and_paginates(mock_cursor):
    mock_cursor.fetchone.return_value = {"total": 7}
    mock_cursor.fetchall.return_value = [{"event_id": 1, "title": "Gig"}]

    rows, total = events_store.find_events(category="Music", location="par", page=3, limit=2)

    assert total == 7
    assert rows == [{"event_id": 1, "title": "Gig"}]

    count_call, page_call = mock_cursor.execute.call_args_list
    assert "e.category = %s" in count_call.args[0]
    assert "e.location ILIKE %s" in count_call.args[0]
    assert count_call.args[1] == ["Music", "%par%"]

    sql, params = page_call.args
    assert "ORDER BY e.date ASC" in sql
    assert params == ["Music", "%par%", 2, 4]


def test_find_events_without_filters(mock_cursor):
    mock_cursor.fetchone.return_value = {"total": 0}
    mock_cursor.fetchall.return_value = []

    events_store.find_events()

    count_sql = mock_cursor.execute.call_args_list[0].args[0]
    assert "WHERE TRUE" in count_sql


def test_find_events_with_empty_ids_skips_query(mock_cursor):
    assert events_store.find_events(ids=[]) == ([], 0)
    mock_cursor.execute.assert_not_called()


def test_find_events_by_ids(mock_cursor):
    mock_cursor.fetchone.return_value = {"total": 1}
    mock_cursor.fetchall.return_value = []

    events_store.find_events(ids=(4, 9), created_by=2)

    sql, params = mock_cursor.execute.call_args_list[0].args
    assert "e.created_by = %s" in sql
    assert "e.event_id = ANY(%s)" in sql
    assert params == [2, [4, 9]]


def test_find_event_by_id_missing(mock_cursor):
    mock_cursor.fetchone.return_value = None
    assert events_store.find_event_by_id(5) is None


def test_insert_event_only_writes_known_columns(mock_cursor):
    mock_cursor.fetchone.return_value = {"event_id": 10}
    fields = {"title": "T", "date": date(2025, 1, 1), "created_by": 99, "bogus": 1}

    assert events_store.insert_event(fields, created_by=3) == {"event_id": 10}

    sql, params = mock_cursor.execute.call_args.args
    assert "(title, date, created_by)" in sql
    assert "bogus" not in sql
    assert params == ["T", date(2025, 1, 1), 3]


def test_update_event_refreshes_updated_at(mock_cursor):
    mock_cursor.fetchone.return_value = {"event_id": 10, "title": "New"}

    events_store.update_event(10, {"title": "New"})

    sql, params = mock_cursor.execute.call_args.args
    assert "title = %s" in sql
    assert "updated_at = CURRENT_TIMESTAMP" in sql
    assert params == ["New", 10]


def test_update_event_with_no_fields_still_touches_row(mock_cursor):
    mock_cursor.fetchone.return_value = None

    assert events_store.update_event(10, {}) is None

    sql, params = mock_cursor.execute.call_args.args
    assert "SET updated_at = CURRENT_TIMESTAMP" in sql
    assert params == [10]


def test_delete_event_reports_rowcount(mock_cursor):
    mock_cursor.rowcount = 1
    assert events_store.delete_event(3) is True

    mock_cursor.rowcount = 0
    assert events_store.delete_event(3) is False


def test_set_saved_events_writes_list(mock_cursor):
    mock_cursor.fetchone.return_value = {"user_id": 1, "saved_events": [2, 5]}

    row = users_store.set_saved_events(1, (2, 5))

    assert row["saved_events"] == [2, 5]
    assert mock_cursor.execute.call_args.args[1] == ([2, 5], 1)


def test_find_user_by_email(mock_cursor):
    mock_cursor.fetchone.return_value = {"user_id": 1, "email": "a@example.com"}

    assert users_store.find_user_by_email("a@example.com")["user_id"] == 1
    assert mock_cursor.execute.call_args.args[1] == ("a@example.com",)
