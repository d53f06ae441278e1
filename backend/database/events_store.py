"""
Event store accessor.

Plain SQL access to the ``events`` table: filtered/paginated queries,
lookup by id, insert, update and delete. Callers receive rows as dicts
keyed by column name; JSON shaping happens in the route layer.
"""

from typing import Any, Dict, List, Optional, Tuple

from backend.database.db_connection import db_cursor

VALID_CATEGORIES = ["Music", "Sports", "Art", "Food", "Technology", "Business", "Other"]

# Columns a client may set on create/update. created_by is deliberately absent.
WRITABLE_COLUMNS = ["title", "description", "date", "time", "location", "category", "image"]

EVENT_COLUMNS = """
    e.event_id, e.title, e.description, e.date, e.time, e.location,
    e.category, e.image, e.created_by, e.created_at, e.updated_at
"""


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _build_filters(
    category: Optional[str] = None,
    location: Optional[str] = None,
    created_by: Optional[int] = None,
    ids: Optional[List[int]] = None,
) -> Tuple[str, List[Any]]:
    clauses = []
    params: List[Any] = []

    if category:
        clauses.append("e.category = %s")
        params.append(category)
    if location:
        clauses.append("e.location ILIKE %s")
        params.append(f"%{escape_like(location)}%")
    if created_by is not None:
        clauses.append("e.created_by = %s")
        params.append(created_by)
    if ids is not None:
        clauses.append("e.event_id = ANY(%s)")
        params.append(list(ids))

    where = " AND ".join(clauses) if clauses else "TRUE"
    return where, params


def find_events(
    category: Optional[str] = None,
    location: Optional[str] = None,
    created_by: Optional[int] = None,
    ids: Optional[List[int]] = None,
    page: int = 1,
    limit: int = 12,
) -> Tuple[List[Dict[str, Any]], int]:
    """
    Query events sorted ascending by date, with the creator's username joined in.

    Args:
        category: Exact category match.
        location: Case-insensitive substring match on location.
        created_by: Restrict to events owned by this user id.
        ids: Restrict to these event ids (missing ids are simply absent).
        page: 1-based page number.
        limit: Page size.

    Returns:
        tuple: (rows for the requested page, total number of matching rows)
    """
    if ids is not None and not ids:
        return [], 0

    where, params = _build_filters(category, location, created_by, ids)
    offset = (page - 1) * limit

    count_sql = f"SELECT COUNT(*) AS total FROM events e WHERE {where};"
    page_sql = f"""
        SELECT {EVENT_COLUMNS}, u.username AS creator_username
        FROM events e
        LEFT JOIN users u ON e.created_by = u.user_id
        WHERE {where}
        ORDER BY e.date ASC, e.time ASC, e.event_id ASC
        LIMIT %s OFFSET %s;
    """

    with db_cursor() as cur:
        cur.execute(count_sql, params)
        total = cur.fetchone()["total"]
        cur.execute(page_sql, params + [limit, offset])
        rows = [dict(r) for r in cur.fetchall()]

    return rows, total


def find_event_by_id(event_id: int) -> Optional[Dict[str, Any]]:
    """Return a single event row (creator username joined in), or None."""
    sql = f"""
        SELECT {EVENT_COLUMNS}, u.username AS creator_username
        FROM events e
        LEFT JOIN users u ON e.created_by = u.user_id
        WHERE e.event_id = %s;
    """
    with db_cursor() as cur:
        cur.execute(sql, (event_id,))
        row = cur.fetchone()
    return dict(row) if row else None


def insert_event(fields: Dict[str, Any], created_by: int) -> Dict[str, Any]:
    """
    Persist a new event owned by ``created_by``.

    Only keys listed in WRITABLE_COLUMNS are written.
    """
    columns = [c for c in WRITABLE_COLUMNS if c in fields]
    values = [fields[c] for c in columns]

    placeholders = ", ".join(["%s"] * (len(columns) + 1))
    sql = f"""
        INSERT INTO events AS e ({", ".join(columns + ["created_by"])})
        VALUES ({placeholders})
        RETURNING {EVENT_COLUMNS};
    """
    with db_cursor() as cur:
        cur.execute(sql, values + [created_by])
        return dict(cur.fetchone())


def update_event(event_id: int, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Merge ``fields`` into an event and refresh updated_at.

    Returns:
        The updated row, or None if the event no longer exists.
    """
    columns = [c for c in WRITABLE_COLUMNS if c in fields]
    set_clause = [f"{c} = %s" for c in columns]
    set_clause.append("updated_at = CURRENT_TIMESTAMP")
    values = [fields[c] for c in columns] + [event_id]

    sql = f"""
        UPDATE events AS e SET {", ".join(set_clause)}
        WHERE e.event_id = %s
        RETURNING {EVENT_COLUMNS};
    """
    with db_cursor() as cur:
        cur.execute(sql, values)
        row = cur.fetchone()
    return dict(row) if row else None


def delete_event(event_id: int) -> bool:
    """Delete an event. Returns False if nothing was deleted."""
    with db_cursor() as cur:
        cur.execute("DELETE FROM events WHERE event_id = %s;", (event_id,))
        return cur.rowcount > 0
