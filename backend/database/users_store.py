"""
User store accessor.

SQL access to the ``users`` table, including the ``saved_events`` array
column that backs the save/unsave relation.
"""

from typing import Any, Dict, List, Optional

from backend.database.db_connection import db_cursor

USER_COLUMNS = "user_id, username, email, password_hash, saved_events, created_at"


def find_user_by_id(user_id: int) -> Optional[Dict[str, Any]]:
    with db_cursor() as cur:
        cur.execute(f"SELECT {USER_COLUMNS} FROM users WHERE user_id = %s;", (user_id,))
        row = cur.fetchone()
    return dict(row) if row else None


def find_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    with db_cursor() as cur:
        cur.execute(f"SELECT {USER_COLUMNS} FROM users WHERE email = %s;", (email,))
        row = cur.fetchone()
    return dict(row) if row else None


def insert_user(username: str, email: str, password_hash: str) -> Dict[str, Any]:
    """
    Insert a new user with an empty saved_events list.

    Raises:
        psycopg2.errors.UniqueViolation: If the email or username is taken.
    """
    sql = f"""
        INSERT INTO users (username, email, password_hash)
        VALUES (%s, %s, %s)
        RETURNING {USER_COLUMNS};
    """
    with db_cursor() as cur:
        cur.execute(sql, (username, email, password_hash))
        return dict(cur.fetchone())


def set_saved_events(user_id: int, saved_events: List[int]) -> Optional[Dict[str, Any]]:
    """
    Replace a user's saved_events list.

    The list is stored as given; uniqueness is the caller's responsibility.
    """
    sql = f"UPDATE users SET saved_events = %s WHERE user_id = %s RETURNING {USER_COLUMNS};"
    with db_cursor() as cur:
        cur.execute(sql, (list(saved_events), user_id))
        row = cur.fetchone()
    return dict(row) if row else None
