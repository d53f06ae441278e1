"""
Database schema bootstrap.

Creates the ``users`` and ``events`` tables if they do not exist yet.
Safe to run repeatedly:

    python -m backend.database.init_db
"""

import logging
import sys

from backend.database.db_connection import db_cursor
from backend.database.events_store import VALID_CATEGORIES

logger = logging.getLogger(__name__)


# saved_events has no foreign key: deleting an event leaves stale ids behind.
SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS users (
        user_id SERIAL PRIMARY KEY,
        username VARCHAR(50) UNIQUE NOT NULL,
        email VARCHAR(255) UNIQUE NOT NULL,
        password_hash TEXT NOT NULL,
        saved_events INTEGER[] NOT NULL DEFAULT '{}',
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    );

    CREATE TABLE IF NOT EXISTS events (
        event_id SERIAL PRIMARY KEY,
        title VARCHAR(200) NOT NULL,
        description TEXT NOT NULL,
        date DATE NOT NULL,
        time VARCHAR(20) NOT NULL,
        location VARCHAR(255) NOT NULL,
        category VARCHAR(20) NOT NULL CHECK (category IN (%s)),
        image TEXT,
        created_by INTEGER NOT NULL REFERENCES users(user_id),
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    );

    CREATE INDEX IF NOT EXISTS idx_events_date ON events (date);
    CREATE INDEX IF NOT EXISTS idx_events_created_by ON events (created_by);
""" % ", ".join(f"'{c}'" for c in VALID_CATEGORIES)


def init_db() -> None:
    """Create all tables and indexes."""
    with db_cursor() as cur:
        cur.execute(SCHEMA_SQL)
    logger.info("Database schema is up to date.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")
    try:
        init_db()
    except Exception as e:
        logger.error(f"Schema creation failed: {e}")
        sys.exit(1)
