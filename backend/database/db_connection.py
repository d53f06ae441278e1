"""
PostgreSQL connection helper.
Provides get_db() for the store accessors.
"""

import os
import logging
from contextlib import contextmanager

import psycopg2
from psycopg2.extras import DictCursor
from dotenv import load_dotenv

# Load .env variables from the project root
load_dotenv()

logger = logging.getLogger(__name__)


def get_database_url() -> str:
    """
    Read DATABASE_URL from the environment.

    Render/Heroku style ``postgres://`` URLs are rewritten to ``postgresql://``.

    Raises:
        RuntimeError: If DATABASE_URL is not set.
    """
    url = os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set. Please set the environment variable.")
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


def get_db():
    """
    Returns a new psycopg2 connection with dictionary-based row access.

    Usage:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(...)

    Returns:
        psycopg2.extensions.connection: A connection object with DictCursor factory.

    Raises:
        psycopg2.Error: If connection fails.
    """
    try:
        conn = psycopg2.connect(get_database_url())

        # Rows come back as dictionaries (e.g. {"event_id": 1, "title": "..."})
        conn.cursor_factory = DictCursor
        return conn
    except Exception as e:
        logger.error(f"Error connecting to database: {e}")
        raise


@contextmanager
def db_cursor():
    """
    Open a connection, yield a cursor, and close the connection afterwards.

    The transaction commits when the block exits cleanly and rolls back when
    it raises.
    """
    conn = get_db()
    try:
        with conn:
            with conn.cursor() as cur:
                yield cur
    finally:
        conn.close()
