import logging
import sqlite3
from contextlib import contextmanager

from config import CONFIG_DIR
from .schema import SCHEMA_SQL, INDEXES_SQL, SCHEMA_VERSION

logger = logging.getLogger(__name__)

DB_PATH = CONFIG_DIR / "mathdrill.db"
BUSY_TIMEOUT_SECONDS = 10.0

def init_db():
    """Initialize the database by creating tables and indexes if they don't exist, then seed the module catalog."""
    from utils.catalog import seed_catalog

    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    with get_conn() as conn:
        conn.executescript(SCHEMA_SQL)
        ensure_session_archived(conn)
        ensure_answer_trail_expected_time(conn)
        conn.executescript(INDEXES_SQL)
        seed_catalog(conn)
        ensure_schema_version(conn)
        conn.commit()
    logger.info("Database ready at %s (schema v%s)", DB_PATH, SCHEMA_VERSION)

def ensure_session_archived(conn: sqlite3.Connection) -> None:
    """Ensure sessions table has the archived flag used by drill resets."""
    cursor = conn.cursor()
    cursor.execute("PRAGMA table_info(sessions)")
    columns = {row[1] for row in cursor.fetchall()}
    if "archived" not in columns:
        cursor.execute("ALTER TABLE sessions ADD COLUMN archived INTEGER NOT NULL DEFAULT 0")

def ensure_answer_trail_expected_time(conn: sqlite3.Connection) -> None:
    """Ensure answer_trail keeps the expected time of each question for time insights."""
    cursor = conn.cursor()
    cursor.execute("PRAGMA table_info(answer_trail)")
    columns = {row[1] for row in cursor.fetchall()}
    if "expected_time_seconds" not in columns:
        cursor.execute(
            "ALTER TABLE answer_trail ADD COLUMN expected_time_seconds INTEGER NOT NULL DEFAULT 60"
        )

def get_schema_version(conn: sqlite3.Connection) -> int:
    """Read the SQLite schema version from PRAGMA user_version."""
    cursor = conn.cursor()
    cursor.execute("PRAGMA user_version")
    row = cursor.fetchone()
    return int(row[0]) if row else 0

def set_schema_version(conn: sqlite3.Connection, version: int) -> None:
    """Set the SQLite schema version via PRAGMA user_version."""
    conn.execute(f"PRAGMA user_version = {int(version)}")

def ensure_schema_version(conn: sqlite3.Connection) -> None:
    """Ensure the current schema version is written to the database."""
    current = get_schema_version(conn)
    if current != SCHEMA_VERSION:
        set_schema_version(conn, SCHEMA_VERSION)

@contextmanager
def get_conn():
    """Context manager for SQLite connection, using row_factory for dict-like rows.

    Uncommitted work is rolled back when the block raises.
    """
    conn = sqlite3.connect(DB_PATH, timeout=BUSY_TIMEOUT_SECONDS, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()

def get_db():
    """FastAPI dependency that yields a DB connection and closes it afterwards."""
    with get_conn() as conn:
        yield conn
