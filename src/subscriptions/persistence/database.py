"""
Database Connection Layer

Supports SQLite (dev) and PostgreSQL (production) with automatic schema creation.
"""

import sqlite3
from contextlib import contextmanager
from typing import Optional, Generator, Any, Dict, List
from datetime import datetime, timezone
import threading
import structlog

from ..core.store import StorageError

logger = structlog.get_logger()

DEFAULT_DATABASE_URL = "sqlite:///subscriptions.db"

# Schema version for migrations
SCHEMA_VERSION = 1

SCHEMA_SQL = """
-- Subscription records
CREATE TABLE IF NOT EXISTS records (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    service_name TEXT NOT NULL,
    price INTEGER NOT NULL CHECK (price >= 0),
    user_id TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f000+00:00', 'now')),
    expires_at TEXT NOT NULL
);

-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_records_user ON records(user_id);
CREATE INDEX IF NOT EXISTS idx_records_created ON records(created_at);
"""

POSTGRES_SCHEMA_SQL = """
-- Subscription records
CREATE TABLE IF NOT EXISTS records (
    id SERIAL PRIMARY KEY,
    service_name TEXT NOT NULL,
    price INTEGER NOT NULL CHECK (price >= 0),
    user_id TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    expires_at TIMESTAMPTZ NOT NULL
);

-- Schema version
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TIMESTAMPTZ NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_records_user ON records(user_id);
CREATE INDEX IF NOT EXISTS idx_records_created ON records(created_at);
"""


class Database:
    """
    Database connection manager with SQLite and PostgreSQL support.

    Queries are written with ``?`` placeholders; they are rewritten to
    ``%s`` when talking to PostgreSQL.

    Usage:
        db = Database("sqlite:///subscriptions.db")
        db.initialize()
        rows = db.execute("SELECT * FROM records WHERE user_id = ?", ("u1",))
    """

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or DEFAULT_DATABASE_URL
        self.is_postgres = self.database_url.startswith("postgres")
        self._local = threading.local()
        self._lock = threading.Lock()
        self._initialized = False
        self.is_memory = not self.is_postgres and self._get_sqlite_path() == ":memory:"
        self._memory_conn: Optional[sqlite3.Connection] = None
        self._memory_lock = threading.RLock()

    def _get_sqlite_path(self) -> str:
        """Extract SQLite file path from URL."""
        if self.database_url.startswith("sqlite:///"):
            return self.database_url[10:]
        return "subscriptions.db"

    @contextmanager
    def connection(self) -> Generator[Any, None, None]:
        """Get a database connection (thread-safe)."""
        if self.is_postgres:
            with self._postgres_connection() as conn:
                yield conn
        else:
            with self._sqlite_connection() as conn:
                yield conn

    def _open_sqlite(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self._get_sqlite_path(),
            check_same_thread=False,
            timeout=30.0,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        return conn

    @contextmanager
    def _sqlite_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        SQLite connection with WAL mode for concurrency.

        File databases get one connection per thread. An in-memory database
        exists only inside its connection, so all threads share a single one
        and take turns on it.
        """
        if self.is_memory:
            with self._memory_lock:
                if self._memory_conn is None:
                    self._memory_conn = self._open_sqlite()
                with self._transaction(self._memory_conn) as conn:
                    yield conn
            return

        if getattr(self._local, "conn", None) is None:
            self._local.conn = self._open_sqlite()

        with self._transaction(self._local.conn) as conn:
            yield conn

    @staticmethod
    @contextmanager
    def _transaction(conn: sqlite3.Connection) -> Generator[sqlite3.Connection, None, None]:
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    @contextmanager
    def _postgres_connection(self) -> Generator[Any, None, None]:
        """PostgreSQL connection, opened per call."""
        import psycopg2
        from psycopg2.extras import RealDictCursor

        conn = psycopg2.connect(self.database_url, cursor_factory=RealDictCursor)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _driver_errors(self) -> tuple:
        if self.is_postgres:
            import psycopg2
            return (sqlite3.Error, psycopg2.Error)
        return (sqlite3.Error,)

    def initialize(self) -> None:
        """Initialize database schema."""
        if self._initialized:
            return

        with self._lock:
            if self._initialized:
                return

            schema = POSTGRES_SCHEMA_SQL if self.is_postgres else SCHEMA_SQL
            now = datetime.now(timezone.utc).isoformat()

            try:
                with self.connection() as conn:
                    if self.is_postgres:
                        cursor = conn.cursor()
                        cursor.execute(schema)
                        cursor.execute(
                            "INSERT INTO schema_version (version, applied_at) VALUES (%s, %s) ON CONFLICT (version) DO NOTHING",
                            (SCHEMA_VERSION, now)
                        )
                    else:
                        conn.executescript(schema)
                        conn.execute(
                            "INSERT OR IGNORE INTO schema_version (version, applied_at) VALUES (?, ?)",
                            (SCHEMA_VERSION, now)
                        )
            except self._driver_errors() as e:
                logger.error("database_initialize_failed", error=str(e))
                raise StorageError(str(e)) from e

            self._initialized = True
            logger.info("database_initialized", url=self.database_url[:20] + "...", is_postgres=self.is_postgres)

    def execute(self, query: str, params: tuple = ()) -> List[Dict[str, Any]]:
        """Execute a query and return results as list of dicts."""
        try:
            with self.connection() as conn:
                if self.is_postgres:
                    cursor = conn.cursor()
                    cursor.execute(query.replace("?", "%s"), params)
                else:
                    cursor = conn.execute(query, params)
                if cursor.description:
                    return [dict(row) for row in cursor.fetchall()]
                return []
        except self._driver_errors() as e:
            raise StorageError(str(e)) from e

    def close(self) -> None:
        """
        Close the calling thread's SQLite connection.

        For an in-memory database this drops the shared connection and with it
        all data.
        """
        if self._memory_conn is not None:
            with self._memory_lock:
                self._memory_conn.close()
                self._memory_conn = None
                self._initialized = False
        if getattr(self._local, "conn", None) is not None:
            self._local.conn.close()
            self._local.conn = None
