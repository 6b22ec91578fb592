"""SQLite connection and initialization utilities."""

import logging
import sqlite3
import threading
from pathlib import Path

from .schema import get_init_schema
from ..core.exceptions import StorageUnavailableError

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """Manage per-thread SQLite connections and schema init.

    Every ``sqlite3.Error`` leaving this class is re-raised as
    :class:`StorageUnavailableError` so callers never see driver exceptions.
    """

    __slots__ = ("db_path", "_local", "_lock", "_initialized", "_connections")

    def __init__(self, db_path="./carevault.db"):
        """Initialize connection state."""
        self.db_path = Path(db_path)
        self._local = threading.local()
        self._lock = threading.RLock()
        self._initialized = False
        self._connections = []

    def initialize(self):
        """Initialize schema if not already initialized."""
        if self._initialized:
            return

        with self._lock:
            if self._initialized:
                return

            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                conn = self._get_connection()
                for statement in get_init_schema():
                    conn.execute(statement)
                self._initialized = True
            except (sqlite3.Error, OSError) as e:
                raise StorageUnavailableError(f"Failed to initialize database: {e}") from e

        logger.debug("Database initialized at %s", self.db_path)

    def _get_connection(self):
        """Get or create a thread-local SQLite connection."""
        if getattr(self._local, "connection", None) is None:
            self._local.connection = sqlite3.connect(
                str(self.db_path), check_same_thread=False, isolation_level=None
            )
            self._local.connection.row_factory = sqlite3.Row
            with self._lock:
                self._connections.append(self._local.connection)
        return self._local.connection

    def get_transaction_context(self):
        """Return a transaction context manager (BEGIN/COMMIT/ROLLBACK)."""
        return TransactionContext(self._get_connection())

    def execute(self, query, params=()):
        """Execute a single SQL statement; return (lastrowid, rowcount)."""
        try:
            cursor = self._get_connection().execute(query, params)
            try:
                return cursor.lastrowid, cursor.rowcount
            finally:
                cursor.close()
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"Database write failed: {e}") from e

    def fetch_one(self, query, params=()):
        """Fetch a single row as a dict or None."""
        try:
            cursor = self._get_connection().execute(query, params)
            try:
                row = cursor.fetchone()
            finally:
                cursor.close()
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"Database read failed: {e}") from e
        return dict(row) if row else None

    def fetch_all(self, query, params=()):
        """Fetch all rows as a list of dicts."""
        try:
            cursor = self._get_connection().execute(query, params)
            try:
                rows = cursor.fetchall()
            finally:
                cursor.close()
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"Database read failed: {e}") from e
        return [dict(row) for row in rows]

    def get_version(self):
        """Return current schema version number."""
        try:
            result = self.fetch_one("SELECT MAX(version) as version FROM schema_version")
        except StorageUnavailableError:
            return 0
        return result["version"] if result and result["version"] else 0

    def close(self):
        """Close the connections opened by every thread.

        Threads that use the instance afterwards get a fresh connection.
        """
        with self._lock:
            connections, self._connections = self._connections, []
            self._local = threading.local()
        for connection in connections:
            connection.close()

    def open_connection_count(self):
        """Return how many per-thread connections are currently open."""
        with self._lock:
            return len(self._connections)


class TransactionContext:
    """Context manager for transactions (BEGIN/COMMIT/ROLLBACK)."""

    __slots__ = ("connection", "cursor")

    def __init__(self, connection):
        """Initialize with a SQLite connection."""
        self.connection = connection
        self.cursor = None

    def __enter__(self):
        """Begin a transaction and return a cursor."""
        try:
            self.cursor = self.connection.cursor()
            self.cursor.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"Could not begin transaction: {e}") from e
        return self.cursor

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Commit on success, rollback on error, then close cursor."""
        try:
            if exc_type is None:
                self.connection.commit()
            else:
                self.connection.rollback()
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"Transaction failed: {e}") from e
        finally:
            if self.cursor:
                self.cursor.close()
        if isinstance(exc_val, sqlite3.Error):
            raise StorageUnavailableError(f"Transaction failed: {exc_val}") from exc_val
        return False
