"""
Database connection and schema management.
"""
import os
import re
import sqlite3
import threading
import warnings
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from error_handler import ConfigurationError
from logging_helper import LoggingHelper, LogType, DEFAULT_DATA_DIR

# Get logger instance
logger = LoggingHelper.get_logger(LogType.MAIN)

# Python 3.12 deprecates the default timestamp converter used for TIMESTAMP columns
warnings.filterwarnings("ignore", category=DeprecationWarning, message=".*timestamp converter.*")


def default_db_path() -> Path:
    """Database location from TICKET_DESK_DB_PATH, else inside TICKET_DESK_DATA_DIR."""
    explicit = os.getenv('TICKET_DESK_DB_PATH')
    if explicit:
        return Path(explicit)
    return Path(os.getenv('TICKET_DESK_DATA_DIR', DEFAULT_DATA_DIR)) / 'ticket_desk.db'


class DatabaseConnection:
    """Manages SQLite connection and schema."""

    # Compiled regex for timestamp validation (compile once, use many times)
    _TIMESTAMP_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}')

    TICKETS_SCHEMA = """
        CREATE TABLE IF NOT EXISTS tickets (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            summary TEXT NOT NULL,
            priority TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'Open',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        CREATE INDEX IF NOT EXISTS idx_tickets_status ON tickets(status);
        CREATE INDEX IF NOT EXISTS idx_tickets_created_at ON tickets(created_at DESC);
    """

    TABLE_VIEW_STATE_SCHEMA = """
        CREATE TABLE IF NOT EXISTS table_view_state (
            state_key TEXT PRIMARY KEY,
            state_data TEXT NOT NULL,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
    """

    def __init__(self, db_path: Optional[Path] = None) -> None:
        self.db_path = Path(os.path.abspath(db_path or default_db_path()))
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigurationError(
                f"Cannot create database directory {self.db_path.parent}: {exc}"
            ) from exc

        self._conn = sqlite3.connect(
            self.db_path,
            check_same_thread=False,
            detect_types=sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES,
        )

        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()

        self._configure()
        self._ensure_schema()

    def _configure(self) -> None:
        """Set SQLite pragmas for durability and concurrency."""
        with self._lock:
            try:
                self._conn.execute("PRAGMA journal_mode=WAL;")
                self._conn.execute("PRAGMA synchronous=NORMAL;")
                self._conn.execute("PRAGMA busy_timeout=5000;")
            except sqlite3.DatabaseError as exc:
                logger.error(f"Failed to configure SQLite database: {exc}")

    def _ensure_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        with self._lock:
            try:
                with self._conn:
                    self._conn.executescript(self.TICKETS_SCHEMA)
                    self._conn.executescript(self.TABLE_VIEW_STATE_SCHEMA)
            except sqlite3.DatabaseError as exc:
                logger.error(f"Failed to initialize SQLite schema: {exc}")
                raise

    @staticmethod
    def timestamp(ts: Union[None, str, datetime] = None) -> str:
        """
        Return timestamps in a format compatible with sqlite's built-in converters.
        sqlite3 expects 'YYYY-MM-DD HH:MM:SS' (space separator) for TIMESTAMP columns.
        All timestamps are stored in UTC. Missing or invalid input yields "now".

        Args:
            ts: None, a string (ISO8601 or sqlite format), or a datetime object
        """
        if isinstance(ts, datetime):
            if ts.tzinfo is not None:
                ts = ts.astimezone(timezone.utc)
            return ts.strftime('%Y-%m-%d %H:%M:%S')

        if ts:
            cleaned = ts.replace('T', ' ').replace('Z', '').strip()[:19]
            if DatabaseConnection._TIMESTAMP_PATTERN.match(cleaned):
                return cleaned
            logger.warning("Invalid timestamp format: %s", cleaned)
        return datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S')

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    @property
    def connection(self):
        """Get the database connection."""
        return self._conn

    @property
    def lock(self):
        """Get the thread lock."""
        return self._lock
