"""
Key-value storage for persisted table view state (filters and sorts).

Implements the table engine's KVStore interface on top of sqlite so saved
criteria survive restarts.
"""
import sqlite3
from typing import Optional

from error_handler import DatabaseError, log_and_reraise


class ViewStateOperations:
    """Handles reads and writes of the table_view_state table."""

    def __init__(self, db_connection):
        self._conn = db_connection.connection
        self._lock = db_connection.lock
        self._timestamp = db_connection.timestamp

    def get(self, key: str) -> Optional[str]:
        """
        Fetch a stored value.

        Args:
            key: Storage key (e.g. 'table-tickets')

        Returns:
            The stored string, or None if nothing is stored under key

        Raises:
            DatabaseError: If the query fails
        """
        with self._lock:
            try:
                cursor = self._conn.execute(
                    "SELECT state_data FROM table_view_state WHERE state_key = ?",
                    (key,)
                )
                row = cursor.fetchone()
            except sqlite3.DatabaseError as exc:
                log_and_reraise(exc, f"Failed to read view state '{key}'", as_type=DatabaseError)
        return row['state_data'] if row else None

    def set(self, key: str, value: str) -> None:
        """
        Store a value, replacing any previous one.

        Raises:
            DatabaseError: If the write fails
        """
        with self._lock:
            try:
                with self._conn:
                    self._conn.execute(
                        """
                        INSERT OR REPLACE INTO table_view_state (state_key, state_data, updated_at)
                        VALUES (?, ?, ?)
                        """,
                        (key, value, self._timestamp())
                    )
            except sqlite3.DatabaseError as exc:
                log_and_reraise(exc, f"Failed to write view state '{key}'", as_type=DatabaseError)

    def delete(self, key: str) -> bool:
        """
        Remove a stored value.

        Returns:
            True if something was deleted
        """
        with self._lock:
            with self._conn:
                cursor = self._conn.execute(
                    "DELETE FROM table_view_state WHERE state_key = ?", (key,)
                )
            return cursor.rowcount > 0
