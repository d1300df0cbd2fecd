"""
Database module for Ticket Desk.
Provides a unified interface for all database operations.
"""
from pathlib import Path
from typing import Optional, Dict, Any, List

from .connection import DatabaseConnection, default_db_path
from .ticket_operations import TicketOperations
from .view_state_operations import ViewStateOperations


class Database:
    """
    Unified database interface that combines all operations.
    """

    def __init__(self, db_path: Optional[Path] = None) -> None:
        self._connection = DatabaseConnection(db_path)
        self.db_path = self._connection.db_path

        self._ticket_ops = TicketOperations(self._connection)
        self._view_state_ops = ViewStateOperations(self._connection)

    # Ticket operations
    def add_ticket(self, summary: str, priority: str, status: str = 'Open',
                   created_at: Optional[str] = None) -> Dict[str, Any]:
        return self._ticket_ops.add_ticket(summary, priority, status, created_at)

    def list_tickets(self) -> List[Dict[str, Any]]:
        return self._ticket_ops.list_tickets()

    def count_tickets(self) -> int:
        return self._ticket_ops.count_tickets()

    def seed_sample_tickets(self) -> int:
        return self._ticket_ops.seed_sample_tickets()

    # View state operations
    @property
    def view_state_store(self) -> ViewStateOperations:
        """KVStore for persisted table filters/sorts."""
        return self._view_state_ops

    def close(self) -> None:
        self._connection.close()


# Singleton instance management
_db_instance: Optional[Database] = None


def get_database() -> Database:
    """Return singleton database instance."""
    global _db_instance
    if _db_instance is None:
        _db_instance = Database()
    return _db_instance


# Export main classes and functions
__all__ = ['Database', 'get_database', 'default_db_path']
