"""
Ticket database operations.

Supplies the row snapshot the ticket table is built from.
"""
from typing import Any, Dict, List, Optional

from constants import SAMPLE_TICKETS, TICKET_PRIORITIES, TICKET_STATUSES
from error_handler import ValidationError, safe_db_operation
from logging_helper import LoggingHelper, LogType

logger = LoggingHelper.get_logger(LogType.MAIN)


class TicketOperations:
    """Handles ticket-related database operations."""

    def __init__(self, db_connection):
        self._conn = db_connection.connection
        self._lock = db_connection.lock
        self._timestamp = db_connection.timestamp

    @staticmethod
    def validate_ticket(summary: Any, priority: Any, status: Any) -> Dict[str, str]:
        """
        Check and normalize ticket fields.

        Raises:
            ValidationError: If a field is missing or outside the allowed values
        """
        if not isinstance(summary, str) or not summary.strip():
            raise ValidationError("Ticket summary is required")
        if priority not in TICKET_PRIORITIES:
            raise ValidationError(f"Priority must be one of: {', '.join(TICKET_PRIORITIES)}")
        if status not in TICKET_STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(TICKET_STATUSES)}")
        return {'summary': summary.strip(), 'priority': priority, 'status': status}

    def add_ticket(self, summary: str, priority: str, status: str = 'Open',
                   created_at: Optional[str] = None) -> Dict[str, Any]:
        """
        Insert a ticket.

        Args:
            summary: Short description
            priority: One of TICKET_PRIORITIES
            status: One of TICKET_STATUSES
            created_at: Optional timestamp (defaults to now)

        Returns:
            The stored ticket as a dict
        """
        fields = self.validate_ticket(summary, priority, status)
        with self._lock:
            with self._conn:
                cursor = self._conn.execute(
                    """
                    INSERT INTO tickets (summary, priority, status, created_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (fields['summary'], fields['priority'], fields['status'],
                     self._timestamp(created_at))
                )
            ticket_id = cursor.lastrowid
            row = self._conn.execute(
                "SELECT id, summary, priority, status, created_at FROM tickets WHERE id = ?",
                (ticket_id,)
            ).fetchone()

        logger.info(f"Created ticket #{ticket_id}: {fields['summary'][:50]}")
        return dict(row)

    @safe_db_operation("list tickets", return_on_error=[])
    def list_tickets(self) -> List[Dict[str, Any]]:
        """Return every ticket as a dict, oldest first."""
        with self._lock:
            cursor = self._conn.execute(
                "SELECT id, summary, priority, status, created_at FROM tickets ORDER BY id"
            )
            return [dict(row) for row in cursor.fetchall()]

    def count_tickets(self) -> int:
        with self._lock:
            return self._conn.execute("SELECT COUNT(*) FROM tickets").fetchone()[0]

    def seed_sample_tickets(self) -> int:
        """
        Insert the sample tickets into an empty store.

        Returns:
            Number of tickets inserted (0 if the store already had tickets)
        """
        if self.count_tickets():
            return 0
        for ticket in SAMPLE_TICKETS:
            self.add_ticket(ticket['summary'], ticket['priority'], ticket['status'])
        logger.info(f"Seeded {len(SAMPLE_TICKETS)} sample tickets")
        return len(SAMPLE_TICKETS)
