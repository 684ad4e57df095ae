import logging
from typing import Any, Dict, Optional

import office_library.database as database
from office_library.authors import AuthorService
from office_library.catalog import Catalog
from office_library.clock import SystemClock
from office_library.database import connection, initialize_database
from office_library.lending import Lending

logger = logging.getLogger(__name__)


class Library:
    """Wires the author directory, catalog and lending over one database and one clock."""

    def __init__(self, db_file: Optional[str] = None, clock=None,
                 loan_period_days: Optional[int] = None, max_active_borrowings: Optional[int] = None) -> None:
        self.db_file = db_file or database.DATABASE_FILE
        # Run on every start-up so the schema is always current
        initialize_database(self.db_file)

        self.clock = clock or SystemClock()
        self.authors = AuthorService(self.db_file)
        self.catalog = Catalog(self.db_file, self.clock)
        self.lending = Lending(
            self.db_file,
            self.clock,
            self.catalog,
            loan_period_days=loan_period_days,
            max_active_borrowings=max_active_borrowings,
        )

    def get_statistics(self) -> Dict[str, Any]:
        """Counts for the stats endpoint and CLI command."""
        today = self.clock.today().isoformat()
        with connection(self.db_file) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM books")
            total_books = cursor.fetchone()[0]

            cursor.execute("SELECT status, COUNT(*) FROM books GROUP BY status")
            by_status = {row[0]: row[1] for row in cursor.fetchall()}

            cursor.execute("SELECT COUNT(*) FROM authors")
            total_authors = cursor.fetchone()[0]

            cursor.execute("SELECT status, COUNT(*) FROM borrowing_records GROUP BY status")
            loans = {row[0]: row[1] for row in cursor.fetchall()}

            cursor.execute(
                "SELECT COUNT(*) FROM borrowing_records WHERE status = 'ACTIVE' AND due_date < ?", (today,)
            )
            past_due = cursor.fetchone()[0]

        return {
            "total_books": total_books,
            "available_books": by_status.get("AVAILABLE", 0),
            "borrowed_books": by_status.get("BORROWED", 0),
            "total_authors": total_authors,
            "active_loans": loans.get("ACTIVE", 0),
            "overdue_loans": loans.get("OVERDUE", 0) + past_due,
            "returned_loans": loans.get("RETURNED", 0),
        }

    def close(self) -> None:
        """Connections are opened per operation, so there is nothing to release."""
        return None
