"""Borrowing records and the rules around them.

A record is created ACTIVE when a borrow succeeds, becomes RETURNED when the
book comes back, or OVERDUE when the periodic sweep finds it past its due date.
Every borrow, return and per-record sweep update runs in a single transaction
so the record and the book's status always commit together.
"""

import logging
import sqlite3
import threading
import weakref
from contextlib import contextmanager
from datetime import date, timedelta
from typing import Iterator, List, Optional

from office_library import store
from office_library.catalog import Catalog
from office_library.clock import SystemClock
from office_library.config import settings
from office_library.database import connection, transaction
from office_library.errors import BusinessRuleViolation, NotFound
from office_library.models import BorrowingRecord, BorrowingStatus
from office_library.schemas import BorrowRequestModel

logger = logging.getLogger(__name__)


class _BookLock:
    def __init__(self) -> None:
        self.mutex = threading.Lock()


class BookLocks:
    """One mutex per book id, created on demand and dropped once nobody holds it."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: "weakref.WeakValueDictionary[str, _BookLock]" = weakref.WeakValueDictionary()

    def _lock_for(self, book_id: str) -> _BookLock:
        with self._guard:
            lock = self._locks.get(book_id)
            if lock is None:
                lock = _BookLock()
                self._locks[book_id] = lock
            return lock

    def __len__(self) -> int:
        return len(self._locks)

    @contextmanager
    def hold(self, book_id: str) -> Iterator[None]:
        lock = self._lock_for(book_id)
        with lock.mutex:
            yield


# Shared by every Lending instance in the process
book_locks = BookLocks()


class Lending:
    """Borrow, return and overdue handling on top of the catalog."""

    def __init__(self, db_file: Optional[str] = None, clock=None, catalog: Optional[Catalog] = None,
                 loan_period_days: Optional[int] = None, max_active_borrowings: Optional[int] = None) -> None:
        self.db_file = db_file
        self.clock = clock or SystemClock()
        self.catalog = catalog or Catalog(db_file, self.clock)
        self.loan_period_days = loan_period_days if loan_period_days is not None else settings.loan_period_days
        self.max_active_borrowings = (
            max_active_borrowings if max_active_borrowings is not None else settings.max_active_borrowings
        )

    # ------------------------- State transitions ------------------------- #
    def borrow_book(self, book_id: str, request: BorrowRequestModel) -> BorrowingRecord:
        logger.info("Processing book borrowing request for book: %s by: %s", book_id, request.borrower_email)
        with book_locks.hold(book_id):
            try:
                with transaction(self.db_file) as conn:
                    book = store.find_book(conn, book_id)
                    if book is None:
                        raise NotFound("Book", book_id)
                    if not book.is_available():
                        raise BusinessRuleViolation("Book is not available for borrowing")
                    # The status flag and the records can disagree; check both
                    if store.has_active_borrowing(conn, book_id):
                        raise BusinessRuleViolation("Book is already borrowed")
                    active = store.count_active_by_email(conn, request.borrower_email)
                    if active >= self.max_active_borrowings:
                        raise BusinessRuleViolation(
                            f"Maximum borrowing limit ({self.max_active_borrowings} books) "
                            f"reached for user: {request.borrower_email}"
                        )

                    today = self.clock.today()
                    record = BorrowingRecord(
                        book_id=book.id,
                        borrower_name=request.borrower_name,
                        borrower_email=request.borrower_email,
                        borrow_date=today,
                        due_date=today + timedelta(days=self.loan_period_days),
                        status=BorrowingStatus.ACTIVE,
                        notes=request.notes,
                        book_isbn=book.isbn,
                        book_title=book.title,
                    )
                    # Record first, then the status flip, inside the same transaction
                    store.insert_record(conn, record)
                    self.catalog.mark_borrowed(book_id, conn=conn)
            except sqlite3.IntegrityError as e:
                # One-ACTIVE-record-per-book index fired: another process got there first
                raise BusinessRuleViolation("Book is already borrowed") from e
        logger.info("Successfully created borrowing record with id: %s", record.id)
        return record

    def return_book(self, record_id: str) -> BorrowingRecord:
        logger.info("Processing book return for borrowing record: %s", record_id)
        with connection(self.db_file) as conn:
            existing = store.find_record(conn, record_id)
        if existing is None:
            raise NotFound("BorrowingRecord", record_id)

        with book_locks.hold(existing.book_id):
            with transaction(self.db_file) as conn:
                record = store.find_record(conn, record_id)
                if record is None:
                    raise NotFound("BorrowingRecord", record_id)
                if not record.is_outstanding():
                    raise BusinessRuleViolation("Borrowing record is not active")
                record.mark_returned(self.clock.today())
                store.update_record(conn, record)
                self.catalog.mark_available(record.book_id, conn=conn)
        logger.info("Successfully returned book for borrowing record: %s", record_id)
        return record

    def sweep_overdue(self) -> int:
        """Move ACTIVE records past their due date to OVERDUE; returns how many moved."""
        today = self.clock.today()
        logger.info("Marking overdue borrowing records as of %s", today)
        with connection(self.db_file) as conn:
            candidates = store.active_past_due(conn, today)

        processed = 0
        for candidate in candidates:
            with transaction(self.db_file) as conn:
                # Re-read: the record may have been returned or swept since the query
                record = store.find_record(conn, candidate.id)
                if record is None or not record.is_active():
                    logger.debug("Skipping borrowing record %s, no longer active", candidate.id)
                    continue
                record.mark_overdue()
                store.update_record(conn, record)
            processed += 1
            logger.debug("Marked borrowing record %s as overdue", candidate.id)

        logger.info("Processed %d overdue records", processed)
        return processed

    # ------------------------- Overdue computation ------------------------- #
    def is_overdue(self, record: BorrowingRecord) -> bool:
        return record.is_overdue(self.clock.today())

    def days_overdue(self, record: BorrowingRecord) -> int:
        return record.days_overdue(self.clock.today())

    # ------------------------- Queries ------------------------- #
    def find_all(self) -> List[BorrowingRecord]:
        logger.debug("Retrieving all borrowing records")
        with connection(self.db_file) as conn:
            return store.list_records(conn)

    def find_by_id(self, record_id: str) -> BorrowingRecord:
        logger.debug("Retrieving borrowing record with id: %s", record_id)
        with connection(self.db_file) as conn:
            record = store.find_record(conn, record_id)
        if record is None:
            raise NotFound("BorrowingRecord", record_id)
        return record

    def find_by_status(self, status: BorrowingStatus) -> List[BorrowingRecord]:
        logger.debug("Finding borrowing records by status: %s", status)
        with connection(self.db_file) as conn:
            return store.records_by_status(conn, BorrowingStatus(status))

    def find_by_borrower_email(self, email: str) -> List[BorrowingRecord]:
        logger.debug("Finding borrowing records by borrower email: %s", email)
        with connection(self.db_file) as conn:
            return store.records_by_email(conn, email.strip())

    def find_history_for_book(self, book_id: str) -> List[BorrowingRecord]:
        """Every loan of the book, most recent first."""
        logger.debug("Finding borrowing history for book: %s", book_id)
        with connection(self.db_file) as conn:
            return store.records_for_book(conn, book_id)

    def find_overdue(self) -> List[BorrowingRecord]:
        logger.debug("Finding overdue borrowing records")
        with connection(self.db_file) as conn:
            return store.overdue_records(conn, self.clock.today())

    def find_with_filters(self, status: Optional[BorrowingStatus] = None, borrower_email: Optional[str] = None,
                          from_date: Optional[date] = None, to_date: Optional[date] = None) -> List[BorrowingRecord]:
        logger.debug(
            "Finding borrowing records with filters - status: %s, email: %s, from: %s, to: %s",
            status, borrower_email, from_date, to_date,
        )
        with connection(self.db_file) as conn:
            return store.records_with_filters(
                conn, BorrowingStatus(status) if status else None, borrower_email, from_date, to_date
            )
