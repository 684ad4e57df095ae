import logging
import sqlite3
from contextlib import contextmanager
from typing import Iterator, Optional

from office_library.config import settings

logger = logging.getLogger(__name__)

# Default database file. Library(db_file=...) and the tests pass their own path.
DATABASE_FILE = settings.database_file

# Seconds a writer waits on a locked database before sqlite3 gives up
BUSY_TIMEOUT = 10.0


def get_db_connection(db_file: Optional[str] = None) -> sqlite3.Connection:
    """Open a connection to the SQLite database with rows addressable by column name."""
    conn = sqlite3.connect(db_file or DATABASE_FILE, timeout=BUSY_TIMEOUT, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


@contextmanager
def connection(db_file: Optional[str] = None) -> Iterator[sqlite3.Connection]:
    """Read-only use: a connection that is always closed afterwards."""
    conn = get_db_connection(db_file)
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def transaction(db_file: Optional[str] = None) -> Iterator[sqlite3.Connection]:
    """One atomic unit of work.

    ``BEGIN IMMEDIATE`` takes the write lock up front, so the reads done inside
    the block (availability, active-record checks, limit counts) cannot be
    invalidated by another writer before the block commits. Any exception rolls
    every statement of the block back.
    """
    conn = get_db_connection(db_file)
    try:
        conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def unit_of_work(db_file: Optional[str] = None, conn: Optional[sqlite3.Connection] = None) -> Iterator[sqlite3.Connection]:
    """Join the caller's transaction when ``conn`` is given, otherwise open a new one."""
    if conn is not None:
        yield conn
        return
    with transaction(db_file) as own:
        yield own


def create_tables(db_file: Optional[str] = None) -> None:
    """Create the library tables if they do not exist yet."""
    conn = get_db_connection(db_file)
    try:
        cursor = conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS authors (
                id TEXT PRIMARY KEY,
                first_name TEXT NOT NULL,
                last_name TEXT NOT NULL,
                biography TEXT,
                birth_date TEXT,
                nationality TEXT,
                email TEXT
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS books (
                id TEXT PRIMARY KEY,
                isbn TEXT NOT NULL UNIQUE,
                title TEXT NOT NULL,
                publisher TEXT,
                publication_year INTEGER,
                genre TEXT,
                status TEXT NOT NULL CHECK(status IN ('AVAILABLE', 'BORROWED')),
                date_added TEXT NOT NULL,
                location TEXT,
                author_id TEXT REFERENCES authors(id)
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS borrowing_records (
                id TEXT PRIMARY KEY,
                borrower_name TEXT NOT NULL,
                borrower_email TEXT NOT NULL,
                borrow_date TEXT NOT NULL,
                due_date TEXT NOT NULL,
                return_date TEXT,
                status TEXT NOT NULL CHECK(status IN ('ACTIVE', 'RETURNED', 'OVERDUE')),
                notes TEXT,
                book_id TEXT NOT NULL REFERENCES books(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("CREATE UNIQUE INDEX IF NOT EXISTS idx_authors_email ON authors(LOWER(email)) WHERE email IS NOT NULL")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_status ON books(status)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_author_id ON books(author_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_borrowing_status_due ON borrowing_records(status, due_date)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_borrowing_email ON borrowing_records(LOWER(borrower_email))")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_borrowing_book_date ON borrowing_records(book_id, borrow_date DESC)")
        # At most one ACTIVE record per book, enforced by storage as well as by the service
        cursor.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS idx_borrowing_one_active_per_book
            ON borrowing_records(book_id) WHERE status = 'ACTIVE'
        """)
        conn.commit()
    finally:
        conn.close()


def initialize_database(db_file: Optional[str] = None) -> None:
    """Create the schema; safe to call on every start-up."""
    create_tables(db_file)
    logger.debug("Database initialised at %s", db_file or DATABASE_FILE)
