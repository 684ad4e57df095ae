"""SQL for authors, books and borrowing records.

Every function takes an open connection so callers decide the transaction
boundary. Nothing here commits.
"""

import sqlite3
from datetime import date
from typing import List, Optional

from office_library.models import (
    Author,
    Book,
    BookStatus,
    BorrowingRecord,
    BorrowingStatus,
    format_date,
)

# ------------------------- Authors ------------------------- #
AUTHOR_SELECT = """
    SELECT id, first_name, last_name, biography, birth_date, nationality, email
    FROM authors
"""


def insert_author(conn: sqlite3.Connection, author: Author) -> None:
    conn.execute(
        """
        INSERT INTO authors (id, first_name, last_name, biography, birth_date, nationality, email)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (author.id, author.first_name, author.last_name, author.biography,
         format_date(author.birth_date), author.nationality, author.email),
    )


def update_author(conn: sqlite3.Connection, author: Author) -> None:
    conn.execute(
        """
        UPDATE authors
        SET first_name = ?, last_name = ?, biography = ?, birth_date = ?, nationality = ?, email = ?
        WHERE id = ?
        """,
        (author.first_name, author.last_name, author.biography, format_date(author.birth_date),
         author.nationality, author.email, author.id),
    )


def delete_author(conn: sqlite3.Connection, author_id: str) -> int:
    return conn.execute("DELETE FROM authors WHERE id = ?", (author_id,)).rowcount


def find_author(conn: sqlite3.Connection, author_id: str) -> Optional[Author]:
    row = conn.execute(AUTHOR_SELECT + " WHERE id = ?", (author_id,)).fetchone()
    return Author.from_dict(dict(row)) if row else None


def author_exists(conn: sqlite3.Connection, author_id: str) -> bool:
    return conn.execute("SELECT 1 FROM authors WHERE id = ?", (author_id,)).fetchone() is not None


def author_email_taken(conn: sqlite3.Connection, email: str, exclude_id: Optional[str] = None) -> bool:
    row = conn.execute(
        "SELECT 1 FROM authors WHERE LOWER(email) = LOWER(?) AND (? IS NULL OR id != ?)",
        (email, exclude_id, exclude_id),
    ).fetchone()
    return row is not None


def list_authors(conn: sqlite3.Connection) -> List[Author]:
    rows = conn.execute(AUTHOR_SELECT + " ORDER BY last_name, first_name").fetchall()
    return [Author.from_dict(dict(row)) for row in rows]


def search_authors_by_name(conn: sqlite3.Connection, term: str) -> List[Author]:
    rows = conn.execute(
        AUTHOR_SELECT + """
        WHERE LOWER(first_name || ' ' || last_name) LIKE '%' || LOWER(?) || '%'
        ORDER BY last_name, first_name
        """,
        (term,),
    ).fetchall()
    return [Author.from_dict(dict(row)) for row in rows]


def authors_by_nationality(conn: sqlite3.Connection, nationality: str) -> List[Author]:
    rows = conn.execute(
        AUTHOR_SELECT + " WHERE LOWER(nationality) = LOWER(?) ORDER BY last_name, first_name",
        (nationality,),
    ).fetchall()
    return [Author.from_dict(dict(row)) for row in rows]


def count_books_by_author(conn: sqlite3.Connection, author_id: str) -> int:
    return conn.execute("SELECT COUNT(*) FROM books WHERE author_id = ?", (author_id,)).fetchone()[0]


# ------------------------- Books ------------------------- #
BOOK_SELECT = """
    SELECT b.id, b.isbn, b.title, b.publisher, b.publication_year, b.genre, b.status,
           b.date_added, b.location, b.author_id,
           a.first_name || ' ' || a.last_name AS author_name
    FROM books b
    LEFT JOIN authors a ON a.id = b.author_id
"""


def _books(rows) -> List[Book]:
    return [Book.from_dict(dict(row)) for row in rows]


def insert_book(conn: sqlite3.Connection, book: Book) -> None:
    conn.execute(
        """
        INSERT INTO books (id, isbn, title, publisher, publication_year, genre, status,
                           date_added, location, author_id)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (book.id, book.isbn, book.title, book.publisher, book.publication_year, book.genre,
         book.status.value, format_date(book.date_added), book.location, book.author_id),
    )


def update_book(conn: sqlite3.Connection, book: Book) -> None:
    """Write the descriptive fields. Status and date added are left alone."""
    conn.execute(
        """
        UPDATE books
        SET isbn = ?, title = ?, publisher = ?, publication_year = ?, genre = ?, location = ?, author_id = ?
        WHERE id = ?
        """,
        (book.isbn, book.title, book.publisher, book.publication_year, book.genre,
         book.location, book.author_id, book.id),
    )


def update_book_status(conn: sqlite3.Connection, book_id: str, status: BookStatus) -> None:
    conn.execute("UPDATE books SET status = ? WHERE id = ?", (status.value, book_id))


def delete_book(conn: sqlite3.Connection, book_id: str) -> int:
    return conn.execute("DELETE FROM books WHERE id = ?", (book_id,)).rowcount


def find_book(conn: sqlite3.Connection, book_id: str) -> Optional[Book]:
    row = conn.execute(BOOK_SELECT + " WHERE b.id = ?", (book_id,)).fetchone()
    return Book.from_dict(dict(row)) if row else None


def find_book_by_isbn(conn: sqlite3.Connection, isbn: str) -> Optional[Book]:
    row = conn.execute(BOOK_SELECT + " WHERE b.isbn = ?", (isbn,)).fetchone()
    return Book.from_dict(dict(row)) if row else None


def isbn_exists(conn: sqlite3.Connection, isbn: str, exclude_id: Optional[str] = None) -> bool:
    row = conn.execute(
        "SELECT 1 FROM books WHERE isbn = ? AND (? IS NULL OR id != ?)",
        (isbn, exclude_id, exclude_id),
    ).fetchone()
    return row is not None


def list_books(conn: sqlite3.Connection) -> List[Book]:
    return _books(conn.execute(BOOK_SELECT + " ORDER BY b.title").fetchall())


def books_by_status(conn: sqlite3.Connection, status: BookStatus) -> List[Book]:
    return _books(conn.execute(BOOK_SELECT + " WHERE b.status = ? ORDER BY b.title", (status.value,)).fetchall())


def books_by_author(conn: sqlite3.Connection, author_id: str) -> List[Book]:
    return _books(conn.execute(BOOK_SELECT + " WHERE b.author_id = ? ORDER BY b.title", (author_id,)).fetchall())


def search_books(conn: sqlite3.Connection, term: str) -> List[Book]:
    rows = conn.execute(
        BOOK_SELECT + """
        WHERE LOWER(b.title) LIKE '%' || LOWER(:term) || '%'
           OR LOWER(b.isbn) LIKE '%' || LOWER(:term) || '%'
           OR LOWER(b.publisher) LIKE '%' || LOWER(:term) || '%'
        ORDER BY b.title
        """,
        {"term": term},
    ).fetchall()
    return _books(rows)


def books_with_filters(conn: sqlite3.Connection, status: Optional[BookStatus] = None,
                       genre: Optional[str] = None, author_id: Optional[str] = None) -> List[Book]:
    rows = conn.execute(
        BOOK_SELECT + """
        WHERE (:status IS NULL OR b.status = :status)
          AND (:genre IS NULL OR LOWER(b.genre) = LOWER(:genre))
          AND (:author_id IS NULL OR b.author_id = :author_id)
        ORDER BY b.title
        """,
        {"status": status.value if status else None, "genre": genre, "author_id": author_id},
    ).fetchall()
    return _books(rows)


def has_active_borrowing(conn: sqlite3.Connection, book_id: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM borrowing_records WHERE book_id = ? AND status = ?",
        (book_id, BorrowingStatus.ACTIVE.value),
    ).fetchone()
    return row is not None


# ------------------------- Borrowing records ------------------------- #
RECORD_SELECT = """
    SELECT r.id, r.book_id, r.borrower_name, r.borrower_email, r.borrow_date, r.due_date,
           r.return_date, r.status, r.notes,
           b.isbn AS book_isbn, b.title AS book_title
    FROM borrowing_records r
    JOIN books b ON b.id = r.book_id
"""
# Newest loans first; rowid breaks ties between loans made on the same day
RECORD_ORDER = " ORDER BY r.borrow_date DESC, r.rowid DESC"


def _records(rows) -> List[BorrowingRecord]:
    return [BorrowingRecord.from_dict(dict(row)) for row in rows]


def insert_record(conn: sqlite3.Connection, record: BorrowingRecord) -> None:
    conn.execute(
        """
        INSERT INTO borrowing_records (id, book_id, borrower_name, borrower_email, borrow_date,
                                       due_date, return_date, status, notes)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (record.id, record.book_id, record.borrower_name, record.borrower_email,
         format_date(record.borrow_date), format_date(record.due_date),
         format_date(record.return_date), record.status.value, record.notes),
    )


def update_record(conn: sqlite3.Connection, record: BorrowingRecord) -> None:
    conn.execute(
        "UPDATE borrowing_records SET status = ?, return_date = ?, notes = ? WHERE id = ?",
        (record.status.value, format_date(record.return_date), record.notes, record.id),
    )


def find_record(conn: sqlite3.Connection, record_id: str) -> Optional[BorrowingRecord]:
    row = conn.execute(RECORD_SELECT + " WHERE r.id = ?", (record_id,)).fetchone()
    return BorrowingRecord.from_dict(dict(row)) if row else None


def list_records(conn: sqlite3.Connection) -> List[BorrowingRecord]:
    return _records(conn.execute(RECORD_SELECT + RECORD_ORDER).fetchall())


def records_by_status(conn: sqlite3.Connection, status: BorrowingStatus) -> List[BorrowingRecord]:
    return _records(conn.execute(RECORD_SELECT + " WHERE r.status = ?" + RECORD_ORDER, (status.value,)).fetchall())


def records_by_email(conn: sqlite3.Connection, email: str) -> List[BorrowingRecord]:
    rows = conn.execute(
        RECORD_SELECT + " WHERE LOWER(r.borrower_email) = LOWER(?)" + RECORD_ORDER, (email,)
    ).fetchall()
    return _records(rows)


def records_for_book(conn: sqlite3.Connection, book_id: str) -> List[BorrowingRecord]:
    return _records(conn.execute(RECORD_SELECT + " WHERE r.book_id = ?" + RECORD_ORDER, (book_id,)).fetchall())


def count_active_by_email(conn: sqlite3.Connection, email: str) -> int:
    row = conn.execute(
        "SELECT COUNT(*) FROM borrowing_records WHERE LOWER(borrower_email) = LOWER(?) AND status = ?",
        (email, BorrowingStatus.ACTIVE.value),
    ).fetchone()
    return row[0]


def active_past_due(conn: sqlite3.Connection, today: date) -> List[BorrowingRecord]:
    """ACTIVE records whose due date is strictly before ``today``."""
    rows = conn.execute(
        RECORD_SELECT + " WHERE r.status = ? AND r.due_date < ? ORDER BY r.due_date",
        (BorrowingStatus.ACTIVE.value, format_date(today)),
    ).fetchall()
    return _records(rows)


def overdue_records(conn: sqlite3.Connection, today: date) -> List[BorrowingRecord]:
    """Records already swept to OVERDUE plus ACTIVE ones past their due date."""
    rows = conn.execute(
        RECORD_SELECT + """
        WHERE r.status = :overdue OR (r.status = :active AND r.due_date < :today)
        ORDER BY r.due_date
        """,
        {"overdue": BorrowingStatus.OVERDUE.value, "active": BorrowingStatus.ACTIVE.value,
         "today": format_date(today)},
    ).fetchall()
    return _records(rows)


def records_with_filters(conn: sqlite3.Connection, status: Optional[BorrowingStatus] = None,
                         borrower_email: Optional[str] = None, from_date: Optional[date] = None,
                         to_date: Optional[date] = None) -> List[BorrowingRecord]:
    rows = conn.execute(
        RECORD_SELECT + """
        WHERE (:status IS NULL OR r.status = :status)
          AND (:email IS NULL OR LOWER(r.borrower_email) = LOWER(:email))
          AND (:from_date IS NULL OR r.borrow_date >= :from_date)
          AND (:to_date IS NULL OR r.borrow_date <= :to_date)
        """ + RECORD_ORDER,
        {"status": status.value if status else None, "email": borrower_email,
         "from_date": format_date(from_date), "to_date": format_date(to_date)},
    ).fetchall()
    return _records(rows)
