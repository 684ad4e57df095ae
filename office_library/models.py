from __future__ import annotations

import uuid
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional


class BookStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    BORROWED = "BORROWED"


class BorrowingStatus(str, Enum):
    ACTIVE = "ACTIVE"
    RETURNED = "RETURNED"
    OVERDUE = "OVERDUE"


def new_id() -> str:
    return str(uuid.uuid4())


def parse_date(value: Any) -> Optional[date]:
    """Dates are stored as ISO strings in SQLite."""
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def format_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


class Author:
    """A person books in the catalog are attributed to."""

    def __init__(self, first_name: str, last_name: str, biography: str | None = None,
                 birth_date: date | None = None, nationality: str | None = None,
                 email: str | None = None, id: str | None = None) -> None:
        self.id = id or new_id()
        self.first_name = first_name.strip()
        self.last_name = last_name.strip()
        self.biography = biography
        self.birth_date = birth_date
        self.nationality = nationality
        self.email = email

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return self.full_name

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "biography": self.biography,
            "birth_date": format_date(self.birth_date),
            "nationality": self.nationality,
            "email": self.email,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Author":
        return Author(
            id=data["id"],
            first_name=data["first_name"],
            last_name=data["last_name"],
            biography=data.get("biography"),
            birth_date=parse_date(data.get("birth_date")),
            nationality=data.get("nationality"),
            email=data.get("email"),
        )


class Book:
    """A single copy in the catalog. Its status is flipped only by lending."""

    def __init__(self, isbn: str, title: str, author_id: str | None,
                 status: BookStatus = BookStatus.AVAILABLE, date_added: date | None = None,
                 publisher: str | None = None, publication_year: int | None = None,
                 genre: str | None = None, location: str | None = None,
                 id: str | None = None, author_name: str | None = None) -> None:
        self.id = id or new_id()
        self.isbn = isbn.strip()
        self.title = title.strip()
        self.author_id = author_id
        self.status = BookStatus(status)
        self.date_added = date_added
        self.publisher = publisher
        self.publication_year = publication_year
        self.genre = genre
        self.location = location
        # Joined in by the store for display only
        self.author_name = author_name

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} (ISBN: {self.isbn})"

    def is_available(self) -> bool:
        return self.status == BookStatus.AVAILABLE

    def is_borrowed(self) -> bool:
        return self.status == BookStatus.BORROWED

    def mark_borrowed(self) -> None:
        self.status = BookStatus.BORROWED

    def mark_available(self) -> None:
        self.status = BookStatus.AVAILABLE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "isbn": self.isbn,
            "title": self.title,
            "author_id": self.author_id,
            "author_name": self.author_name,
            "publisher": self.publisher,
            "publication_year": self.publication_year,
            "genre": self.genre,
            "status": self.status.value,
            "date_added": format_date(self.date_added),
            "location": self.location,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Book":
        return Book(
            id=data["id"],
            isbn=data["isbn"],
            title=data["title"],
            author_id=data.get("author_id"),
            status=BookStatus(data["status"]),
            date_added=parse_date(data.get("date_added")),
            publisher=data.get("publisher"),
            publication_year=data.get("publication_year"),
            genre=data.get("genre"),
            location=data.get("location"),
            author_name=data.get("author_name"),
        )


class BorrowingRecord:
    """One loan of one book to one borrower.

    ACTIVE is the only state a record is created in. RETURNED is terminal and
    OVERDUE never goes back to ACTIVE.
    """

    def __init__(self, book_id: str, borrower_name: str, borrower_email: str,
                 borrow_date: date, due_date: date,
                 status: BorrowingStatus = BorrowingStatus.ACTIVE,
                 return_date: date | None = None, notes: str | None = None,
                 id: str | None = None, book_isbn: str | None = None,
                 book_title: str | None = None) -> None:
        self.id = id or new_id()
        self.book_id = book_id
        self.borrower_name = borrower_name.strip()
        self.borrower_email = borrower_email.strip()
        self.borrow_date = borrow_date
        self.due_date = due_date
        self.status = BorrowingStatus(status)
        self.return_date = return_date
        self.notes = notes
        self.book_isbn = book_isbn
        self.book_title = book_title

    def is_active(self) -> bool:
        return self.status == BorrowingStatus.ACTIVE

    def is_returned(self) -> bool:
        return self.status == BorrowingStatus.RETURNED

    def is_outstanding(self) -> bool:
        """The book is still out: ACTIVE, or swept to OVERDUE."""
        return self.status in (BorrowingStatus.ACTIVE, BorrowingStatus.OVERDUE)

    def is_overdue(self, today: date) -> bool:
        return self.status == BorrowingStatus.OVERDUE or (
            self.status == BorrowingStatus.ACTIVE and today > self.due_date
        )

    def days_overdue(self, today: date) -> int:
        if not self.is_overdue(today):
            return 0
        return today.toordinal() - self.due_date.toordinal()

    def mark_returned(self, return_date: date) -> None:
        self.return_date = return_date
        self.status = BorrowingStatus.RETURNED

    def mark_overdue(self) -> None:
        self.status = BorrowingStatus.OVERDUE

    def to_dict(self, today: date | None = None) -> dict:
        data = {
            "id": self.id,
            "book_id": self.book_id,
            "book_isbn": self.book_isbn,
            "book_title": self.book_title,
            "borrower_name": self.borrower_name,
            "borrower_email": self.borrower_email,
            "borrow_date": format_date(self.borrow_date),
            "due_date": format_date(self.due_date),
            "return_date": format_date(self.return_date),
            "status": self.status.value,
            "notes": self.notes,
        }
        if today is not None:
            data["overdue"] = self.is_overdue(today)
            data["days_overdue"] = self.days_overdue(today)
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "BorrowingRecord":
        return BorrowingRecord(
            id=data["id"],
            book_id=data["book_id"],
            borrower_name=data["borrower_name"],
            borrower_email=data["borrower_email"],
            borrow_date=parse_date(data["borrow_date"]),
            due_date=parse_date(data["due_date"]),
            status=BorrowingStatus(data["status"]),
            return_date=parse_date(data.get("return_date")),
            notes=data.get("notes"),
            book_isbn=data.get("book_isbn"),
            book_title=data.get("book_title"),
        )
