import logging
import sqlite3
from typing import List, Optional

from office_library import store
from office_library.clock import SystemClock
from office_library.database import connection, transaction, unit_of_work
from office_library.errors import BusinessRuleViolation, DuplicateKey, NotFound
from office_library.models import Book, BookStatus
from office_library.schemas import BookCreateModel, BookUpdateModel
from office_library.validators import ISBNValidator

logger = logging.getLogger(__name__)


class Catalog:
    """Owns the book lifecycle: identity (unique ISBN) and AVAILABLE/BORROWED status."""

    def __init__(self, db_file: Optional[str] = None, clock=None) -> None:
        self.db_file = db_file
        self.clock = clock or SystemClock()

    # ------------------------- Core operations ------------------------- #
    def create_book(self, request: BookCreateModel) -> Book:
        logger.info("Creating new book: %s", request.title)
        try:
            with transaction(self.db_file) as conn:
                if store.isbn_exists(conn, request.isbn):
                    raise DuplicateKey("Book", "ISBN", request.isbn)
                author = store.find_author(conn, request.author_id)
                if author is None:
                    raise NotFound("Author", request.author_id)

                book = Book(
                    isbn=request.isbn,
                    title=request.title,
                    author_id=author.id,
                    status=BookStatus.AVAILABLE,
                    date_added=self.clock.today(),
                    publisher=request.publisher,
                    publication_year=request.publication_year,
                    genre=request.genre,
                    location=request.location,
                    author_name=author.full_name,
                )
                store.insert_book(conn, book)
        except sqlite3.IntegrityError as e:
            raise DuplicateKey("Book", "ISBN", request.isbn) from e
        logger.info("Successfully created book with id: %s", book.id)
        return book

    def update_book(self, book_id: str, request: BookUpdateModel) -> Book:
        logger.info("Updating book with id: %s", book_id)
        try:
            with transaction(self.db_file) as conn:
                book = store.find_book(conn, book_id)
                if book is None:
                    raise NotFound("Book", book_id)
                if request.isbn != book.isbn and store.isbn_exists(conn, request.isbn, exclude_id=book_id):
                    raise DuplicateKey("Book", "ISBN", request.isbn)
                author = store.find_author(conn, request.author_id)
                if author is None:
                    raise NotFound("Author", request.author_id)

                book.isbn = request.isbn
                book.title = request.title
                book.author_id = author.id
                book.author_name = author.full_name
                book.publisher = request.publisher
                book.publication_year = request.publication_year
                book.genre = request.genre
                book.location = request.location
                store.update_book(conn, book)
        except sqlite3.IntegrityError as e:
            raise DuplicateKey("Book", "ISBN", request.isbn) from e
        logger.info("Successfully updated book with id: %s", book_id)
        return book

    def delete_book(self, book_id: str) -> None:
        logger.info("Deleting book with id: %s", book_id)
        with transaction(self.db_file) as conn:
            if store.find_book(conn, book_id) is None:
                raise NotFound("Book", book_id)
            if store.has_active_borrowing(conn, book_id):
                raise BusinessRuleViolation("Cannot delete book with active borrowing records")
            store.delete_book(conn, book_id)
        logger.info("Successfully deleted book with id: %s", book_id)

    # ------------------------- Status transitions ------------------------- #
    def mark_borrowed(self, book_id: str, conn: Optional[sqlite3.Connection] = None) -> Book:
        """AVAILABLE -> BORROWED. Joins the caller's transaction when ``conn`` is given."""
        logger.info("Marking book as borrowed: %s", book_id)
        with unit_of_work(self.db_file, conn) as uow:
            book = store.find_book(uow, book_id)
            if book is None:
                raise NotFound("Book", book_id)
            if not book.is_available():
                raise BusinessRuleViolation("Book is not available for borrowing")
            book.mark_borrowed()
            store.update_book_status(uow, book_id, book.status)
        return book

    def mark_available(self, book_id: str, conn: Optional[sqlite3.Connection] = None) -> Book:
        """Any status -> AVAILABLE. No precondition, so calling it twice is harmless."""
        logger.info("Marking book as available: %s", book_id)
        with unit_of_work(self.db_file, conn) as uow:
            book = store.find_book(uow, book_id)
            if book is None:
                raise NotFound("Book", book_id)
            book.mark_available()
            store.update_book_status(uow, book_id, book.status)
        return book

    # ------------------------- Queries ------------------------- #
    def find_all(self) -> List[Book]:
        logger.debug("Retrieving all books")
        with connection(self.db_file) as conn:
            return store.list_books(conn)

    def find_by_id(self, book_id: str) -> Book:
        logger.debug("Retrieving book with id: %s", book_id)
        with connection(self.db_file) as conn:
            book = store.find_book(conn, book_id)
        if book is None:
            raise NotFound("Book", book_id)
        return book

    def find_by_isbn(self, isbn: str) -> Book:
        logger.debug("Retrieving book with ISBN: %s", isbn)
        with connection(self.db_file) as conn:
            book = store.find_book_by_isbn(conn, ISBNValidator.normalize_isbn(isbn))
        if book is None:
            raise NotFound("Book", isbn, field="ISBN")
        return book

    def exists_by_isbn(self, isbn: str) -> bool:
        with connection(self.db_file) as conn:
            return store.isbn_exists(conn, ISBNValidator.normalize_isbn(isbn))

    def find_by_status(self, status: BookStatus) -> List[Book]:
        logger.debug("Finding books by status: %s", status)
        with connection(self.db_file) as conn:
            return store.books_by_status(conn, BookStatus(status))

    def find_available(self) -> List[Book]:
        return self.find_by_status(BookStatus.AVAILABLE)

    def find_by_author(self, author_id: str) -> List[Book]:
        logger.debug("Finding books by author id: %s", author_id)
        with connection(self.db_file) as conn:
            return store.books_by_author(conn, author_id)

    def search(self, term: str) -> List[Book]:
        logger.debug("Searching books with term: %s", term)
        with connection(self.db_file) as conn:
            return store.search_books(conn, term)

    def find_with_filters(self, status: Optional[BookStatus] = None, genre: Optional[str] = None,
                          author_id: Optional[str] = None) -> List[Book]:
        logger.debug("Finding books with filters - status: %s, genre: %s, author_id: %s", status, genre, author_id)
        with connection(self.db_file) as conn:
            return store.books_with_filters(conn, BookStatus(status) if status else None, genre, author_id)
