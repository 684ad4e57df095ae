import logging
import subprocess
import sys
from datetime import datetime
from functools import wraps
from typing import Optional

import typer

import office_library.database as database
from office_library.config import settings
from office_library.errors import LibraryError, ValidationFailure
from office_library.library import Library
from office_library.models import BookStatus, BorrowingStatus
from office_library.schemas import AuthorCreateModel, BookCreateModel, BorrowRequestModel
from office_library.ui_helpers import (
    print_authors,
    print_book_detail,
    print_books,
    print_records,
    print_stats_result,
    set_output_mode,
)
from office_library.validators import parse_request


class LibraryManager:
    """One Library per database file for the lifetime of the CLI process."""

    _instance: Optional[Library] = None
    _db_file_snapshot: Optional[str] = None

    @classmethod
    def get_instance(cls) -> Library:
        current_db = database.DATABASE_FILE
        # A different database file (e.g. per-test) gets a fresh Library
        if cls._instance is None or current_db != cls._db_file_snapshot:
            if cls._instance is not None:
                cls._instance.close()
            cls._instance = Library(db_file=current_db)
            cls._db_file_snapshot = current_db
        return cls._instance


def handle_errors(func):
    """Report service errors as one line and exit non-zero."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ValidationFailure as e:
            print(f"Error: {e.message}")
            for field, message in e.errors.items():
                print(f"  {field}: {message}")
            raise typer.Exit(code=1)
        except LibraryError as e:
            print(f"Error: {e.message}")
            raise typer.Exit(code=1)
    return wrapper


# --- Typer CLI application ---
app = typer.Typer(help=f"{settings.app_name} CLI")


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    )
):
    """Global options for the CLI (e.g. output mode)."""
    logging.basicConfig(level=settings.log_level)
    if output:
        set_output_mode(output)


# --- Authors ---
@app.command("authors")
def cli_authors(
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Filter by part of the name"),
    nationality: Optional[str] = typer.Option(None, "--nationality", help="Filter by nationality"),
):
    """List authors."""
    lib = LibraryManager.get_instance()
    if name:
        authors = lib.authors.search_by_name(name)
    elif nationality:
        authors = lib.authors.find_by_nationality(nationality)
    else:
        authors = lib.authors.find_all()
    print_authors(authors)


@app.command("add-author")
@handle_errors
def cli_add_author(
    first_name: str,
    last_name: str,
    email: Optional[str] = typer.Option(None, "--email", "-e"),
    nationality: Optional[str] = typer.Option(None, "--nationality"),
    birth_date: Optional[str] = typer.Option(None, "--birth-date", help="YYYY-MM-DD"),
    biography: Optional[str] = typer.Option(None, "--biography"),
):
    """Add an author to the directory."""
    request = parse_request(AuthorCreateModel, {
        "first_name": first_name,
        "last_name": last_name,
        "email": email,
        "nationality": nationality,
        "birth_date": birth_date,
        "biography": biography,
    })
    author = LibraryManager.get_instance().authors.create_author(request)
    print(f"Added author: {author.full_name} ({author.id})")


# --- Books ---
@app.command("books")
def cli_books(
    status: Optional[BookStatus] = typer.Option(None, "--status", "-s", case_sensitive=False),
    genre: Optional[str] = typer.Option(None, "--genre", "-g"),
    author_id: Optional[str] = typer.Option(None, "--author-id", "-a"),
):
    """List books, optionally filtered."""
    lib = LibraryManager.get_instance()
    if status or genre or author_id:
        books = lib.catalog.find_with_filters(status=status, genre=genre, author_id=author_id)
    else:
        books = lib.catalog.find_all()
    print_books(books)


@app.command("add-book")
@handle_errors
def cli_add_book(
    isbn: str,
    title: str,
    author_id: str,
    publisher: Optional[str] = typer.Option(None, "--publisher"),
    year: Optional[int] = typer.Option(None, "--year", help="Publication year"),
    genre: Optional[str] = typer.Option(None, "--genre"),
    location: Optional[str] = typer.Option(None, "--location", help="Shelf location"),
):
    """Add a book to the catalog."""
    request = parse_request(BookCreateModel, {
        "isbn": isbn,
        "title": title,
        "author_id": author_id,
        "publisher": publisher,
        "publication_year": year,
        "genre": genre,
        "location": location,
    })
    book = LibraryManager.get_instance().catalog.create_book(request)
    print(f"Successfully added: {book.title} ({book.id})")


@app.command("remove-book")
@handle_errors
def cli_remove_book(book_id: str):
    """Remove a book and its borrowing history."""
    LibraryManager.get_instance().catalog.delete_book(book_id)
    print(f"Book {book_id} has been removed.")


@app.command("find-book")
@handle_errors
def cli_find_book(isbn: str):
    """Find a book by ISBN and show its details."""
    book = LibraryManager.get_instance().catalog.find_by_isbn(isbn)
    print_book_detail(book)


@app.command("search")
def cli_search(query: str = typer.Argument(..., help="Text matched against title, ISBN and publisher")):
    """Search the catalog."""
    books = LibraryManager.get_instance().catalog.search(query)
    print_books(books)


# --- Lending ---
@app.command("borrow")
@handle_errors
def cli_borrow(
    book_id: str,
    borrower_name: str,
    borrower_email: str,
    notes: Optional[str] = typer.Option(None, "--notes"),
):
    """Lend a book to a borrower."""
    request = parse_request(BorrowRequestModel, {
        "borrower_name": borrower_name,
        "borrower_email": borrower_email,
        "notes": notes,
    })
    record = LibraryManager.get_instance().lending.borrow_book(book_id, request)
    print(f"Borrowed: {record.book_title} to {record.borrower_email}, due {record.due_date.isoformat()} "
          f"(record {record.id})")


@app.command("return")
@handle_errors
def cli_return(record_id: str):
    """Return a borrowed book."""
    record = LibraryManager.get_instance().lending.return_book(record_id)
    print(f"Returned: {record.book_title} on {record.return_date.isoformat()} (record {record.id})")


@app.command("records")
def cli_records(
    status: Optional[BorrowingStatus] = typer.Option(None, "--status", "-s", case_sensitive=False),
    email: Optional[str] = typer.Option(None, "--email", "-e"),
    from_date: Optional[datetime] = typer.Option(None, "--from", formats=["%Y-%m-%d"]),
    to_date: Optional[datetime] = typer.Option(None, "--to", formats=["%Y-%m-%d"]),
):
    """List borrowing records, optionally filtered."""
    lib = LibraryManager.get_instance()
    records = lib.lending.find_with_filters(
        status=status,
        borrower_email=email,
        from_date=from_date.date() if from_date else None,
        to_date=to_date.date() if to_date else None,
    )
    print_records(records, lib.clock.today())


@app.command("overdue")
def cli_overdue():
    """List overdue borrowing records."""
    lib = LibraryManager.get_instance()
    print_records(lib.lending.find_overdue(), lib.clock.today())


@app.command("history")
def cli_history(book_id: str):
    """Borrowing history of one book, most recent first."""
    lib = LibraryManager.get_instance()
    print_records(lib.lending.find_history_for_book(book_id), lib.clock.today())


@app.command("sweep-overdue")
def cli_sweep_overdue():
    """Mark every ACTIVE record past its due date as OVERDUE."""
    processed = LibraryManager.get_instance().lending.sweep_overdue()
    print(f"Marked {processed} borrowing records as overdue.")


@app.command("stats")
def cli_stats():
    """Show library statistics."""
    print_stats_result(LibraryManager.get_instance().get_statistics())


@app.command("serve")
def cli_serve(reload: bool = typer.Option(False, "--reload", help="Restart on code changes")):
    """Start the HTTP API with uvicorn."""
    host = settings.api_host
    port = int(settings.api_port)
    print(f"Starting API on http://{host}:{port}/")
    args = [
        sys.executable,
        "-m", "uvicorn",
        "office_library.api:app",
        "--host", host,
        "--port", str(port),
    ]
    if reload:
        args.append("--reload")
    subprocess.run(args)


if __name__ == "__main__":
    app()
