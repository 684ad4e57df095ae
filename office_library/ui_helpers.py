import json
import os
from typing import Any, Dict, List

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from office_library.models import Author, Book, BorrowingRecord

# Environment variable holding the CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    # Unknown values leave the current mode in place
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False))


def print_books(books: List[Book]) -> None:
    """Print books in the current output mode.
    - plain: 'id  ISBN - Title by Author [STATUS]' lines, or 'No books in library.'
    - json: array of book objects
    - rich: table
    """
    mode = get_output_mode()

    if mode == "json":
        _print_json([b.to_dict() for b in books])
        return
    if not books:
        print("No books in library.")
        return

    if mode == "rich":
        table = Table(title="Books", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("ISBN", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Status", style="green")
        for b in books:
            table.add_row(b.id, b.isbn, b.title, b.author_name or "", b.status.value)
        _console.print(table)
    else:
        for b in books:
            print(f"{b.id}  {b.isbn} - {b.title} by {b.author_name or 'Unknown'} [{b.status.value}]")


def print_book_detail(book: Book) -> None:
    mode = get_output_mode()
    if mode == "json":
        _print_json(book.to_dict())
    elif mode == "rich":
        content = (
            f"[bold]Title:[/] {book.title}\n[bold]Author:[/] {book.author_name or 'Unknown'}\n"
            f"[bold]ISBN:[/] {book.isbn}\n[bold]Status:[/] {book.status.value}"
        )
        _console.print(Panel.fit(content, title="Book", border_style="blue"))
    else:
        print("Book Found")
        print(f"Title: {book.title}")
        print(f"Author: {book.author_name or 'Unknown'}")
        print(f"ISBN: {book.isbn}")
        print(f"Status: {book.status.value}")


def print_authors(authors: List[Author]) -> None:
    mode = get_output_mode()
    if mode == "json":
        _print_json([a.to_dict() for a in authors])
        return
    if not authors:
        print("No authors found.")
        return

    if mode == "rich":
        table = Table(title="Authors", header_style="bold cyan")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Name", style="white")
        table.add_column("Nationality")
        table.add_column("E-mail")
        for a in authors:
            table.add_row(a.id, a.full_name, a.nationality or "", a.email or "")
        _console.print(table)
    else:
        for a in authors:
            print(f"{a.id}  {a.full_name}")


def print_records(records: List[BorrowingRecord], today) -> None:
    """Print borrowing records; ``today`` decides the overdue columns."""
    mode = get_output_mode()
    if mode == "json":
        _print_json([r.to_dict(today=today) for r in records])
        return
    if not records:
        print("No borrowing records found.")
        return

    if mode == "rich":
        table = Table(title="Borrowing records", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Book", style="white")
        table.add_column("Borrower")
        table.add_column("Due", no_wrap=True)
        table.add_column("Status")
        table.add_column("Days overdue", justify="right")
        for r in records:
            days = r.days_overdue(today)
            table.add_row(
                r.id, r.book_title or r.book_id, r.borrower_email, r.due_date.isoformat(),
                r.status.value, f"[red]{days}[/]" if days else "0",
            )
        _console.print(table)
    else:
        for r in records:
            line = f"{r.id}  {r.book_title or r.book_id} -> {r.borrower_email} due {r.due_date.isoformat()} [{r.status.value}]"
            days = r.days_overdue(today)
            if days:
                line += f" ({days} days overdue)"
            print(line)


def print_stats_result(stats: Dict[str, Any]) -> None:
    """Print statistics in the current output mode.
    - plain: one 'Label: value' line per metric
    - json: the stats object
    - rich: panel with the main metrics
    """
    mode = get_output_mode()

    if not stats:
        print("No statistics available.")
        return

    labels = {
        "total_books": "Total Books",
        "available_books": "Available Books",
        "borrowed_books": "Borrowed Books",
        "total_authors": "Authors",
        "active_loans": "Active Loans",
        "overdue_loans": "Overdue Loans",
        "returned_loans": "Returned Loans",
    }

    if mode == "json":
        _print_json(stats)
    elif mode == "rich":
        content = "\n".join(f"[bold]{label}:[/] {stats.get(key, 0)}" for key, label in labels.items())
        _console.print(Panel.fit(content, title="Stats", border_style="blue"))
    else:
        for key, label in labels.items():
            print(f"{label}: {stats.get(key, 0)}")
