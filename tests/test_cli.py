import json
from datetime import timedelta
from unittest.mock import patch

from office_library.main import app
from office_library.models import BookStatus


def test_books_empty(cli_lib, runner):
    result = runner.invoke(app, ["books"])
    assert result.exit_code == 0
    assert "No books in library." in result.stdout


def test_add_author_and_book(cli_lib, runner):
    result = runner.invoke(app, ["add-author", "Octavia", "Butler", "--email", "octavia@example.com"])
    assert result.exit_code == 0
    assert "Added author: Octavia Butler" in result.stdout
    author = cli_lib.authors.find_all()[0]

    result = runner.invoke(app, ["add-book", "978-0446675505", "Parable of the Sower", author.id, "--year", "1993"])
    assert result.exit_code == 0
    assert "Successfully added: Parable of the Sower" in result.stdout

    result = runner.invoke(app, ["books"])
    assert "978-0446675505 - Parable of the Sower by Octavia Butler [AVAILABLE]" in result.stdout


def test_add_book_validation_error(cli_lib, runner, author):
    result = runner.invoke(app, ["add-book", "123", "Short ISBN", author.id])
    assert result.exit_code == 1
    assert "Error: Invalid input parameters" in result.stdout
    assert "isbn:" in result.stdout


def test_add_book_unknown_author(cli_lib, runner):
    result = runner.invoke(app, ["add-book", "9780000000001", "Orphan", "nobody"])
    assert result.exit_code == 1
    assert "Error: Author not found with id: nobody" in result.stdout


def test_find_book(cli_lib, runner, book):
    result = runner.invoke(app, ["find-book", book.isbn])
    assert result.exit_code == 0
    assert "Book Found" in result.stdout
    assert f"Title: {book.title}" in result.stdout
    assert "Author: Ursula Le Guin" in result.stdout


def test_find_book_not_found(cli_lib, runner):
    result = runner.invoke(app, ["find-book", "9789999999999"])
    assert result.exit_code == 1
    assert "Error: Book not found with ISBN: 9789999999999" in result.stdout


def test_borrow_and_return(cli_lib, runner, book, clock):
    result = runner.invoke(app, ["borrow", book.id, "Reader", "reader@example.com"])
    assert result.exit_code == 0
    due = (clock.today() + timedelta(days=14)).isoformat()
    assert f"to reader@example.com, due {due}" in result.stdout
    assert cli_lib.catalog.find_by_id(book.id).status == BookStatus.BORROWED

    record = cli_lib.lending.find_all()[0]
    result = runner.invoke(app, ["return", record.id])
    assert result.exit_code == 0
    assert f"Returned: {book.title}" in result.stdout

    result = runner.invoke(app, ["return", record.id])
    assert result.exit_code == 1
    assert "Error: Borrowing record is not active" in result.stdout


def test_sweep_and_overdue(cli_lib, runner, book, clock):
    runner.invoke(app, ["borrow", book.id, "Reader", "reader@example.com"])
    clock.advance(17)

    result = runner.invoke(app, ["sweep-overdue"])
    assert result.exit_code == 0
    assert "Marked 1 borrowing records as overdue." in result.stdout

    result = runner.invoke(app, ["overdue"])
    assert "[OVERDUE] (3 days overdue)" in result.stdout


def test_records_json_output(cli_lib, runner, book):
    runner.invoke(app, ["borrow", book.id, "Reader", "reader@example.com"])

    result = runner.invoke(app, ["--output", "json", "records", "--status", "active"])
    assert result.exit_code == 0
    payload = json.loads(result.stdout.strip().splitlines()[-1])
    assert [r["book_id"] for r in payload] == [book.id]
    assert payload[0]["status"] == "ACTIVE"


def test_history_rich_output(cli_lib, runner, book):
    runner.invoke(app, ["borrow", book.id, "Reader", "reader@example.com"])
    result = runner.invoke(app, ["-o", "rich", "history", book.id])
    assert result.exit_code == 0
    assert "Borrowing records" in result.stdout


def test_stats(cli_lib, runner, book):
    result = runner.invoke(app, ["stats"])
    assert result.exit_code == 0
    assert "Total Books: 1" in result.stdout
    assert "Available Books: 1" in result.stdout


def test_remove_book(cli_lib, runner, book):
    result = runner.invoke(app, ["remove-book", book.id])
    assert result.exit_code == 0
    assert f"Book {book.id} has been removed." in result.stdout
    assert cli_lib.catalog.find_all() == []


@patch("subprocess.run")
def test_serve_command(mock_subprocess_run, cli_lib, runner):
    result = runner.invoke(app, ["serve"])
    assert result.exit_code == 0
    assert "Starting API on" in result.stdout
    args = mock_subprocess_run.call_args[0][0]
    assert "office_library.api:app" in args
