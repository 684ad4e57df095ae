import time
from datetime import timedelta

from fastapi.testclient import TestClient


def _create_author(client, api_headers, **fields):
    payload = {"first_name": "Ursula", "last_name": "Le Guin", "email": "ursula@example.com"}
    payload.update(fields)
    response = client.post("/api/authors", headers=api_headers, json=payload)
    assert response.status_code == 201
    return response.json()


def _create_book(client, api_headers, author_id, isbn="978-0441478125", title="The Left Hand of Darkness"):
    response = client.post(
        "/api/books",
        headers=api_headers,
        json={"isbn": isbn, "title": title, "author_id": author_id, "genre": "Science Fiction"},
    )
    assert response.status_code == 201
    return response.json()


def _borrow(client, api_headers, book_id, email="reader@example.com"):
    return client.post(
        f"/api/books/{book_id}/borrow",
        headers=api_headers,
        json={"borrower_name": "Reader", "borrower_email": email},
    )


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["db"] is True


def test_lists_are_arrays_even_when_empty(client):
    for path in ("/api/authors", "/api/books", "/api/books/available", "/api/borrowing-records",
                 "/api/borrowing-records/overdue"):
        response = client.get(path)
        assert response.status_code == 200
        assert response.json() == []


def test_write_requires_api_key(client):
    response = client.post("/api/authors", json={"first_name": "A", "last_name": "B"})
    assert response.status_code == 403

    response = client.post("/api/authors", headers={"X-API-Key": "invalid-key"}, json={"first_name": "A", "last_name": "B"})
    assert response.status_code == 403
    assert response.json()["message"] == "Could not validate credentials"


def test_create_book_and_read_it_back(client, api_headers, clock):
    author = _create_author(client, api_headers)
    book = _create_book(client, api_headers, author["id"])

    assert book["status"] == "AVAILABLE"
    assert book["date_added"] == clock.today().isoformat()
    assert book["author_name"] == "Ursula Le Guin"

    assert client.get(f"/api/books/{book['id']}").json()["isbn"] == "978-0441478125"
    assert client.get("/api/books/isbn/978-0441478125").json()["id"] == book["id"]
    assert [b["id"] for b in client.get("/api/books/search", params={"query": "left hand"}).json()] == [book["id"]]
    assert [b["id"] for b in client.get("/api/books", params={"genre": "science fiction"}).json()] == [book["id"]]


def test_not_found_body(client):
    response = client.get("/api/books/missing")
    assert response.status_code == 404
    body = response.json()
    assert body["status"] == 404
    assert body["error"] == "Not Found"
    assert body["message"] == "Book not found with id: missing"
    assert body["path"] == "/api/books/missing"
    assert "timestamp" in body


def test_duplicate_isbn_is_400(client, api_headers):
    author = _create_author(client, api_headers)
    _create_book(client, api_headers, author["id"])

    response = client.post(
        "/api/books", headers=api_headers,
        json={"isbn": "978-0441478125", "title": "Again", "author_id": author["id"]},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Book with ISBN 978-0441478125 already exists"


def test_validation_errors_are_400_with_field_map(client, api_headers):
    response = client.post("/api/books", headers=api_headers, json={"isbn": "123", "title": ""})
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation Failed"
    assert body["message"] == "Invalid input parameters"
    assert {"isbn", "title", "author_id"} <= set(body["validation_errors"])


def test_malformed_borrower_email(client, api_headers):
    author = _create_author(client, api_headers)
    book = _create_book(client, api_headers, author["id"])

    response = client.post(
        f"/api/books/{book['id']}/borrow", headers=api_headers,
        json={"borrower_name": "Reader", "borrower_email": "not-an-email"},
    )
    assert response.status_code == 400
    assert "borrower_email" in response.json()["validation_errors"]


def test_borrower_email_without_domain_label_is_400(client, api_headers):
    author = _create_author(client, api_headers)
    book = _create_book(client, api_headers, author["id"])

    response = _borrow(client, api_headers, book["id"], email="reader@example.")
    assert response.status_code == 400
    assert "borrower_email" in response.json()["validation_errors"]
    assert client.get(f"/api/books/{book['id']}").json()["status"] == "AVAILABLE"


def test_invalid_status_filter_is_400(client):
    response = client.get("/api/books", params={"status": "LOST"})
    assert response.status_code == 400
    assert "status" in response.json()["validation_errors"]


def test_borrow_return_flow(client, api_headers, clock):
    author = _create_author(client, api_headers)
    book = _create_book(client, api_headers, author["id"])

    response = _borrow(client, api_headers, book["id"])
    assert response.status_code == 201
    record = response.json()
    assert record["status"] == "ACTIVE"
    assert record["due_date"] == (clock.today() + timedelta(days=14)).isoformat()
    assert record["overdue"] is False
    assert client.get(f"/api/books/{book['id']}").json()["status"] == "BORROWED"

    again = _borrow(client, api_headers, book["id"], email="other@example.com")
    assert again.status_code == 400
    assert again.json()["message"] == "Book is not available for borrowing"

    response = client.put(f"/api/borrowing-records/{record['id']}/return", headers=api_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "RETURNED"
    assert response.json()["return_date"] == clock.today().isoformat()
    assert client.get(f"/api/books/{book['id']}").json()["status"] == "AVAILABLE"

    second = client.put(f"/api/borrowing-records/{record['id']}/return", headers=api_headers)
    assert second.status_code == 400
    assert second.json()["message"] == "Borrowing record is not active"


def test_overdue_sweep_over_http(client, api_headers, clock):
    author = _create_author(client, api_headers)
    book = _create_book(client, api_headers, author["id"])
    record = _borrow(client, api_headers, book["id"]).json()

    clock.advance(15)
    overdue = client.get("/api/borrowing-records/overdue").json()
    assert [r["id"] for r in overdue] == [record["id"]]
    assert overdue[0]["days_overdue"] == 1

    response = client.post("/api/borrowing-records/sweep-overdue", headers=api_headers)
    assert response.json() == {"processed": 1}
    assert client.get(f"/api/borrowing-records/{record['id']}").json()["status"] == "OVERDUE"
    by_status = client.get("/api/borrowing-records", params={"status": "OVERDUE"}).json()
    assert [r["id"] for r in by_status] == [record["id"]]


def test_history_and_by_borrower(client, api_headers):
    author = _create_author(client, api_headers)
    book = _create_book(client, api_headers, author["id"])
    record = _borrow(client, api_headers, book["id"], email="Reader@Example.com").json()

    history = client.get(f"/api/books/{book['id']}/borrowing-history").json()
    assert [r["id"] for r in history] == [record["id"]]
    mine = client.get("/api/borrowing-records/by-borrower", params={"email": "reader@example.com"}).json()
    assert [r["id"] for r in mine] == [record["id"]]


def test_delete_book(client, api_headers):
    author = _create_author(client, api_headers)
    book = _create_book(client, api_headers, author["id"])
    record = _borrow(client, api_headers, book["id"]).json()

    refused = client.delete(f"/api/books/{book['id']}", headers=api_headers)
    assert refused.status_code == 400
    assert refused.json()["message"] == "Cannot delete book with active borrowing records"

    client.put(f"/api/borrowing-records/{record['id']}/return", headers=api_headers)
    response = client.delete(f"/api/books/{book['id']}", headers=api_headers)
    assert response.status_code == 204
    assert client.get(f"/api/books/{book['id']}").status_code == 404


def test_update_book(client, api_headers):
    author = _create_author(client, api_headers)
    book = _create_book(client, api_headers, author["id"])

    response = client.put(
        f"/api/books/{book['id']}", headers=api_headers,
        json={"isbn": book["isbn"], "title": "New Title", "author_id": author["id"], "location": "Shelf B"},
    )
    assert response.status_code == 200
    assert response.json()["title"] == "New Title"
    assert response.json()["status"] == "AVAILABLE"


def test_author_crud(client, api_headers):
    author = _create_author(client, api_headers, nationality="American")

    assert [a["id"] for a in client.get("/api/authors", params={"name": "guin"}).json()] == [author["id"]]
    assert [a["id"] for a in client.get("/api/authors", params={"nationality": "american"}).json()] == [author["id"]]

    duplicate = client.post(
        "/api/authors", headers=api_headers,
        json={"first_name": "U", "last_name": "K", "email": "URSULA@example.com"},
    )
    assert duplicate.status_code == 400

    response = client.put(
        f"/api/authors/{author['id']}", headers=api_headers,
        json={"first_name": "Ursula K.", "last_name": "Le Guin"},
    )
    assert response.status_code == 200
    assert response.json()["full_name"] == "Ursula K. Le Guin"

    assert client.delete(f"/api/authors/{author['id']}", headers=api_headers).status_code == 204
    assert client.get(f"/api/authors/{author['id']}").status_code == 404


def test_stats(client, api_headers):
    author = _create_author(client, api_headers)
    book = _create_book(client, api_headers, author["id"])
    _borrow(client, api_headers, book["id"])

    stats = client.get("/stats").json()
    assert stats["total_books"] == 1
    assert stats["borrowed_books"] == 1
    assert stats["active_loans"] == 1
    assert stats["overdue_loans"] == 0


def test_unexpected_error_hides_details(lib, monkeypatch):
    from office_library.api import app

    monkeypatch.setattr(app.state, "library", lib)

    def explode():
        raise RuntimeError("secret internals")

    monkeypatch.setattr(lib.catalog, "find_all", explode)
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get("/api/books")
    assert response.status_code == 500
    assert response.json()["message"] == "An unexpected error occurred"
    assert "secret" not in response.text


def test_background_sweep_runs_while_app_is_up(lib, tracker, monkeypatch, clock):
    from office_library.api import app
    from office_library.config import settings
    from office_library.models import BookStatus, BorrowingStatus
    from office_library.schemas import AuthorCreateModel, BookCreateModel, BorrowRequestModel

    author = lib.authors.create_author(AuthorCreateModel(first_name="Iain", last_name="Banks"))
    book = lib.catalog.create_book(BookCreateModel(isbn="978-1857231380", title="Excession", author_id=author.id))
    record = lib.lending.borrow_book(
        book.id, BorrowRequestModel(borrower_name="Reader", borrower_email="reader@example.com"),
    )
    clock.advance(15)

    monkeypatch.setattr(settings, "overdue_sweep_interval", 0.01)
    monkeypatch.setattr(app.state, "library", lib)
    monkeypatch.setattr(app.state, "wine_tracker", tracker)
    monkeypatch.setattr(app.state, "overdue_sweeper", None, raising=False)

    with TestClient(app):
        sweeper = app.state.overdue_sweeper
        assert sweeper is not None
        deadline = time.monotonic() + 5
        while lib.lending.find_by_id(record.id).status != BorrowingStatus.OVERDUE:
            assert time.monotonic() < deadline, "background sweep never ran"
            time.sleep(0.02)
        assert not sweeper.done()

    assert sweeper.cancelled()
    assert lib.catalog.find_by_id(book.id).status == BookStatus.BORROWED


def test_background_sweep_disabled_by_default(lib, monkeypatch):
    from office_library.api import app
    from office_library.config import settings

    monkeypatch.setattr(settings, "overdue_sweep_interval", 0)
    monkeypatch.setattr(app.state, "library", lib)
    monkeypatch.setattr(app.state, "overdue_sweeper", None, raising=False)

    with TestClient(app):
        assert app.state.overdue_sweeper is None
