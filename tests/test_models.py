from datetime import date, timedelta

from office_library.models import (
    Author,
    Book,
    BookStatus,
    BorrowingRecord,
    BorrowingStatus,
)

TODAY = date(2024, 3, 20)


def _record(due, status=BorrowingStatus.ACTIVE):
    return BorrowingRecord(
        book_id="b1",
        borrower_name="Ada Lovelace",
        borrower_email="ada@example.com",
        borrow_date=due - timedelta(days=14),
        due_date=due,
        status=status,
    )


def test_book_status_is_exactly_one_of_available_or_borrowed():
    book = Book("9780000000001", "Title", "a1", status=BookStatus.AVAILABLE, date_added=TODAY)
    assert book.is_available() and not book.is_borrowed()

    book.mark_borrowed()
    assert book.is_borrowed() and not book.is_available()
    assert book.status == BookStatus.BORROWED

    book.mark_available()
    assert book.is_available() and not book.is_borrowed()


def test_mark_available_has_no_precondition():
    book = Book("9780000000001", "Title", "a1", status=BookStatus.AVAILABLE, date_added=TODAY)
    book.mark_available()
    book.mark_available()
    assert book.status == BookStatus.AVAILABLE


def test_active_record_past_due_is_overdue():
    record = _record(TODAY - timedelta(days=1))
    assert record.is_overdue(TODAY)
    assert record.days_overdue(TODAY) == 1


def test_due_today_is_not_overdue():
    record = _record(TODAY)
    assert not record.is_overdue(TODAY)
    assert record.days_overdue(TODAY) == 0


def test_overdue_status_counts_even_before_due_date():
    record = _record(TODAY + timedelta(days=3), status=BorrowingStatus.OVERDUE)
    assert record.is_overdue(TODAY)


def test_returned_record_is_never_overdue():
    record = _record(TODAY - timedelta(days=10))
    record.mark_returned(TODAY)
    assert record.status == BorrowingStatus.RETURNED
    assert record.return_date == TODAY
    assert not record.is_overdue(TODAY)
    assert record.days_overdue(TODAY) == 0


def test_days_overdue_crosses_year_boundary():
    record = _record(date(2023, 12, 30))
    assert record.days_overdue(date(2024, 1, 2)) == 3


def test_days_overdue_across_leap_day():
    record = _record(date(2024, 2, 27))
    assert record.days_overdue(date(2024, 3, 1)) == 3


def test_record_to_dict_uses_enum_strings_and_iso_dates():
    record = _record(date(2024, 3, 14))
    data = record.to_dict(today=TODAY)

    assert data["status"] == "ACTIVE"
    assert data["due_date"] == "2024-03-14"
    assert data["return_date"] is None
    assert data["overdue"] is True
    assert data["days_overdue"] == 6


def test_record_to_dict_without_today_has_no_derived_fields():
    data = _record(TODAY).to_dict()
    assert "overdue" not in data
    assert "days_overdue" not in data


def test_record_from_dict_reads_stored_row():
    row = {
        "id": "r1",
        "book_id": "b1",
        "borrower_name": "Ada",
        "borrower_email": "ada@example.com",
        "borrow_date": "2024-03-01",
        "due_date": "2024-03-15",
        "return_date": "2024-03-10",
        "status": "RETURNED",
        "notes": None,
    }
    record = BorrowingRecord.from_dict(row)
    assert record.status == BorrowingStatus.RETURNED
    assert record.return_date == date(2024, 3, 10)
    assert record.is_returned()


def test_author_full_name_and_dict():
    author = Author("  Octavia ", "Butler", birth_date=date(1947, 6, 22))
    assert author.full_name == "Octavia Butler"
    assert author.to_dict()["birth_date"] == "1947-06-22"
