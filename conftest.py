import os
import tempfile
from datetime import date

# The API module builds its default Library at import time; keep that one out of the working tree
os.environ.setdefault("LIBRARY_DB_FILE", os.path.join(tempfile.mkdtemp(prefix="office-library-"), "default.db"))

import pytest
from fastapi.testclient import TestClient
from typer.testing import CliRunner

from office_library.clock import FixedClock
from office_library.config import settings
from office_library.library import Library
from office_library.schemas import AuthorCreateModel, BookCreateModel
from office_library.ui_helpers import OUTPUT_MODE_ENV
from wine_tracker.tracker import WineTracker

DAY_ZERO = date(2024, 3, 1)


@pytest.fixture
def db_file(tmp_path, request):
    # One database file per test
    return str(tmp_path / f"test_{request.node.name}.db")


@pytest.fixture
def clock():
    return FixedClock(DAY_ZERO)


@pytest.fixture
def lib(db_file, clock):
    lib = Library(db_file=db_file, clock=clock)
    yield lib
    lib.close()


@pytest.fixture
def author(lib):
    return lib.authors.create_author(
        AuthorCreateModel(first_name="Ursula", last_name="Le Guin", email="ursula@example.com", nationality="American")
    )


@pytest.fixture
def make_book(lib, author):
    counter = {"n": 0}

    def _make(isbn=None, title=None, **fields):
        counter["n"] += 1
        request = BookCreateModel(
            isbn=isbn or f"978-00000000{counter['n']:02d}",
            title=title or f"Book {counter['n']}",
            author_id=fields.pop("author_id", author.id),
            **fields,
        )
        return lib.catalog.create_book(request)

    return _make


@pytest.fixture
def book(make_book):
    return make_book(isbn="978-0441478125", title="The Left Hand of Darkness", genre="Science Fiction")


@pytest.fixture
def tracker(db_file, clock):
    return WineTracker(db_file, clock)


@pytest.fixture
def client(lib, tracker, monkeypatch):
    from office_library.api import app

    monkeypatch.setattr(app.state, "library", lib)
    monkeypatch.setattr(app.state, "wine_tracker", tracker)
    return TestClient(app)


@pytest.fixture
def api_headers():
    return {"X-API-Key": settings.api_key}


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def cli_lib(lib, monkeypatch):
    """Point the CLI at the per-test library."""
    import office_library.database as database
    from office_library.main import LibraryManager

    monkeypatch.setattr(database, "DATABASE_FILE", lib.db_file)
    monkeypatch.setattr(LibraryManager, "_instance", lib)
    monkeypatch.setattr(LibraryManager, "_db_file_snapshot", lib.db_file)
    return lib


@pytest.fixture(autouse=True)
def _reset_output_mode():
    yield
    os.environ.pop(OUTPUT_MODE_ENV, None)
