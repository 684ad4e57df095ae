import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from http import HTTPStatus
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from office_library.config import settings
from office_library.database import connection
from office_library.errors import LibraryError, ValidationFailure
from office_library.library import Library
from office_library.models import BookStatus, BorrowingRecord, BorrowingStatus
from office_library.schemas import (
    AuthorCreateModel,
    AuthorUpdateModel,
    BookCreateModel,
    BookUpdateModel,
    BorrowRequestModel,
)
from office_library.security import get_api_key
from office_library.validators import field_errors
from wine_tracker.routes import router as wine_router
from wine_tracker.tracker import WineTracker

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

library = Library()


async def _sweep_periodically(lib: Library, interval: int) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            await asyncio.to_thread(lib.lending.sweep_overdue)
        except Exception:
            # Keep the loop alive; the next tick retries
            logger.exception("Scheduled overdue sweep failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    sweeper = None
    if settings.overdue_sweep_interval > 0:
        logger.info("Starting overdue sweep every %s seconds", settings.overdue_sweep_interval)
        sweeper = asyncio.create_task(_sweep_periodically(app.state.library, settings.overdue_sweep_interval))
    app.state.overdue_sweeper = sweeper
    try:
        yield
    finally:
        if sweeper is not None:
            sweeper.cancel()
            await asyncio.gather(sweeper, return_exceptions=True)


app = FastAPI(title=f"{settings.app_name} API", version=settings.app_version, lifespan=lifespan)
app.state.library = library
app.state.wine_tracker = WineTracker(library.db_file, library.clock)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if settings.enable_wine_tracker:
    app.include_router(wine_router)


def get_library(request: Request) -> Library:
    return request.app.state.library


# --- Error responses ---
def _error_body(request: Request, status: int, error: str, message: str, **extra: Any) -> Dict[str, Any]:
    body = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "status": status,
        "error": error,
        "message": message,
        "path": request.url.path,
    }
    body.update(extra)
    return body


@app.exception_handler(ValidationFailure)
async def validation_failure_handler(request: Request, exc: ValidationFailure):
    logger.warning("Validation failed on %s: %s", request.url.path, exc.errors)
    return JSONResponse(
        status_code=400,
        content=_error_body(request, 400, exc.error, exc.message, validation_errors=exc.errors),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = field_errors(exc)
    logger.warning("Validation failed on %s: %s", request.url.path, errors)
    return JSONResponse(
        status_code=400,
        content=_error_body(request, 400, "Validation Failed", "Invalid input parameters", validation_errors=errors),
    )


@app.exception_handler(LibraryError)
async def library_error_handler(request: Request, exc: LibraryError):
    logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.status_code, exc.error, exc.message),
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.status_code, HTTPStatus(exc.status_code).phrase, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unexpected error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content=_error_body(request, 500, "Internal Server Error", "An unexpected error occurred"),
    )


def _records(lib: Library, records: List[BorrowingRecord]) -> List[Dict[str, Any]]:
    today = lib.clock.today()
    return [record.to_dict(today=today) for record in records]


# --- Health ---
@app.get("/health")
def health(lib: Library = Depends(get_library)):
    """Liveness plus a quick database round trip."""
    db_ok = True
    try:
        with connection(lib.db_file) as conn:
            conn.execute("SELECT 1")
    except Exception:
        logger.exception("Health check could not reach the database")
        db_ok = False
    return {
        "status": "healthy" if db_ok else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "db": db_ok,
        "version": settings.app_version,
    }


@app.get("/stats")
def get_library_stats(lib: Library = Depends(get_library)):
    return lib.get_statistics()


# --- Authors ---
@app.post("/api/authors", status_code=201, dependencies=[Depends(get_api_key)])
def create_author(payload: AuthorCreateModel, lib: Library = Depends(get_library)):
    return lib.authors.create_author(payload).to_dict()


@app.get("/api/authors")
def list_authors(
    name: Optional[str] = Query(None, description="Part of the author's full name"),
    nationality: Optional[str] = Query(None),
    lib: Library = Depends(get_library),
):
    if name:
        authors = lib.authors.search_by_name(name)
    elif nationality:
        authors = lib.authors.find_by_nationality(nationality)
    else:
        authors = lib.authors.find_all()
    return [author.to_dict() for author in authors]


@app.get("/api/authors/{author_id}")
def get_author(author_id: str, lib: Library = Depends(get_library)):
    return lib.authors.find_by_id(author_id).to_dict()


@app.put("/api/authors/{author_id}", dependencies=[Depends(get_api_key)])
def update_author(author_id: str, payload: AuthorUpdateModel, lib: Library = Depends(get_library)):
    return lib.authors.update_author(author_id, payload).to_dict()


@app.delete("/api/authors/{author_id}", status_code=204, dependencies=[Depends(get_api_key)])
def delete_author(author_id: str, lib: Library = Depends(get_library)):
    lib.authors.delete_author(author_id)
    return Response(status_code=204)


# --- Books ---
@app.post("/api/books", status_code=201, dependencies=[Depends(get_api_key)])
def create_book(payload: BookCreateModel, lib: Library = Depends(get_library)):
    return lib.catalog.create_book(payload).to_dict()


@app.get("/api/books")
def list_books(
    status: Optional[BookStatus] = Query(None),
    genre: Optional[str] = Query(None),
    author_id: Optional[str] = Query(None),
    lib: Library = Depends(get_library),
):
    if status or genre or author_id:
        books = lib.catalog.find_with_filters(status=status, genre=genre, author_id=author_id)
    else:
        books = lib.catalog.find_all()
    return [book.to_dict() for book in books]


@app.get("/api/books/search")
def search_books(query: str = Query(..., min_length=1), lib: Library = Depends(get_library)):
    return [book.to_dict() for book in lib.catalog.search(query)]


@app.get("/api/books/available")
def available_books(lib: Library = Depends(get_library)):
    return [book.to_dict() for book in lib.catalog.find_available()]


@app.get("/api/books/isbn/{isbn}")
def get_book_by_isbn(isbn: str, lib: Library = Depends(get_library)):
    return lib.catalog.find_by_isbn(isbn).to_dict()


@app.get("/api/books/{book_id}")
def get_book(book_id: str, lib: Library = Depends(get_library)):
    return lib.catalog.find_by_id(book_id).to_dict()


@app.put("/api/books/{book_id}", dependencies=[Depends(get_api_key)])
def update_book(book_id: str, payload: BookUpdateModel, lib: Library = Depends(get_library)):
    return lib.catalog.update_book(book_id, payload).to_dict()


@app.delete("/api/books/{book_id}", status_code=204, dependencies=[Depends(get_api_key)])
def delete_book(book_id: str, lib: Library = Depends(get_library)):
    lib.catalog.delete_book(book_id)
    return Response(status_code=204)


@app.post("/api/books/{book_id}/borrow", status_code=201, dependencies=[Depends(get_api_key)])
def borrow_book(book_id: str, payload: BorrowRequestModel, lib: Library = Depends(get_library)):
    record = lib.lending.borrow_book(book_id, payload)
    return record.to_dict(today=lib.clock.today())


@app.get("/api/books/{book_id}/borrowing-history")
def borrowing_history(book_id: str, lib: Library = Depends(get_library)):
    return _records(lib, lib.lending.find_history_for_book(book_id))


# --- Borrowing records ---
@app.put("/api/borrowing-records/{record_id}/return", dependencies=[Depends(get_api_key)])
def return_book(record_id: str, lib: Library = Depends(get_library)):
    record = lib.lending.return_book(record_id)
    return record.to_dict(today=lib.clock.today())


@app.get("/api/borrowing-records")
def list_records(
    status: Optional[BorrowingStatus] = Query(None),
    borrower_email: Optional[str] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    lib: Library = Depends(get_library),
):
    if status or borrower_email or from_date or to_date:
        records = lib.lending.find_with_filters(status, borrower_email, from_date, to_date)
    else:
        records = lib.lending.find_all()
    return _records(lib, records)


@app.get("/api/borrowing-records/overdue")
def overdue_records(lib: Library = Depends(get_library)):
    return _records(lib, lib.lending.find_overdue())


@app.get("/api/borrowing-records/by-borrower")
def records_by_borrower(email: str = Query(..., min_length=1), lib: Library = Depends(get_library)):
    return _records(lib, lib.lending.find_by_borrower_email(email))


@app.post("/api/borrowing-records/sweep-overdue", dependencies=[Depends(get_api_key)])
def sweep_overdue(lib: Library = Depends(get_library)):
    return {"processed": lib.lending.sweep_overdue()}


@app.get("/api/borrowing-records/{record_id}")
def get_record(record_id: str, lib: Library = Depends(get_library)):
    return lib.lending.find_by_id(record_id).to_dict(today=lib.clock.today())
