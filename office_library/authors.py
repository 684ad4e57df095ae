import logging
import sqlite3
from typing import List, Optional

from office_library import store
from office_library.database import connection, transaction
from office_library.errors import BusinessRuleViolation, DuplicateKey, NotFound
from office_library.models import Author
from office_library.schemas import AuthorCreateModel, AuthorUpdateModel

logger = logging.getLogger(__name__)


class AuthorService:
    """Reference data for the catalog: who wrote what."""

    def __init__(self, db_file: Optional[str] = None) -> None:
        self.db_file = db_file

    def create_author(self, request: AuthorCreateModel) -> Author:
        logger.info("Creating new author: %s %s", request.first_name, request.last_name)
        author = Author(**request.model_dump())
        try:
            with transaction(self.db_file) as conn:
                if author.email and store.author_email_taken(conn, author.email):
                    raise DuplicateKey("Author", "email", author.email)
                store.insert_author(conn, author)
        except sqlite3.IntegrityError as e:
            # Lost a race against another insert with the same e-mail
            raise DuplicateKey("Author", "email", author.email or "") from e
        logger.info("Successfully created author with id: %s", author.id)
        return author

    def find_all(self) -> List[Author]:
        logger.debug("Retrieving all authors")
        with connection(self.db_file) as conn:
            return store.list_authors(conn)

    def find_by_id(self, author_id: str) -> Author:
        logger.debug("Retrieving author with id: %s", author_id)
        with connection(self.db_file) as conn:
            author = store.find_author(conn, author_id)
        if author is None:
            raise NotFound("Author", author_id)
        return author

    def search_by_name(self, term: str) -> List[Author]:
        logger.debug("Searching authors by name: %s", term)
        with connection(self.db_file) as conn:
            return store.search_authors_by_name(conn, term)

    def find_by_nationality(self, nationality: str) -> List[Author]:
        logger.debug("Finding authors by nationality: %s", nationality)
        with connection(self.db_file) as conn:
            return store.authors_by_nationality(conn, nationality)

    def exists_by_email(self, email: str) -> bool:
        with connection(self.db_file) as conn:
            return store.author_email_taken(conn, email)

    def update_author(self, author_id: str, request: AuthorUpdateModel) -> Author:
        logger.info("Updating author with id: %s", author_id)
        try:
            with transaction(self.db_file) as conn:
                author = store.find_author(conn, author_id)
                if author is None:
                    raise NotFound("Author", author_id)
                if request.email and store.author_email_taken(conn, request.email, exclude_id=author_id):
                    raise DuplicateKey("Author", "email", request.email)

                author.first_name = request.first_name
                author.last_name = request.last_name
                author.biography = request.biography
                author.birth_date = request.birth_date
                author.nationality = request.nationality
                author.email = request.email
                store.update_author(conn, author)
        except sqlite3.IntegrityError as e:
            raise DuplicateKey("Author", "email", request.email or "") from e
        logger.info("Successfully updated author with id: %s", author_id)
        return author

    def delete_author(self, author_id: str) -> None:
        logger.info("Deleting author with id: %s", author_id)
        with transaction(self.db_file) as conn:
            if not store.author_exists(conn, author_id):
                raise NotFound("Author", author_id)
            if store.count_books_by_author(conn, author_id) > 0:
                raise BusinessRuleViolation("Cannot delete author with books in the catalog")
            store.delete_author(conn, author_id)
        logger.info("Successfully deleted author with id: %s", author_id)
