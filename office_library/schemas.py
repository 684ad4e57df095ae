"""Request payloads accepted by the services.

These pydantic models are the one validation contract shared by the HTTP
API and the CLI; the services receive them already validated.
"""

from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from office_library.validators import ISBNValidator


class RequestModel(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class AuthorCreateModel(RequestModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    biography: Optional[str] = Field(None, max_length=1000)
    birth_date: Optional[date] = None
    nationality: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None

    @field_validator("email", mode="before")
    @classmethod
    def _blank_email_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class AuthorUpdateModel(AuthorCreateModel):
    pass


class BookCreateModel(RequestModel):
    isbn: str
    title: str = Field(..., min_length=1, max_length=255)
    author_id: str = Field(..., min_length=1)
    publisher: Optional[str] = Field(None, max_length=255)
    publication_year: Optional[int] = Field(None, ge=1000, le=9999)
    genre: Optional[str] = Field(None, max_length=100)
    location: Optional[str] = Field(None, max_length=100)

    @field_validator("isbn")
    @classmethod
    def _check_isbn(cls, value: str) -> str:
        if not ISBNValidator.is_valid_isbn(value):
            raise ValueError(
                f"ISBN must be between {ISBNValidator.MIN_LENGTH} and {ISBNValidator.MAX_LENGTH} characters"
            )
        return ISBNValidator.normalize_isbn(value)


class BookUpdateModel(BookCreateModel):
    pass


class BorrowRequestModel(RequestModel):
    borrower_name: str = Field(..., min_length=1, max_length=255)
    borrower_email: EmailStr
    notes: Optional[str] = Field(None, max_length=500)
