from __future__ import annotations

from typing import Dict


class LibraryError(Exception):
    """Base class for every failure the services report to their callers."""

    error = "Bad Request"
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(LibraryError):
    """An identifier that does not resolve to a stored entity."""

    error = "Not Found"
    status_code = 404

    def __init__(self, resource_type: str, identifier: object, field: str = "id") -> None:
        super().__init__(f"{resource_type} not found with {field}: {identifier}")
        self.resource_type = resource_type
        self.identifier = identifier
        self.field = field


class DuplicateKey(LibraryError):
    """A unique field (ISBN, e-mail) collides with an existing entity."""

    def __init__(self, resource_type: str, field: str, value: str) -> None:
        super().__init__(f"{resource_type} with {field} {value} already exists")
        self.resource_type = resource_type
        self.field = field
        self.value = value


class BusinessRuleViolation(LibraryError):
    """A state precondition failed (not available, limit reached, ...)."""


class ValidationFailure(LibraryError):
    """Field-level input problems, keyed by field name."""

    error = "Validation Failed"

    def __init__(self, errors: Dict[str, str]) -> None:
        super().__init__("Invalid input parameters")
        self.errors = errors
