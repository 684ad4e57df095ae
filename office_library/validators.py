from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from office_library.errors import ValidationFailure

ModelT = TypeVar("ModelT", bound=BaseModel)


class ISBNValidator:
    """ISBN rules used by the catalog.

    ISBNs are stored exactly as entered (hyphens included), so only the
    length is constrained.
    """

    MIN_LENGTH = 10
    MAX_LENGTH = 17

    @staticmethod
    def normalize_isbn(raw: Optional[str]) -> str:
        if raw is None:
            return ""
        return raw.strip()

    @staticmethod
    def is_valid_isbn(isbn: Optional[str]) -> bool:
        s = ISBNValidator.normalize_isbn(isbn)
        return ISBNValidator.MIN_LENGTH <= len(s) <= ISBNValidator.MAX_LENGTH


def field_errors(exc: ValidationError) -> Dict[str, str]:
    """Flatten a pydantic ValidationError into a field -> message map."""
    errors: Dict[str, str] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "request"
        # Keep the first message per field
        errors.setdefault(field, err.get("msg", "Invalid value"))
    return errors


def parse_request(model: Type[ModelT], data: Dict[str, Any]) -> ModelT:
    """Build a request model, turning pydantic errors into ValidationFailure."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ValidationFailure(field_errors(exc)) from exc
