from fastapi import HTTPException, Security
from fastapi.security import APIKeyHeader

from office_library.config import settings

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def get_api_key(api_key: str = Security(api_key_header)) -> str:
    """Dependency guarding every mutating endpoint."""
    if api_key and api_key == settings.api_key:
        return api_key
    raise HTTPException(
        status_code=403,
        detail="Could not validate credentials",
    )
