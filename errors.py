# errors.py
from typing import Dict, Optional

from fastapi import HTTPException, status


class ApiError(HTTPException):
    """Base for failures that reach the client as ``{success: false, message}``."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, headers: Optional[Dict[str, str]] = None):
        super().__init__(status_code=type(self).status_code, detail=message, headers=headers)

    @property
    def message(self) -> str:
        return self.detail


class ValidationConflict(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotAuthenticated(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(ApiError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "No access"):
        super().__init__(message)


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND


class InvalidToken(NotAuthenticated):
    """Expired, tampered or malformed access token."""
