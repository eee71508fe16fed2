"""Application errors surfaced to clients as ``{"success": false, "message": ...}``."""

from fastapi import status


class WebNestError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailed(WebNestError):
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthorized(WebNestError):
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(WebNestError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(WebNestError):
    status_code = status.HTTP_404_NOT_FOUND
