"""
Error taxonomy for the announcements API.

Every error that reaches a client is rendered by the handlers in main.py as
{"success": false, "error": <message>, "code": <error_code>}.
"""
from fastapi import HTTPException, status


class AnnouncementAPIError(HTTPException):
    """HTTPException carrying a stable machine-readable error code."""

    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR
    code_default = "INTERNAL_ERROR"

    def __init__(
        self,
        detail: str,
        error_code: str | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(status_code=self.status_code_default, detail=detail, headers=headers)
        self.error_code = error_code or self.code_default


class ValidationError(AnnouncementAPIError):
    status_code_default = status.HTTP_400_BAD_REQUEST
    code_default = "VALIDATION_ERROR"


class AuthenticationError(AnnouncementAPIError):
    status_code_default = status.HTTP_401_UNAUTHORIZED
    code_default = "INVALID_TOKEN"

    def __init__(self, detail: str, error_code: str | None = None):
        super().__init__(detail, error_code, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationError(AnnouncementAPIError):
    status_code_default = status.HTTP_403_FORBIDDEN
    code_default = "FORBIDDEN"


class NotFoundError(AnnouncementAPIError):
    status_code_default = status.HTTP_404_NOT_FOUND
    code_default = "NOT_FOUND"


class RateLimitError(AnnouncementAPIError):
    status_code_default = status.HTTP_429_TOO_MANY_REQUESTS
    code_default = "RATE_LIMIT_EXCEEDED"


class ProviderError(Exception):
    """A content provider (Gemini, Unsplash, Pexels) failed. Never reaches the client."""


STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "NO_AUTH",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    413: "PAYLOAD_TOO_LARGE",
    429: "RATE_LIMIT_EXCEEDED",
}


def code_for_status(status_code: int) -> str:
    return STATUS_CODES.get(status_code, "INTERNAL_ERROR" if status_code >= 500 else "ERROR")
