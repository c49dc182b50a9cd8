"""
Custom exception hierarchy for the application.

Every exception carries a stable machine-readable ``code`` and the HTTP
status it maps to. The API renders them as::

    {"error": {"code": "FILE_EXISTS", "message": "..."}}
"""

from typing import Any

from fastapi import status


class FileGateException(Exception):
    """Base exception for all application exceptions."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_code: str = "BAD_REQUEST"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def to_response(self) -> dict[str, Any]:
        """Error envelope returned to API callers."""
        return {"error": {"code": self.code, "message": self.message}}


class AdmissionError(FileGateException):
    """Raised when an uploaded file fails an admission gate."""

    default_code = "INVALID_FILE"

    def __init__(self, message: str, code: str, details: dict[str, Any] | None = None):
        super().__init__(message, code, details)
        if code == "FILE_TOO_LARGE":
            self.status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE


class InvalidInputError(FileGateException):
    """Raised when request input is missing or malformed."""

    default_code = "INVALID_INPUT"


class AuthenticationError(FileGateException):
    """Raised when the caller is not authenticated."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "UNAUTHENTICATED"


class AuthorizationError(FileGateException):
    """
    Raised when the caller may not act on a resource.

    The message is deliberately generic so nothing about the registry
    leaks to the caller. Audit detail goes to the logs instead.
    """

    status_code = status.HTTP_403_FORBIDDEN
    default_code = "FORBIDDEN"

    def __init__(self, message: str = "Access denied.", details: dict[str, Any] | None = None):
        super().__init__(message, details=details)


class ResourceNotFoundError(FileGateException):
    """Raised when a requested resource doesn't exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND"


class FileExistsConflict(FileGateException):
    """Raised when an upload targets a name that already exists."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "FILE_EXISTS"


class ContainerConflict(FileGateException):
    """Raised when a container name is already held by a live tenant."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "CONTAINER_EXISTS"


class InvalidTransitionError(FileGateException):
    """Raised when a tenant lifecycle transition is not allowed."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "INVALID_STATE"


class StoreUnavailableError(FileGateException):
    """Raised when a backing store (registry, activity table) fails."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_code = "SERVICE_UNAVAILABLE"

    def __init__(self, message: str = "Service temporarily unavailable.", details: dict[str, Any] | None = None):
        super().__init__(message, details=details)


class FilterSyntaxError(ValueError):
    """Raised when a filter expression cannot be parsed or compiled."""
    pass


# Helpers for the common cases
def forbidden() -> AuthorizationError:
    """Return a generic 403."""
    return AuthorizationError()


def unauthorized(message: str = "Authentication required.") -> AuthenticationError:
    """Return a 401."""
    return AuthenticationError(message)


def not_found(message: str = "Resource not found.", code: str = "NOT_FOUND") -> ResourceNotFoundError:
    """Return a 404."""
    return ResourceNotFoundError(message, code=code)


def bad_request(message: str, code: str = "INVALID_INPUT") -> InvalidInputError:
    """Return a 400."""
    return InvalidInputError(message, code=code)
