"""Domain errors raised by services and rendered by the API layer.

Every error carries an HTTP status and a user-facing message. Handlers in
``main.py`` turn them into the ``{"success": false, "message": ..., "errors": ...}``
envelope, so services never build HTTP responses themselves.
"""

from typing import Any, Dict, Optional

from fastapi import status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainError(Exception):
    """Base class for business errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, errors: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.errors = errors
        super().__init__(message)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": False, "message": self.message}
        if self.errors:
            payload["errors"] = self.errors
        return payload


class ValidationError(DomainError):
    """Malformed or missing input; the caller can fix and resubmit."""

    status_code = HTTP_422_UNPROCESSABLE


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND


class AuthorizationError(DomainError):
    """The actor does not own the resource."""

    status_code = status.HTTP_403_FORBIDDEN


class StateConflictError(DomainError):
    """The resource is in a status that does not allow the operation."""

    status_code = status.HTTP_400_BAD_REQUEST


class TeacherUnavailableError(StateConflictError):
    pass


class ServiceUnavailableError(DomainError):
    """An infrastructure dependency failed; details stay in the logs."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class VersionConflictError(StateConflictError):
    """A draft was saved by someone else since it was read."""

    status_code = status.HTTP_409_CONFLICT
