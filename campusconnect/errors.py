"""Domain error taxonomy.

Services raise these instead of HTTP exceptions; ``campusconnect.main``
registers a single handler that renders them as ``{"detail", "code"}``.
Every failure is reported once to the caller, nothing here retries.
"""
from typing import Any, Dict


class CampusConnectError(Exception):
    """Base exception for all CampusConnect errors."""

    status_code = 500
    default_code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code}


class AuthenticationError(CampusConnectError):
    """No valid identity was presented."""

    status_code = 401
    default_code = "NOT_AUTHENTICATED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class PermissionDeniedError(CampusConnectError):
    """Role or ownership mismatch."""

    status_code = 403
    default_code = "PERMISSION_DENIED"

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message)


class NotFoundError(CampusConnectError):
    """Referenced request, conversation, or user is absent."""

    status_code = 404
    default_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: str | None = None):
        message = f"{resource} not found" if identifier is None else f"{resource} '{identifier}' not found"
        super().__init__(message)
        self.resource = resource
        self.identifier = identifier


class InputValidationError(CampusConnectError):
    """Empty or malformed input."""

    status_code = 400
    default_code = "INVALID_INPUT"


class ConflictError(CampusConnectError):
    """The operation does not fit the current state of the record."""

    status_code = 409
    default_code = "CONFLICT"


class TemporaryFailureError(CampusConnectError):
    """A collaborator failed; the caller may try again."""

    status_code = 503
    default_code = "TEMPORARY_FAILURE"


class StorageError(TemporaryFailureError):
    """The underlying store operation failed."""

    default_code = "STORAGE_ERROR"


class AIServiceError(TemporaryFailureError):
    """The text-generation collaborator failed."""

    default_code = "AI_SERVICE_ERROR"
