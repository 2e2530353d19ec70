"""Custom exception classes for the Department Student Records API.

Managers raise these; the application maps each one to an HTTP status and
the standard ``{success, message, errors}`` response envelope.
"""

from typing import Any, List, Optional


class RecordsApiError(Exception):
    """Base exception for all Student Records API errors."""

    status_code: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(RecordsApiError):
    """Raised when a payload violates one or more validation rules."""

    status_code = 400

    def __init__(self, errors: List[str], message: str = "Validation error"):
        """Initialize the exception.

        Args:
            errors: Every violated rule, so callers can fix them in one go.
            message: Summary message.
        """
        self.errors = list(errors)
        super().__init__(message)


class DuplicateKeyError(RecordsApiError):
    """Raised when a write would break a uniqueness constraint."""

    status_code = 400

    def __init__(self, field: str, value: Any, message: Optional[str] = None):
        """Initialize the exception.

        Args:
            field: The unique field (or field pair) that collided.
            value: The colliding value.
            message: Optional override of the default message.
        """
        self.field = field
        self.value = value
        super().__init__(
            message
            or f"Duplicate value: {field} with value '{value}' already exists"
        )


class NotFoundError(RecordsApiError):
    """Raised when a requested entity cannot be found."""

    status_code = 404

    def __init__(self, entity: str, entity_id: Optional[str] = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class AuthenticationError(RecordsApiError):
    """Raised when the caller is not (or cannot be) authenticated."""

    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class AuthorizationError(RecordsApiError):
    """Raised when the caller's role does not permit the operation."""

    status_code = 403

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(message)
