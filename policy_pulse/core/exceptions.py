"""Application exception hierarchy.

Domain services raise these internally. Public service operations convert
them into ``ServiceResult`` failures so callers never see them cross the
boundary; the API layer maps failure codes to HTTP status codes.
"""

from typing import Optional


class AppError(Exception):
    """Base exception for application errors."""

    code = "app_error"

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class NotFoundError(AppError):
    """Raised when a referenced entity is absent from its directory."""

    code = "not_found"


class PolicyNotFoundError(NotFoundError):
    """Raised when a policy id or file reference does not resolve."""

    code = "policy_not_found"


class UserNotFoundError(NotFoundError):
    """Raised when a user id does not resolve."""

    code = "user_not_found"


class ValidationError(AppError):
    """Raised when input validation fails."""

    code = "validation_error"


class DocumentExtractionError(AppError):
    """Raised when a PDF cannot be opened or read."""

    code = "document_unreadable"
