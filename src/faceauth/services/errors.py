"""Exception hierarchy shared by the service layer.

The API layer maps each family to one HTTP status; services raise the most
specific subclass at the point where the problem is detected.
"""


class ServiceError(Exception):
    """Base exception for face authentication service errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ClientInputError(ServiceError):
    """Raised when the caller supplied malformed input."""


class AuthenticationError(ServiceError):
    """Raised when the caller is not (or no longer) authenticated."""


class ConflictError(ServiceError):
    """Raised when a request conflicts with server-side state."""


class NotFoundError(ServiceError):
    """Raised when a requested resource does not exist."""


class InternalServiceError(ServiceError):
    """Raised when a backend failure prevents completing the operation."""
