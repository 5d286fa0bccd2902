"""Custom exception classes for the Konfi backend."""

from fastapi import status


class KonfiError(Exception):
    """Base exception. Rendered as ``{"error": message}`` with ``status_code``."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class ValidationError(KonfiError):
    """Raised when input validation fails."""
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(KonfiError):
    """Raised when authentication fails."""
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(KonfiError):
    """Raised when the actor lacks permission or hierarchy rank."""
    status_code = status.HTTP_403_FORBIDDEN


class ResourceNotFoundError(KonfiError):
    """Raised when a requested resource is not found."""
    status_code = status.HTTP_404_NOT_FOUND


class ResourceConflictError(KonfiError):
    """Raised when a resource already exists or is still referenced."""
    status_code = status.HTTP_409_CONFLICT


class StorageError(KonfiError):
    """Raised when a database operation fails."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Database error"):
        super().__init__(message)


# Shortcuts
def not_found(detail: str = "Resource not found") -> ResourceNotFoundError:
    return ResourceNotFoundError(detail)


def forbidden(detail: str = "Insufficient permissions") -> AuthorizationError:
    return AuthorizationError(detail)


def bad_request(detail: str = "Bad request") -> ValidationError:
    return ValidationError(detail)


def unauthorized(detail: str = "Not authenticated") -> AuthenticationError:
    return AuthenticationError(detail)
