"""Typed service errors; the API layer maps ``status_code`` onto the response."""

from typing import Optional


class ServiceError(Exception):
    """Base class for every error the service layer raises on purpose."""
    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code:
            self.status_code = status_code
        super().__init__(self.message)


class NotFoundError(ServiceError):
    """Referenced faculty, subject, professor, rating or report does not exist."""
    status_code = 404

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)


class ConflictError(ServiceError):
    """
    Raised when a write collides with existing state.

    Examples:
    - Subject with the same normalised name already in the faculty
    - Professor rename onto another professor's name
    - Resolving a report that is no longer pending
    """
    status_code = 400

    def __init__(self, message: str = "Resource already exists"):
        super().__init__(message)


class ValidationError(ServiceError):
    """Malformed input that passed schema validation but not service rules."""
    status_code = 400

    def __init__(self, message: str = "Invalid request"):
        super().__init__(message)


class CaptchaError(ServiceError):
    status_code = 400

    def __init__(self, message: str = "CAPTCHA verification failed"):
        super().__init__(message)


class AuthError(ServiceError):
    status_code = 401

    def __init__(self, message: str = "Invalid authentication credentials"):
        super().__init__(message)


class StorageError(ServiceError):
    """Unexpected data store failure. The message is safe to show callers."""
    status_code = 500

    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(message)


class PartialCleanupError(StorageError):
    """Some steps of a multi-write cleanup failed while others were applied."""

    def __init__(self, failed: list[str], succeeded: list[str]):
        self.failed = failed
        self.succeeded = succeeded
        super().__init__(
            f"Cleanup partially applied; failed steps: {', '.join(failed)}"
        )
