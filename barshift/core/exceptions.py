"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class ConcurrencyConflictException(ConflictException):
    """A uniqueness constraint rejected a write made against a stale read."""

    def __init__(self, message: str = "Concurrent modification detected"):
        """Initialize with 409 status code."""
        super().__init__(message)


class StaleTradeException(ConflictException):
    """The assignment behind a trade changed before the swap could run."""

    def __init__(self, message: str = "Trade is stale and needs manual reconciliation"):
        """Initialize with 409 status code."""
        super().__init__(message)


class InvalidStateTransitionException(ConflictException):
    """A workflow transition was requested from a state that does not allow it."""

    def __init__(self, message: str = "Invalid state transition"):
        """Initialize with 409 status code."""
        super().__init__(message)


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation error"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422)


class OperationTimeoutException(AppException):
    """Operation exceeded the caller supplied deadline."""

    def __init__(self, message: str = "Operation timed out"):
        """Initialize with 504 status code."""
        super().__init__(message, status_code=504)
