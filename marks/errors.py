# marks/errors.py
# Application error taxonomy shared by the core, gateways and the API


class AppError(Exception):
    """Base application error with structured response."""

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: dict = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}


class ValidationError(AppError):
    """User input rejected before any mutation or network call."""
    def __init__(self, message: str = "Validation failed", field: str = None, details: dict = None):
        details = dict(details or {})
        if field:
            details["field"] = field
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=400,
            details=details
        )


class ServiceError(AppError):
    """Persistence gateway request failed (list, create or delete)."""
    def __init__(self, message: str = "Bookmark service request failed", details: dict = None):
        super().__init__(
            message=message,
            error_code="SERVICE_ERROR",
            status_code=503,
            details=details
        )


class FeedError(AppError):
    """Change feed subscription failed or timed out."""
    def __init__(self, message: str = "Change feed subscription failed", details: dict = None):
        super().__init__(
            message=message,
            error_code="FEED_ERROR",
            status_code=503,
            details=details
        )


class NotFoundError(ServiceError):
    """Row does not exist (or is not owned by the caller)."""
    def __init__(self, message: str = "Resource not found", details: dict = None):
        AppError.__init__(
            self,
            message=message,
            error_code="NOT_FOUND",
            status_code=404,
            details=details
        )


class UnauthorizedError(AppError):
    """Request carries no owner identity."""
    def __init__(self, message: str = "Missing user identity"):
        super().__init__(
            message=message,
            error_code="UNAUTHORIZED",
            status_code=401,
        )
