from typing import Any, Dict, Optional

class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)

class InvalidInputError(AppException):
    """Caller supplied data that can never succeed as-is. Not retryable."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, status_code: int = 422, error_code: str = "VALIDATION_ERROR"):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details
        )

class ResourceNotFoundError(InvalidInputError):
    def __init__(self, resource: str, resource_id: Any):
        super().__init__(
            message=f"{resource} {resource_id} not found",
            status_code=404,
            error_code="NOT_FOUND",
            details={"resource": resource, "id": resource_id}
        )

class ConflictError(AppException):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=409,
            error_code="CONFLICT",
            details=details
        )

class PersistenceError(AppException):
    """Database failure after rollback. Safe to retry: writes are idempotent."""
    def __init__(self, message: str = "The database is currently unavailable.", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=503,
            error_code="PERSISTENCE_ERROR",
            details=details
        )
