"""
Custom exception hierarchy for the Bethany companion.
Provides structured error handling with proper context.
"""

from typing import Optional, Dict, Any


class BethanyException(Exception):
    """Base exception for all Bethany errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize exception with message and optional context.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            context: Additional context information
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "context": self.context,
        }


# ==================== Storage Exceptions ====================


class DatabaseException(BethanyException):
    """Base exception for database-related errors."""

    pass


class BlobStoreError(DatabaseException):
    """Raised when a blob store read or write fails."""

    def __init__(self, operation: str, key: str, details: Optional[str] = None):
        super().__init__(
            message=f"Blob store {operation} failed for {key}",
            error_code="BLOB_STORE_ERROR",
            context={"operation": operation, "key": key, "details": details},
        )


class DatabaseConnectionError(DatabaseException):
    """Raised when database connection fails."""

    def __init__(self, details: Optional[str] = None):
        super().__init__(
            message="Failed to connect to database",
            error_code="DATABASE_CONNECTION_ERROR",
            context={"details": details} if details else {},
        )


# ==================== Memory Exceptions ====================


class MemoryException(BethanyException):
    """Base exception for memory-related errors."""

    pass


class InvalidMemoryDataError(MemoryException):
    """Raised when a stored memory record cannot be parsed."""

    def __init__(self, field: str, reason: str):
        super().__init__(
            message=f"Invalid memory data: {field} - {reason}",
            error_code="INVALID_MEMORY_DATA",
            context={"field": field, "reason": reason},
        )


# ==================== API/External Service Exceptions ====================


class ExternalServiceException(BethanyException):
    """Base exception for external service errors."""

    pass


class CompletionServiceError(ExternalServiceException):
    """Raised when the completion service fails for any reason."""

    def __init__(
        self,
        status_code: Optional[int] = None,
        details: Optional[str] = None,
        message: str = "Completion request failed",
        error_code: str = "COMPLETION_ERROR",
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            context={"status_code": status_code, "details": details},
        )


class CompletionQuotaError(CompletionServiceError):
    """Raised when the completion provider reports exhausted credit or quota."""

    def __init__(self, status_code: Optional[int] = None, details: Optional[str] = None):
        super().__init__(
            status_code=status_code,
            details=details,
            message="Completion provider quota exhausted",
            error_code="COMPLETION_QUOTA_EXCEEDED",
        )


class CompletionTimeoutError(CompletionServiceError):
    """Raised when a completion call exceeds its deadline."""

    def __init__(self, timeout: float):
        super().__init__(
            details=f"timed out after {timeout}s",
            message="Completion request timed out",
            error_code="COMPLETION_TIMEOUT",
        )


class MessageDeliveryError(ExternalServiceException):
    """Raised when the messaging provider rejects an outbound message."""

    def __init__(self, status_code: Optional[int] = None, details: Optional[str] = None):
        super().__init__(
            message="Message delivery failed",
            error_code="MESSAGE_DELIVERY_ERROR",
            context={"status_code": status_code, "details": details},
        )


# ==================== Validation Exceptions ====================


class ValidationException(BethanyException):
    """Base exception for validation errors."""

    pass


class InvalidInputError(ValidationException):
    """Raised when input validation fails."""

    def __init__(self, field: str, reason: str):
        super().__init__(
            message=f"Invalid input: {field} - {reason}",
            error_code="INVALID_INPUT",
            context={"field": field, "reason": reason},
        )
