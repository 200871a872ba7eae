"""
Core utilities and infrastructure for the Bethany companion.
"""

from core.exceptions import (
    BethanyException,
    DatabaseException,
    BlobStoreError,
    DatabaseConnectionError,
    MemoryException,
    InvalidMemoryDataError,
    ExternalServiceException,
    CompletionServiceError,
    CompletionQuotaError,
    CompletionTimeoutError,
    MessageDeliveryError,
    ValidationException,
    InvalidInputError,
)
from core.logging_config import configure_logging, get_logger

__all__ = [
    "BethanyException",
    "DatabaseException",
    "BlobStoreError",
    "DatabaseConnectionError",
    "MemoryException",
    "InvalidMemoryDataError",
    "ExternalServiceException",
    "CompletionServiceError",
    "CompletionQuotaError",
    "CompletionTimeoutError",
    "MessageDeliveryError",
    "ValidationException",
    "InvalidInputError",
    "configure_logging",
    "get_logger",
]
