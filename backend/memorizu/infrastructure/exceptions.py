"""
Custom Exceptions for Memorizu

Hierarchical exception classes for proper error handling across layers.
Each class maps to one HTTP status in main.py.
"""

from typing import Optional, Dict, Any


class MemorizuError(Exception):
    """Base exception for all Memorizu errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        body: Dict[str, Any] = {
            "error": self.message,
            "code": self.__class__.__name__,
        }
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(MemorizuError):
    """Raised when input validation fails."""
    pass


class ConflictError(MemorizuError):
    """Raised when a page is in the wrong payment state for the operation."""

    def __init__(
        self,
        message: str,
        current_status: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if current_status:
            details["current_status"] = current_status
        super().__init__(message, details, original_error)


class WebhookSignatureError(ValidationError):
    """Raised when a webhook signature is missing or does not verify."""
    pass


class DatabaseError(MemorizuError):
    """Raised when document store operations fail."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        collection: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if collection:
            details["collection"] = collection
        super().__init__(message, details, original_error)


class NotFoundError(DatabaseError):
    """Raised when a requested resource is not found."""
    pass


class PaymentProviderError(MemorizuError):
    """Raised when payment provider calls fail."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details, original_error)


class ConfigurationError(MemorizuError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(message, details, original_error)
