"""
Custom Exceptions for Tonr

Hierarchical exception classes for proper error handling across layers.
"""

from typing import Optional, Dict, Any


class TonrError(Exception):
    """Base exception for all Tonr errors."""

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
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


class ValidationError(TonrError):
    """Raised when input validation fails."""
    pass


class InvalidTierRequestError(ValidationError):
    """Raised when a self-service tier request names anything but the free tier."""

    def __init__(self, requested: Optional[str] = None):
        super().__init__(
            "Invalid tier. Only the free tier can be selected directly; Pro requires checkout.",
            details={"requested": requested},
        )


class EntitlementDeniedError(TonrError):
    """Raised when the entitlement policy refuses an analysis request."""

    def __init__(self, reason: str, message: str):
        super().__init__(message, details={"reason": reason})
        self.reason = reason


class DatabaseError(TonrError):
    """Raised when database operations fail."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table
        super().__init__(message, details, original_error)


class NotFoundError(DatabaseError):
    """Raised when a requested resource is not found."""
    pass


class StorageUnavailableError(DatabaseError):
    """Raised when the user or usage store cannot be reached."""
    pass


class AIServiceError(TonrError):
    """Raised when AI (Gemini) operations fail."""

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if model:
            details["model"] = model
        if operation:
            details["operation"] = operation
        super().__init__(message, details, original_error)


class ScorerError(AIServiceError):
    """Raised when speech scoring fails or returns unusable output."""
    pass


class PaymentEventError(TonrError):
    """Raised when a payment webhook cannot be accepted."""
    pass


class UnverifiedPaymentEventError(PaymentEventError):
    """Raised when a webhook payload fails signature verification."""
    pass


class ConfigurationError(TonrError):
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
