"""
Custom Exceptions Module.

This module defines the exceptions used throughout the lab report
extraction pipeline. Tier-local failures and request-fatal failures
are kept in separate branches so callers can tell them apart.

Exception Hierarchy:
    LabExtractionError (base)
    ├── UnsupportedInputError
    ├── ConfigurationError
    └── ExtractionError
        ├── ServiceUnavailableError
        └── MalformedResponseError

Range violations found during validation are not exceptions: they are
accumulated as ValidationWarning records on the result.
"""

from enum import Enum


class LabExtractionError(Exception):
    """
    Base exception for all lab report extraction errors.

    Attributes:
        message: Human-readable error message.
        details: Optional dictionary with additional error details.
    """

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# INPUT ERRORS
# =============================================================================

class UnsupportedInputError(LabExtractionError):
    """
    Raised when a document is empty or cannot be read.

    This is the only error that reaches the caller of the pipeline. It is
    raised before any extraction tier runs.

    Example:
        >>> raise UnsupportedInputError("Document is empty", mime_type="image/png")
    """

    def __init__(self, reason: str, mime_type: str = None, filename: str = None):
        message = f"Unsupported input: {reason}"
        details = {"mime_type": mime_type, "filename": filename}
        super().__init__(message, {k: v for k, v in details.items() if v})


class ConfigurationError(LabExtractionError):
    """Raised when a configuration value cannot be used."""

    def __init__(self, key: str, reason: str = None):
        message = f"Invalid configuration value: {key}"
        details = {"key": key, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# TIER ERRORS
# =============================================================================

class ErrorKind(str, Enum):
    """Classification of tier-local failures."""
    SERVICE_UNAVAILABLE = "ServiceUnavailable"
    MALFORMED_RESPONSE = "MalformedResponse"


class ExtractionError(LabExtractionError):
    """
    Base exception for a failed extraction tier.

    Always caught at the tier boundary by the orchestrator, which then
    moves on to the next tier.

    Attributes:
        kind: ErrorKind describing the failure.
        tier: Name of the tier that failed.
    """

    kind: ErrorKind = ErrorKind.SERVICE_UNAVAILABLE

    def __init__(self, tier: str, reason: str = None):
        self.tier = tier
        message = f"{self.kind.value} in {tier} tier"
        details = {"tier": tier, "reason": reason}
        super().__init__(message, details)


class ServiceUnavailableError(ExtractionError):
    """Raised when an external service times out or cannot be reached."""

    kind = ErrorKind.SERVICE_UNAVAILABLE


class MalformedResponseError(ExtractionError):
    """Raised when a service reply cannot be parsed into the expected shape."""

    kind = ErrorKind.MALFORMED_RESPONSE


# Export all exceptions
__all__ = [
    'LabExtractionError',
    'UnsupportedInputError',
    'ConfigurationError',
    'ErrorKind',
    'ExtractionError',
    'ServiceUnavailableError',
    'MalformedResponseError',
]
