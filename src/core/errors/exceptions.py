"""
Unified exception hierarchy for the supervisor provider.

Provides typed exceptions with error classification so the CLI and any
outer apply loop can report failures with their status, body and operation
context intact.
"""

# Import ErrorCategory from canonical source to avoid duplicate enum issues
# (comparing enums from different classes always returns False)
from core.types import ErrorCategory


class ProviderError(Exception):
    """
    Base exception for all provider errors.

    Attributes:
        message: Human-readable error description
        category: Error classification
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    @property
    def is_transient(self) -> bool:
        return self.category == ErrorCategory.TRANSIENT

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


# =============================================================================
# Transport Errors
# =============================================================================


class TransportError(ProviderError):
    """Connection-level failure talking to the control API."""

    category = ErrorCategory.TRANSIENT


# =============================================================================
# Remote Rejection
# =============================================================================


class DruidApiError(ProviderError):
    """
    Control API answered with a status >= 400.

    Carries the raw response body so a malformed spec can be diagnosed
    from the server's own message.
    """

    def __init__(
        self,
        status_code: int,
        body: str,
        operation: str,
        context: dict | None = None,
    ):
        super().__init__(
            f"Druid API error (status {status_code}): {body}",
            context={"operation": operation, **(context or {})},
        )
        self.status_code = status_code
        self.body = body
        self.operation = operation
        self.category = classify_http_status(status_code)


class ResponseDecodeError(ProviderError):
    """Success response whose body could not be decoded."""

    category = ErrorCategory.PERMANENT


# =============================================================================
# Declarative Config Errors
# =============================================================================


class ConfigValidationError(ProviderError):
    """Declared resource failed structural validation."""

    category = ErrorCategory.PERMANENT

    def __init__(self, errors: list[str], context: dict | None = None):
        summary = "; ".join(errors) if errors else "invalid configuration"
        super().__init__(f"Invalid supervisor configuration: {summary}", context=context)
        self.errors = list(errors)


# =============================================================================
# Error Classification Utilities
# =============================================================================


def classify_http_status(status_code: int) -> ErrorCategory:
    """Classify HTTP status code into error category."""
    if 200 <= status_code < 300:
        return ErrorCategory.UNKNOWN  # Not an error

    if status_code == 401:
        return ErrorCategory.AUTH

    if status_code == 429:
        return ErrorCategory.TRANSIENT  # Rate limited

    if 400 <= status_code < 500:
        return ErrorCategory.PERMANENT

    if status_code >= 500:
        return ErrorCategory.TRANSIENT

    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ProviderError",
    "TransportError",
    "DruidApiError",
    "ResponseDecodeError",
    "ConfigValidationError",
    "classify_http_status",
]
