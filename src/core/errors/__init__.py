"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- ProviderError hierarchy for typed exceptions
- HTTP status classification
"""

from core.errors.exceptions import (
    ConfigValidationError,
    DruidApiError,
    # Enums
    ErrorCategory,
    # Base classes
    ProviderError,
    ResponseDecodeError,
    TransportError,
    # Classification utilities
    classify_http_status,
)

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "ProviderError",
    "TransportError",
    "DruidApiError",
    "ResponseDecodeError",
    "ConfigValidationError",
    # Classification utilities
    "classify_http_status",
]
