"""
Core library: Reusable, infrastructure-agnostic components.

Modules:
    logging     - Structured JSON logging with context propagation
    errors      - Error classification and exception hierarchy
    utils       - JSON serialization helpers
    types       - Shared enums and the supervisor API protocol

Design Principles:
    - No dependencies on the provider package
    - All modules are independently testable
    - No process-wide mutable state outside logging context variables
"""

from .types import ErrorCategory, SupervisorApi

__version__ = "0.1.0"

__all__ = [
    "ErrorCategory",
    "SupervisorApi",
]
