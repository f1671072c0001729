"""
Core types and protocols used across modules.

This module provides the error classification enum and the protocol that
describes the remote supervisor control API, so the reconciler can depend on
a capability rather than a concrete HTTP client.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from provider.schemas.status import SupervisorStatus


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Categories:
        TRANSIENT: Temporary failures (connection resets, timeouts, 5xx).
                   The core never retries these itself; the category tells
                   the operator or an outer loop that a rerun may succeed.
        AUTH: Authentication/authorization failures (401)
        PERMANENT: Failures that will not succeed unchanged
                   (400 malformed spec, 403, validation errors)
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


class SupervisorApi(Protocol):
    """
    Capability interface for the supervisor control API.

    The reconciler takes an implementation of this protocol as a constructor
    argument. ``provider.client.DruidSupervisorClient`` is the HTTP
    implementation; tests substitute in-memory fakes.
    """

    async def create_or_update(self, spec: dict[str, Any]) -> str:
        """
        Submit a supervisor spec (upsert).

        Args:
            spec: Rendered supervisor document

        Returns:
            Supervisor id assigned by the remote system
        """
        ...

    async def get_status(self, supervisor_id: str) -> "SupervisorStatus | None":
        """
        Fetch supervisor status.

        Returns:
            Status, or None when the supervisor does not exist
        """
        ...

    async def terminate(self, supervisor_id: str) -> None:
        """Terminate a supervisor. Missing supervisors count as terminated."""
        ...

    async def suspend(self, supervisor_id: str) -> None:
        ...

    async def resume(self, supervisor_id: str) -> None:
        ...


__all__ = [
    "ErrorCategory",
    "SupervisorApi",
]
