"""Remote supervisor status and the locally tracked resource."""

from dataclasses import dataclass

from provider.schemas.resource import ResourceConfig


@dataclass(frozen=True)
class SupervisorStatus:
    """
    Server-owned view of a supervisor.

    Attributes:
        id: Opaque supervisor id assigned by the control API
        state: Engine state string (RUNNING, SUSPENDED, PENDING, ...)
        detailed_state: Finer-grained state when the server reports one
        healthy: Health flag when the server reports one
        suspended: Suspension flag when the server reports one
    """

    id: str
    state: str
    detailed_state: str | None = None
    healthy: bool | None = None
    suspended: bool | None = None


@dataclass
class TrackedResource:
    """
    Locally tracked resource: declared config plus computed attributes.

    ``id`` is set once by a successful create (or import) and cleared when
    the remote supervisor is gone or deleted; it is never recomputed from
    the config.
    """

    config: ResourceConfig
    id: str | None = None
    state: str | None = None

    @property
    def exists(self) -> bool:
        return bool(self.id)

    def clear(self) -> None:
        self.id = None
        self.state = None


__all__ = ["SupervisorStatus", "TrackedResource"]
