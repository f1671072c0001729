"""Local state file for the CLI driver.

Persists what a resource manager would normally keep for a resource between
runs: the tracked supervisor id, the last observed state, and the declaration
that was last applied (needed to decide whether an update must resubmit).

State format:
- id: supervisor id, or null when nothing is tracked
- state: last observed supervisor state
- declaration: declared attributes last applied
- updated_at: ISO format UTC timestamp when the file was written

Writes are atomic (temp file, then os.replace).
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from provider.schemas.resource import ResourceConfig
from provider.schemas.status import TrackedResource

logger = logging.getLogger(__name__)


@dataclass
class ResourceState:
    id: str | None = None
    state: str | None = None
    declaration: dict[str, Any] = field(default_factory=dict)
    updated_at: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ResourceState":
        return cls(
            id=data.get("id"),
            state=data.get("state"),
            declaration=data.get("declaration") or {},
            updated_at=data.get("updated_at", ""),
        )

    @classmethod
    def from_resource(cls, resource: TrackedResource) -> "ResourceState":
        return cls(
            id=resource.id,
            state=resource.state,
            declaration=resource.config.to_declaration(),
        )

    def prior_config(self) -> ResourceConfig | None:
        """Last applied declaration, or None when none was recorded."""
        if not self.declaration:
            return None
        return ResourceConfig.from_declaration(self.declaration)


class JsonStateStore:
    """Local JSON file holding the state of one tracked resource."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> ResourceState | None:
        """Load state, or None when the file does not exist.

        Raises:
            ValueError: If the file exists but cannot be parsed. A broken
                state file is never treated as "nothing tracked".
        """
        if not self.path.exists():
            logger.debug("No state file found", extra={"config_path": str(self.path)})
            return None

        try:
            with open(self.path) as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise TypeError(f"expected a JSON object, got {type(data).__name__}")
        except (json.JSONDecodeError, TypeError) as e:
            raise ValueError(f"State file {self.path} is unreadable: {e}") from e

        state = ResourceState.from_dict(data)
        logger.debug(
            "Loaded state file",
            extra={
                "config_path": str(self.path),
                "supervisor_id": state.id,
                "supervisor_state": state.state,
            },
        )
        return state

    def save(self, state: ResourceState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        state.updated_at = datetime.now(UTC).isoformat()

        temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            with open(temp_path, "w") as f:
                json.dump(state.to_dict(), f, indent=2)

            # Atomic replace
            os.replace(temp_path, self.path)
        except (OSError, TypeError, ValueError):
            temp_path.unlink(missing_ok=True)
            raise

        logger.debug(
            "Saved state file",
            extra={"config_path": str(self.path), "supervisor_id": state.id},
        )

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
            logger.debug("Removed state file", extra={"config_path": str(self.path)})


__all__ = ["ResourceState", "JsonStateStore"]
