"""
Lifecycle reconciliation for Kafka supervisors.

``SupervisorReconciler`` drives the remote supervisor through the injected
``SupervisorApi`` and folds the remote answer back into a ``TrackedResource``.
It holds no state of its own beyond the API handle; the tracked resource is
the only thing it mutates, and only after the remote call it depends on has
succeeded.

Declared resources are expected to have passed ``provider.validation``
already. Errors from the API propagate unchanged; nothing is retried here.
"""

import logging
from enum import Enum

from core.logging import LogContext, log_operation
from core.types import SupervisorApi
from provider.schemas.resource import ResourceConfig
from provider.schemas.status import TrackedResource
from provider.spec_builder import build_spec, spec_fingerprint

logger = logging.getLogger(__name__)


class ApplyAction(Enum):
    """What one reconciliation cycle did."""

    CREATED = "created"
    RECREATED = "recreated"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class SupervisorReconciler:
    """
    Create/read/update/delete state machine for one supervisor resource type.

    Example:
        >>> async with DruidSupervisorClient.from_config(config) as client:
        ...     reconciler = SupervisorReconciler(client)
        ...     resource = TrackedResource(config=declared)
        ...     await reconciler.create(resource)
        ...     resource.id
        'orders-supervisor'
    """

    def __init__(self, api: SupervisorApi):
        self.api = api

    async def create(self, resource: TrackedResource) -> None:
        """
        Submit the declared spec and adopt the id the server assigns.

        A failed submission leaves the resource untouched. If the submission
        succeeds but the follow-up read fails, the id stays set: the remote
        supervisor exists and must stay tracked.
        """
        config = resource.config
        with LogContext(resource=config.datasource):
            with log_operation(
                logger, "create", level=logging.INFO, datasource=config.datasource
            ) as op:
                supervisor_id = await self.api.create_or_update(build_spec(config))
                resource.id = supervisor_id
                op.add_context(supervisor_id=supervisor_id)

            await self.read(resource)

    async def read(self, resource: TrackedResource) -> bool:
        """
        Refresh computed attributes from the remote status.

        Returns:
            True if the supervisor exists; False if it is gone, in which case
            the tracked id and state are cleared
        """
        if not resource.exists:
            return False

        with LogContext(resource=resource.config.datasource, supervisor_id=resource.id):
            with log_operation(logger, "read", supervisor_id=resource.id) as op:
                status = await self.api.get_status(resource.id)

                if status is None:
                    op.add_context(found=False)
                    logger.info(
                        "Supervisor no longer exists remotely, clearing tracked identity",
                        extra={"supervisor_id": resource.id, "previous_state": resource.state},
                    )
                    resource.clear()
                    return False

                op.add_context(found=True, supervisor_state=status.state)
                resource.id = status.id
                resource.state = status.state
                return True

    async def update(
        self, resource: TrackedResource, prior_config: ResourceConfig | None
    ) -> bool:
        """
        Converge the remote supervisor on the declared config.

        The spec is resubmitted only when its rendered form changed, and
        suspend/resume is sent only when the declared ``suspended`` flag
        changed. The tracked id never changes here.

        Args:
            resource: Tracked resource holding the new declared config
            prior_config: Config last applied, or None when unknown

        Returns:
            True if any remote call changed the supervisor
        """
        if not resource.exists:
            raise ValueError("Cannot update a resource that has no supervisor id")

        config = resource.config
        spec_changed = prior_config is None or spec_fingerprint(config) != spec_fingerprint(
            prior_config
        )
        prior_suspended = prior_config.suspended if prior_config is not None else None
        suspend_changed = prior_suspended is not None and prior_suspended != config.suspended

        with LogContext(resource=config.datasource, supervisor_id=resource.id):
            with log_operation(
                logger,
                "update",
                level=logging.INFO,
                supervisor_id=resource.id,
                spec_changed=spec_changed,
                suspended=config.suspended,
            ):
                if spec_changed:
                    returned_id = await self.api.create_or_update(build_spec(config))
                    if returned_id != resource.id:
                        logger.warning(
                            "Server returned a different id on resubmit, keeping tracked id",
                            extra={"supervisor_id": resource.id, "returned_id": returned_id},
                        )

                if suspend_changed:
                    if config.suspended:
                        await self.api.suspend(resource.id)
                    else:
                        await self.api.resume(resource.id)

            await self.read(resource)

        return spec_changed or suspend_changed

    async def delete(self, resource: TrackedResource) -> None:
        """Terminate the supervisor. Already-missing supervisors count as deleted."""
        if not resource.exists:
            return

        with LogContext(resource=resource.config.datasource, supervisor_id=resource.id):
            with log_operation(logger, "delete", level=logging.INFO, supervisor_id=resource.id):
                await self.api.terminate(resource.id)
                resource.clear()

    async def suspend(self, resource: TrackedResource) -> None:
        self._require_id(resource, "suspend")
        with LogContext(resource=resource.config.datasource, supervisor_id=resource.id):
            with log_operation(logger, "suspend", level=logging.INFO, supervisor_id=resource.id):
                await self.api.suspend(resource.id)

    async def resume(self, resource: TrackedResource) -> None:
        self._require_id(resource, "resume")
        with LogContext(resource=resource.config.datasource, supervisor_id=resource.id):
            with log_operation(logger, "resume", level=logging.INFO, supervisor_id=resource.id):
                await self.api.resume(resource.id)

    async def import_resource(self, supervisor_id: str, config: ResourceConfig) -> TrackedResource:
        """
        Adopt an existing supervisor by id.

        Returns:
            Tracked resource with the remote state read in; its id is cleared
            if no such supervisor exists
        """
        if not supervisor_id:
            raise ValueError("supervisor_id must not be empty")

        resource = TrackedResource(config=config, id=supervisor_id)
        with log_operation(logger, "import", level=logging.INFO, supervisor_id=supervisor_id):
            await self.read(resource)
        return resource

    async def apply(
        self, resource: TrackedResource, prior_config: ResourceConfig | None = None
    ) -> ApplyAction:
        """
        Run one reconciliation cycle.

        Absent resources are created. Tracked resources are read first; one
        that disappeared remotely is recreated, otherwise it is updated.
        """
        if not resource.exists:
            await self.create(resource)
            return ApplyAction.CREATED

        if not await self.read(resource):
            await self.create(resource)
            return ApplyAction.RECREATED

        changed = await self.update(resource, prior_config)
        return ApplyAction.UPDATED if changed else ApplyAction.UNCHANGED

    @staticmethod
    def _require_id(resource: TrackedResource, operation: str) -> None:
        if not resource.exists:
            raise ValueError(f"Cannot {operation} a resource that has no supervisor id")


__all__ = ["SupervisorReconciler", "ApplyAction"]
