"""Structural validation for declared supervisor resources.

Runs before the spec builder, which assumes its input already satisfies
these rules. Checks are collected rather than raised one at a time so an
operator sees every problem in a declaration at once.
"""

import logging
from typing import List, Optional

from core.errors import ConfigValidationError
from provider.schemas.resource import ResourceConfig

logger = logging.getLogger(__name__)

BOOTSTRAP_SERVERS = "bootstrap.servers"


class ResourceValidator:
    """Validates a declared resource against the supervisor contract.

    Responsibilities:
    1. Required blocks are present and their required fields non-empty
    2. Exactly one topic selector is declared
    3. The Kafka consumer can reach a broker
    4. Numeric knobs are within bounds
    """

    def validate(self, config: ResourceConfig) -> List[str]:
        """Collect every validation problem in a declared resource.

        Args:
            config: Declared resource

        Returns:
            List of error messages, empty when the resource is valid

        Examples:
            >>> validator = ResourceValidator()
            >>> config = ResourceConfig(datasource="orders")
            >>> "exactly one of topic or topic_pattern must be set" in validator.validate(config)
            True
        """
        errors: List[str] = []
        errors.extend(self._validate_required(config))
        errors.extend(self._validate_topic_selector(config))
        errors.extend(self._validate_consumer_properties(config))
        errors.extend(self._validate_bounds(config))
        return errors

    def _validate_required(self, config: ResourceConfig) -> List[str]:
        errors: List[str] = []

        if not config.datasource.strip():
            errors.append("datasource must not be empty")

        if config.timestamp_spec is None:
            errors.append("timestamp_spec block is required")
        elif not config.timestamp_spec.column.strip():
            errors.append("timestamp_spec.column must not be empty")

        if config.input_format is None:
            errors.append("input_format block is required")
        elif not config.input_format.type.strip():
            errors.append("input_format.type must not be empty")

        for index, metric in enumerate(config.metrics_spec):
            if not metric.name or not metric.type:
                errors.append(f"metrics_spec[{index}] requires name and type")

        if config.dimensions_spec is not None:
            for index, dimension in enumerate(config.dimensions_spec.dimensions):
                if not dimension.name:
                    errors.append(f"dimensions_spec.dimensions[{index}].name must not be empty")

        return errors

    def _validate_topic_selector(self, config: ResourceConfig) -> List[str]:
        if bool(config.topic) == bool(config.topic_pattern):
            return ["exactly one of topic or topic_pattern must be set"]
        return []

    def _validate_consumer_properties(self, config: ResourceConfig) -> List[str]:
        if not config.consumer_properties.get(BOOTSTRAP_SERVERS):
            return [f"consumer_properties must contain '{BOOTSTRAP_SERVERS}'"]
        return []

    def _validate_bounds(self, config: ResourceConfig) -> List[str]:
        errors: List[str] = []
        self._validate_min(config.task_count, 1, "task_count", errors)
        self._validate_min(config.replicas, 1, "replicas", errors)

        tuning = config.tuning_config
        if tuning is not None:
            self._validate_min(tuning.worker_threads, 1, "tuning_config.worker_threads", errors)
            self._validate_min(tuning.chat_threads, 1, "tuning_config.chat_threads", errors)
            self._validate_min(tuning.chat_retries, 0, "tuning_config.chat_retries", errors)

        if config.idle_config is not None:
            self._validate_min(
                config.idle_config.inactive_after_millis,
                0,
                "idle_config.inactive_after_millis",
                errors,
            )
        return errors

    @staticmethod
    def _validate_min(value: Optional[int], minimum: int, name: str, errors: List[str]) -> None:
        if value is not None and value < minimum:
            errors.append(f"{name} must be >= {minimum}, got {value}")


def validate_resource_config(config: ResourceConfig) -> ResourceConfig:
    """Validate a declared resource, raising on the first failed check set.

    Returns:
        The same config, so calls can be chained

    Raises:
        ConfigValidationError: Carrying every problem found
    """
    errors = ResourceValidator().validate(config)
    if errors:
        logger.debug(
            "Declared resource failed validation",
            extra={"datasource": config.datasource, "error_count": len(errors)},
        )
        raise ConfigValidationError(errors, context={"datasource": config.datasource})
    return config


__all__ = ["ResourceValidator", "validate_resource_config", "BOOTSTRAP_SERVERS"]
