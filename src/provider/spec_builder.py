"""
Render a declared ``ResourceConfig`` into the Kafka supervisor request document.

The mapping is table-driven: every block has a tuple of ``WireField`` rules
naming the declared attribute, its camelCase wire name, and whether the value
is always emitted or only when it is set. "Set" means truthy, so an empty
string, zero, ``False`` or an empty collection is omitted exactly like an
undeclared attribute. Fields the control API requires are marked ``ALWAYS``.

Everything here is a pure function of its input: no I/O, no shared state.
"""

import hashlib
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

from core.errors import ResponseDecodeError
from provider.schemas.resource import ResourceConfig
from provider.schemas.status import SupervisorStatus

SUPERVISOR_TYPE = "kafka"
UNKNOWN_STATE = "UNKNOWN"


class Emit(Enum):
    ALWAYS = "always"
    IF_SET = "if_set"


@dataclass(frozen=True)
class WireField:
    """
    One declared attribute and its wire representation.

    Attributes:
        attr: Attribute name on the declared model
        wire: Key in the rendered document
        emit: ALWAYS, or IF_SET to drop zero values
        block: Rules for a nested block (or for each item of a list of blocks)
    """

    attr: str
    wire: str
    emit: Emit = Emit.IF_SET
    block: tuple["WireField", ...] | None = None


ALWAYS = Emit.ALWAYS


# =============================================================================
# dataSchema
# =============================================================================

TIMESTAMP_SPEC_FIELDS = (
    WireField("column", "column", ALWAYS),
    WireField("format", "format", ALWAYS),
    WireField("missing_value", "missingValue"),
)

DIMENSION_FIELDS = (
    WireField("name", "name", ALWAYS),
    WireField("type", "type", ALWAYS),
    WireField("multi_value_handling", "multiValueHandling"),
)

SPATIAL_DIMENSION_FIELDS = (
    WireField("dim_name", "dimName", ALWAYS),
    WireField("dims", "dims", ALWAYS),
)

DIMENSIONS_SPEC_FIELDS = (
    WireField("dimensions", "dimensions", block=DIMENSION_FIELDS),
    WireField("dimension_exclusions", "dimensionExclusions"),
    WireField("spatial_dimensions", "spatialDimensions", block=SPATIAL_DIMENSION_FIELDS),
)

METRIC_FIELDS = (
    WireField("name", "name", ALWAYS),
    WireField("type", "type", ALWAYS),
    WireField("field_name", "fieldName"),
)

GRANULARITY_SPEC_FIELDS = (
    WireField("type", "type", ALWAYS),
    WireField("segment_granularity", "segmentGranularity", ALWAYS),
    WireField("query_granularity", "queryGranularity", ALWAYS),
    WireField("rollup", "rollup", ALWAYS),
)

DATA_SCHEMA_FIELDS = (
    WireField("datasource", "dataSource", ALWAYS),
    WireField("timestamp_spec", "timestampSpec", block=TIMESTAMP_SPEC_FIELDS),
    WireField("dimensions_spec", "dimensionsSpec", block=DIMENSIONS_SPEC_FIELDS),
    WireField("metrics_spec", "metricsSpec", block=METRIC_FIELDS),
    WireField("granularity_spec", "granularitySpec", block=GRANULARITY_SPEC_FIELDS),
)

# =============================================================================
# ioConfig
# =============================================================================

FLAT_SPEC_FIELDS = (
    WireField("use_field_discovery", "useFieldDiscovery", ALWAYS),
    WireField("delimiter", "delimiter"),
    WireField("columns", "columns"),
)

INPUT_FORMAT_FIELDS = (
    WireField("type", "type", ALWAYS),
    WireField("flat_spec", "flatSpec", block=FLAT_SPEC_FIELDS),
)

IDLE_CONFIG_FIELDS = (
    WireField("enabled", "enabled", ALWAYS),
    WireField("inactive_after_millis", "inactiveAfterMillis"),
)

IO_CONFIG_FIELDS = (
    WireField("topic", "topic"),
    WireField("topic_pattern", "topicPattern"),
    WireField("input_format", "inputFormat", block=INPUT_FORMAT_FIELDS),
    WireField("consumer_properties", "consumerProperties"),
    WireField("task_count", "taskCount", ALWAYS),
    WireField("replicas", "replicas", ALWAYS),
    WireField("task_duration", "taskDuration", ALWAYS),
    WireField("use_earliest_offset", "useEarliestOffset", ALWAYS),
    WireField("completion_timeout", "completionTimeout", ALWAYS),
    WireField("idle_config", "idleConfig", block=IDLE_CONFIG_FIELDS),
)

# =============================================================================
# tuningConfig
# =============================================================================

INDEX_SPEC_FIELDS = (
    WireField("bitmap", "bitmap"),
    WireField("dimension_compression", "dimensionCompression"),
    WireField("metric_compression", "metricCompression"),
)

TUNING_CONFIG_FIELDS = (
    WireField("max_rows_per_segment", "maxRowsPerSegment"),
    WireField("max_rows_in_memory", "maxRowsInMemory"),
    WireField("max_bytes_in_memory", "maxBytesInMemory"),
    WireField("skip_bytes_in_memory_overhead_check", "skipBytesInMemoryOverheadCheck"),
    WireField("max_pending_persists", "maxPendingPersists"),
    WireField("intermediate_persist_period", "intermediatePersistPeriod"),
    WireField("max_parse_exceptions", "maxParseExceptions"),
    WireField("max_saved_parse_exceptions", "maxSavedParseExceptions"),
    WireField("log_parse_exceptions", "logParseExceptions"),
    WireField("reset_offset_automatically", "resetOffsetAutomatically"),
    WireField("worker_threads", "workerThreads"),
    WireField("chat_threads", "chatThreads"),
    WireField("chat_retries", "chatRetries"),
    WireField("http_timeout", "httpTimeout"),
    WireField("shutdown_timeout", "shutdownTimeout"),
    WireField("index_spec", "indexSpec", block=INDEX_SPEC_FIELDS),
    WireField("segment_write_out_medium_factory", "segmentWriteOutMediumFactory"),
)


def _copy_value(value: Any) -> Any:
    # Rendered documents must not share lists/dicts with the frozen config
    if isinstance(value, list):
        return list(value)
    if isinstance(value, dict):
        return dict(value)
    return value


def render_block(source: Any, fields: tuple[WireField, ...]) -> dict[str, Any]:
    """
    Render one declared block with its field table.

    Nested blocks are rendered recursively and dropped when they come out
    empty; lists of blocks keep declaration order.
    """
    rendered: dict[str, Any] = {}
    for field in fields:
        value = getattr(source, field.attr)
        if value is None:
            continue

        if field.block is not None:
            if isinstance(value, list):
                value = [render_block(item, field.block) for item in value]
            else:
                value = render_block(value, field.block)
        else:
            value = _copy_value(value)

        if field.emit is Emit.ALWAYS or value:
            rendered[field.wire] = value
    return rendered


def build_data_schema(config: ResourceConfig) -> dict[str, Any]:
    return render_block(config, DATA_SCHEMA_FIELDS)


def build_io_config(config: ResourceConfig) -> dict[str, Any]:
    return render_block(config, IO_CONFIG_FIELDS)


def build_tuning_config(config: ResourceConfig) -> dict[str, Any] | None:
    """Tuning block with its fixed type, or None when no tuning block is declared."""
    if config.tuning_config is None:
        return None
    return {"type": SUPERVISOR_TYPE, **render_block(config.tuning_config, TUNING_CONFIG_FIELDS)}


def build_spec(config: ResourceConfig) -> dict[str, Any]:
    """
    Build the supervisor request document.

    Args:
        config: Declared resource, already validated

    Returns:
        ``{"type": "kafka", "spec": {"dataSchema", "ioConfig", "tuningConfig"?,
        "context"?, "suspended"?}}``
    """
    spec: dict[str, Any] = {
        "dataSchema": build_data_schema(config),
        "ioConfig": build_io_config(config),
    }

    tuning_config = build_tuning_config(config)
    if tuning_config is not None:
        spec["tuningConfig"] = tuning_config

    if config.context:
        spec["context"] = dict(config.context)

    if config.suspended:
        spec["suspended"] = True

    return {"type": SUPERVISOR_TYPE, "spec": spec}


def render_spec_json(config: ResourceConfig, indent: int | None = 2) -> str:
    """Rendered document as JSON text, keys in wire order."""
    return json.dumps(build_spec(config), indent=indent)


def spec_fingerprint(config: ResourceConfig) -> str:
    """
    Stable hash of the rendered spec, excluding the suspended flag.

    Suspension is driven through the suspend/resume endpoints, so toggling
    it alone does not count as a spec change.
    """
    document = build_spec(config)
    document["spec"].pop("suspended", None)
    canonical = json.dumps(document, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def extract_status(payload: Any, supervisor_id: str | None = None) -> SupervisorStatus:
    """
    Extract display fields from a supervisor status response.

    Reads top-level ``id``/``state`` first and falls back to the nested
    ``payload`` block the status endpoint returns.

    Args:
        payload: Decoded JSON body
        supervisor_id: Id that was requested, used when the body omits it

    Raises:
        ResponseDecodeError: If the body is not a JSON object or has no id
    """
    if not isinstance(payload, dict):
        raise ResponseDecodeError(
            f"Supervisor status must be a JSON object, got {type(payload).__name__}"
        )

    nested = payload.get("payload")
    if not isinstance(nested, dict):
        nested = {}

    resolved_id = payload.get("id") or nested.get("id") or supervisor_id
    if not resolved_id:
        raise ResponseDecodeError("Supervisor status response has no id")

    state = payload.get("state") or nested.get("state") or UNKNOWN_STATE
    detailed_state = payload.get("detailedState") or nested.get("detailedState")
    healthy = payload.get("healthy", nested.get("healthy"))
    suspended = payload.get("suspended", nested.get("suspended"))

    return SupervisorStatus(
        id=str(resolved_id),
        state=str(state),
        detailed_state=str(detailed_state) if detailed_state else None,
        healthy=healthy if isinstance(healthy, bool) else None,
        suspended=suspended if isinstance(suspended, bool) else None,
    )


__all__ = [
    "Emit",
    "WireField",
    "SUPERVISOR_TYPE",
    "render_block",
    "build_data_schema",
    "build_io_config",
    "build_tuning_config",
    "build_spec",
    "render_spec_json",
    "spec_fingerprint",
    "extract_status",
]
