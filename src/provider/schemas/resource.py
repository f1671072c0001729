"""
Declared attribute tree for the ``druid_kafka_supervisor`` resource.

Contains Pydantic models mirroring the declarative schema. Attribute names are
snake_case exactly as an operator writes them; the camelCase wire names live
in ``provider.spec_builder``.

Presence is explicit: an optional attribute that was not declared is ``None``
(or an empty collection), and a declared attribute with a schema default
carries that default.
"""

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _DeclaredBlock(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class TimestampSpec(_DeclaredBlock):
    column: str = Field(..., description="Name of the timestamp column")
    format: str = Field(default="auto", description="Timestamp format (iso, millis, auto, ...)")
    missing_value: str | None = Field(
        default=None, description="Default timestamp for rows with missing timestamps"
    )


class Dimension(_DeclaredBlock):
    name: str
    type: str = "string"
    multi_value_handling: str | None = None


class SpatialDimension(_DeclaredBlock):
    dim_name: str
    dims: list[str] = Field(default_factory=list)


class DimensionsSpec(_DeclaredBlock):
    dimensions: list[Dimension] = Field(default_factory=list)
    dimension_exclusions: list[str] = Field(default_factory=list)
    spatial_dimensions: list[SpatialDimension] = Field(default_factory=list)

    @field_validator("dimension_exclusions")
    @classmethod
    def dedupe_exclusions(cls, v: list[str]) -> list[str]:
        """Exclusions are a set; keep first-seen order."""
        return list(dict.fromkeys(v))


class Metric(_DeclaredBlock):
    name: str
    type: str = Field(..., description="Aggregation type (count, longSum, doubleSum, ...)")
    field_name: str | None = None


class GranularitySpec(_DeclaredBlock):
    type: str = "uniform"
    segment_granularity: str = "HOUR"
    query_granularity: str = "NONE"
    rollup: bool = True


class FlatSpec(_DeclaredBlock):
    use_field_discovery: bool = True
    delimiter: str | None = None
    columns: list[str] = Field(default_factory=list)


class InputFormat(_DeclaredBlock):
    type: str = Field(..., description="Input format type (json, csv, tsv, ...)")
    flat_spec: FlatSpec | None = None


class IdleConfig(_DeclaredBlock):
    enabled: bool = False
    inactive_after_millis: int | None = None


class IndexSpec(_DeclaredBlock):
    bitmap: dict[str, str] = Field(default_factory=dict)
    dimension_compression: str = "lz4"
    metric_compression: str = "lz4"


class TuningConfig(_DeclaredBlock):
    """Kafka tuning knobs; each one is independently present or absent."""

    max_rows_per_segment: int | None = None
    max_rows_in_memory: int | None = None
    max_bytes_in_memory: int | None = None
    skip_bytes_in_memory_overhead_check: bool | None = None
    max_pending_persists: int | None = None
    intermediate_persist_period: str | None = None
    max_parse_exceptions: int | None = None
    max_saved_parse_exceptions: int | None = None
    log_parse_exceptions: bool | None = None
    reset_offset_automatically: bool | None = None
    worker_threads: int | None = None
    chat_threads: int | None = None
    chat_retries: int | None = None
    http_timeout: str | None = None
    shutdown_timeout: str | None = None
    segment_write_out_medium_factory: dict[str, str] = Field(default_factory=dict)
    index_spec: IndexSpec | None = None


class ResourceConfig(_DeclaredBlock):
    """Desired state of one Kafka supervisor.

    Structural rules that span attributes (exactly one of topic/topic_pattern,
    bootstrap.servers present, required blocks, numeric bounds) are checked by
    ``provider.validation`` before a config reaches the spec builder.

    Example:
        >>> config = ResourceConfig(
        ...     datasource="orders",
        ...     topic="orders-topic",
        ...     consumer_properties={"bootstrap.servers": "kafka:9092"},
        ... )
        >>> config.task_duration
        'PT1H'
    """

    datasource: str = Field(..., description="Name of the Druid datasource")

    # Data schema
    timestamp_spec: TimestampSpec | None = None
    dimensions_spec: DimensionsSpec | None = None
    metrics_spec: list[Metric] = Field(default_factory=list)
    granularity_spec: GranularitySpec | None = None

    # IO config
    topic: str | None = None
    topic_pattern: str | None = None
    input_format: InputFormat | None = None
    consumer_properties: dict[str, str] = Field(default_factory=dict)
    task_count: int = 1
    replicas: int = 1
    task_duration: str = "PT1H"
    use_earliest_offset: bool = False
    completion_timeout: str = "PT30M"
    idle_config: IdleConfig | None = None

    tuning_config: TuningConfig | None = None
    context: dict[str, str] = Field(default_factory=dict)
    suspended: bool = False

    @classmethod
    def from_declaration(cls, declaration: Mapping[str, Any]) -> "ResourceConfig":
        """
        Create from a declaration mapping (e.g. a parsed YAML document).

        Accepts either the bare attribute mapping or one wrapped as
        ``{"druid_kafka_supervisor": {...}}``.

        Raises:
            pydantic.ValidationError: On unknown attributes or wrong types
        """
        body = declaration.get("druid_kafka_supervisor", declaration)
        return cls.model_validate(dict(body))

    def to_declaration(self) -> dict[str, Any]:
        """Declared attributes only, as a plain mapping."""
        return self.model_dump(mode="json", exclude_unset=True)


__all__ = [
    "TimestampSpec",
    "Dimension",
    "SpatialDimension",
    "DimensionsSpec",
    "Metric",
    "GranularitySpec",
    "FlatSpec",
    "InputFormat",
    "IdleConfig",
    "IndexSpec",
    "TuningConfig",
    "ResourceConfig",
]
