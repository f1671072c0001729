"""Schemas for declared supervisor resources and remote status."""

from provider.schemas.resource import (
    Dimension,
    DimensionsSpec,
    FlatSpec,
    GranularitySpec,
    IdleConfig,
    IndexSpec,
    InputFormat,
    Metric,
    ResourceConfig,
    SpatialDimension,
    TimestampSpec,
    TuningConfig,
)
from provider.schemas.status import SupervisorStatus, TrackedResource

__all__ = [
    "Dimension",
    "DimensionsSpec",
    "FlatSpec",
    "GranularitySpec",
    "IdleConfig",
    "IndexSpec",
    "InputFormat",
    "Metric",
    "ResourceConfig",
    "SpatialDimension",
    "TimestampSpec",
    "TuningConfig",
    "SupervisorStatus",
    "TrackedResource",
]
