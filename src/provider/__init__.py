"""
Druid Kafka supervisor resource provider.

Provides:
- Declared resource schemas (provider.schemas)
- Structural validation (provider.validation)
- Spec rendering (provider.spec_builder)
- Control API client (provider.client)
- Lifecycle reconciliation (provider.reconciler)
"""

from provider.client import DruidSupervisorClient
from provider.reconciler import ApplyAction, SupervisorReconciler
from provider.schemas import ResourceConfig, SupervisorStatus, TrackedResource
from provider.spec_builder import build_spec, extract_status, spec_fingerprint
from provider.validation import ResourceValidator, validate_resource_config

__all__ = [
    "DruidSupervisorClient",
    "SupervisorReconciler",
    "ApplyAction",
    "ResourceConfig",
    "SupervisorStatus",
    "TrackedResource",
    "build_spec",
    "extract_status",
    "spec_fingerprint",
    "ResourceValidator",
    "validate_resource_config",
]
