"""Context variables for structured logging."""

from contextvars import ContextVar
from typing import Dict, Optional

_resource: ContextVar[str] = ContextVar("resource", default="")
_operation: ContextVar[str] = ContextVar("operation", default="")
_supervisor_id: ContextVar[str] = ContextVar("supervisor_id", default="")
_trace_id: ContextVar[str] = ContextVar("trace_id", default="")


def set_log_context(
    resource: Optional[str] = None,
    operation: Optional[str] = None,
    supervisor_id: Optional[str] = None,
    trace_id: Optional[str] = None,
) -> None:
    if resource is not None:
        _resource.set(resource)
    if operation is not None:
        _operation.set(operation)
    if supervisor_id is not None:
        _supervisor_id.set(supervisor_id)
    if trace_id is not None:
        _trace_id.set(trace_id)


def get_log_context() -> Dict[str, str]:
    return {
        "resource": _resource.get(),
        "operation": _operation.get(),
        "supervisor_id": _supervisor_id.get(),
        "trace_id": _trace_id.get(),
    }


def clear_log_context() -> None:
    _resource.set("")
    _operation.set("")
    _supervisor_id.set("")
    _trace_id.set("")
