"""Context managers for structured logging."""

import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Optional

from core.logging.context import get_log_context, set_log_context
from core.logging.utilities import log_exception, log_with_context


class LogContext:
    """
    Context manager for temporary log context.

    Usage:
        with LogContext(resource="orders", supervisor_id=supervisor_id):
            # All logs in this block carry resource and supervisor_id
            await reconciler.read(resource)
    """

    def __init__(
        self,
        resource: Optional[str] = None,
        operation: Optional[str] = None,
        supervisor_id: Optional[str] = None,
        trace_id: Optional[str] = None,
    ):
        self.new_context = {
            "resource": resource,
            "operation": operation,
            "supervisor_id": supervisor_id,
            "trace_id": trace_id,
        }
        self.old_context: Dict[str, str] = {}

    def __enter__(self) -> "LogContext":
        self.old_context = get_log_context()
        for key, value in self.new_context.items():
            if value is not None:
                set_log_context(**{key: value})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        set_log_context(
            resource=self.old_context.get("resource", ""),
            operation=self.old_context.get("operation", ""),
            supervisor_id=self.old_context.get("supervisor_id", ""),
            trace_id=self.old_context.get("trace_id", ""),
        )
        return False


class OperationContext:
    """Context manager for timed operations with automatic logging."""

    def __init__(
        self,
        logger: logging.Logger,
        operation: str,
        level: int = logging.DEBUG,
        slow_threshold_ms: Optional[float] = 1000.0,
        log_start: bool = False,
        **context: Any,
    ):
        self.logger = logger
        self.operation = operation
        if isinstance(level, str):
            self.level = getattr(logging, level.upper(), logging.DEBUG)
        else:
            self.level = level
        self.slow_threshold_ms = slow_threshold_ms
        self.log_start = log_start
        self.context = context
        self._start_time: Optional[float] = None
        self._log_context = LogContext(operation=operation)

    def __enter__(self) -> "OperationContext":
        self._log_context.__enter__()
        self._start_time = time.perf_counter()
        if self.log_start:
            log_with_context(
                self.logger,
                logging.DEBUG,
                f"Starting: {self.operation}",
                **self.context,
            )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration_ms = (time.perf_counter() - self._start_time) * 1000

        # Auto-promote to INFO if slow
        effective_level = self.level
        if self.slow_threshold_ms and duration_ms > self.slow_threshold_ms:
            effective_level = max(self.level, logging.INFO)

        try:
            if exc_val is not None:
                log_exception(
                    self.logger,
                    exc_val,
                    f"Failed: {self.operation}",
                    include_traceback=False,
                    duration_ms=round(duration_ms, 2),
                    **self.context,
                )
            else:
                log_with_context(
                    self.logger,
                    effective_level,
                    f"Completed: {self.operation}",
                    duration_ms=round(duration_ms, 2),
                    **self.context,
                )
        finally:
            self._log_context.__exit__(exc_type, exc_val, exc_tb)
        return False

    def add_context(self, **kwargs: Any) -> None:
        """Add context mid-operation (supervisor id, state, etc)."""
        self.context.update(kwargs)


@contextmanager
def log_operation(
    logger: logging.Logger,
    operation: str,
    level: int = logging.DEBUG,
    slow_threshold_ms: Optional[float] = 1000.0,
    **context: Any,
):
    """Convenience context manager for ad-hoc operation logging."""
    with OperationContext(
        logger, operation, level=level, slow_threshold_ms=slow_threshold_ms, **context
    ) as ctx:
        yield ctx
