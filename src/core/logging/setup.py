"""Logging setup and configuration."""

import logging
import secrets
import sys
from datetime import datetime
from pathlib import Path

from core.logging.formatters import ConsoleFormatter, JSONFormatter

DEFAULT_CONSOLE_LEVEL = logging.INFO
DEFAULT_FILE_LEVEL = logging.DEBUG

# Noisy loggers to suppress
NOISY_LOGGERS = [
    "aiohttp",
    "aiohttp.access",
    "aiohttp.client",
    "asyncio",
]


def setup_logging(
    name: str = "provider",
    console_level: int = DEFAULT_CONSOLE_LEVEL,
    json_format: bool = False,
    log_file: Path | None = None,
    file_level: int = DEFAULT_FILE_LEVEL,
    suppress_noisy: bool = True,
) -> logging.Logger:
    """
    Configure root logging with a console handler and an optional file handler.

    Console output goes to stderr so command output on stdout (rendered
    specs, status JSON) stays machine-readable.

    Args:
        name: Logger name returned to the caller
        console_level: Console handler level (default: INFO)
        json_format: Use JSONFormatter on the console instead of ConsoleFormatter
        log_file: Optional path for a JSON-formatted log file
        file_level: File handler level (default: DEBUG)
        suppress_noisy: Quiet down aiohttp/asyncio loggers

    Returns:
        Configured logger instance
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(JSONFormatter() if json_format else ConsoleFormatter())
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    if suppress_noisy:
        for logger_name in NOISY_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    logger = logging.getLogger(name)
    logger.debug(
        "Logging initialized",
        extra={"config_path": str(log_file) if log_file else None},
    )
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance; configure via setup_logging() first."""
    return logging.getLogger(name)


def generate_trace_id() -> str:
    """
    Generate a trace identifier for one CLI invocation.

    Format: t-YYYYMMDD-HHMMSS-XXXX where XXXX is random hex.
    """
    ts = datetime.now().strftime("%Y%m%d-%H%M%S")
    suffix = secrets.token_hex(2)
    return f"t-{ts}-{suffix}"
