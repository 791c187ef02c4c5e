"""Structured logging utilities for addonfleet."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, TextIO

import structlog


def _stream_for(output: str) -> TextIO:
    return sys.stderr if output == "stderr" else sys.stdout


def setup_logging(level: str = "INFO", format: str = "json", output: str = "stderr") -> None:
    """Configure structured logging for addonfleet.

    Logs go to stderr by default so that addon output written by the
    runtimes on stdout stays machine readable.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Log format (json or console)
        output: Output destination (stdout or stderr)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    stream = _stream_for(output)

    # Libraries (google-auth, kubernetes, hvac) log through stdlib logging
    logging.basicConfig(format="%(message)s", stream=stream, level=log_level)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if format == "json":
        processors = [
            *shared_processors,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structured logger instance
    """
    return structlog.get_logger(name)


@contextmanager
def cluster_log_context(cluster: str, **kwargs: Any) -> Iterator[None]:
    """Bind a cluster (and extra fields) to every log line emitted inside the block.

    Args:
        cluster: Cluster label, e.g. ``project/location/name``
        **kwargs: Additional context fields
    """
    with structlog.contextvars.bound_contextvars(cluster=cluster, **kwargs):
        yield


def log_error(
    logger: structlog.BoundLogger,
    error: BaseException,
    event: str = "error_occurred",
    **kwargs: Any,
) -> None:
    """Log an error with its type and its chained cause.

    Args:
        logger: Logger instance
        error: Exception instance
        event: Event name
        **kwargs: Additional context fields
    """
    context = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        **kwargs,
    }
    if error.__cause__ is not None:
        context["cause"] = f"{type(error.__cause__).__name__}: {error.__cause__}"

    logger.error(event, **context)
