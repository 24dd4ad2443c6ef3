"""Structured logging for the dispatcher, built on structlog.

Standard-library loggers (``logging.getLogger(__name__)``) used throughout the
package are routed through structlog's ``ProcessorFormatter`` so that context
bound with :func:`bind_dispatch_context` appears on every delivery log line.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "httpcore")


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]


def configure_logging(log_level: str = "info", json_output: bool = False) -> None:
    """Install structlog processors and a single stdout handler on the root logger.

    Args:
        log_level: Logging level name (debug/info/warning/error).
        json_output: Emit JSON lines (production) instead of coloured console output.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )

    structlog.configure(
        processors=_shared_processors() + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=_shared_processors(),
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_request_context(trace_id: str) -> None:
    """Bind the request trace id to the current async context."""
    structlog.contextvars.bind_contextvars(trace_id=trace_id)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


@contextmanager
def bind_dispatch_context(envelope_id: str, event_type: str) -> Iterator[None]:
    """Tag every log line emitted inside the block with the envelope being dispatched."""
    with structlog.contextvars.bound_contextvars(envelope_id=envelope_id, event_type=event_type):
        yield
