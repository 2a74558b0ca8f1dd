"""structlog setup for the engine.

Every component logs through get_logger(__name__). The orchestrator wraps
each tick in tick_context() so the tick kind is attached to all log lines
emitted while that tick runs, including lines from the detector, ledger,
and lifecycle manager.
"""

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal

import structlog

# Loggers of libraries that are chatty at DEBUG/INFO
_NOISY_LOGGERS = ("ccxt", "asyncio", "uvicorn.access")


def _stringify_decimals(
    logger: object, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Render Decimal values as plain strings so JSON output keeps full precision."""
    for key, value in event_dict.items():
        if isinstance(value, Decimal):
            event_dict[key] = str(value)
    return event_dict


def setup_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """Route structlog and stdlib logging through one handler.

    Args:
        log_level: Root level name, e.g. "INFO" or "DEBUG".
        log_format: "json" for machine-readable lines, "console" for humans.
            The LOG_FORMAT environment variable wins when set.
    """
    log_format = os.environ.get("LOG_FORMAT", log_format).lower()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _stringify_decimals,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    renderer: structlog.types.Processor
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def tick_context(tick: str) -> Iterator[None]:
    """Bind tick=<kind> for log lines emitted inside the block."""
    structlog.contextvars.bind_contextvars(tick=tick)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars("tick")


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger with the given name."""
    return structlog.get_logger(name)
