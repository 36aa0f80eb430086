"""Structured logging configuration for the command gateway.

Uses structlog for structured, context-rich logging that supports
both human-readable console output and machine-readable JSON format.
"""

import logging
import sys
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from shellgate.settings import GatewaySettings


def configure_logging(settings: "GatewaySettings | None" = None) -> None:
    """Configure structured logging based on settings.

    Args:
        settings: Gateway settings. If None, uses defaults.
    """
    log_level = logging.WARNING
    log_format = "console"

    if settings is not None:
        log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
        log_format = settings.log_format

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ]

    # stderr only: stdout may carry protocol traffic
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=log_level,
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a logger instance.

    Args:
        name: Optional logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name) if name else structlog.get_logger()


@contextmanager
def log_context(**fields: object) -> Iterator[None]:
    """Attach ``fields`` to every log line emitted inside the block.

    Fields bound by an enclosing block are restored on exit.
    """
    with structlog.contextvars.bound_contextvars(**fields):
        yield


class Loggers:
    """Pre-configured logger instances for gateway components."""

    @staticmethod
    def config() -> structlog.stdlib.BoundLogger:
        """Logger for configuration loading and resolution."""
        return get_logger("shellgate.config")

    @staticmethod
    def registry() -> structlog.stdlib.BoundLogger:
        """Logger for the shell registry."""
        return get_logger("shellgate.shells")

    @staticmethod
    def validation() -> structlog.stdlib.BoundLogger:
        """Logger for command and path validation."""
        return get_logger("shellgate.validation")

    @staticmethod
    def execution() -> structlog.stdlib.BoundLogger:
        """Logger for process execution."""
        return get_logger("shellgate.execution")

    @staticmethod
    def gateway() -> structlog.stdlib.BoundLogger:
        """Logger for the request-facing gateway."""
        return get_logger("shellgate.gateway")
