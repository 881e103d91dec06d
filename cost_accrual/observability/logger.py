"""
Structured logging setup.

Configures structlog once for the CLI and library callers. Until
setup_logging is called, importing this module leaves a warning-level
stderr configuration in place of structlog's unfiltered stdout default.
"""

import logging
import sys

import structlog

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _stderr_logger_factory(*args):
    # Resolve sys.stderr per logger so redirected streams are honoured
    return structlog.PrintLogger(file=sys.stderr)


def setup_logging(level: str = "info", json_output: bool = False) -> None:
    """Configure structlog processors and level filtering.

    Args:
        level: One of debug, info, warning, error
        json_output: Render JSON lines instead of console output

    Raises:
        ValueError: If level is not a known log level
    """
    if level not in LOG_LEVELS:
        raise ValueError(f"Unknown log level: {level}")

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVELS[level]),
        context_class=dict,
        logger_factory=_stderr_logger_factory,
        cache_logger_on_first_use=False,
    )


def configure_default_logging() -> None:
    """Apply warning-level logging unless structlog is already configured."""
    if not structlog.is_configured():
        setup_logging("warning")


def get_logger(name: str = "cost_accrual"):
    return structlog.get_logger(name)


configure_default_logging()
