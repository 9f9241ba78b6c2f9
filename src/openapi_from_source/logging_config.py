"""structlog setup shared by the CLI and the test-suite."""

import logging
import os
import sys

import structlog

DEBUG_ENV_VAR = "OPENAPI_FROM_SOURCE_DEBUG"


def configure_logging(verbose: bool = False) -> None:
    """Route structlog output to stderr.

    DEBUG when ``verbose`` is set or OPENAPI_FROM_SOURCE_DEBUG is non-empty,
    WARNING otherwise.
    """
    level = logging.DEBUG if verbose or os.getenv(DEBUG_ENV_VAR) else logging.WARNING
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
