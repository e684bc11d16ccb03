"""Structured logging setup."""

import logging

import structlog


def configure_logging(level: str = "INFO", verbose: bool = False, quiet: bool = False) -> None:
    """Configure structlog console output for the run.

    Args:
        level: Level name from configuration
        verbose: Force debug output, including executed commands
        quiet: Only show warnings and errors
    """
    if verbose:
        level = "DEBUG"
    elif quiet:
        level = "WARNING"

    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
