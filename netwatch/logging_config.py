"""Logging configuration for NetWatch."""

import logging
import os
import sys

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
# Fetches run on pool threads; name them when debugging interleaved output
_DEBUG_FORMAT = "%(asctime)s - %(name)s - %(threadName)s - %(levelname)s - %(message)s"


def resolve_level(name: str | None) -> int:
    """Map a level name to a logging constant, falling back to INFO."""
    return LOG_LEVELS.get((name or "").strip().upper(), logging.INFO)


def configure_logging(level: str | None = None) -> None:
    """Configure application-wide logging.

    Logs to stderr, and additionally to a file when NETWATCH_LOG_FILE is set.
    At DEBUG the thread name is included, since provider fetches and sample
    cycles run off the main thread.

    Args:
        level: Level name overriding NETWATCH_LOG_LEVEL

    Environment Variables:
        NETWATCH_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
                            Default is INFO.
        NETWATCH_LOG_FILE: Optional path of a file to append log records to.

    Examples:
        # Default INFO level
        $ python -m netwatch

        # Per-tick rates and skipped ticks
        $ NETWATCH_LOG_LEVEL=DEBUG python -m netwatch

        # Alerts and failures only, kept on disk
        $ NETWATCH_LOG_LEVEL=WARNING NETWATCH_LOG_FILE=netwatch.log python -m netwatch
    """
    log_level = resolve_level(level if level is not None else os.environ.get("NETWATCH_LOG_LEVEL"))

    handlers = [logging.StreamHandler(sys.stderr)]
    log_file = os.environ.get("NETWATCH_LOG_FILE", "").strip()
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=log_level,
        format=_DEBUG_FORMAT if log_level == logging.DEBUG else _FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,  # Override any existing configuration
    )

    logger = logging.getLogger(__name__)
    logger.info("Logging configured: level=%s", logging.getLevelName(log_level))
    if log_file:
        logger.info("Also logging to %s", log_file)
