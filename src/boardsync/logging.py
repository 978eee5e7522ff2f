"""Logging configuration for boardsync."""

import logging
import sys
from datetime import UTC, datetime
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _level_for(verbose: int) -> int:
    """Map -v count to a logging level (file-only logging defaults to INFO)."""
    return logging.DEBUG if verbose >= 2 else logging.INFO


def setup_logging(verbose: int = 0, log_file: Path | None = None) -> logging.Logger:
    """Configure the boardsync logger namespace.

    Args:
        verbose: Verbosity level (0=off, 1=INFO, 2+=DEBUG)
        log_file: Optional path to write logs to file

    Returns:
        The configured ``boardsync`` logger.
    """
    logger = logging.getLogger("boardsync")
    if verbose == 0 and log_file is None:
        return logger

    level = _level_for(verbose)
    logger.setLevel(level)

    # Calling twice (e.g. from tests) must not duplicate output
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if verbose > 0:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(level)
        stderr_handler.setFormatter(formatter)
        logger.addHandler(stderr_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # httpx logs every request at INFO; our REST client already does
    if level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)

    timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S UTC")
    logger.info("=" * 60)
    logger.info("boardsync starting | %s | level=%s", timestamp, logging.getLevelName(level))
    logger.info("=" * 60)
    return logger
