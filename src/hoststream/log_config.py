"""
Logging configuration for hoststream.

Provides centralized logging setup with concise terminal output.
"""

import logging
import sys
from pathlib import Path

from textual.logging import TextualHandler


def setup_logger(
    name: str,
    level: int = logging.INFO,
    log_file: Path | None = None,
    textual: bool = False,
) -> logging.Logger:
    """
    Configure and return a logger with consistent formatting.

    Args:
        name: Logger name (usually the package name).
        level: Logging level for the console handler.
        log_file: Optional file path for a detailed log.
        textual: Route console output to the running Textual app's log
            instead of stderr, which the full-screen view draws over.

    Returns:
        The configured logger.
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG if log_file else level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    if textual:
        # Records from outside the app context are dropped, not printed
        console_handler: logging.Handler = TextualHandler(stderr=False, stdout=False)
    else:
        console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(fmt="[%(levelname)s] %(message)s"))
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger
