"""
Logging bootstrap for the prtrace CLI.

Library modules log through the standard `logging` module; the CLI routes
those records into loguru sinks. Console output goes to stderr so that
command output on stdout (blame lines, PR numbers) stays pipeable.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from loguru import logger


class InterceptHandler(logging.Handler):
    """Intercept standard logging messages toward Loguru sinks."""
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "WARNING", log_file: str | None = None) -> None:
    """Configure loguru sinks and intercept stdlib logging."""
    logger.remove()

    logger.add(sys.stderr, level=level, colorize=True, format="<level>{level: <8}</level> | <cyan>{name}</cyan> - <level>{message}</level>")

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(str(path), level="DEBUG", rotation="10 MB", retention="1 week", format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}")

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
