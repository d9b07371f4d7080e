"""
Logging sinks for sprite compilation runs.
"""

import itertools
import logging
import sys
from typing import Any

VERBOSE = 15
logging.addLevelName(VERBOSE, "VERBOSE")

LEVELS = {
    "info": logging.INFO,
    "verbose": VERBOSE,
    "debug": logging.DEBUG,
}

_run_counter = itertools.count(1)


class ColoredFormatter(logging.Formatter):
    """Console formatter that colorizes the level name."""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "VERBOSE": "\033[34m",  # Blue
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.COLORS["RESET"])
        reset = self.COLORS["RESET"]
        formatted = super().format(record)
        if record.levelname in formatted:
            formatted = formatted.replace(
                record.levelname, f"{color}{record.levelname}{reset}", 1
            )
        return formatted


def verbose(logger: logging.Logger, msg: str, *args: Any) -> None:
    logger.log(VERBOSE, msg, *args)


def resolve_logger(value: Any = None, *, stream=None) -> logging.Logger:
    """
    Build the logging sink for one compilation run.

    Accepts an existing logger, a level name (info, verbose, debug) or any
    other value; truthy values log at info, falsy values silence the run.
    """
    if isinstance(value, logging.Logger):
        return value

    level_name = ""
    if isinstance(value, str) and value in LEVELS:
        level_name = value
    elif value:
        level_name = "info"

    # Detached from the logging manager so runs never share handlers.
    logger = logging.Logger(f"svgsprite.run{next(_run_counter)}")
    logger.propagate = False
    if not level_name:
        logger.addHandler(logging.NullHandler())
        logger.setLevel(logging.CRITICAL + 1)
        return logger

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(
        ColoredFormatter(
            "%(asctime)s - %(levelname)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(handler)
    logger.setLevel(LEVELS[level_name])
    return logger
