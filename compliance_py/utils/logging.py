"""
Logging setup for the compliance package.

Every module logs below the ``compliance_py`` logger; ``setup_logging``
attaches a single stderr handler to it. Besides the standard levels the
validator reports progress with ``STEP`` (an image is being validated) and
``RESULT`` (its outcome).
"""

import logging
import sys
from enum import Enum
from typing import Optional


class LogLevel(Enum):
    """Log level enumeration."""
    NONE = "none"
    INFO = "info"
    VERBOSE = "verbose"


ROOT_LOGGER = "compliance_py"

STEP = 25
RESULT = 24

logging.addLevelName(STEP, "STEP")
logging.addLevelName(RESULT, "RESULT")

# Per-attestation failures are only errors in verbose mode
_verbose_mode = False


def is_verbose() -> bool:
    """Check if verbose mode is enabled."""
    return _verbose_mode


class LevelFormatter(logging.Formatter):
    """Prefix messages with their level, coloured when writing to a terminal."""

    # level: (prefix, ANSI colour)
    LEVELS = {
        logging.DEBUG: ("[DEBUG]", "\033[36m"),
        logging.INFO: ("[INFO]", ""),
        RESULT: ("  -", "\033[32m"),
        STEP: ("[STEP]", "\033[34m"),
        logging.WARNING: ("[WARN]", "\033[33m"),
        logging.ERROR: ("[ERROR]", "\033[31m"),
        logging.CRITICAL: ("[CRITICAL]", "\033[35m"),
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = False):
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        prefix, color = self.LEVELS.get(record.levelno, ("[LOG]", ""))
        message = f"{prefix} {record.getMessage()}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        if self.use_colors and color:
            return f"{color}{message}{self.RESET}"
        return message


_THRESHOLDS = {
    LogLevel.NONE: logging.CRITICAL + 1,
    LogLevel.INFO: logging.INFO,
    LogLevel.VERBOSE: logging.DEBUG,
}


def setup_logging(level: LogLevel = LogLevel.INFO, use_colors: Optional[bool] = None) -> None:
    """
    Configure the package logger.

    Args:
        level: Desired log level
        use_colors: Whether to use colored output (auto-detect if None)
    """
    global _verbose_mode
    _verbose_mode = level == LogLevel.VERBOSE

    if use_colors is None:
        use_colors = sys.stderr.isatty()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(LevelFormatter(use_colors=use_colors))

    package_logger = logging.getLogger(ROOT_LOGGER)
    package_logger.setLevel(_THRESHOLDS[level])
    package_logger.handlers.clear()
    package_logger.addHandler(handler)


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Get a logger, usually ``get_logger(__name__)``."""
    return logging.getLogger(name)


def _log_at(level: int):
    def log(self: logging.Logger, message: str, *args, **kwargs) -> None:
        if self.isEnabledFor(level):
            self._log(level, message, args, **kwargs)
    return log


def _error_verbose(self: logging.Logger, message: str, *args, **kwargs) -> None:
    if _verbose_mode:
        self.error(message, *args, **kwargs)
    else:
        self.debug(f"[SUPPRESSED ERROR] {message}", *args, **kwargs)


logging.Logger.step = _log_at(STEP)
logging.Logger.result = _log_at(RESULT)
logging.Logger.error_verbose = _error_verbose
