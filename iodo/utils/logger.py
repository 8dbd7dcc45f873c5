"""
Logging utilities for iODO device diagnostics.

Provides consistent logging across all modules with file and console output,
debug mode support, and exception logging for failed diagnostic steps.
"""

import logging
import sys
import traceback
from pathlib import Path
from typing import Optional

# Global logger instance
_logger: Optional[logging.Logger] = None

LOGGER_NAME = "iodo"
DEFAULT_LOG_FILE = Path.home() / ".config" / "iodo" / "iodo.log"


def _file_handler(path: Path) -> logging.FileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    ))
    return handler


def setup_logger(
    debug: bool = False,
    log_file: Optional[str] = None,
    name: str = LOGGER_NAME
) -> logging.Logger:
    """
    Initialize and configure the application logger.

    Args:
        debug: Enable debug-level logging
        log_file: Custom log file path (default: ~/.config/iodo/iodo.log)
        name: Logger name

    Returns:
        Configured logger instance
    """
    global _logger

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)

    # Clear existing handlers
    logger.handlers.clear()

    # Console goes to stderr so report JSON on stdout stays clean
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(console_handler)

    path = Path(log_file) if log_file else DEFAULT_LOG_FILE
    try:
        logger.addHandler(_file_handler(path))
    except PermissionError:
        # Fall back to user home directory
        home_log = Path.home() / ".iodo.log"
        try:
            logger.addHandler(_file_handler(home_log))
            logger.debug(f"Using fallback log location: {home_log}")
        except OSError as e:
            logger.warning(f"Could not create log file: {e}")
    except OSError as e:
        logger.warning(f"Could not create log file: {e}")

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """
    Get the global logger instance, initializing if necessary.

    Returns:
        Logger instance
    """
    global _logger
    if _logger is None:
        _logger = setup_logger()
    return _logger


def log_exception(exception: BaseException, context: Optional[str] = None) -> None:
    """
    Log an exception with stack trace and optional context.

    Args:
        exception: The exception to log
        context: Optional context description
    """
    logger = get_logger()

    if context:
        logger.error(f"Exception in {context}: {type(exception).__name__}: {exception}")
    else:
        logger.error(f"Exception: {type(exception).__name__}: {exception}")

    logger.debug(f"Stack trace:\n{traceback.format_exc()}")
