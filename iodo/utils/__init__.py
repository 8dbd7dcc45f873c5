"""
Utility modules for iODO device diagnostics.

Provides logging, configuration management, and command helpers.
"""

from .logger import setup_logger, get_logger, log_exception
from .system import command_exists, run_command
from .config import ConfigManager, DiagnosticsConfig, load_config

__all__ = [
    "setup_logger",
    "get_logger",
    "log_exception",
    "command_exists",
    "run_command",
    "ConfigManager",
    "DiagnosticsConfig",
    "load_config",
]
