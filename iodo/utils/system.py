"""
System utilities for iODO device diagnostics.

Provides command execution and tool lookup for the host capability
providers.

Security Note: commands are always executed without a shell.
"""

import shutil
import subprocess
from typing import List, Tuple

from .logger import get_logger


def command_exists(name: str) -> bool:
    """Check whether an executable is available on PATH."""
    return shutil.which(name) is not None


def run_command(
    args: List[str],
    timeout: int = 30,
    suppress_errors: bool = False
) -> Tuple[int, str, str]:
    """
    Execute a system command with timeout and error handling.

    Args:
        args: Command as list of strings
        timeout: Timeout in seconds
        suppress_errors: Don't log errors

    Returns:
        Tuple of (return_code, stdout, stderr)
    """
    logger = get_logger()

    try:
        result = subprocess.run(
            args,
            shell=False,
            capture_output=True,
            text=True,
            timeout=timeout
        )
        return result.returncode, result.stdout or "", result.stderr or ""
    except subprocess.TimeoutExpired:
        if not suppress_errors:
            logger.warning(f"Command timed out after {timeout}s: {args[0]}")
        return -1, "", f"Timeout after {timeout}s"
    except FileNotFoundError:
        if not suppress_errors:
            logger.warning(f"Command not found: {args[0]}")
        return -1, "", "Command not found"
    except OSError as e:
        if not suppress_errors:
            logger.error(f"Command failed: {e}")
        return -1, "", str(e)
