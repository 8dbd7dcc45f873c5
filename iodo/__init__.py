"""
iODO - Device Diagnostic Overlord

Captures a snapshot of a device's runtime characteristics and classifies it
into fault findings.

This package provides:
- Per-subsystem telemetry probes with isolated failure handling
- Remote analysis submission
- Local fallback heuristics when the analysis service is unreachable

Version: 1.0.0
License: GPL-3.0
"""

import time

# Package load markers used by the timing probe (epoch milliseconds)
IMPORT_STARTED_MS = time.time() * 1000

__version__ = "1.0.0"
__author__ = "iodo"
__license__ = "GPL-3.0"

from .utils import get_logger, setup_logger, load_config, DiagnosticsConfig
from .diagnostics import (
    DiagnosticReport,
    DiagnosticRunner,
    FallbackAnalyzer,
    RemoteUnavailable,
    run_diagnostics,
)

IMPORT_FINISHED_MS = time.time() * 1000

__all__ = [
    "get_logger",
    "setup_logger",
    "load_config",
    "DiagnosticsConfig",
    "DiagnosticReport",
    "DiagnosticRunner",
    "FallbackAnalyzer",
    "RemoteUnavailable",
    "run_diagnostics",
]
