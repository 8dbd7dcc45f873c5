"""
Capture-and-diagnose pipeline.

Gathers a telemetry snapshot of the device, submits it for remote analysis,
and falls back to local heuristics when the service cannot be reached.
"""

from .models import (
    SUBSYSTEM_KEYS,
    AnalysisResult,
    AnalysisSource,
    CaptureError,
    DiagnosticReport,
    FaultFinding,
    Severity,
    TelemetrySnapshot,
)
from .capabilities import Capabilities
from .capture import CaptureOrchestrator
from .remote import RemoteAnalysisClient, RemoteUnavailable
from .fallback import FallbackAnalyzer, FallbackRule
from .runner import DiagnosticRunner, run_diagnostics

__all__ = [
    "SUBSYSTEM_KEYS",
    "AnalysisResult",
    "AnalysisSource",
    "CaptureError",
    "DiagnosticReport",
    "FaultFinding",
    "Severity",
    "TelemetrySnapshot",
    "Capabilities",
    "CaptureOrchestrator",
    "RemoteAnalysisClient",
    "RemoteUnavailable",
    "FallbackAnalyzer",
    "FallbackRule",
    "DiagnosticRunner",
    "run_diagnostics",
]
