"""
Diagnostic report assembler.

Sequences capture, remote analysis, and the local fallback into a single
DiagnosticReport.  Capture errors and remote failures are absorbed; only a
defect outside those boundaries reaches the caller.
"""

import threading
from typing import Optional

from ..utils.config import DiagnosticsConfig
from ..utils.logger import get_logger
from .capabilities import Capabilities
from .capture import CaptureOrchestrator
from .fallback import FallbackAnalyzer
from .models import AnalysisSource, DiagnosticReport
from .remote import RemoteAnalysisClient, RemoteUnavailable


class DiagnosticRunner:
    """
    Runs the capture-and-diagnose pipeline.

    A runner handles one run at a time; starting a second run while the
    first is in progress raises RuntimeError.

    Args:
        orchestrator: Capture orchestrator for the telemetry snapshot.
        remote:       Remote analysis client, or None to go straight to
                      the fallback analyzer.
        fallback:     Local analyzer used when the remote path fails.
    """

    def __init__(
        self,
        orchestrator: CaptureOrchestrator,
        remote: Optional[RemoteAnalysisClient] = None,
        fallback: Optional[FallbackAnalyzer] = None,
    ):
        self.orchestrator = orchestrator
        self.remote = remote
        self.fallback = fallback or FallbackAnalyzer()
        self._running = threading.Lock()

    @classmethod
    def from_config(cls, config: DiagnosticsConfig) -> "DiagnosticRunner":
        """Build a runner for the local machine."""
        remote = None
        if not config.offline:
            remote = RemoteAnalysisClient(config.analysis_origin, config.request_timeout)
        return cls(CaptureOrchestrator(Capabilities.detect(config)), remote)

    def run(self) -> DiagnosticReport:
        """Capture a snapshot and analyse it."""
        if not self._running.acquire(blocking=False):
            raise RuntimeError("A diagnostic run is already in progress")
        try:
            return self._run()
        finally:
            self._running.release()

    def _run(self) -> DiagnosticReport:
        logger = get_logger()
        logger.info("Starting diagnostic run")

        snapshot = self.orchestrator.run()

        analysis = None
        if self.remote is not None:
            try:
                analysis = self.remote.analyze(snapshot)
                source = AnalysisSource.REMOTE
            except RemoteUnavailable as e:
                logger.warning(f"Remote analysis failed, using fallback heuristics: {e}")
        else:
            logger.debug("Remote analysis disabled")

        if analysis is None:
            analysis = self.fallback.analyze(snapshot)
            source = AnalysisSource.FALLBACK

        logger.info(f"Diagnostic run complete ({source.value}): {analysis.summary}")
        return DiagnosticReport(snapshot=snapshot, analysis=analysis, source=source)


def run_diagnostics(config: Optional[DiagnosticsConfig] = None) -> DiagnosticReport:
    """Run a full diagnostic on this machine and return the report."""
    return DiagnosticRunner.from_config(config or DiagnosticsConfig()).run()
