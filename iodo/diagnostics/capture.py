"""
Capture orchestrator.

Runs every telemetry probe in a fixed order, each inside its own failure
boundary, threading the snapshot through as an accumulator.  A failing probe
becomes a CaptureError; the run as a whole never fails.

Usage:
    from iodo.diagnostics.capture import CaptureOrchestrator
    from iodo.diagnostics.capabilities import Capabilities

    snapshot = CaptureOrchestrator(Capabilities.detect()).run()
    print(snapshot.errors)
"""

import time
import traceback
from typing import Iterable, Optional

from ..utils.logger import get_logger
from .capabilities import Capabilities
from .models import CaptureError, TelemetrySnapshot
from .probes import PROBES, Probe


def run_isolated(
    snapshot: TelemetrySnapshot,
    probe: Probe,
    caps: Capabilities,
) -> TelemetrySnapshot:
    """Run one probe and return the next snapshot.

    The probe writes into a copy of its key's current record.  If it
    raises, the partial record is kept and a CaptureError is appended.
    """
    logger = get_logger()
    record = dict(snapshot.record(probe.key))

    start = time.monotonic()
    try:
        probe.capture(record, caps)
    except Exception as exc:
        logger.warning("Probe %s failed: %s: %s", probe.module, type(exc).__name__, exc)
        error = CaptureError(
            module=probe.module,
            message=str(exc) or type(exc).__name__,
            stack=traceback.format_exc(),
        )
        return snapshot.with_record(probe.key, record).with_errors(error)
    finally:
        logger.debug(
            "Probe %s finished in %.1f ms", probe.module, (time.monotonic() - start) * 1000
        )

    return snapshot.with_record(probe.key, record)


class CaptureOrchestrator:
    """
    Gathers a TelemetrySnapshot from the platform capabilities.

    Probes run one after another; each blocking query completes before the
    next probe starts, so total time is the sum of probe latencies.
    """

    def __init__(
        self,
        capabilities: Optional[Capabilities] = None,
        probes: Iterable[Probe] = PROBES,
    ):
        self.capabilities = capabilities if capabilities is not None else Capabilities.detect()
        self.probes = tuple(probes)

    def run(self) -> TelemetrySnapshot:
        """Capture a fresh snapshot."""
        logger = get_logger()
        logger.debug("Starting telemetry capture (%d probes)", len(self.probes))

        snapshot = TelemetrySnapshot()
        for probe in self.probes:
            snapshot = run_isolated(snapshot, probe, self.capabilities)

        if snapshot.errors:
            logger.info(
                "Telemetry capture finished with %d error(s): %s",
                len(snapshot.errors),
                ", ".join(error.module for error in snapshot.errors),
            )
        else:
            logger.debug("Telemetry capture finished cleanly")
        return snapshot.sealed()
