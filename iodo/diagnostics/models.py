"""
Data structures shared by the capture-and-diagnose pipeline.

A diagnostic run produces one TelemetrySnapshot, exactly one AnalysisResult
(remote or fallback), and bundles both into a DiagnosticReport.
"""

import copy
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

# Fixed snapshot schema, in capture order
SUBSYSTEM_KEYS: Tuple[str, ...] = (
    "metadata",
    "identity",
    "network",
    "storage",
    "battery",
    "performance",
    "graphics",
    "sensors",
)


class Severity(Enum):
    """Severity of a fault finding."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class CaptureError:
    """A non-fatal failure of one probe."""
    module: str
    message: str
    stack: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        entry = {"module": self.module, "message": self.message}
        if self.stack is not None:
            entry["stack"] = self.stack
        return entry


@dataclass(frozen=True)
class TelemetrySnapshot:
    """Fixed-shape aggregate of everything captured during one run.

    Every subsystem key is always present. Probes that fail leave whatever
    partial record they wrote, and the failure is listed in ``errors``.

    Snapshots returned by a capture are sealed: each subsystem record is a
    read-only mapping.  Values nested inside a record (for example
    ``performance["memory"]``) are plain objects and are not frozen.
    """
    metadata: Mapping[str, Any] = field(default_factory=dict)
    identity: Mapping[str, Any] = field(default_factory=dict)
    network: Mapping[str, Any] = field(default_factory=dict)
    storage: Mapping[str, Any] = field(default_factory=dict)
    battery: Mapping[str, Any] = field(default_factory=dict)
    performance: Mapping[str, Any] = field(default_factory=dict)
    graphics: Mapping[str, Any] = field(default_factory=dict)
    sensors: Mapping[str, Any] = field(default_factory=dict)
    errors: Tuple[CaptureError, ...] = ()

    def record(self, key: str) -> Mapping[str, Any]:
        """Return the record for a subsystem key."""
        if key not in SUBSYSTEM_KEYS:
            raise KeyError(key)
        return getattr(self, key)

    def with_record(self, key: str, record: Mapping[str, Any]) -> "TelemetrySnapshot":
        """Return a copy with one subsystem record replaced."""
        if key not in SUBSYSTEM_KEYS:
            raise KeyError(key)
        return replace(self, **{key: record})

    def with_errors(self, *errors: CaptureError) -> "TelemetrySnapshot":
        """Return a copy with capture errors appended."""
        return replace(self, errors=self.errors + tuple(errors))

    def sealed(self) -> "TelemetrySnapshot":
        """Return a copy whose subsystem records are read-only."""
        return replace(self, **{
            key: MappingProxyType(dict(getattr(self, key))) for key in SUBSYSTEM_KEYS
        })

    def to_dict(self) -> Dict[str, Any]:
        """JSON payload: the eight subsystem keys plus ``errors``."""
        payload = {key: copy.deepcopy(dict(getattr(self, key))) for key in SUBSYSTEM_KEYS}
        payload["errors"] = [error.to_dict() for error in self.errors]
        return payload


@dataclass(frozen=True)
class FaultFinding:
    """One classified issue."""
    code: str
    severity: Severity
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "severity": self.severity.value,
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "FaultFinding":
        if not isinstance(data, dict):
            raise ValueError("fault must be an object")
        code = data.get("code")
        message = data.get("message")
        if not isinstance(code, str) or not isinstance(message, str):
            raise ValueError("fault code and message must be strings")
        try:
            severity = Severity(data.get("severity"))
        except ValueError:
            raise ValueError("unknown fault severity: %r" % data.get("severity"))
        return cls(code=code, severity=severity, message=message)


@dataclass(frozen=True)
class AnalysisResult:
    """Fault findings plus a one-line summary."""
    faults: Tuple[FaultFinding, ...]
    summary: str

    @property
    def healthy(self) -> bool:
        return not self.faults

    def codes(self) -> List[str]:
        return [fault.code for fault in self.faults]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "faults": [fault.to_dict() for fault in self.faults],
            "summary": self.summary,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "AnalysisResult":
        """Validate a decoded analysis payload.

        Raises:
            ValueError: if the payload does not have the expected structure.
        """
        if not isinstance(data, dict):
            raise ValueError("analysis result must be an object")
        faults = data.get("faults")
        summary = data.get("summary")
        if not isinstance(faults, list):
            raise ValueError("analysis result faults must be a list")
        if not isinstance(summary, str):
            raise ValueError("analysis result summary must be a string")
        return cls(
            faults=tuple(FaultFinding.from_dict(item) for item in faults),
            summary=summary,
        )


class AnalysisSource(Enum):
    """Which path produced the analysis."""
    REMOTE = "remote"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class DiagnosticReport:
    """Snapshot plus its analysis; the unit handed to the caller."""
    snapshot: TelemetrySnapshot
    analysis: AnalysisResult
    source: AnalysisSource

    def to_dict(self) -> Dict[str, Any]:
        payload = self.snapshot.to_dict()
        payload["analysis"] = self.analysis.to_dict()
        payload["analysis_source"] = self.source.value
        return payload
