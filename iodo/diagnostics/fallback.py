"""
Local heuristic analyzer used when the remote service is unreachable.

Rules are an ordered table of (code, severity, predicate, message).  Each
predicate reads the snapshot and returns True only when every field it needs
is present and matches; a missing or malformed field skips the rule.
"""

from dataclasses import dataclass
from numbers import Real
from typing import Callable, Optional, Sequence, Union

from .models import AnalysisResult, FaultFinding, Severity, TelemetrySnapshot

LOW_BATTERY_LEVEL = 0.20
SLOW_LOAD_MS = 5000
SLOWEST_NETWORK_TIER = "slow-2g"
MIN_SUPPORTED_IOS_MAJOR = 15


def _number(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, Real):
        return None
    return float(value)


def ios_major(snapshot: TelemetrySnapshot) -> Optional[int]:
    """Major version from ``identity.ios_version``, or None if unknown."""
    version = snapshot.identity.get("ios_version")
    if not isinstance(version, str) or version == "unknown":
        return None
    head = version.split(".")[0]
    return int(head) if head.isdigit() else None


def battery_low(snapshot: TelemetrySnapshot) -> bool:
    level = _number(snapshot.battery.get("level"))
    return level is not None and level < LOW_BATTERY_LEVEL and snapshot.battery.get("charging") is False


def load_slow(snapshot: TelemetrySnapshot) -> bool:
    load_time = _number(snapshot.performance.get("load_time"))
    return load_time is not None and load_time > SLOW_LOAD_MS


def graphics_missing(snapshot: TelemetrySnapshot) -> bool:
    return snapshot.graphics.get("webgl") is False


def network_slow(snapshot: TelemetrySnapshot) -> bool:
    return snapshot.network.get("effective_type") == SLOWEST_NETWORK_TIER


def ios_outdated(snapshot: TelemetrySnapshot) -> bool:
    major = ios_major(snapshot)
    return major is not None and major < MIN_SUPPORTED_IOS_MAJOR


@dataclass(frozen=True)
class FallbackRule:
    """One heuristic: when ``predicate`` holds, emit a finding."""
    code: str
    severity: Severity
    predicate: Callable[[TelemetrySnapshot], bool]
    message: Union[str, Callable[[TelemetrySnapshot], str]]

    def evaluate(self, snapshot: TelemetrySnapshot) -> Optional[FaultFinding]:
        if not self.predicate(snapshot):
            return None
        message = self.message(snapshot) if callable(self.message) else self.message
        return FaultFinding(code=self.code, severity=self.severity, message=message)


DEFAULT_RULES = (
    FallbackRule(
        "BATT_LOW", Severity.MEDIUM, battery_low,
        "Battery level critically low. This can cause unexpected shutdowns.",
    ),
    FallbackRule(
        "PERF_SLOW", Severity.LOW, load_slow,
        "Device performance seems sluggish. Could be due to many open apps or memory pressure.",
    ),
    FallbackRule(
        "GFX_WEBGL_FAIL", Severity.HIGH, graphics_missing,
        "WebGL is not supported. This may indicate a severe graphics subsystem "
        "issue or outdated iOS version.",
    ),
    FallbackRule(
        "NET_SLOW", Severity.LOW, network_slow,
        "Network connection is very slow.",
    ),
    FallbackRule(
        "IOS_OUTDATED", Severity.HIGH, ios_outdated,
        lambda snapshot: (
            f"iOS version {snapshot.identity['ios_version']} is significantly outdated. "
            "This poses security risks and may cause app compatibility issues."
        ),
    ),
)


class FallbackAnalyzer:
    """Pure rule engine producing an AnalysisResult from a snapshot."""

    def __init__(self, rules: Sequence[FallbackRule] = DEFAULT_RULES):
        self.rules = tuple(rules)

    def analyze(self, snapshot: TelemetrySnapshot) -> AnalysisResult:
        faults = []
        for rule in self.rules:
            finding = rule.evaluate(snapshot)
            if finding is not None:
                faults.append(finding)
        return AnalysisResult(
            faults=tuple(faults),
            summary=f"Fallback analysis found {len(faults)} potential issue(s).",
        )
