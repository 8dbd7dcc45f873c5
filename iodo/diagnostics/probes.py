"""
Telemetry probes.

Each probe reads one subsystem through its capability provider and writes
into the record it is handed.  Probes may raise; the capture orchestrator
turns the exception into a CaptureError and keeps whatever the probe wrote
before failing.  Missing capabilities are not failures: they are recorded
as limitation strings inside the record.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict

from ..utils.logger import get_logger
from .capabilities import Capabilities

UNKNOWN = "unknown"

NETWORK_UNSUPPORTED = "Network information not supported"
BATTERY_UNSUPPORTED = "Battery API not supported"
BATTERY_DENIED = "Battery API permission denied"
PERFORMANCE_UNSUPPORTED = "Performance timing not supported"
MEMORY_UNAVAILABLE = "Memory API unavailable"
GRAPHICS_UNSUPPORTED = "WebGL not supported"
STORAGE_ESTIMATE_UNDEFINED = "undefined"

IOS_DEVICE_PATTERN = re.compile(r"iPhone|iPad|iPod")
SAFARI_PATTERN = re.compile(r"Safari")
CHROME_PATTERN = re.compile(r"CriOS|Chrome")
IOS_VERSION_PATTERN = re.compile(r"OS (\d+)_(\d+)_?(\d+)?")

TEST_VERTEX_SHADER = "attribute vec4 pos; void main() { gl_Position = pos; }"

Record = Dict[str, Any]


def parse_ios_version(identity: str) -> str:
    """Extract ``major.minor.patch`` from an ``OS 16_4_1`` style token.

    A missing patch segment defaults to ``0``; no match gives ``"unknown"``.
    """
    match = IOS_VERSION_PATTERN.search(identity or "")
    if not match:
        return UNKNOWN
    major, minor, patch = match.groups()
    return f"{major}.{minor}.{patch or '0'}"


def _or_unknown(value: Any) -> Any:
    return UNKNOWN if value is None or value == "" else value


def capture_metadata(record: Record, caps: Capabilities) -> None:
    record["timestamp"] = (
        datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    )
    provider = caps.metadata
    for field in (
        "platform",
        "vendor",
        "language",
        "device_memory",
        "hardware_concurrency",
        "python_version",
    ):
        record[field] = _or_unknown(getattr(provider, field)() if provider else None)


def capture_identity(record: Record, caps: Capabilities) -> None:
    raw = caps.identity.identity_string() if caps.identity else ""
    record["raw"] = raw
    record["is_ios"] = bool(IOS_DEVICE_PATTERN.search(raw))
    record["is_safari"] = bool(SAFARI_PATTERN.search(raw)) and not re.search("Chrome", raw)
    record["is_chrome"] = bool(CHROME_PATTERN.search(raw))
    record["ios_version"] = parse_ios_version(raw)


def capture_network(record: Record, caps: Capabilities) -> None:
    if caps.connection is None:
        record["error"] = NETWORK_UNSUPPORTED
        return

    conn = caps.connection.connection()
    record.update({
        "downlink": conn.downlink,
        "effective_type": conn.effective_type,
        "rtt": conn.rtt,
        "save_data": conn.save_data,
        "type": conn.type or UNKNOWN,
    })


def capture_storage(record: Record, caps: Capabilities) -> None:
    record["storage_estimate"] = STORAGE_ESTIMATE_UNDEFINED
    record["persistent_storage"] = bool(caps.storage and caps.storage.persistent_available())
    record["session_storage"] = bool(caps.storage and caps.storage.session_available())


def capture_storage_estimate(record: Record, caps: Capabilities) -> None:
    if caps.storage_estimate is None:
        return
    record["storage_estimate"] = dict(caps.storage_estimate.estimate())


def capture_battery(record: Record, caps: Capabilities) -> None:
    if caps.power is None:
        record["error"] = BATTERY_UNSUPPORTED
        return

    try:
        status = caps.power.battery()
    except Exception as e:
        get_logger().debug(f"Battery query rejected: {e}")
        record["error"] = BATTERY_DENIED
        return

    if status is None:
        record["error"] = BATTERY_UNSUPPORTED
        return

    record.update({
        "level": status.level,
        "charging": status.charging,
        "charging_time": status.charging_time,
        "discharging_time": status.discharging_time,
    })


def capture_performance(record: Record, caps: Capabilities) -> None:
    if caps.timing is None:
        record["error"] = PERFORMANCE_UNSUPPORTED
        return

    markers = caps.timing.markers()
    for name in ("navigation_start", "dom_loading", "dom_complete", "load_event_end"):
        record[name] = markers[name]
    record["load_time"] = markers["load_event_end"] - markers["navigation_start"]
    record["dom_ready_time"] = markers["dom_complete"] - markers["dom_loading"]
    record["memory"] = dict(caps.memory.memory()) if caps.memory else MEMORY_UNAVAILABLE


def capture_graphics(record: Record, caps: Capabilities) -> None:
    context = caps.graphics.create_context() if caps.graphics else None
    if context is None:
        record.update({"webgl": False, "error": GRAPHICS_UNSUPPORTED})
        return

    record["webgl"] = True
    debug_info = context.debug_info()
    record["renderer"], record["vendor"] = debug_info or (UNKNOWN, UNKNOWN)
    record["shader_compile_success"] = bool(context.compile_shader(TEST_VERTEX_SHADER))


def capture_sensors(record: Record, caps: Capabilities) -> None:
    sensors = caps.sensors
    record.update({
        "accelerometer": bool(sensors and sensors.has_accelerometer()),
        "gyroscope": bool(sensors and sensors.has_gyroscope()),
        "orientation": bool(sensors and sensors.has_orientation()),
        "touch": bool(sensors and sensors.has_touch()),
        "max_touch_points": (sensors.max_touch_points() if sensors else None) or 0,
    })


@dataclass(frozen=True)
class Probe:
    """One isolated capture step writing into a snapshot key."""
    key: str
    module: str
    capture: Callable[[Record, Capabilities], None]


# Capture order is fixed so error logs are reproducible
PROBES = (
    Probe("metadata", "Metadata", capture_metadata),
    Probe("identity", "Identity", capture_identity),
    Probe("network", "Network", capture_network),
    Probe("storage", "Storage", capture_storage),
    Probe("storage", "StorageEstimate", capture_storage_estimate),
    Probe("battery", "Battery", capture_battery),
    Probe("performance", "Performance", capture_performance),
    Probe("graphics", "Graphics", capture_graphics),
    Probe("sensors", "Sensors", capture_sensors),
)
