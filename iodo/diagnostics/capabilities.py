"""
Capability providers for the telemetry probes.

Each subsystem reads the platform through a small provider object.  A
``None`` provider in :class:`Capabilities` means the platform does not
offer that capability at all; probes record the limitation instead of
failing.  Tests inject fakes here to simulate presence or absence without
touching the real machine.

The ``Host*`` classes read the local machine with psutil, the platform
module, sysfs, and external tools such as ``glxinfo``.
"""

import locale
import os
import platform
import re
import socket
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Protocol, Tuple

import psutil

from ..utils.config import DEFAULT_CONFIG_DIR, DiagnosticsConfig
from ..utils.logger import get_logger
from ..utils.system import command_exists, run_command


# ── Records returned by providers ────────────────────────────
@dataclass
class ConnectionInfo:
    """Connection quality as seen from this device."""
    downlink: Optional[float]
    effective_type: str
    rtt: Optional[float]
    save_data: bool = False
    type: str = "unknown"


@dataclass
class BatteryStatus:
    """Power state; times are seconds or None when unknown."""
    level: float
    charging: Optional[bool]
    charging_time: Optional[float] = None
    discharging_time: Optional[float] = None


# ── Provider interfaces ──────────────────────────────────────
class MetadataProvider(Protocol):
    def platform(self) -> Optional[str]: ...
    def vendor(self) -> Optional[str]: ...
    def language(self) -> Optional[str]: ...
    def device_memory(self) -> Optional[float]: ...
    def hardware_concurrency(self) -> Optional[int]: ...
    def python_version(self) -> Optional[str]: ...


class IdentityProvider(Protocol):
    def identity_string(self) -> str: ...


class ConnectionProvider(Protocol):
    def connection(self) -> ConnectionInfo: ...


class StorageProvider(Protocol):
    def persistent_available(self) -> bool: ...
    def session_available(self) -> bool: ...


class StorageEstimateProvider(Protocol):
    def estimate(self) -> Dict[str, int]: ...


class PowerProvider(Protocol):
    def battery(self) -> Optional[BatteryStatus]: ...


class TimingProvider(Protocol):
    def markers(self) -> Dict[str, float]: ...


class MemoryProvider(Protocol):
    def memory(self) -> Dict[str, int]: ...


class RenderingContext(Protocol):
    def debug_info(self) -> Optional[Tuple[str, str]]: ...
    def compile_shader(self, source: str) -> bool: ...


class GraphicsProvider(Protocol):
    def create_context(self) -> Optional[RenderingContext]: ...


class SensorProvider(Protocol):
    def has_accelerometer(self) -> bool: ...
    def has_gyroscope(self) -> bool: ...
    def has_orientation(self) -> bool: ...
    def has_touch(self) -> bool: ...
    def max_touch_points(self) -> Optional[int]: ...


@dataclass
class Capabilities:
    """Bundle of providers handed to the capture orchestrator."""
    metadata: Optional[MetadataProvider] = None
    identity: Optional[IdentityProvider] = None
    connection: Optional[ConnectionProvider] = None
    storage: Optional[StorageProvider] = None
    storage_estimate: Optional[StorageEstimateProvider] = None
    power: Optional[PowerProvider] = None
    timing: Optional[TimingProvider] = None
    memory: Optional[MemoryProvider] = None
    graphics: Optional[GraphicsProvider] = None
    sensors: Optional[SensorProvider] = None

    @classmethod
    def detect(cls, config: Optional[DiagnosticsConfig] = None) -> "Capabilities":
        """Build providers for the local machine."""
        config = config or DiagnosticsConfig()
        return cls(
            metadata=HostMetadata(),
            identity=HostIdentity(config.user_agent),
            connection=HostConnection(
                config.network_probe_host,
                config.network_probe_port,
                config.network_probe_timeout,
            ),
            storage=HostStorage(),
            storage_estimate=HostStorageEstimate(),
            power=HostPower() if hasattr(psutil, "sensors_battery") else None,
            timing=HostTiming(),
            memory=HostMemory(),
            graphics=HostGraphics(config.command_timeout),
            sensors=HostSensors(),
        )


# ── Host implementations ─────────────────────────────────────
class HostMetadata:
    """Static platform identity of the local machine."""

    def platform(self) -> Optional[str]:
        return platform.system() or None

    def vendor(self) -> Optional[str]:
        return platform.processor() or platform.machine() or None

    def language(self) -> Optional[str]:
        lang, _ = locale.getlocale()
        return lang or os.environ.get("LANG") or None

    def device_memory(self) -> Optional[float]:
        return round(psutil.virtual_memory().total / (1024 ** 3), 1)

    def hardware_concurrency(self) -> Optional[int]:
        return os.cpu_count()

    def python_version(self) -> Optional[str]:
        return platform.python_version() or None


class HostIdentity:
    """Identity string: a configured user agent or one built from the OS."""

    def __init__(self, user_agent: Optional[str] = None):
        self.user_agent = user_agent

    def identity_string(self) -> str:
        if self.user_agent:
            return self.user_agent
        from .. import __version__
        return "iodo/%s (%s %s; %s) Python/%s" % (
            __version__,
            platform.system(),
            platform.release(),
            platform.machine(),
            platform.python_version(),
        )


# Effective connection type thresholds (rtt ms, downlink Mbit/s), slowest first
_EFFECTIVE_TYPES = (
    ("slow-2g", 2000, 0.05),
    ("2g", 1400, 0.07),
    ("3g", 270, 0.7),
)

# Reported when the probe host cannot be reached at all
UNREACHABLE_TYPE = "slow-2g"


def classify_connection(rtt: Optional[float], downlink: Optional[float]) -> str:
    """Map round-trip time and downlink to an effective connection type."""
    for name, min_rtt, max_downlink in _EFFECTIVE_TYPES:
        if rtt is not None and rtt >= min_rtt:
            return name
        if downlink is not None and downlink < max_downlink:
            return name
    return "4g"


def _interface_kind(name: str) -> str:
    if name.startswith(("wl", "wifi")):
        return "wifi"
    if name.startswith(("en", "eth")):
        return "ethernet"
    if name.startswith(("ww", "rmnet", "usb")):
        return "cellular"
    return "unknown"


class HostConnection:
    """Measures TCP connect latency and reads link speed from psutil."""

    def __init__(self, host: str = "1.1.1.1", port: int = 443, timeout: float = 3.0):
        self.host = host
        self.port = port
        self.timeout = timeout

    def _active_interface(self) -> Tuple[Optional[str], Optional[float]]:
        best_name, best_speed = None, None
        for name, stats in psutil.net_if_stats().items():
            if not stats.isup or name.startswith("lo"):
                continue
            speed = float(stats.speed) if stats.speed else None
            if best_name is None or (speed or 0) > (best_speed or 0):
                best_name, best_speed = name, speed
        return best_name, best_speed

    def _measure_rtt(self) -> Optional[float]:
        start = time.monotonic()
        try:
            with socket.create_connection((self.host, self.port), timeout=self.timeout):
                pass
        except OSError as e:
            get_logger().debug(f"{self.host}:{self.port} unreachable: {e}")
            return None
        return round((time.monotonic() - start) * 1000, 1)

    def connection(self) -> ConnectionInfo:
        name, downlink = self._active_interface()
        rtt = self._measure_rtt()
        if rtt is None:
            effective_type = UNREACHABLE_TYPE
        else:
            effective_type = classify_connection(rtt, downlink)
        return ConnectionInfo(
            downlink=downlink,
            effective_type=effective_type,
            rtt=rtt,
            save_data=False,
            type=_interface_kind(name) if name else "unknown",
        )


def _writable_dir(path: Path) -> bool:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError:
        return False
    return os.access(path, os.W_OK)


class HostStorage:
    """Writability of the persistent data directory and the temp directory."""

    def __init__(self, data_dir: Optional[Path] = None):
        self.data_dir = Path(data_dir) if data_dir else DEFAULT_CONFIG_DIR

    def persistent_available(self) -> bool:
        return _writable_dir(self.data_dir)

    def session_available(self) -> bool:
        return _writable_dir(Path(tempfile.gettempdir()))


class HostStorageEstimate:
    """Disk quota and usage for the filesystem holding the data directory."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else Path.home()

    def estimate(self) -> Dict[str, int]:
        usage = psutil.disk_usage(str(self.path))
        return {"quota": usage.total, "usage": usage.used}


class HostPower:
    """Battery state from psutil; None on machines without a battery."""

    def battery(self) -> Optional[BatteryStatus]:
        status = psutil.sensors_battery()
        if status is None:
            return None

        secsleft = status.secsleft
        known = secsleft not in (psutil.POWER_TIME_UNLIMITED, psutil.POWER_TIME_UNKNOWN)
        plugged = status.power_plugged
        return BatteryStatus(
            level=status.percent / 100.0,
            charging=plugged,
            charging_time=0.0 if plugged and status.percent >= 100 else None,
            discharging_time=float(secsleft) if known and plugged is False else None,
        )


class HostTiming:
    """Markers spanning the ``iodo`` package import, in epoch milliseconds."""

    def markers(self) -> Dict[str, float]:
        from .. import IMPORT_FINISHED_MS, IMPORT_STARTED_MS
        return {
            "navigation_start": IMPORT_STARTED_MS,
            "dom_loading": IMPORT_STARTED_MS,
            "dom_complete": IMPORT_FINISHED_MS,
            "load_event_end": IMPORT_FINISHED_MS,
        }


class HostMemory:
    """Memory use of the current process."""

    def memory(self) -> Dict[str, int]:
        info = psutil.Process().memory_info()
        return {"used_heap_size": info.rss, "total_heap_size": info.vms}


_GLX_FIELDS = {
    "OpenGL renderer string": "renderer",
    "OpenGL vendor string": "vendor",
    "OpenGL shading language version string": "glsl",
    "OpenGL core profile shading language version string": "glsl_core",
}


class GlxContext:
    """Rendering context described by ``glxinfo -B`` output."""

    def __init__(self, info: Dict[str, str]):
        self.info = info

    def debug_info(self) -> Optional[Tuple[str, str]]:
        renderer = self.info.get("renderer")
        vendor = self.info.get("vendor")
        if not renderer and not vendor:
            return None
        return renderer or "unknown", vendor or "unknown"

    def compile_shader(self, source: str) -> bool:
        """Report whether the driver advertises a GLSL compiler.

        The context has no GL binding, so the shader source is not sent to
        the driver; an advertised shading language version stands in for a
        successful compile.
        """
        version = self.info.get("glsl_core") or self.info.get("glsl") or ""
        return bool(re.match(r"\d+\.\d+", version))


def parse_glxinfo(output: str) -> Dict[str, str]:
    """Pick the renderer, vendor and GLSL lines out of ``glxinfo -B``."""
    info = {}
    for line in output.splitlines():
        key, sep, value = line.strip().partition(":")
        if sep and key in _GLX_FIELDS:
            info[_GLX_FIELDS[key]] = value.strip()
    return info


class HostGraphics:
    """Opens a GLX context through ``glxinfo``."""

    def __init__(self, timeout: int = 5):
        self.timeout = timeout

    def create_context(self) -> Optional[GlxContext]:
        if not command_exists("glxinfo"):
            get_logger().debug("glxinfo not available")
            return None
        rc, stdout, stderr = run_command(
            ["glxinfo", "-B"], timeout=self.timeout, suppress_errors=True
        )
        if rc != 0:
            get_logger().debug(f"glxinfo failed: {stderr.strip()}")
            return None
        info = parse_glxinfo(stdout)
        return GlxContext(info) if info else None


IIO_DEVICES = Path("/sys/bus/iio/devices")
INPUT_DEVICES = Path("/proc/bus/input/devices")


class HostSensors:
    """Motion sensors from the IIO subsystem and touch input devices."""

    def __init__(self, iio_root: Path = IIO_DEVICES, input_devices: Path = INPUT_DEVICES):
        self.iio_root = Path(iio_root)
        self.input_devices = Path(input_devices)

    def _has_channel(self, *prefixes: str) -> bool:
        if not self.iio_root.is_dir():
            return False
        for device in self.iio_root.glob("iio:device*"):
            for channel in device.iterdir():
                if channel.name.startswith(prefixes):
                    return True
        return False

    def _touch_devices(self):
        if not self.input_devices.exists():
            return []
        names = []
        for line in self.input_devices.read_text().splitlines():
            if line.startswith("N: Name="):
                name = line.split("=", 1)[1].strip().strip('"')
                if "touchscreen" in name.lower():
                    names.append(name)
        return names

    def has_accelerometer(self) -> bool:
        return self._has_channel("in_accel_")

    def has_gyroscope(self) -> bool:
        return self._has_channel("in_anglvel_")

    def has_orientation(self) -> bool:
        return self._has_channel("in_rot_", "in_incli_")

    def has_touch(self) -> bool:
        return bool(self._touch_devices())

    def max_touch_points(self) -> Optional[int]:
        return None
