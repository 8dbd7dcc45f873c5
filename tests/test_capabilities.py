"""Tests for iodo.diagnostics.capabilities — host capability providers."""
import time
from unittest.mock import MagicMock, patch

import psutil
import pytest

from iodo.diagnostics.capabilities import (
    Capabilities,
    GlxContext,
    HostConnection,
    HostGraphics,
    HostIdentity,
    HostPower,
    HostSensors,
    HostStorage,
    HostStorageEstimate,
    HostTiming,
    UNREACHABLE_TYPE,
    classify_connection,
    parse_glxinfo,
)
from iodo.diagnostics.capture import CaptureOrchestrator
from iodo.diagnostics.fallback import FallbackAnalyzer
from iodo.utils.config import DiagnosticsConfig

from conftest import make_capabilities

GLXINFO_OUTPUT = """\
name of display: :0
display: :0  screen: 0
direct rendering: Yes
Extended renderer info (GLX_MESA_query_renderer):
    Vendor: Intel (0x8086)
OpenGL vendor string: Intel
OpenGL renderer string: Mesa Intel(R) UHD Graphics 620 (KBL GT2)
OpenGL core profile version string: 4.6 (Core Profile) Mesa 23.2.1
OpenGL core profile shading language version string: 4.60
OpenGL version string: 4.6 (Compatibility Profile) Mesa 23.2.1
"""


class TestClassifyConnection:
    @pytest.mark.parametrize("rtt,downlink,expected", [
        (2500, None, "slow-2g"),
        (1500, None, "2g"),
        (300, None, "3g"),
        (40, None, "4g"),
        (40, 0.04, "slow-2g"),
        (40, 0.5, "3g"),
        (None, None, "4g"),
        (40, 1000.0, "4g"),
    ])
    def test_thresholds(self, rtt, downlink, expected):
        assert classify_connection(rtt, downlink) == expected


class TestHostConnection:
    def test_connection(self):
        stats = {
            "lo": MagicMock(isup=True, speed=0),
            "eth0": MagicMock(isup=True, speed=1000),
            "wlan0": MagicMock(isup=False, speed=300),
        }
        with patch("iodo.diagnostics.capabilities.psutil.net_if_stats", return_value=stats), \
                patch("iodo.diagnostics.capabilities.socket.create_connection") as connect:
            info = HostConnection("example.com", 443, timeout=1).connection()
        connect.assert_called_once_with(("example.com", 443), timeout=1)
        assert info.type == "ethernet"
        assert info.downlink == 1000.0
        assert info.effective_type == "4g"
        assert info.rtt is not None

    def test_unreachable_host_is_slowest_tier(self):
        stats = {"wlan0": MagicMock(isup=True, speed=72)}
        with patch("iodo.diagnostics.capabilities.psutil.net_if_stats", return_value=stats), \
                patch("iodo.diagnostics.capabilities.socket.create_connection",
                      side_effect=OSError("Network is unreachable")):
            info = HostConnection().connection()
        assert info.rtt is None
        assert info.effective_type == UNREACHABLE_TYPE == "slow-2g"
        assert info.type == "wifi"
        assert info.downlink == 72.0

    def test_unreachable_host_recorded_by_network_capture(self):
        with patch("iodo.diagnostics.capabilities.psutil.net_if_stats", return_value={}), \
                patch("iodo.diagnostics.capabilities.socket.create_connection",
                      side_effect=OSError("Network is unreachable")):
            snapshot = CaptureOrchestrator(make_capabilities(connection=HostConnection())).run()
        assert snapshot.errors == ()
        assert snapshot.network["effective_type"] == "slow-2g"
        assert FallbackAnalyzer().analyze(snapshot).codes() == ["NET_SLOW"]


class TestHostIdentity:
    def test_configured_user_agent(self):
        assert HostIdentity("Mozilla/5.0 (iPhone)").identity_string() == "Mozilla/5.0 (iPhone)"

    def test_built_identity(self):
        assert HostIdentity().identity_string().startswith("iodo/")


class TestHostStorage:
    def test_writable_dirs(self, tmp_path):
        storage = HostStorage(tmp_path / "data")
        assert storage.persistent_available() is True
        assert (tmp_path / "data").is_dir()
        assert storage.session_available() is True

    def test_unwritable_dir(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        assert HostStorage(blocker / "data").persistent_available() is False

    def test_estimate(self, tmp_path):
        usage = MagicMock(total=1000, used=400)
        with patch("iodo.diagnostics.capabilities.psutil.disk_usage", return_value=usage):
            assert HostStorageEstimate(tmp_path).estimate() == {"quota": 1000, "usage": 400}


class TestHostPower:
    def test_no_battery(self):
        with patch("iodo.diagnostics.capabilities.psutil.sensors_battery", return_value=None, create=True):
            assert HostPower().battery() is None

    def test_discharging(self):
        status = MagicMock(percent=15, secsleft=1800, power_plugged=False)
        with patch("iodo.diagnostics.capabilities.psutil.sensors_battery", return_value=status, create=True):
            battery = HostPower().battery()
        assert battery.level == pytest.approx(0.15)
        assert battery.charging is False
        assert battery.discharging_time == 1800.0

    def test_full_and_plugged(self):
        status = MagicMock(percent=100, secsleft=psutil.POWER_TIME_UNLIMITED, power_plugged=True)
        with patch("iodo.diagnostics.capabilities.psutil.sensors_battery", return_value=status, create=True):
            battery = HostPower().battery()
        assert battery.charging is True
        assert battery.charging_time == 0.0
        assert battery.discharging_time is None


class TestHostTiming:
    def test_markers_span_package_import(self):
        from iodo import IMPORT_FINISHED_MS, IMPORT_STARTED_MS
        markers = HostTiming().markers()
        assert markers["navigation_start"] == IMPORT_STARTED_MS
        assert markers["dom_loading"] <= markers["dom_complete"]
        assert markers["dom_complete"] <= markers["load_event_end"]
        assert markers["load_event_end"] == IMPORT_FINISHED_MS

    def test_old_process_is_not_slow(self):
        process = MagicMock()
        process.create_time.return_value = time.time() - 3600
        with patch("iodo.diagnostics.capabilities.psutil.Process", return_value=process):
            snapshot = CaptureOrchestrator(make_capabilities(timing=HostTiming())).run()
        assert snapshot.performance["load_time"] < 5000
        assert "PERF_SLOW" not in FallbackAnalyzer().analyze(snapshot).codes()


class TestGlx:
    def test_parse(self):
        info = parse_glxinfo(GLXINFO_OUTPUT)
        assert info["renderer"] == "Mesa Intel(R) UHD Graphics 620 (KBL GT2)"
        assert info["vendor"] == "Intel"
        assert info["glsl_core"] == "4.60"

    def test_context(self):
        context = GlxContext(parse_glxinfo(GLXINFO_OUTPUT))
        assert context.debug_info() == ("Mesa Intel(R) UHD Graphics 620 (KBL GT2)", "Intel")
        assert context.compile_shader("void main() {}") is True

    def test_context_without_glsl(self):
        context = GlxContext({"renderer": "llvmpipe"})
        assert context.debug_info() == ("llvmpipe", "unknown")
        assert context.compile_shader("void main() {}") is False

    def test_no_glxinfo(self):
        with patch("iodo.diagnostics.capabilities.command_exists", return_value=False):
            assert HostGraphics().create_context() is None

    def test_glxinfo_fails(self):
        with patch("iodo.diagnostics.capabilities.command_exists", return_value=True), \
                patch("iodo.diagnostics.capabilities.run_command",
                      return_value=(1, "", "Error: unable to open display")):
            assert HostGraphics().create_context() is None

    def test_glxinfo_context(self):
        with patch("iodo.diagnostics.capabilities.command_exists", return_value=True), \
                patch("iodo.diagnostics.capabilities.run_command",
                      return_value=(0, GLXINFO_OUTPUT, "")) as run:
            context = HostGraphics(timeout=2).create_context()
        run.assert_called_once_with(["glxinfo", "-B"], timeout=2, suppress_errors=True)
        assert context.debug_info()[1] == "Intel"


class TestHostSensors:
    def test_iio_channels(self, tmp_path):
        device = tmp_path / "iio" / "iio:device0"
        device.mkdir(parents=True)
        (device / "in_accel_x_raw").write_text("0")
        (device / "in_rot_quaternion_raw").write_text("0")
        sensors = HostSensors(tmp_path / "iio", tmp_path / "missing")
        assert sensors.has_accelerometer() is True
        assert sensors.has_gyroscope() is False
        assert sensors.has_orientation() is True
        assert sensors.has_touch() is False

    def test_touchscreen(self, tmp_path):
        devices = tmp_path / "devices"
        devices.write_text(
            'I: Bus=0018 Vendor=04f3 Product=2494\n'
            'N: Name="ELAN Touchscreen"\n'
            '\n'
            'N: Name="AT Translated Set 2 keyboard"\n'
        )
        sensors = HostSensors(tmp_path / "no-iio", devices)
        assert sensors.has_touch() is True
        assert sensors.has_accelerometer() is False


class TestDetect:
    def test_detect_builds_all_providers(self):
        caps = Capabilities.detect(DiagnosticsConfig(user_agent="probe/1.0", network_probe_port=80))
        assert caps.identity.identity_string() == "probe/1.0"
        assert caps.connection.port == 80
        for name in ("metadata", "storage", "storage_estimate", "timing", "memory", "graphics", "sensors"):
            assert getattr(caps, name) is not None
