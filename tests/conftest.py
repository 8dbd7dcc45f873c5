import os
import sys

import pytest

# Ensure project root is on sys.path so iodo.* imports work
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from iodo.diagnostics.capabilities import BatteryStatus, Capabilities, ConnectionInfo  # noqa: E402
from iodo.diagnostics.models import TelemetrySnapshot  # noqa: E402

IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 16_4_1 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.4 Mobile/15E148 Safari/604.1"
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "network: mark test as requiring network access"
    )


class FakeMetadata:
    def platform(self):
        return "Linux"

    def vendor(self):
        return "x86_64"

    def language(self):
        return "en_US"

    def device_memory(self):
        return 16.0

    def hardware_concurrency(self):
        return 8

    def python_version(self):
        return "3.12.1"


class FakeIdentity:
    def __init__(self, raw=IPHONE_UA):
        self.raw = raw

    def identity_string(self):
        return self.raw


class FakeConnection:
    def __init__(self, info=None):
        self.info = info or ConnectionInfo(
            downlink=10.0, effective_type="4g", rtt=50.0, save_data=False, type="wifi"
        )

    def connection(self):
        return self.info


class FakeStorage:
    def persistent_available(self):
        return True

    def session_available(self):
        return True


class FakeStorageEstimate:
    def estimate(self):
        return {"quota": 1000, "usage": 250}


class FakePower:
    def __init__(self, status=None):
        self.status = status or BatteryStatus(level=0.8, charging=True)

    def battery(self):
        return self.status


class FakeTiming:
    def __init__(self, load_time=1200.0):
        self.load_time = load_time

    def markers(self):
        return {
            "navigation_start": 1000.0,
            "dom_loading": 1100.0,
            "dom_complete": 1400.0,
            "load_event_end": 1000.0 + self.load_time,
        }


class FakeMemory:
    def memory(self):
        return {"used_heap_size": 10, "total_heap_size": 20}


class FakeContext:
    def __init__(self, debug_info=("Mesa Intel UHD", "Intel"), compiles=True):
        self._debug_info = debug_info
        self.compiles = compiles
        self.compiled = []

    def debug_info(self):
        return self._debug_info

    def compile_shader(self, source):
        self.compiled.append(source)
        return self.compiles


class FakeGraphics:
    def __init__(self, context=None):
        self.context = context

    def create_context(self):
        return self.context


class FakeSensors:
    def has_accelerometer(self):
        return True

    def has_gyroscope(self):
        return False

    def has_orientation(self):
        return True

    def has_touch(self):
        return True

    def max_touch_points(self):
        return 5


def make_capabilities(**overrides):
    """Capabilities for a healthy fake device, with per-field overrides."""
    caps = dict(
        metadata=FakeMetadata(),
        identity=FakeIdentity(),
        connection=FakeConnection(),
        storage=FakeStorage(),
        storage_estimate=FakeStorageEstimate(),
        power=FakePower(),
        timing=FakeTiming(),
        memory=FakeMemory(),
        graphics=FakeGraphics(FakeContext()),
        sensors=FakeSensors(),
    )
    caps.update(overrides)
    return Capabilities(**caps)


def make_snapshot(**records):
    """Snapshot with the given subsystem records; the rest empty."""
    return TelemetrySnapshot(**records)


@pytest.fixture
def capabilities():
    return make_capabilities()


@pytest.fixture
def healthy_snapshot():
    return make_snapshot(
        identity={"raw": IPHONE_UA, "ios_version": "16.4.1"},
        network={"effective_type": "4g"},
        battery={"level": 0.8, "charging": True},
        performance={"load_time": 1200.0},
        graphics={"webgl": True},
    )


@pytest.fixture
def tmp_config_dir(tmp_path):
    return tmp_path / "iodo"


@pytest.fixture(autouse=True, scope="session")
def _test_logger(tmp_path_factory):
    """Keep test runs from writing to the user's log file."""
    from iodo.utils.logger import setup_logger
    setup_logger(debug=True, log_file=str(tmp_path_factory.mktemp("logs") / "iodo.log"))
