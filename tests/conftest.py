import math
import sys
from collections import deque
from pathlib import Path

from PySide6.QtCore import QCoreApplication, QSettings
from serial.tools.list_ports_common import ListPortInfo
import pytest

# Ensure repository root is on sys.path so tests can import top-level packages
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from controllers.coil_driver import CoilDriver  # noqa: E402
from infra.settings_store import CoilSettingsStore  # noqa: E402
from model.device import DeviceConfig  # noqa: E402

VENDOR_ID = 1155
DEVICE_ID = "SN: 3C0047; VID: 1155; PID: 22336"


class FakeTransport:
    """In-memory stand-in for SerialTransport with a scripted device.

    Parameter commands carrying a finite number are echoed the way the
    instrument confirms them; anything else gets ``# error``.  Lines put in
    ``responses`` are returned instead, one per write.
    """

    def __init__(self):
        self.open_ok = True
        self.writable = True
        self.echo = True
        self.opened_with = None
        self.open_calls = 0
        self.close_calls = 0
        self.written = []
        self.responses = deque()
        self.rx = bytearray()
        self._open = False

    def open(self, port_name, **kwargs):
        self.open_calls += 1
        self.opened_with = (port_name, kwargs)
        self._open = self.open_ok
        return self.open_ok

    def is_open(self):
        return self._open

    def is_writable(self):
        return self._open and self.writable

    def write(self, data):
        self.written.append(bytes(data))
        if self.responses:
            self.rx.extend(self.responses.popleft())
        elif self.echo:
            self.rx.extend(self._confirmation_for(data))
        return True

    @staticmethod
    def _confirmation_for(data):
        text = data.decode("latin-1").rstrip("\r\n")
        command, sep, value = text.partition(" ")
        if not sep:
            return b""
        try:
            number = float(value)
        except ValueError:
            number = math.nan
        if math.isnan(number) or math.isinf(number):
            return b"# error\r\n"
        return f"# {command}({value}) = {value}\r\n".encode("latin-1")

    def wait_readable(self, timeout_ms):
        return bool(self.rx)

    def can_read_line(self):
        return b"\n" in self.rx

    def read_line(self, max_bytes=256):
        newline = self.rx.find(b"\n", 0, max_bytes)
        end = newline + 1 if newline >= 0 else min(len(self.rx), max_bytes)
        line = bytes(self.rx[:end])
        del self.rx[:end]
        return line

    def read_all_available(self):
        data = bytes(self.rx)
        self.rx.clear()
        return data

    def close(self):
        self.close_calls += 1
        self._open = False


@pytest.fixture(scope="session", autouse=True)
def qapp():
    """Ensure a QCoreApplication exists for QSettings and signals."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


@pytest.fixture(autouse=True)
def isolated_paths(tmp_path, monkeypatch):
    """Keep default settings/log locations and QSettings inside tmp_path."""
    monkeypatch.setenv("COIL_DRIVER_HOME", str(tmp_path))
    monkeypatch.delenv("COIL_DRIVER_VENDOR_ID", raising=False)
    monkeypatch.delenv("COIL_DRIVER_SETTINGS", raising=False)
    QSettings.setDefaultFormat(QSettings.IniFormat)
    QSettings.setPath(QSettings.IniFormat, QSettings.UserScope, str(tmp_path))
    yield


@pytest.fixture
def make_port():
    def _make(device="/dev/ttyACM0", vid=VENDOR_ID, pid=22336, serial_number="3C0047"):
        port = ListPortInfo(device, skip_link_detection=True)
        port.vid = vid
        port.pid = pid
        port.serial_number = serial_number
        return port

    return _make


@pytest.fixture
def ports(make_port):
    return [make_port()]


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def settings_path(tmp_path):
    return tmp_path / "coil.ini"


@pytest.fixture
def make_driver(transport, ports, settings_path):
    """Build drivers sharing the fake transport, port list and INI file."""

    def _make(vendor_id=VENDOR_ID, transport_=None):
        config = DeviceConfig(vendor_id=vendor_id, settings_path=settings_path)
        return CoilDriver(
            transport=transport_ or transport,
            settings=CoilSettingsStore(path=settings_path),
            port_lister=lambda: list(ports),
            config=config,
        )

    return _make


@pytest.fixture
def driver(make_driver):
    return make_driver()


@pytest.fixture
def connected_driver(driver, transport):
    """A driver connected to DEVICE_ID with the settings-load traffic cleared."""
    driver.connect_device(DEVICE_ID)
    transport.written.clear()
    return driver


@pytest.fixture
def device_id():
    return DEVICE_ID
