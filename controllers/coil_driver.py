"""Session layer of the three-axis coil driver.

``CoilDriver`` owns the serial session: it resolves a device identity to a
port, opens it, keeps the three channel models and persists their values
per device.  All calls are synchronous and expected from a single thread.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

import serial
from PySide6.QtCore import QObject, Signal

from controllers.command_channel import CommandChannel
from controllers.device_enumerator import DeviceEnumerator
from infra.serial_transport import SerialTransport
from infra.settings_store import CoilSettingsStore
from model.channel import Axis, CoilChannel
from model.command_cache import CommandCache
from model.device import DeviceConfig
from model.status import ConnectStatus, SendStatus

logger = logging.getLogger("CoilDriver.driver")


class CoilDriver(QObject):
    device_list_changed = Signal()
    response_received = Signal(str)
    command_sent = Signal(str)
    connection_status_changed = Signal()

    BAUDRATE = 115200
    DRAIN_TIMEOUT_MS = 200

    def __init__(
        self,
        transport: Optional[SerialTransport] = None,
        settings: Optional[CoilSettingsStore] = None,
        port_lister: Optional[Callable[[], Iterable[Any]]] = None,
        config: Optional[DeviceConfig] = None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self.config = config or DeviceConfig()
        self.transport = transport or SerialTransport()
        self.settings = settings or CoilSettingsStore(path=self.config.settings_path)
        self.enumerator = DeviceEnumerator(port_lister, vendor_id=self.config.vendor_id)

        self._cache = CommandCache()
        self._commands = CommandChannel(self.transport, self._cache)
        self._commands.on_command_sent = self._on_command_sent
        self._commands.on_response = self._log_response

        self._current_device = ""
        self._last_command = ""
        self._last_response = ""
        self._known_devices: Optional[List[str]] = None
        self._shut_down = False

        self._channels: Dict[Axis, CoilChannel] = {
            axis: CoilChannel(self._commands, axis, parent=self) for axis in Axis
        }

    # ---- Observability ----------------------------------------------------

    @property
    def current_device(self) -> str:
        return self._current_device

    @property
    def last_command(self) -> str:
        return self._last_command

    @property
    def last_response(self) -> str:
        return self._last_response

    @property
    def command_cache(self) -> CommandCache:
        return self._cache

    # ---- Devices and channels --------------------------------------------

    def list_devices(self) -> List[str]:
        devices = self.enumerator.list()
        if devices != self._known_devices:
            self._known_devices = list(devices)
            self.device_list_changed.emit()
        return devices

    def get_channel(self, name: Union[str, Axis]) -> Optional[CoilChannel]:
        axis = Axis.from_name(name)
        if axis is None:
            return None
        return self._channels[axis]

    def channels(self) -> Dict[Axis, CoilChannel]:
        return dict(self._channels)

    def is_connected(self) -> bool:
        return self.transport.is_open() and self.transport.is_writable()

    # ---- Connection lifecycle ---------------------------------------------

    def connect_device(self, identity: str) -> ConnectStatus:
        if identity and identity == self._current_device:
            return ConnectStatus.CONNECTED

        if self.is_connected():
            self.disconnect_device()

        self._cache.clear()

        if not identity:
            return ConnectStatus.DEVICE_NOT_FOUND

        port = self.enumerator.find_port(identity)
        if port is None:
            self._log_response(f"Cannot connect {identity}.")
            return ConnectStatus.DEVICE_NOT_FOUND

        opened = self.transport.open(
            port.device,
            baudrate=self.BAUDRATE,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            xonxoff=False,
            rtscts=False,
        )
        if not opened:
            self._log_response(f"Cannot open {identity}.")
            return ConnectStatus.PORT_ERROR

        self._current_device = identity
        self._commands.device_label = identity
        logger.info("Connected to %s on %s", identity, port.device)

        self.load_settings(load_device=False)

        self.connection_status_changed.emit()
        self._log_response("Connected.")
        return ConnectStatus.CONNECTED

    def disconnect_device(self) -> None:
        if not self.transport.is_open():
            self._log_response("No device was connected.")
            return

        if self.transport.wait_readable(self.DRAIN_TIMEOUT_MS):
            discarded = self.transport.read_all_available()
            logger.debug("Discarded %d pending bytes", len(discarded))
        self.transport.close()

        logger.info("Disconnected from %s", self._current_device)
        self._current_device = ""
        self._commands.device_label = "coil driver"
        self.connection_status_changed.emit()

        self._cache.clear()
        self._log_response("Disconnected.")

    # ---- Commands -----------------------------------------------------------

    def send_raw_command(self, text: str) -> SendStatus:
        return self._commands.send_raw(text)

    def send_parameter_command(self, command: str, value: Any) -> SendStatus:
        return self._commands.send(command, value)

    # ---- Persistence --------------------------------------------------------

    def load_settings(self, load_device: bool = True) -> None:
        if load_device:
            self.connect_device(self.settings.load_current_device())
            return

        if not self.is_connected():
            return

        for axis, channel in self._channels.items():
            with self.settings.group(self._current_device, axis.value) as store:
                channel.load_settings(store)

    def save_settings(self) -> None:
        self.settings.save_current_device(self._current_device)

        if self.is_connected():
            for axis, channel in self._channels.items():
                with self.settings.group(self._current_device, axis.value) as store:
                    channel.save_settings(store)

        self.settings.sync()

    def shutdown(self) -> None:
        """Persist state and release the port; called once on teardown."""
        if self._shut_down:
            return
        self._shut_down = True
        self.save_settings()
        if self.transport.is_open():
            self.transport.close()
        self._current_device = ""
        self._commands.device_label = "coil driver"
        self._cache.clear()
        logger.info("Coil driver shut down")

    # ---- Internal -----------------------------------------------------------

    def _on_command_sent(self, command: str) -> None:
        self._last_command = command
        self.command_sent.emit(command)

    def _log_response(self, message: str) -> None:
        self._last_response = message
        self.response_received.emit(message)
        logger.debug("%r", message)
