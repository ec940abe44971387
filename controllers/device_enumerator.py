from typing import Any, Callable, Iterable, List, Optional

from infra.serial_transport import SerialTransport
from model.device import DEFAULT_VENDOR_ID, DeviceIdentity


class DeviceEnumerator:
    """Lists visible serial ports that look like a coil driver."""

    def __init__(
        self,
        port_lister: Optional[Callable[[], Iterable[Any]]] = None,
        vendor_id: int = DEFAULT_VENDOR_ID,
    ):
        self._port_lister = port_lister or SerialTransport.list_ports
        self.vendor_id = vendor_id

    def format(self, port) -> str:
        identity = DeviceIdentity.from_port(port, self.vendor_id)
        return str(identity) if identity is not None else ""

    def list(self) -> List[str]:
        devices = []
        for port in self._port_lister():
            device_string = self.format(port)
            if device_string:
                devices.append(device_string)
        return devices

    def find_port(self, identity: str):
        if not identity:
            return None
        for port in self._port_lister():
            if self.format(port) == identity:
                return port
        return None
