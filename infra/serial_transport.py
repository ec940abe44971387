"""pyserial-backed transport used by the coil driver.

Wraps ``serial.Serial`` behind the small blocking interface the driver
needs: line-oriented reads with a bounded wait, raw writes and open/close.
Serial errors are logged and reported through return values.
"""

from __future__ import annotations

import logging
import time
from typing import List, Optional

import serial
import serial.tools.list_ports

logger = logging.getLogger("CoilDriver.transport")

# interval used while waiting for inbound bytes
_POLL_INTERVAL_S = 0.001


class SerialTransport:
    def __init__(self):
        self._serial: Optional[serial.Serial] = None
        self._buffer = bytearray()
        self.port_name: Optional[str] = None

    @staticmethod
    def list_ports() -> List[serial.tools.list_ports_common.ListPortInfo]:
        return list(serial.tools.list_ports.comports())

    def open(
        self,
        port_name: str,
        baudrate: int = 115200,
        bytesize: int = serial.EIGHTBITS,
        parity: str = serial.PARITY_NONE,
        stopbits: float = serial.STOPBITS_ONE,
        xonxoff: bool = False,
        rtscts: bool = False,
    ) -> bool:
        """Open ``port_name``; any previously open port is closed first."""
        self.close()

        try:
            self._serial = serial.Serial(
                port=port_name,
                baudrate=baudrate,
                bytesize=bytesize,
                parity=parity,
                stopbits=stopbits,
                xonxoff=xonxoff,
                rtscts=rtscts,
                dsrdtr=False,
                timeout=0,
                write_timeout=1.0,
            )
        except (serial.SerialException, OSError, ValueError) as e:
            logger.error("Failed to open %s: %s", port_name, e)
            self._serial = None
            return False

        self.port_name = port_name
        logger.info("Opened %s at %d baud", port_name, baudrate)
        return True

    def is_open(self) -> bool:
        return self._serial is not None and self._serial.is_open

    def is_writable(self) -> bool:
        return self.is_open() and self._serial.writable()

    def write(self, data: bytes) -> bool:
        if not self.is_open():
            return False
        try:
            self._serial.write(data)
            self._serial.flush()
            return True
        except (serial.SerialException, OSError) as e:
            logger.error("Write to %s failed: %s", self.port_name, e)
            return False

    def _pull(self) -> int:
        """Move pending bytes from the port into the local buffer."""
        if not self.is_open():
            return 0
        try:
            waiting = self._serial.in_waiting
            if waiting <= 0:
                return 0
            chunk = self._serial.read(waiting)
        except (serial.SerialException, OSError) as e:
            logger.error("Read from %s failed: %s", self.port_name, e)
            return 0
        self._buffer.extend(chunk)
        return len(chunk)

    def bytes_available(self) -> int:
        self._pull()
        return len(self._buffer)

    def wait_readable(self, timeout_ms: int) -> bool:
        """Block up to ``timeout_ms`` until new bytes arrive."""
        if not self.is_open():
            return False
        deadline = time.monotonic() + timeout_ms / 1000.0
        while True:
            if self._pull() > 0:
                return True
            if time.monotonic() >= deadline:
                return False
            time.sleep(_POLL_INTERVAL_S)

    def can_read_line(self) -> bool:
        self._pull()
        return b"\n" in self._buffer

    def read_line(self, max_bytes: int = 256) -> bytes:
        """Return one ``\\n``-terminated line of at most ``max_bytes``.

        Without a complete line, whatever is buffered (up to ``max_bytes``)
        is returned, possibly empty.
        """
        self._pull()
        newline = self._buffer.find(b"\n", 0, max_bytes)
        end = newline + 1 if newline >= 0 else min(len(self._buffer), max_bytes)
        line = bytes(self._buffer[:end])
        del self._buffer[:end]
        return line

    def read_all_available(self) -> bytes:
        self._pull()
        data = bytes(self._buffer)
        self._buffer.clear()
        return data

    def close(self) -> None:
        if self._serial is not None:
            try:
                self._serial.close()
            except (serial.SerialException, OSError) as e:
                logger.warning("Error while closing %s: %s", self.port_name, e)
            logger.info("Closed %s", self.port_name)
        self._serial = None
        self._buffer.clear()
        self.port_name = None
