import logging
import time
from typing import Any, Callable, Optional

from model.command_cache import CommandCache
from model.status import SendStatus
from model.wire_values import format_value, round_value

logger = logging.getLogger("CoilDriver.command")


class CommandChannel:
    """Write-and-confirm exchange of text commands over the transport.

    One command is written and its echo awaited before ``send`` returns;
    the wait is bounded by ``MAX_WRITE_ITERATIONS``.
    """

    MAX_WRITE_ITERATIONS = 10
    WRITE_TIMEOUT_MS = 20
    WRITE_SLEEP_MS = 10
    MAX_LINE_BYTES = 256
    ENCODING = "latin-1"

    def __init__(self, transport, cache: Optional[CommandCache] = None):
        self.transport = transport
        self.cache = cache if cache is not None else CommandCache()
        self.device_label = "coil driver"
        self.last_command = ""
        self.last_response = ""
        self.on_command_sent: Optional[Callable[[str], None]] = None
        self.on_response: Optional[Callable[[str], None]] = None

    def send(self, command: str, value: Any) -> SendStatus:
        rounded = round_value(value)
        value_text = format_value(rounded)
        full_command = f"{command} {value_text}\r\n"

        if self.cache.is_set(command, rounded):
            self._emit_response(f"{command} {value_text} (already set)")
            return SendStatus.ALREADY_SET

        # cached before the exchange; a failed write is not rolled back
        self.cache.remember(command, rounded)
        expected = f"# {command}({value_text}) = {value_text}\r\n"

        return self.exchange(full_command.encode(self.ENCODING), expected)

    def send_raw(self, command: str) -> SendStatus:
        return self.exchange(f"{command}\r\n".encode(self.ENCODING))

    def exchange(self, data: bytes, expected: str = "") -> SendStatus:
        self.last_command = data.decode(self.ENCODING)
        if self.on_command_sent:
            self.on_command_sent(self.last_command)

        if not self.transport.is_writable() or not self.transport.write(data):
            self._emit_response(f"Cannot write to {self.device_label}.")
            return SendStatus.ERROR

        for _ in range(self.MAX_WRITE_ITERATIONS):
            if self.transport.can_read_line():
                break
            self.transport.wait_readable(self.WRITE_TIMEOUT_MS)
            time.sleep(self.WRITE_SLEEP_MS / 1000.0)

        response = self.transport.read_line(self.MAX_LINE_BYTES).decode(self.ENCODING)
        self._emit_response(response)

        if not expected or response == expected:
            return SendStatus.CONFIRMED
        logger.warning(
            "Unexpected response to %r: %r (expected %r)",
            self.last_command,
            response,
            expected,
        )
        return SendStatus.WRONG_RESPONSE

    def _emit_response(self, message: str) -> None:
        self.last_response = message
        if self.on_response:
            self.on_response(message)
