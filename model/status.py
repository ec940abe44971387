from enum import Enum


class SendStatus(Enum):
    """Outcome of one command exchange with the device."""

    CONFIRMED = 0
    ALREADY_SET = 1
    ERROR = 2
    WRONG_RESPONSE = 3


class ConnectStatus(Enum):
    CONNECTED = 0
    DEVICE_NOT_FOUND = 1
    PORT_ERROR = 2
