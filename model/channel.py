from __future__ import annotations

import logging
import math
from enum import Enum
from typing import TYPE_CHECKING, Dict, Optional, Union

from PySide6.QtCore import QObject, Signal

from model.status import SendStatus
from model.wire_values import round_value

if TYPE_CHECKING:
    from controllers.command_channel import CommandChannel
    from infra.settings_store import CoilSettingsStore

logger = logging.getLogger("CoilDriver.channel")


class Axis(Enum):
    X = "x"
    Y = "y"
    Z = "z"

    @property
    def command_prefix(self) -> str:
        return f"coil.{self.value}"

    @classmethod
    def from_name(cls, name: Union[str, "Axis", None]) -> Optional["Axis"]:
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            return None


class Parameter(Enum):
    """Calibration parameters of one coil channel.

    Each member carries the command suffix and the settings key.
    """

    OFFSET = (".current", "offset")
    AMPLITUDE = (".modulation.amplitude", "amplitude")
    FREQUENCY = (".modulation.frequency", "frequency")

    def __init__(self, suffix: str, key: str):
        self.suffix = suffix
        self.key = key

    @classmethod
    def from_name(cls, name: str) -> Optional["Parameter"]:
        for parameter in cls:
            if parameter.key == str(name).strip().lower():
                return parameter
        return None


class CoilChannel(QObject):
    """One coil axis with offset, modulation amplitude and frequency.

    A value is only committed locally once the device echoes the command.
    """

    offset_changed = Signal(float)
    amplitude_changed = Signal(float)
    frequency_changed = Signal(float)

    def __init__(
        self,
        sender: "CommandChannel",
        axis: Optional[Axis],
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._sender = sender
        self.axis = axis
        self._values: Dict[Parameter, float] = {p: 0.0 for p in Parameter}
        self._changed = {
            Parameter.OFFSET: self.offset_changed,
            Parameter.AMPLITUDE: self.amplitude_changed,
            Parameter.FREQUENCY: self.frequency_changed,
        }

    def command_prefix(self) -> str:
        if self.axis is None:
            return ""
        return self.axis.command_prefix

    def get(self, parameter: Parameter) -> float:
        return self._values[parameter]

    def get_offset(self) -> float:
        return self._values[Parameter.OFFSET]

    def get_amplitude(self) -> float:
        return self._values[Parameter.AMPLITUDE]

    def get_frequency(self) -> float:
        return self._values[Parameter.FREQUENCY]

    def set_offset(self, value: float) -> Optional[SendStatus]:
        return self.set_parameter(Parameter.OFFSET, value)

    def set_amplitude(self, value: float) -> Optional[SendStatus]:
        return self.set_parameter(Parameter.AMPLITUDE, value)

    def set_frequency(self, value: float) -> Optional[SendStatus]:
        return self.set_parameter(Parameter.FREQUENCY, value)

    def set_parameter(self, parameter: Parameter, value: float) -> Optional[SendStatus]:
        prefix = self.command_prefix()
        if not prefix:
            return None

        status = self._sender.send(prefix + parameter.suffix, value)
        if status is not SendStatus.CONFIRMED:
            return status

        committed = float(round_value(value))
        self._values[parameter] = committed
        self._changed[parameter].emit(committed)
        return status

    def load_settings(self, store: "CoilSettingsStore") -> None:
        """Re-apply stored values through the device, one confirmed write each."""
        for parameter in Parameter:
            value = store.float_value(parameter.key, math.nan)
            status = self.set_parameter(parameter, value)
            if status is not SendStatus.CONFIRMED:
                logger.debug(
                    "%s: stored %s=%s not applied (%s)",
                    self.command_prefix(),
                    parameter.key,
                    value,
                    status.name if status else "no axis",
                )

    def save_settings(self, store: "CoilSettingsStore") -> None:
        for parameter in Parameter:
            store.set_value(parameter.key, self._values[parameter])
