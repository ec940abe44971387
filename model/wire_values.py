"""Text representation of parameter values on the serial line."""

from __future__ import annotations

import math
import numbers
from typing import Any

DECIMAL_PLACES = 6
_SCALE = 10.0**DECIMAL_PLACES


def is_numeric(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def round_value(value: Any) -> Any:
    """Round numbers to six decimals, half away from zero.

    Non-numeric values are returned unchanged.
    """
    if not is_numeric(value):
        return value
    value = float(value)
    if math.isnan(value) or math.isinf(value):
        return value
    scaled = math.floor(abs(value) * _SCALE + 0.5)
    return math.copysign(scaled / _SCALE, value)


def format_value(value: Any) -> str:
    """Shortest text for ``value`` as the device echoes it (``1.0`` -> ``1``)."""
    if not is_numeric(value):
        return str(value)
    text = repr(float(value))
    if text.endswith(".0"):
        text = text[:-2]
    return text
