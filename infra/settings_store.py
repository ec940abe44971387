"""Persistence of the selected device and per-channel calibration values.

This module wraps ``QSettings`` access so group names and key strings live
in one place.  The layout of the INI file is::

    currentDevice=<identity>
    [<identity>]
    x\\offset=...
    x\\amplitude=...
    x\\frequency=...

with one sub-group per axis.
"""

from __future__ import annotations

import logging
import math
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

from PySide6.QtCore import QSettings

from model.device import DeviceConfig

logger = logging.getLogger("CoilDriver.settings")

CURRENT_DEVICE_KEY = "currentDevice"


class CoilSettingsStore:
    """Group-scoped view over a ``QSettings`` handle."""

    def __init__(
        self,
        settings: Optional[QSettings] = None,
        path: Optional[Path] = None,
    ):
        if settings is None:
            if path is None:
                path = DeviceConfig().settings_path
            settings = QSettings(str(path), QSettings.IniFormat)
        self._settings = settings

    @property
    def settings(self) -> QSettings:
        return self._settings

    @contextmanager
    def group(self, *names: str) -> Iterator["CoilSettingsStore"]:
        for name in names:
            self._settings.beginGroup(name)
        try:
            yield self
        finally:
            for _ in names:
                self._settings.endGroup()

    def value(self, key: str, default: Any = None) -> Any:
        return self._settings.value(key, default)

    def float_value(self, key: str, default: float = math.nan) -> float:
        raw = self._settings.value(key, default)
        if raw is None or raw == "":
            return default
        try:
            return float(raw)
        except (TypeError, ValueError):
            logger.warning(
                "Ignoring unreadable value %r for %s/%s",
                raw,
                self._settings.group(),
                key,
            )
            return default

    def set_value(self, key: str, value: Any) -> None:
        self._settings.setValue(key, value)

    def load_current_device(self) -> str:
        return str(self._settings.value(CURRENT_DEVICE_KEY, "") or "")

    def save_current_device(self, identity: str) -> None:
        self._settings.setValue(CURRENT_DEVICE_KEY, identity)

    def sync(self) -> None:
        self._settings.sync()
        if self._settings.status() != QSettings.NoError:
            logger.error(
                "Could not write settings to %s (status %s)",
                self._settings.fileName(),
                self._settings.status(),
            )
