from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from infra.app_paths import resource_path

logger = logging.getLogger("CoilDriver.config")

# STMicroelectronics, used by the coil driver's USB CDC interface
DEFAULT_VENDOR_ID = 1155
SETTINGS_FILE_NAME = "_config.ini"

_IDENTITY_RE = re.compile(r"^SN: (?P<sn>.*); VID: (?P<vid>\d+); PID: (?P<pid>\d+)$")


def _default_settings_path() -> Path:
    return resource_path(SETTINGS_FILE_NAME, prefer_write=True)


@dataclass(frozen=True)
class DeviceIdentity:
    """Fingerprint of a candidate device built from USB port metadata."""

    serial_number: str
    vendor_id: int
    product_id: int

    def __str__(self) -> str:
        return f"SN: {self.serial_number}; VID: {self.vendor_id}; PID: {self.product_id}"

    @classmethod
    def from_port(
        cls, port, vendor_id: int = DEFAULT_VENDOR_ID
    ) -> Optional["DeviceIdentity"]:
        """Build an identity from a ``ListPortInfo``-like object.

        Ports without a vendor or product id, or from another vendor, are
        not candidates and yield ``None``.
        """
        vid = getattr(port, "vid", None)
        pid = getattr(port, "pid", None)
        if vid is None or pid is None:
            return None
        if vid != vendor_id:
            return None
        return cls(
            serial_number=getattr(port, "serial_number", None) or "",
            vendor_id=int(vid),
            product_id=int(pid),
        )

    @classmethod
    def parse(cls, text: str) -> Optional["DeviceIdentity"]:
        match = _IDENTITY_RE.match(text or "")
        if match is None:
            return None
        return cls(
            serial_number=match.group("sn"),
            vendor_id=int(match.group("vid")),
            product_id=int(match.group("pid")),
        )


@dataclass
class DeviceConfig:
    vendor_id: int = DEFAULT_VENDOR_ID
    settings_path: Path = field(default_factory=_default_settings_path)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DeviceConfig":
        env = os.environ if environ is None else environ
        config = cls()

        raw_vid = env.get("COIL_DRIVER_VENDOR_ID", "").strip()
        if raw_vid:
            try:
                config.vendor_id = int(raw_vid, 0)
            except ValueError:
                logger.warning("Ignoring invalid COIL_DRIVER_VENDOR_ID: %r", raw_vid)

        raw_path = env.get("COIL_DRIVER_SETTINGS", "").strip()
        if raw_path:
            config.settings_path = Path(raw_path).expanduser()
        return config
