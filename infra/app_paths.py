"""Locations of the settings and log files in source and frozen builds."""

from __future__ import annotations

import os
import sys
from functools import lru_cache
from pathlib import Path


@lru_cache(maxsize=1)
def get_app_base_dir() -> Path:
    """Return the directory bundled resources are resolved against."""

    if getattr(sys, "frozen", False):
        meipass = getattr(sys, "_MEIPASS", None)
        if meipass:
            return Path(meipass).resolve()
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parent.parent


def get_writable_dir() -> Path:
    """Return the directory user data is written to.

    ``COIL_DRIVER_HOME`` overrides the default, which is the executable
    directory for frozen builds and the project root otherwise.
    """

    override = os.environ.get("COIL_DRIVER_HOME", "").strip()
    if override:
        return Path(override).expanduser()
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return get_app_base_dir()


def resource_path(*parts: str, prefer_write: bool = False) -> Path:
    """Resolve ``parts`` below the writable or the resource directory."""

    root = get_writable_dir() if prefer_write else get_app_base_dir()
    return root.joinpath(*parts)
