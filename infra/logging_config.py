from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from infra.app_paths import resource_path

LOGGER_NAME = "CoilDriver"
LOG_FILE_NAME = "coil_driver.log"


def default_log_path() -> Path:
    return resource_path(LOG_FILE_NAME, prefer_write=True)


def configure_logging(
    log_path: Optional[Path] = None,
    console_level: int = logging.WARNING,
) -> tuple[logging.Logger, Optional[RotatingFileHandler]]:
    """Configure application logging in a centralized, idempotent way.

    Module loggers are children of ``CoilDriver`` so they share its
    handlers.  Returns (logger, file_handler).
    """
    app_logger = logging.getLogger(LOGGER_NAME)
    file_h: Optional[RotatingFileHandler] = None
    if not app_logger.handlers:
        app_logger.setLevel(logging.INFO)
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        try:
            file_h = RotatingFileHandler(
                str(log_path or default_log_path()),
                maxBytes=5 * 1024 * 1024,
                backupCount=3,
                encoding="utf-8",
            )
        except OSError as e:
            # read-only install location: console only
            file_h = None
            logging.getLogger(__name__).warning("File logging disabled: %s", e)
        if file_h is not None:
            file_h.setFormatter(formatter)
            app_logger.addHandler(file_h)

        console = logging.StreamHandler()
        console.setLevel(console_level)
        console.setFormatter(formatter)
        app_logger.addHandler(console)
    return app_logger, file_h


logger: logging.Logger = logging.getLogger(LOGGER_NAME)
file_handler: Optional[RotatingFileHandler] = None


def initialize_app_environment(
    log_path: Optional[Path] = None, verbose: bool = False
) -> None:
    """Initialize logging for application entry points.

    Safe to call multiple times (idempotent).
    """
    global logger, file_handler
    logger, file_handler = configure_logging(
        log_path, console_level=logging.DEBUG if verbose else logging.WARNING
    )
    if verbose:
        logger.setLevel(logging.DEBUG)
