from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence, TextIO, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    # Static-only imports to satisfy type checkers and linters
    from PySide6.QtCore import QCoreApplication
    from controllers.coil_driver import CoilDriver


def create_application(
    argv: Optional[list[str]] = None,
    verbose: bool = False,
) -> Tuple["QCoreApplication", "CoilDriver"]:
    """Create the ``QCoreApplication`` and the ``CoilDriver`` it owns.

    Qt and the driver are imported inside the function so tests can import
    this module without side effects.
    """
    from PySide6.QtCore import QCoreApplication

    from controllers.coil_driver import CoilDriver
    from infra.logging_config import initialize_app_environment
    from model.device import DeviceConfig

    initialize_app_environment(verbose=verbose)

    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication(list(argv) if argv is not None else sys.argv)
    app.setApplicationName("Coil Driver")
    app.setApplicationVersion("1.0")

    driver = CoilDriver(config=DeviceConfig.from_env())
    app.aboutToQuit.connect(driver.shutdown)
    return app, driver


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coil-driver",
        description="Control a three-axis coil driver over USB serial.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="log protocol traffic")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="list connected coil drivers")

    device_help = "device identity (default: last used device)"
    status = sub.add_parser("status", help="connect and show channel values")
    status.add_argument("--device", default=None, help=device_help)

    set_cmd = sub.add_parser("set", help="set one channel parameter")
    set_cmd.add_argument("axis", choices=["x", "y", "z"])
    set_cmd.add_argument("parameter", choices=["offset", "amplitude", "frequency"])
    set_cmd.add_argument("value", type=float)
    set_cmd.add_argument("--device", default=None, help=device_help)

    send = sub.add_parser("send", help="send a raw text command")
    send.add_argument("text")
    send.add_argument("--device", default=None, help=device_help)
    return parser


def _connect(driver: "CoilDriver", device: Optional[str], out: TextIO) -> bool:
    from model.status import ConnectStatus

    if device:
        status = driver.connect_device(device)
    else:
        driver.load_settings(load_device=True)
        status = ConnectStatus.CONNECTED if driver.is_connected() else ConnectStatus.DEVICE_NOT_FOUND
    if status is not ConnectStatus.CONNECTED:
        print(f"Not connected: {status.name} ({driver.last_response})", file=out)
        return False
    return True


def execute(
    driver: "CoilDriver", args: argparse.Namespace, out: Optional[TextIO] = None
) -> int:
    """Run one parsed sub-command against ``driver``; returns an exit code."""
    from model.channel import Parameter
    from model.status import SendStatus

    out = out or sys.stdout

    if args.command == "list":
        for identity in driver.list_devices():
            print(identity, file=out)
        return 0

    if not _connect(driver, args.device, out):
        return 1

    if args.command == "status":
        print(driver.current_device, file=out)
        for axis, channel in driver.channels().items():
            print(
                f"{axis.value}: offset={channel.get_offset():g} "
                f"amplitude={channel.get_amplitude():g} "
                f"frequency={channel.get_frequency():g}",
                file=out,
            )
        return 0

    if args.command == "set":
        channel = driver.get_channel(args.axis)
        status = channel.set_parameter(Parameter.from_name(args.parameter), args.value)
        print(status.name, file=out)
        return 0 if status in (SendStatus.CONFIRMED, SendStatus.ALREADY_SET) else 1

    if args.command == "send":
        status = driver.send_raw_command(args.text)
        print(driver.last_response.rstrip("\r\n"), file=out)
        return 0 if status is SendStatus.CONFIRMED else 1

    return 2


def run(argv: Optional[Sequence[str]] = None) -> int:
    """Parse ``argv``, run the command and persist state on the way out."""
    args = build_parser().parse_args(argv)
    app, driver = create_application(verbose=args.verbose)
    try:
        return execute(driver, args)
    finally:
        # a session that never connected must not overwrite the stored device
        if driver.is_connected():
            driver.shutdown()
