#!/usr/bin/env python3
"""
ykdash - YubiKey OATH code dashboard

Keys:
  j / down     next account
  k / up       previous account
  c / enter    copy code, or request a touch code
  q / ctrl+c   quit
"""

import argparse
import asyncio
import logging
import os
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version
from pathlib import Path

from rich.console import Console

from ykdash.clipboard import Clipboard
from ykdash.config import Config, apply_saved_config, save_current_config
from ykdash.errors import StartupError


logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_version() -> str:
    try:
        return pkg_version("ykdash")
    except PackageNotFoundError:
        return "dev"


def configure_logging(log_path: Path, verbose: bool = False) -> None:
    """Send ykdash logs to a file, the terminal belongs to the dashboard."""
    logging.getLogger().setLevel(logging.ERROR)

    ykdash_logger = logging.getLogger("ykdash")
    level = logging.DEBUG if verbose else logging.INFO
    ykdash_logger.setLevel(level)

    resolved_path = str(log_path.resolve())
    for handler in ykdash_logger.handlers:
        if (
            isinstance(handler, logging.FileHandler)
            and getattr(handler, "baseFilename", None) == resolved_path
        ):
            handler.setLevel(level)
            return

    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError:
        logger.exception("Failed to attach log handler at %s", log_path)
        return

    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    ykdash_logger.addHandler(file_handler)


def apply_config_override(config_path: str) -> None:
    console = Console()
    path = Path(config_path).expanduser()
    if not path.exists():
        console.print(f"[bold red]Error:[/] Config file not found: {config_path}")
        sys.exit(1)
    if path.suffix != ".json":
        console.print("[bold red]Error:[/] Config file must be a .json file")
        sys.exit(1)
    Config._config_file_override = path
    apply_saved_config(force=True)


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ykdash",
        description="Show TOTP codes from a YubiKey",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment:
  YUBIKEY_SERIAL_NUMBER   serial of the key to use when several are attached

Examples:
  ykdash
  ykdash --device 12345678 --remember
        """,
    )
    parser.add_argument("-d", "--device", type=str, help="Serial number of the YubiKey to read")
    parser.add_argument(
        "--remember",
        action="store_true",
        help="Save the current settings to the config file",
    )
    parser.add_argument("--config", type=str, help="Path to custom config file")
    parser.add_argument("--log-file", type=str, help="Write logs here instead of ~/.ykdash")
    parser.add_argument("--verbose", action="store_true", help="Log debug output")
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"ykdash {get_version()}",
    )
    return parser.parse_args(argv)


def run(args: argparse.Namespace) -> int:
    from ykdash.interface.dashboard import run_dashboard
    from ykdash.source.ykman import YkmanCodeSource

    console = Console()

    if args.config:
        apply_config_override(args.config)
    if args.device:
        os.environ["YUBIKEY_SERIAL_NUMBER"] = args.device

    log_path = Path(args.log_file).expanduser() if args.log_file else Config.log_file()
    configure_logging(log_path, verbose=args.verbose)

    if args.remember and Config._config_file_override is None:
        if not save_current_config():
            console.print("[yellow]Warning:[/] could not save config")

    clipboard = Clipboard()
    try:
        clipboard.check()
    except StartupError as exc:
        logger.error("Startup failed: %s", exc)
        console.print(f"[bold red]Error:[/] {exc}")
        return 1

    source = YkmanCodeSource()
    logger.info("Starting ykdash %s (device %s)", get_version(), source.serial or "default")
    result = asyncio.run(run_dashboard(source, clipboard, serial=source.serial))
    return result or 0


def main() -> None:
    apply_saved_config()
    args = parse_arguments()
    sys.exit(run(args))


if __name__ == "__main__":
    main()
