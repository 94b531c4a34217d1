"""Command-line interface for osc-bridge."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from . import constants
from .app import OscBridgeApp
from .config import load_config
from .endpoints import DeploymentMode

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="osc-bridge", description="Relay to OSC protocol bridge"
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=constants.DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {constants.DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Dotenv file to load before reading configuration (default: ./.env)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    start_parser = subparsers.add_parser("start", help="Start the bridge")
    start_parser.add_argument(
        "-m",
        "--mode",
        choices=[mode.value for mode in DeploymentMode],
        default=None,
        help=f"Deployment mode (overrides ${constants.MODE_ENV_VAR})",
    )

    show_parser = subparsers.add_parser(
        "show-config", help="Print the resolved configuration and exit"
    )
    show_parser.add_argument(
        "-m",
        "--mode",
        choices=[mode.value for mode in DeploymentMode],
        default=None,
    )

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.env_file is not None:
        load_dotenv(args.env_file)
    else:
        load_dotenv()

    config = load_config(args.config, mode=args.mode)

    if args.command == "start":
        return OscBridgeApp.start(config)

    if args.command == "show-config":
        host, port = config.datagram_target
        print(f"Configuration loaded from {config.path!s}\n")
        print(f"mode = {config.mode.value}")
        print(f"relay_url = {config.relay_url}")
        print(f"datagram_target = {host}:{port} ({config.datagram.target})")
        print()
        for section in config.raw.sections():
            print(f"[{section}]")
            for key, value in config.raw[section].items():
                print(f"{key} = {value}")
            print()
        return 0

    LOGGER.error("Unknown command: %s", args.command)
    return 1


if __name__ == "__main__":
    sys.exit(main())
