from __future__ import annotations

import argparse
import logging
from typing import Sequence

from configbridge.cli.environment import environment_command
from configbridge.cli.show import get_command, show_command
from configbridge.core.errors import main_with_error_handling
from configbridge.logging import configure_logging


@main_with_error_handling()
def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="configbridge", description="Inspect layered configuration resolution"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    show_parser = subparsers.add_parser("show", help="Show the merged configuration")
    show_parser.add_argument("--section", help="Only keys under this section, e.g. AppSettings")
    show_parser.add_argument(
        "--reveal", action="store_true", help="Show secret values instead of masking them"
    )

    get_parser = subparsers.add_parser("get", help="Print one configuration value")
    get_parser.add_argument("key", help="Key such as AppSettings:MyConfig")

    subparsers.add_parser("environment", help="Show the resolved environment")

    args = parser.parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING, json_output=False)

    if args.command == "show":
        return show_command(section=args.section, reveal=args.reveal)

    if args.command == "get":
        return get_command(args.key)

    if args.command == "environment":
        return environment_command()

    parser.print_help()
    return 1


if __name__ == "__main__":  # pragma: no cover - exercised via module entrypoint
    raise SystemExit(main())
