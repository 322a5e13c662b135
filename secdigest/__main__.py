"""Command-line entry point: ``python -m secdigest <command>``."""
from __future__ import annotations

import argparse
import asyncio
import importlib
import logging
import pkgutil
import sys
from typing import Dict, Optional, Sequence, Type

import yaml

from .commands import Command, MaybeAwaitable, discover_commands

logger = logging.getLogger("secdigest")

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def _command_registry() -> Dict[str, Type[Command]]:
    package = importlib.import_module("secdigest.commands")
    modules = [package] + [
        importlib.import_module(f"{package.__name__}.{info.name}")
        for info in pkgutil.iter_modules(package.__path__)
    ]
    # Keyed by name so a command imported into several modules registers once.
    registry: Dict[str, Type[Command]] = {}
    for module in modules:
        for command_cls in discover_commands(module):
            registry[command_cls.name] = command_cls
    return dict(sorted(registry.items()))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="secdigest",
        description="Security feed digest: fetch, categorise and merge advisories",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "--log-level",
        default="WARNING",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level written to stderr (default: WARNING).",
    )
    verbosity.add_argument(
        "--debug",
        dest="log_level",
        action="store_const",
        const="DEBUG",
        help="Shortcut for --log-level DEBUG.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    for command_cls in _command_registry().values():
        command_cls.attach(subparsers)
    return parser


def _run(result: MaybeAwaitable) -> int:
    if asyncio.iscoroutine(result):
        result = asyncio.run(result)
    return int(result or 0)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format=LOG_FORMAT, stream=sys.stderr)

    command_cls: Type[Command] = args._command_cls
    try:
        return _run(command_cls.handle(args))
    except (OSError, yaml.YAMLError) as exc:
        # Unreadable settings or feed files; run failures are reported by the commands.
        logger.debug("Command %s failed", command_cls.name, exc_info=True)
        parser.exit(2, f"{parser.prog} {command_cls.name}: error: {exc}\n")


if __name__ == "__main__":  # pragma: no cover - thin wrapper
    sys.exit(main())
