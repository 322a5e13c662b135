"""Subcommand plugins for the secdigest CLI.

Every module in this package is scanned for :class:`Command` subclasses with
a non-empty ``name``; those become ``secdigest <name>`` subcommands.
"""
from __future__ import annotations

import argparse
import inspect
from pathlib import Path
from typing import Awaitable, List, Optional, Sequence, Tuple, Type, Union

from ..config import DigestSettings, FeedSource, load_feeds, load_settings

CommandResult = Optional[int]
MaybeAwaitable = Union[CommandResult, Awaitable[CommandResult]]


class Command:
    """A CLI subcommand: argument setup plus a handler returning an exit code."""

    name: str = ""
    help: str = ""
    aliases: Sequence[str] = ()

    @classmethod
    def configure_parser(cls, parser: argparse.ArgumentParser) -> None:
        pass

    @classmethod
    def handle(cls, args: argparse.Namespace) -> MaybeAwaitable:
        raise NotImplementedError(f"{cls.__name__} does not implement handle()")

    @classmethod
    def attach(cls, subparsers) -> argparse.ArgumentParser:
        if not cls.name:
            raise ValueError(f"{cls.__name__} cannot be attached without a name")
        parser = subparsers.add_parser(
            cls.name,
            help=cls.help or None,
            description=cls.help or None,
            aliases=list(cls.aliases),
        )
        cls.configure_parser(parser)
        parser.set_defaults(_command_cls=cls)
        return parser


class FeedCommand(Command):
    """Base for commands that resolve feeds from settings and a feed list."""

    @classmethod
    def configure_parser(cls, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--settings",
            type=Path,
            default=Path("secdigest.yaml"),
            help="YAML file with hours_back, max_items, max_feeds and opml_url.",
        )
        parser.add_argument(
            "--feeds",
            type=Path,
            default=None,
            help="Optional YAML feed list overriding OPML and the built-in catalog.",
        )

    @staticmethod
    def load_inputs(args: argparse.Namespace) -> Tuple[DigestSettings, Optional[List[FeedSource]]]:
        settings = load_settings(args.settings)
        feeds = load_feeds(args.feeds) if args.feeds else None
        return settings, feeds


def discover_commands(module: object) -> List[Type[Command]]:
    """Return the named ``Command`` subclasses found on ``module``, sorted by name."""

    commands = [
        obj
        for _, obj in inspect.getmembers(module, inspect.isclass)
        if issubclass(obj, Command) and getattr(obj, "name", "")
    ]
    return sorted(commands, key=lambda cls: cls.name)


__all__ = [
    "Command",
    "CommandResult",
    "FeedCommand",
    "MaybeAwaitable",
    "discover_commands",
]
