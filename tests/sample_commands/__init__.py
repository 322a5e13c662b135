"""Sample commands used for discovery tests."""
from __future__ import annotations

import argparse

from secdigest.commands import Command, MaybeAwaitable


class ListCommand(Command):
    name = "list-cached"
    help = "Print cached items"

    @classmethod
    def configure_parser(cls, parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--limit", type=int, default=10)

    @classmethod
    def handle(cls, args: argparse.Namespace) -> MaybeAwaitable:
        return 0


class ClearCommand(Command):
    name = "clear-cache"
    help = "Remove the cached digest"
    aliases = ("clear",)

    @classmethod
    def handle(cls, args: argparse.Namespace) -> MaybeAwaitable:
        return 0


class _UnnamedCommand(Command):
    name = ""


__all__ = ["ListCommand", "ClearCommand"]
