from __future__ import annotations

import argparse

from ..sources import resolve_sources
from . import CommandResult, FeedCommand, MaybeAwaitable


class SourcesCommand(FeedCommand):
    name = "sources"
    help = "List the feeds a digest run would poll"

    @classmethod
    def handle(cls, args: argparse.Namespace) -> MaybeAwaitable:
        async def _runner() -> CommandResult:
            settings, feeds = cls.load_inputs(args)
            for source in await resolve_sources(settings, feeds):
                category = f" ({source.category})" if source.category else ""
                print(f"{source.title}{category}: {source.url}")
            return 0

        return _runner()


__all__ = ["SourcesCommand"]
