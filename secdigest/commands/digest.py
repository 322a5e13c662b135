from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import List

from ..cache import ResultCache, item_to_dict
from ..pipeline import DigestRunner
from ..processor import CATEGORIES, SecurityItem
from ..summarizer import DEFAULT_MODEL, summarise_items
from . import CommandResult, FeedCommand, MaybeAwaitable


def format_item(item: SecurityItem) -> str:
    stamp = item.published_at.strftime("%Y-%m-%d %H:%M")
    lines = [
        f"[{item.category}] {item.title}",
        f"    {item.source_name} - {stamp}",
        f"    {item.link}",
    ]
    if item.contributing_sources and len(item.contributing_sources) > 1:
        lines.append(f"    sources: {', '.join(item.contributing_sources)}")
    if item.ai_summary:
        lines.append(f"    summary: {item.ai_summary}")
    return "\n".join(lines)


class DigestCommand(FeedCommand):
    name = "digest"
    help = "Fetch security feeds and print the merged digest"

    @classmethod
    def configure_parser(cls, parser: argparse.ArgumentParser) -> None:
        super().configure_parser(parser)
        parser.add_argument(
            "--cache",
            type=Path,
            default=Path("data/last_digest.json"),
            help="JSON file receiving the last successful digest.",
        )
        parser.add_argument(
            "--category",
            choices=CATEGORIES,
            default=None,
            help="Only print items of this category.",
        )
        parser.add_argument(
            "--json",
            action="store_true",
            help="Print the digest as JSON instead of text.",
        )
        parser.add_argument(
            "--summarize",
            action="store_true",
            help="Attach an AI summary to every printed item.",
        )
        parser.add_argument(
            "--model",
            default=DEFAULT_MODEL,
            help="Hugging Face model used for summarisation.",
        )

    @classmethod
    def handle(cls, args: argparse.Namespace) -> MaybeAwaitable:
        async def _runner() -> CommandResult:
            settings, feeds = cls.load_inputs(args)
            runner = DigestRunner(settings, custom_feeds=feeds, cache=ResultCache(args.cache))
            result = await runner.run()
            if result is None or not result.ok:
                message = result.error if result is not None else "run already in progress"
                print(f"Failed to load feeds: {message}")
                return 1

            items: List[SecurityItem] = result.items
            if args.category:
                items = [item for item in items if item.category == args.category]
            if args.summarize:
                items = summarise_items(items, model_name=args.model)

            if args.json:
                payload = {
                    "last_fetch": result.finished_at.isoformat(),
                    "hours_back": settings.hours_back,
                    "items": [item_to_dict(item) for item in items],
                }
                print(json.dumps(payload, indent=2))
                return 0

            if not items:
                print("No news found. Try widening the time window or checking your feeds.")
            for item in items:
                print(format_item(item))
                print()
            print(
                f"{len(items)} items from the last {settings.hours_back}h, "
                f"fetched {result.finished_at:%Y-%m-%d %H:%M} UTC"
            )
            return 0

        return _runner()


__all__ = ["DigestCommand", "format_item"]
