"""High-level orchestration of a digest run."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from .cache import ResultCache
from .config import DigestSettings, FeedSource
from .exceptions import FeedParseError
from .fetcher import fetch_all
from .parser import parse_feed
from .processor import SecurityItem, assemble, build_items, cutoff_for, filter_recent, merge_cve_items
from .sources import resolve_sources

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DigestResult:
    """Outcome of one run: either items and a finish time, or an error."""

    items: List[SecurityItem] = field(default_factory=list)
    finished_at: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class DigestRunner:
    """Runs the feed pipeline, never more than one run at a time.

    Args:
        settings: Settings resolved once for every run of this runner.
        custom_feeds: Explicit feed list taking precedence over OPML and the
            built-in catalog.
        cache: Optional store receiving the items of each successful run.
        clock: Returns the current time; injectable for tests.
    """

    def __init__(
        self,
        settings: DigestSettings,
        *,
        custom_feeds: Optional[Sequence[FeedSource]] = None,
        cache: Optional[ResultCache] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.settings = settings
        self.custom_feeds = list(custom_feeds) if custom_feeds else None
        self.cache = cache
        self.clock = clock
        self.in_progress = False
        self.last_result: Optional[DigestResult] = None
        self._items: List[SecurityItem] = []

    @property
    def last_fetch(self) -> Optional[datetime]:
        if self.last_result is not None and self.last_result.ok:
            return self.last_result.finished_at
        if self.cache is not None:
            return self.cache.last_fetch()
        return None

    def _process_document(self, source: FeedSource, document: bytes, now: datetime) -> List[SecurityItem]:
        try:
            entries = parse_feed(document, content_limit=self.settings.content_limit)
        except FeedParseError as exc:
            logger.warning("Skipping %s: %s", source.url, exc)
            return []
        recent = filter_recent(entries, cutoff_for(now, self.settings.hours_back), now)
        logger.debug("%s: kept %d of %d entries", source.title, len(recent), len(entries))
        return build_items(source, recent)

    async def _collect(self, now: datetime) -> List[SecurityItem]:
        sources = await resolve_sources(self.settings, self.custom_feeds)
        self._items = await fetch_all(
            sources,
            lambda source, document: self._process_document(source, document, now),
            chunk_size=self.settings.chunk_size,
            timeout=self.settings.request_timeout,
        )
        merged = merge_cve_items(self._items)
        return assemble(merged, self.settings.max_items)

    async def run(self) -> Optional[DigestResult]:
        """Execute one run.

        Returns ``None`` without doing anything when a run is already in
        progress. Unexpected failures are reported through
        :attr:`DigestResult.error` rather than raised.
        """

        if self.in_progress:
            logger.info("Digest run already in progress; ignoring trigger")
            return None
        self.in_progress = True
        self._items = []
        try:
            items = await self._collect(self.clock())
        except Exception as exc:
            logger.exception("Digest run failed")
            result = DigestResult(error=str(exc) or exc.__class__.__name__)
        else:
            result = DigestResult(items=items, finished_at=self.clock())
            if self.cache is not None:
                try:
                    self.cache.store(result.items, result.finished_at)
                except OSError as exc:
                    logger.warning("Could not write cache %s: %s", self.cache.path, exc)
            logger.info("Digest run finished with %d items", len(items))
        finally:
            self._items = []
            self.in_progress = False
        self.last_result = result
        return result
