"""Asynchronous feed fetching utilities."""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterator, List, Optional, Sequence, TypeVar

import aiohttp

from .config import FeedSource

logger = logging.getLogger(__name__)

USER_AGENT = "secdigest/0.1 (+https://github.com/secdigest/secdigest)"

T = TypeVar("T")

DocumentHandler = Callable[[FeedSource, bytes], List[T]]


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of ``items`` holding at most ``size`` elements."""

    if size < 1:
        raise ValueError("chunk size must be positive")
    for start in range(0, len(items), size):
        yield items[start : start + size]


async def fetch_document(session, source: FeedSource, timeout: float = 10.0) -> Optional[bytes]:
    """Download the raw document for ``source``.

    Returns ``None`` when the feed should be skipped for this run: transport
    errors, timeouts and non-success statuses are logged, never raised.
    """

    try:
        async with session.get(
            source.url,
            headers={"User-Agent": USER_AGENT},
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as response:
            if not 200 <= response.status < 300:
                logger.warning("Skipping %s: HTTP %s", source.url, response.status)
                return None
            return await response.read()
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        logger.warning("Failed to download %s: %r", source.url, exc)
        return None


async def _fetch_and_handle(
    session,
    source: FeedSource,
    handle: DocumentHandler,
    timeout: float,
) -> List[T]:
    try:
        document = await fetch_document(session, source, timeout=timeout)
        if document is None:
            return []
        return handle(source, document)
    except Exception:
        # One broken feed must not abort the others.
        logger.warning("Dropping feed %s after error", source.url, exc_info=True)
        return []


async def fetch_all(
    sources: Sequence[FeedSource],
    handle: DocumentHandler,
    *,
    chunk_size: int = 2,
    timeout: float = 10.0,
) -> List[T]:
    """Fetch every feed in fixed-size batches and collect the handled results.

    Each batch is awaited in full before the next one starts, so at most
    ``chunk_size`` requests are in flight. ``handle`` turns one downloaded
    document into a list of results; its output is concatenated in source
    order.
    """

    connector = aiohttp.TCPConnector(limit=chunk_size)
    results: List[T] = []
    skipped = 0
    async with aiohttp.ClientSession(connector=connector) as session:
        for batch in chunked(sources, chunk_size):
            outcomes = await asyncio.gather(
                *(_fetch_and_handle(session, source, handle, timeout) for source in batch)
            )
            for outcome in outcomes:
                if not outcome:
                    skipped += 1
                results.extend(outcome)
    logger.info(
        "Collected %d results from %d feeds (%d contributed nothing)",
        len(results),
        len(sources),
        skipped,
    )
    return results
