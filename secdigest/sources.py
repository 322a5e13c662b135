"""Resolve the list of feeds polled by a digest run."""
from __future__ import annotations

import asyncio
import logging
import xml.etree.ElementTree as ET
from typing import List, Optional, Sequence

import aiohttp

from .config import DigestSettings, FeedSource
from .exceptions import SourceResolutionError
from .fetcher import USER_AGENT

logger = logging.getLogger(__name__)

BUILTIN_FEEDS = (
    FeedSource("CISA Alerts", "https://www.cisa.gov/uscert/ncas/alerts.xml", "Vulnerability"),
    FeedSource("Exploit-DB", "https://www.exploit-db.com/rss.xml", "Vulnerability"),
    FeedSource("Krebs on Security", "https://krebsonsecurity.com/feed/", "Threat Intel"),
    FeedSource("The Hacker News", "https://feeds.feedburner.com/TheHackersNews", "News"),
    FeedSource("BleepingComputer", "https://www.bleepingcomputer.com/feed/", "News"),
    FeedSource("Dark Reading", "https://www.darkreading.com/rss.xml", "News"),
    FeedSource(
        "Google Project Zero",
        "https://googleprojectzero.blogspot.com/feeds/posts/default",
        "Research",
    ),
    FeedSource("Trail of Bits Blog", "https://blog.trailofbits.com/feed", "Research"),
    FeedSource("Microsoft Security Blog", "https://www.microsoft.com/security/blog/feed/", "Vendor"),
    FeedSource("Cloudflare Blog", "https://blog.cloudflare.com/rss/", "Vendor"),
    FeedSource("Unit42 (Palo Alto)", "https://unit42.paloaltonetworks.com/feed/", "Threat Intel"),
    FeedSource("PortSwigger Blog", "https://portswigger.net/blog/rss", "Tools"),
    FeedSource("SANS Internet Storm Center", "https://isc.sans.edu/rssfeed.xml", "News"),
    FeedSource("SecurityWeek", "https://www.securityweek.com/feed/", "News"),
    FeedSource("Help Net Security", "https://www.helpnetsecurity.com/feed/", "News"),
)


def builtin_feeds() -> List[FeedSource]:
    return list(BUILTIN_FEEDS)


def parse_opml(document: str) -> List[FeedSource]:
    """Extract RSS subscriptions from an OPML outline.

    Only ``<outline type="rss">`` elements with both a title (``title`` or
    ``text``) and an ``xmlUrl`` are kept, in document order.
    """

    try:
        root = ET.fromstring(document)
    except ET.ParseError as exc:
        raise SourceResolutionError(f"Malformed OPML document: {exc}") from exc

    feeds: List[FeedSource] = []
    for outline in root.iter("outline"):
        if (outline.get("type") or "").lower() != "rss":
            continue
        title = outline.get("title") or outline.get("text")
        url = outline.get("xmlUrl")
        if not title or not url:
            continue
        feeds.append(FeedSource(title=title, url=url, category=outline.get("category") or None))
    return feeds


async def fetch_opml(url: str, timeout: float = 10.0) -> str:
    """Download an OPML directory, raising :class:`SourceResolutionError` on failure."""

    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(
                url,
                headers={"User-Agent": USER_AGENT},
                timeout=aiohttp.ClientTimeout(total=timeout),
            ) as response:
                if not 200 <= response.status < 300:
                    raise SourceResolutionError(f"Failed to fetch OPML: HTTP {response.status}")
                return await response.text()
    except UnicodeDecodeError as exc:
        raise SourceResolutionError(f"OPML from {url} is not valid text: {exc}") from exc
    except aiohttp.ClientError as exc:
        raise SourceResolutionError(f"Failed to fetch OPML from {url}: {exc}") from exc
    except asyncio.TimeoutError as exc:
        raise SourceResolutionError(f"Timed out fetching OPML from {url}") from exc


async def resolve_sources(
    settings: DigestSettings,
    custom_feeds: Optional[Sequence[FeedSource]] = None,
) -> List[FeedSource]:
    """Pick the feeds for this run.

    Precedence is an explicit custom list, then the configured OPML
    directory, then the built-in catalog. The result is capped at
    ``settings.max_feeds``. Directory failures fall back silently.
    """

    feeds: List[FeedSource] = list(custom_feeds or [])
    if not feeds and settings.opml_url:
        try:
            document = await fetch_opml(settings.opml_url, timeout=settings.request_timeout)
            feeds = parse_opml(document)
        except Exception as exc:
            # Any directory failure falls back to the catalog, never to the caller.
            logger.warning("Falling back to built-in feeds: %s", exc)
            feeds = []
    if not feeds:
        feeds = builtin_feeds()
    selected = feeds[: settings.max_feeds]
    logger.info("Resolved %d feeds (of %d available)", len(selected), len(feeds))
    return selected
