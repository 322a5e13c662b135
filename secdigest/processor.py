"""Core logic for filtering, categorising and merging feed entries."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from .config import FeedSource
from .parser import RawEntry

logger = logging.getLogger(__name__)

VULNERABILITY = "vulnerability"
INTELLIGENCE = "intelligence"
NEWS = "news"
CATEGORIES = (VULNERABILITY, INTELLIGENCE, NEWS)

CVE_PATTERN = re.compile(r"CVE-\d{4}-\d{4,}", re.IGNORECASE)

# Ordered: the first group that matches decides the category.
_CATEGORY_RULES = (
    (
        VULNERABILITY,
        re.compile(r"cve-\d{4}-\d{4,}|vulnerability|exploit|patch|zero-day|zeroday"),
    ),
    (
        INTELLIGENCE,
        re.compile(
            r"apt\s*\d+|ransomware|malware|phishing|apt group|threat actor|ioc|research"
            r"|analysis|technical|breach|leak|hack|attack|incident|compromised"
        ),
    ),
)


@dataclass
class SecurityItem:
    """A categorised feed item, possibly merged across several sources."""

    title: str
    link: str
    content: str
    published_at: datetime
    source_name: str
    source_url: str
    category: str
    vulnerability_id: Optional[str] = None
    contributing_sources: Optional[List[str]] = None
    ai_summary: Optional[str] = None


def categorize(title: str, body: str) -> str:
    """Classify an item into one of :data:`CATEGORIES`."""

    text = f"{title} {body}".lower()
    for category, pattern in _CATEGORY_RULES:
        if pattern.search(text):
            return category
    return NEWS


def cutoff_for(now: datetime, hours_back: int) -> datetime:
    return now - timedelta(hours=hours_back)


def filter_recent(entries: Iterable[RawEntry], cutoff: datetime, now: datetime) -> List[RawEntry]:
    """Keep entries published at or after ``cutoff``.

    Entries without a date are treated as published ``now`` and always kept.
    The date is resolved on the entry itself so later stages see it.
    """

    kept: List[RawEntry] = []
    for entry in entries:
        if entry.published_at is None:
            entry.published_at = now
        if entry.published_at >= cutoff:
            kept.append(entry)
    return kept


def build_items(source: FeedSource, entries: Iterable[RawEntry]) -> List[SecurityItem]:
    """Turn filtered entries from one feed into categorised items."""

    items: List[SecurityItem] = []
    for entry in entries:
        if entry.published_at is None:
            raise ValueError("entries must pass through filter_recent before build_items")
        items.append(
            SecurityItem(
                title=entry.title,
                link=entry.link,
                content=entry.body_text,
                published_at=entry.published_at,
                source_name=source.title,
                source_url=source.url,
                category=categorize(entry.title, entry.body_text),
            )
        )
    return items


def extract_cve_ids(text: str) -> List[str]:
    """Return the distinct CVE identifiers in ``text``, upper-cased, in order."""

    seen: Dict[str, None] = {}
    for match in CVE_PATTERN.findall(text):
        seen.setdefault(match.upper(), None)
    return list(seen)


def merge_cve_items(items: Sequence[SecurityItem]) -> List[SecurityItem]:
    """Collapse items reporting the same CVE into a single record.

    The first item seen for an identifier becomes the canonical record. Later
    ones add their source name and, when their content is strictly longer,
    replace the canonical content and link. Canonical records reported by
    more than one source get a ``[n sources]`` title prefix.

    Returns merged CVE items in first-seen order followed by the remaining
    items in their original order.
    """

    merged: Dict[str, SecurityItem] = {}
    others: List[SecurityItem] = []

    for item in items:
        if item.vulnerability_id is not None:
            raise ValueError(f"item already merged under {item.vulnerability_id}; merge must run once")
        cve_ids = extract_cve_ids(item.title)
        if not cve_ids:
            others.append(item)
            continue
        cve_id = cve_ids[0]
        canonical = merged.get(cve_id)
        if canonical is None:
            item.vulnerability_id = cve_id
            item.contributing_sources = [item.source_name]
            merged[cve_id] = item
            continue
        if item.source_name not in canonical.contributing_sources:
            canonical.contributing_sources.append(item.source_name)
        if len(item.content) > len(canonical.content):
            canonical.content = item.content
            canonical.link = item.link

    for canonical in merged.values():
        count = len(canonical.contributing_sources)
        if count > 1:
            canonical.title = f"[{count} sources] {canonical.title}"

    logger.info(
        "Merged %d CVE-bearing items into %d records",
        len(items) - len(others),
        len(merged),
    )
    return list(merged.values()) + others


def assemble(items: Iterable[SecurityItem], max_items: int) -> List[SecurityItem]:
    """Order items newest first and keep at most ``max_items``."""

    ordered = sorted(items, key=lambda item: item.published_at, reverse=True)
    return ordered[:max_items]
