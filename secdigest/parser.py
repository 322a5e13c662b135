"""Normalise RSS and Atom documents into raw entries."""
from __future__ import annotations

import calendar
import html
import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import feedparser

from .exceptions import FeedParseError

logger = logging.getLogger(__name__)

UNTITLED = "Untitled"
TRUNCATION_MARKER = "..."

_DATE_KEYS = ("published_parsed", "updated_parsed", "created_parsed")
_BODY_KEYS = ("description", "content", "summary")
# feedparser files an RSS <description> under "summary".
_RSS_BODY_KEYS = ("description", "summary", "content")

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


@dataclass
class RawEntry:
    """One feed item before filtering and categorisation."""

    title: str
    link: str
    body_text: str
    published_at: Optional[datetime]


def as_list(value: Any) -> List[Any]:
    """Return ``value`` as a list, whether it arrived as a list or a scalar."""

    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def strip_html(text: str) -> str:
    """Remove tags, decode entities and collapse whitespace."""

    if not text:
        return ""
    text = _TAG_RE.sub(" ", text)
    text = html.unescape(text)
    return _WS_RE.sub(" ", text).strip()


def truncate(text: str, limit: int) -> str:
    if limit <= 0 or len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER


def detect_format(parsed) -> str:
    """Classify a feedparser result as ``"rss"`` or ``"atom"``."""

    version = (getattr(parsed, "version", "") or "").lower()
    if version.startswith("rss"):
        return "rss"
    if version.startswith("atom"):
        return "atom"
    raise FeedParseError(f"Unrecognised feed format {version!r}")


def _text_of(value: Any) -> str:
    # Atom content is a list of {"type", "value"} dicts; RSS fields are plain text.
    for candidate in as_list(value):
        if isinstance(candidate, dict):
            candidate = candidate.get("value")
        if isinstance(candidate, str) and candidate.strip():
            return candidate
    return ""


def _entry_link(entry: Dict[str, Any]) -> str:
    link = entry.get("link")
    if isinstance(link, str) and link.strip():
        return link.strip()
    links = [ref for ref in as_list(entry.get("links")) if isinstance(ref, dict) and ref.get("href")]
    for candidate in links:
        if candidate.get("rel", "alternate") == "alternate":
            return candidate["href"].strip()
    if links:
        return links[0]["href"].strip()
    return ""


def _entry_date(entry: Dict[str, Any]) -> Optional[datetime]:
    for key in _DATE_KEYS:
        value = entry.get(key)
        if isinstance(value, time.struct_time):
            return datetime.fromtimestamp(calendar.timegm(value), tz=timezone.utc)
    return None


def _entry_body(entry: Dict[str, Any], kind: Optional[str] = None) -> str:
    keys = _RSS_BODY_KEYS if kind == "rss" else _BODY_KEYS
    for key in keys:
        # FeedParserDict.get aliases "description" to "summary"; read the raw key.
        text = _text_of(dict.get(entry, key))
        if text:
            return text
    return ""


def to_raw_entry(entry: Dict[str, Any], content_limit: int = 500, kind: Optional[str] = None) -> RawEntry:
    """Coerce a single feedparser entry into a :class:`RawEntry`.

    ``kind`` is the value of :func:`detect_format`. For Atom the full
    ``content`` wins over the ``summary`` teaser.
    """

    title = strip_html(_text_of(entry.get("title"))) or UNTITLED
    body = truncate(strip_html(_entry_body(entry, kind)), content_limit)
    return RawEntry(
        title=title,
        link=_entry_link(entry),
        body_text=body,
        published_at=_entry_date(entry),
    )


def parse_feed(document: Union[str, bytes], content_limit: int = 500) -> List[RawEntry]:
    """Parse an RSS 2.0 or Atom document.

    Raises :class:`FeedParseError` when the document is neither, or is so
    malformed that no entries could be recovered.
    """

    if isinstance(document, str):
        document = document.encode("utf-8")
    parsed = feedparser.parse(document)
    entries = as_list(getattr(parsed, "entries", None))
    if getattr(parsed, "bozo", False) and not entries:
        raise FeedParseError(f"Malformed feed document: {getattr(parsed, 'bozo_exception', '')}")
    kind = detect_format(parsed)
    logger.debug("Parsed %s document with %d entries", kind, len(entries))
    return [to_raw_entry(entry, content_limit, kind) for entry in entries if isinstance(entry, dict)]
