"""Security feed digest: fetch RSS/Atom feeds, categorise items and merge CVE reports."""

from .cache import ResultCache
from .config import DigestSettings, FeedSource, load_feeds, load_settings
from .exceptions import FeedParseError, SecDigestError, SourceResolutionError
from .fetcher import fetch_all, fetch_document
from .parser import RawEntry, parse_feed, strip_html
from .pipeline import DigestResult, DigestRunner
from .processor import (
    CATEGORIES,
    SecurityItem,
    assemble,
    categorize,
    extract_cve_ids,
    filter_recent,
    merge_cve_items,
)
from .sources import BUILTIN_FEEDS, parse_opml, resolve_sources
from .summarizer import Summarizer, summarise_items

__all__ = [
    "FeedSource",
    "DigestSettings",
    "load_settings",
    "load_feeds",
    "SecDigestError",
    "FeedParseError",
    "SourceResolutionError",
    "fetch_all",
    "fetch_document",
    "RawEntry",
    "parse_feed",
    "strip_html",
    "SecurityItem",
    "CATEGORIES",
    "categorize",
    "filter_recent",
    "extract_cve_ids",
    "merge_cve_items",
    "assemble",
    "BUILTIN_FEEDS",
    "parse_opml",
    "resolve_sources",
    "DigestRunner",
    "DigestResult",
    "ResultCache",
    "Summarizer",
    "summarise_items",
]
