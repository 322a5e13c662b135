"""Configuration helpers for the security digest pipeline."""
from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, List, Mapping, Optional

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedSource:
    """Metadata describing a single feed to poll."""

    title: str
    url: str
    category: Optional[str] = None


@dataclass(frozen=True)
class DigestSettings:
    """Run settings resolved once before a digest run starts."""

    hours_back: int = 24
    max_items: int = 50
    max_feeds: int = 20
    chunk_size: int = 2
    request_timeout: float = 10.0
    content_limit: int = 500
    opml_url: Optional[str] = None

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]]) -> "DigestSettings":
        """Build settings from loosely typed values.

        Every numeric value that is absent, unparsable or not positive falls
        back to its default, the same way an empty preference field would.
        Integer settings also reject fractional values rather than truncate.
        """

        raw = raw or {}
        defaults = cls()
        values = {}
        for field in fields(cls):
            default = getattr(defaults, field.name)
            value = raw.get(field.name)
            if field.name == "opml_url":
                url = str(value).strip() if value else ""
                values[field.name] = url or None
                continue
            values[field.name] = _positive(value, default, field.name)
        return cls(**values)


def _positive(value: Any, default, name: str):
    if value is None or value == "":
        return default
    if isinstance(default, int) and isinstance(value, float) and not value.is_integer():
        logger.warning("Ignoring non-integral %s=%r, using %s", name, value, default)
        return default
    try:
        parsed = type(default)(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid %s=%r, using %s", name, value, default)
        return default
    if parsed <= 0:
        logger.warning("Ignoring non-positive %s=%r, using %s", name, value, default)
        return default
    return parsed


def load_settings(path: Optional[Path]) -> DigestSettings:
    """Load digest settings from a YAML document.

    A missing file is not an error: the defaults are used instead.
    """

    if path is None or not path.exists():
        if path is not None:
            logger.info("Settings file %s not found; using defaults", path)
        return DigestSettings()
    raw = yaml.safe_load(path.read_text()) or {}
    if not isinstance(raw, dict):
        logger.warning("Settings file %s is not a mapping; using defaults", path)
        return DigestSettings()
    return DigestSettings.from_mapping(raw)


def load_feeds(path: Path) -> List[FeedSource]:
    """Load a custom feed list from ``feeds.yaml``.

    The document is a list of ``{title, url, category}`` records. Records
    without a URL are skipped.
    """

    raw = yaml.safe_load(path.read_text()) or []
    feeds: List[FeedSource] = []
    for entry in raw:
        if not isinstance(entry, dict) or not entry.get("url"):
            logger.warning("Skipping feed record without url: %r", entry)
            continue
        url = str(entry["url"])
        category = entry.get("category")
        feeds.append(
            FeedSource(
                title=str(entry.get("title") or url),
                url=url,
                category=str(category) if category else None,
            )
        )
    return feeds
