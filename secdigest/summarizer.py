"""Summarisation helpers backed by Hugging Face transformers."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from .parser import strip_html
from .processor import SecurityItem

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "sshleifer/distilbart-cnn-12-6"


class Summarizer:
    """Lazy wrapper around the transformers summarisation pipeline.

    Summaries are cached per item link for the lifetime of the instance.
    """

    def __init__(self, model_name: str = DEFAULT_MODEL) -> None:
        self.model_name = model_name
        self._pipeline: Optional[object] = None
        self._cache: Dict[str, str] = {}

    def _build_pipeline(self):
        try:
            from transformers import pipeline
        except ImportError as exc:
            raise RuntimeError(
                "transformers is required for summaries. Install with `pip install secdigest[summarize]`."
            ) from exc
        return pipeline("summarization", model=self.model_name)

    def ensure_loaded(self) -> None:
        if self._pipeline is None:
            logger.info("Loading summarisation model %s", self.model_name)
            self._pipeline = self._build_pipeline()

    def summarize(self, item: SecurityItem) -> str:
        cached = self._cache.get(item.link)
        if cached is not None:
            return cached
        content = strip_html(item.content)
        text = f"{item.title}. Source: {item.source_name}. {content}".strip()
        self.ensure_loaded()
        result = self._pipeline(
            text,
            max_length=130,
            min_length=30,
            do_sample=False,
            truncation=True,
        )
        summary = result[0]["summary_text"].strip()
        logger.debug("Summary for %s: %s", item.link, summary)
        if item.link:
            self._cache[item.link] = summary
        return summary


def summarise_items(
    items: Iterable[SecurityItem],
    model_name: str = DEFAULT_MODEL,
    summarizer: Optional[Summarizer] = None,
) -> List[SecurityItem]:
    """Return copies of ``items`` with ``ai_summary`` filled in."""

    summarizer = summarizer or Summarizer(model_name=model_name)
    return [replace(item, ai_summary=summarizer.summarize(item)) for item in items]
