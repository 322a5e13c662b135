from datetime import datetime, timezone
from typing import List

from secdigest.processor import SecurityItem
from secdigest.summarizer import Summarizer, summarise_items


def make_item(link: str) -> SecurityItem:
    return SecurityItem(
        title="Ransomware hits hospital",
        link=link,
        content="<p>Systems encrypted overnight.</p>",
        published_at=datetime(2024, 5, 2, tzinfo=timezone.utc),
        source_name="FeedA",
        source_url="https://a/rss",
        category="intelligence",
    )


def _fake_pipeline(prompts: List[str]):
    def _run(text, **kwargs):
        prompts.append(text)
        return [{"summary_text": f" summary {len(prompts)} "}]

    return _run


def test_summarise_items_returns_copies(monkeypatch):
    prompts: List[str] = []
    monkeypatch.setattr(Summarizer, "_build_pipeline", lambda self: _fake_pipeline(prompts))
    items = [make_item("https://a/1"), make_item("https://a/2")]

    summarised = summarise_items(items)

    assert [item.ai_summary for item in summarised] == ["summary 1", "summary 2"]
    assert all(item.ai_summary is None for item in items)
    assert "Systems encrypted overnight." in prompts[0]
    assert "<p>" not in prompts[0]


def test_summaries_are_cached_per_link(monkeypatch):
    prompts: List[str] = []
    monkeypatch.setattr(Summarizer, "_build_pipeline", lambda self: _fake_pipeline(prompts))
    summarizer = Summarizer()

    first = summarizer.summarize(make_item("https://a/1"))
    second = summarizer.summarize(make_item("https://a/1"))

    assert first == second == "summary 1"
    assert len(prompts) == 1
