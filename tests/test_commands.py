import argparse
import importlib
import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from secdigest.__main__ import build_parser, main
from secdigest.commands import Command, discover_commands
from secdigest.pipeline import DigestResult
from secdigest.processor import SecurityItem

NOW = datetime(2024, 5, 2, 12, 0, tzinfo=timezone.utc)


def test_discover_commands_finds_all_subclasses():
    module = importlib.import_module("tests.sample_commands")
    commands = discover_commands(module)
    names = [command.name for command in commands]
    assert names == ["clear-cache", "list-cached"]
    assert all(issubclass(command, Command) for command in commands)


def test_command_attach_registers_parser_and_aliases():
    module = importlib.import_module("tests.sample_commands")
    parser = argparse.ArgumentParser(prog="test")
    subparsers = parser.add_subparsers(dest="command", required=True)
    for command in discover_commands(module):
        command.attach(subparsers)

    assert "list-cached" in parser.format_help()
    assert parser.parse_args(["clear"])._command_cls.name == "clear-cache"


def test_builtin_commands_are_registered():
    help_text = build_parser().format_help()
    assert "digest" in help_text
    assert "sources" in help_text


def test_sources_command_lists_custom_feeds(tmp_path: Path, capsys):
    feeds = tmp_path / "feeds.yaml"
    feeds.write_text("- title: Mine\n  url: https://mine.example.com/rss\n  category: Research\n")

    code = main(["sources", "--settings", str(tmp_path / "none.yaml"), "--feeds", str(feeds)])

    assert code == 0
    assert capsys.readouterr().out.strip() == "Mine (Research): https://mine.example.com/rss"


def test_missing_feed_list_exits_with_usage_error(tmp_path: Path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["sources", "--settings", str(tmp_path / "none.yaml"), "--feeds", str(tmp_path / "absent.yaml")])

    assert excinfo.value.code == 2
    assert "secdigest sources: error:" in capsys.readouterr().err


def test_debug_flag_sets_log_level():
    args = build_parser().parse_args(["--debug", "sources"])
    assert args.log_level == "DEBUG"
    assert build_parser().parse_args(["--log-level", "info", "sources"]).log_level == "INFO"


class _FakeRunner:
    result = None

    def __init__(self, settings, custom_feeds=None, cache=None):
        self.settings = settings

    async def run(self):
        return self.result


def _item(title: str, category: str) -> SecurityItem:
    return SecurityItem(
        title=title,
        link=f"https://example.com/{category}",
        content="",
        published_at=NOW,
        source_name="FeedA",
        source_url="https://a/rss",
        category=category,
    )


def test_digest_command_prints_filtered_json(tmp_path: Path, capsys, monkeypatch):
    _FakeRunner.result = DigestResult(
        items=[_item("CVE-2024-1234 flaw", "vulnerability"), _item("Funding round", "news")],
        finished_at=NOW,
    )
    monkeypatch.setattr("secdigest.commands.digest.DigestRunner", _FakeRunner)

    code = main(
        [
            "digest",
            "--settings",
            str(tmp_path / "none.yaml"),
            "--cache",
            str(tmp_path / "cache.json"),
            "--category",
            "vulnerability",
            "--json",
        ]
    )

    payload = json.loads(capsys.readouterr().out)
    assert code == 0
    assert payload["last_fetch"] == NOW.isoformat()
    assert [item["title"] for item in payload["items"]] == ["CVE-2024-1234 flaw"]


def test_digest_command_reports_run_error(tmp_path: Path, capsys, monkeypatch):
    _FakeRunner.result = DigestResult(error="boom")
    monkeypatch.setattr("secdigest.commands.digest.DigestRunner", _FakeRunner)

    code = main(["digest", "--settings", str(tmp_path / "none.yaml")])

    assert code == 1
    assert "Failed to load feeds: boom" in capsys.readouterr().out
