from __future__ import annotations

import asyncio
import io
import logging
from pathlib import Path

import pytest
from rich.console import Console
from rich.prompt import Prompt

from songsort import cli
from songsort.core.config import Settings


def _build_settings(tmp_path: Path) -> Settings:
    settings = Settings(
        _env_file=None,
        SONGSORT_SONG_LISTS_DIR=str(tmp_path / "song_lists"),
        SONGSORT_STATE_DIR=str(tmp_path / "state"),
    )
    settings.ensure_runtime_dirs()
    return settings


def test_parser_accepts_rank_options() -> None:
    args = cli.build_parser().parse_args(
        ["rank", "pop.yaml", "--song", "Extra", "--strategy", "merge", "--shuffle", "--clean"]
    )

    assert args.command == "rank"
    assert args.song_list == "pop.yaml"
    assert args.song == ["Extra"]
    assert args.strategy == "merge"
    assert args.shuffle is True
    assert args.clean is True
    assert args.import_file is None


def test_parser_defaults_to_combined_mode() -> None:
    args = cli.build_parser().parse_args([])

    assert args.command is None


def test_local_tui_base_url_rewrites_wildcard_hosts() -> None:
    assert cli._local_tui_base_url("0.0.0.0", 8787) == "http://127.0.0.1:8787"
    assert cli._local_tui_base_url("localhost", 9000) == "http://localhost:9000"


def test_configure_logging_sets_root_level() -> None:
    cli.configure_logging("debug")
    assert logging.getLogger().level == logging.DEBUG

    cli.configure_logging("nonsense")
    assert logging.getLogger().level == logging.INFO


def test_run_tests_forwards_pytest_args(monkeypatch) -> None:
    calls: list[list[str]] = []
    monkeypatch.setattr(cli.subprocess, "call", lambda cmd: calls.append(cmd) or 0)
    args = cli.build_parser().parse_args(["test", "--", "-k", "graph"])

    assert cli.run_tests(args) == 0
    assert calls[0][1:] == ["-m", "pytest", "-k", "graph"]


def test_resolve_rank_songs_merges_list_and_extra_songs(tmp_path: Path) -> None:
    settings = _build_settings(tmp_path)
    (settings.song_lists_path / "pop.yaml").write_text("name: Pop\nsongs: [One, Two]\n", encoding="utf-8")
    args = cli.build_parser().parse_args(["rank", "pop.yaml", "--song", "Three", "--song", "One"])

    title, songs = cli._resolve_rank_songs(args, settings)

    assert title == "Pop"
    assert songs == ["One", "Two", "Three"]

    with pytest.raises(ValueError):
        cli._resolve_rank_songs(cli.build_parser().parse_args(["rank"]), settings)


def test_rank_interactive_asks_and_saves_results(monkeypatch, tmp_path: Path) -> None:
    settings = _build_settings(tmp_path)
    monkeypatch.setattr(Prompt, "ask", lambda *args, **kwargs: "2")
    console = Console(file=io.StringIO(), width=120)
    args = cli.build_parser().parse_args(["rank", "--song", "a", "--song", "b", "--title", "Test"])

    assert asyncio.run(cli._rank_interactive(args, settings, console)) == 0

    assert (settings.state_path / "Test-ranking.txt").read_text(encoding="utf-8") == (
        "My Test Song Ranking:\n\n1. b\n2. a"
    )
    assert (settings.state_path / "Test-history.txt").read_text(encoding="utf-8") == (
        "My Test Decision History:\n\n1. b > a"
    )
    assert "Finished after 1 comparisons" in console.file.getvalue()


def test_rank_interactive_applies_imported_history(monkeypatch, tmp_path: Path) -> None:
    settings = _build_settings(tmp_path)
    history = tmp_path / "history.txt"
    history.write_text("1. c > a\n2. a > b\n", encoding="utf-8")
    monkeypatch.setattr(Prompt, "ask", lambda *args, **kwargs: pytest.fail("no question expected"))
    console = Console(file=io.StringIO(), width=120)
    args = cli.build_parser().parse_args(
        ["rank", "--song", "a", "--song", "b", "--song", "c", "--title", "Imp", "--import-file", str(history)]
    )

    assert asyncio.run(cli._rank_interactive(args, settings, console)) == 0

    assert (settings.state_path / "Imp-ranking.txt").read_text(encoding="utf-8").endswith("1. c\n2. a\n3. b")
    assert "Imported 2 decisions" in console.file.getvalue()


def test_rank_interactive_slugs_the_title_for_file_names(monkeypatch, tmp_path: Path) -> None:
    settings = _build_settings(tmp_path)
    monkeypatch.setattr(Prompt, "ask", lambda *args, **kwargs: "1")
    console = Console(file=io.StringIO(), width=120)
    args = cli.build_parser().parse_args(["rank", "--song", "a", "--song", "b", "--title", "My Mix / 2024!"])

    assert asyncio.run(cli._rank_interactive(args, settings, console)) == 0

    assert sorted(path.name for path in settings.state_path.iterdir()) == [
        "My-Mix-2024-history.txt",
        "My-Mix-2024-ranking.txt",
    ]
    assert (settings.state_path / "My-Mix-2024-ranking.txt").read_text(encoding="utf-8").startswith(
        "My My Mix / 2024! Song Ranking:"
    )
