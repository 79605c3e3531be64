from __future__ import annotations

import argparse
import asyncio
import logging
import subprocess
import sys
import time
import urllib.error
import urllib.request
from pathlib import Path


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | int = "INFO") -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="songsort (no subcommand runs API + TUI)")
    subparsers = parser.add_subparsers(dest="command", required=False)

    all_parser = subparsers.add_parser("all", help="Run API and TUI together in one command")
    all_parser.add_argument("--host", default=None)
    all_parser.add_argument("--port", type=int, default=None)
    all_parser.add_argument(
        "--api-base-url",
        default=None,
        help="Override API URL used by the TUI when running in combined mode",
    )

    api_parser = subparsers.add_parser("api", help="Run songsort API service")
    api_parser.add_argument("--host", default=None)
    api_parser.add_argument("--port", type=int, default=None)

    tui_parser = subparsers.add_parser("tui", help="Run Textual TUI")
    tui_parser.add_argument(
        "--api-base-url",
        default=None,
        help="Base URL of the songsort API service (default from env SONGSORT_API_BASE_URL)",
    )

    rank_parser = subparsers.add_parser("rank", help="Rank songs interactively in this terminal")
    rank_parser.add_argument("song_list", nargs="?", default=None, help="Song list YAML file")
    rank_parser.add_argument("--song", action="append", default=[], help="Song to rank (repeatable)")
    rank_parser.add_argument("--title", default=None)
    rank_parser.add_argument("--strategy", choices=["merge", "merge-insertion"], default=None)
    rank_parser.add_argument("--shuffle", action="store_true", default=None)
    rank_parser.add_argument("--import-file", default=None, help="Decision history to import before ranking")
    rank_parser.add_argument("--clean", action="store_true", default=None, help="Clean imports and exports")

    test_parser = subparsers.add_parser("test", help="Run all tests with pytest")
    test_parser.add_argument(
        "pytest_args",
        nargs=argparse.REMAINDER,
        help="Optional extra pytest args; use `--` before args (e.g. songsort test -- -k graph)",
    )

    return parser


def run_tests(args: argparse.Namespace) -> int:
    cmd = [sys.executable, "-m", "pytest"]
    if args.pytest_args:
        cmd.extend(arg for arg in args.pytest_args if arg != "--")
    print("Running:", " ".join(cmd))
    return subprocess.call(cmd)


def _local_tui_base_url(host: str, port: int) -> str:
    if host in {"0.0.0.0", "::", "::0", "[::]"}:
        host = "127.0.0.1"
    return f"http://{host}:{port}"


def _wait_for_api_ready(base_url: str, timeout_seconds: float = 30.0) -> None:
    deadline = time.time() + timeout_seconds
    health_url = f"{base_url.rstrip('/')}/health"
    while time.time() < deadline:
        try:
            with urllib.request.urlopen(health_url, timeout=2) as response:
                if response.status == 200:
                    return
        except (urllib.error.URLError, TimeoutError, ConnectionError):
            pass
        time.sleep(0.5)
    raise RuntimeError(f"Timed out waiting for API readiness at {health_url}")


def _stop_process(process: subprocess.Popen[str]) -> None:
    if process.poll() is None:
        process.terminate()
        try:
            process.wait(timeout=10)
        except subprocess.TimeoutExpired:
            process.kill()


def run_all(args: argparse.Namespace) -> int:
    from songsort.core.config import get_settings
    from songsort.tui.app import run_tui

    settings = get_settings()
    host = getattr(args, "host", None) or settings.api_host
    port = getattr(args, "port", None) or settings.api_port
    api_base_url = getattr(args, "api_base_url", None) or _local_tui_base_url(host, port)

    log_path: Path = settings.state_path / "combined_api.log"
    cmd = [
        sys.executable,
        "-m",
        "songsort",
        "api",
        "--host",
        host,
        "--port",
        str(port),
    ]

    print(f"Starting API in background on {host}:{port} (logs: {log_path})")
    with log_path.open("a", encoding="utf-8") as log_file:
        api_process = subprocess.Popen(
            cmd,
            stdout=log_file,
            stderr=subprocess.STDOUT,
            text=True,
        )

        try:
            _wait_for_api_ready(api_base_url)
        except Exception as exc:  # noqa: BLE001
            _stop_process(api_process)
            print(f"Failed to start API: {exc}", file=sys.stderr)
            return 1

        try:
            run_tui(
                api_base_url,
                default_strategy=settings.default_strategy.value,
                clean_preferences=settings.clean_preferences,
            )
            return 0
        finally:
            _stop_process(api_process)


def _resolve_rank_songs(args: argparse.Namespace, settings) -> tuple[str, list[str]]:
    from songsort.core.song_lists import load_song_list

    songs = [song.strip() for song in args.song if song.strip()]
    title = args.title
    if args.song_list:
        song_list = load_song_list(settings, args.song_list)
        songs = list(song_list.songs) + [song for song in songs if song not in song_list.songs]
        title = title or song_list.name
    if not songs:
        raise ValueError("Pass a song list file or at least one --song")
    if len(set(songs)) != len(songs):
        raise ValueError("Songs must be unique")
    return title or "Song", songs


async def _rank_interactive(args: argparse.Namespace, settings, console) -> int:
    from rich.prompt import Prompt
    from rich.table import Table

    from songsort.core.decision_text import format_decisions, format_ranking, parse_decision_lines
    from songsort.core.models import Direction
    from songsort.runtime.engine import ComparisonEngine
    from songsort.runtime.importer import reconcile_imports
    from songsort.runtime.session_manager import slugify
    from songsort.runtime.strategies import create_strategy

    title, songs = _resolve_rank_songs(args, settings)
    strategy_name = args.strategy or settings.default_strategy
    shuffle = settings.shuffle if args.shuffle is None else args.shuffle
    clean = settings.clean_preferences if args.clean is None else args.clean

    engine = ComparisonEngine(notice_limit=settings.notice_limit)
    engine.notice_listeners.append(lambda message: console.print(f"[dim]{message}[/dim]"))
    strategy = create_strategy(strategy_name, engine)

    task = asyncio.create_task(strategy.run(songs, shuffle=shuffle))

    async def settle() -> None:
        while not task.done() and engine.active_request is None:
            await asyncio.sleep(0)

    await settle()
    if args.import_file:
        text = Path(args.import_file).expanduser().read_text(encoding="utf-8")
        parsed = parse_decision_lines(text)
        if parsed:
            summary = reconcile_imports(engine, parsed, songs, clean=clean)
            engine.notify(summary.message())
        else:
            console.print("[yellow]No valid decisions found in import file[/yellow]")
        await settle()

    while not task.done():
        request = engine.active_request
        if request is None:
            await settle()
            continue
        console.print(f"\n[bold]{engine.estimate.label()}[/bold] ({engine.estimate.progress_ratio():.0%})")
        console.print(f"  [cyan]1[/cyan]. {request.left}")
        console.print(f"  [cyan]2[/cyan]. {request.right}")
        choice = await asyncio.to_thread(Prompt.ask, "Which do you prefer?", choices=["1", "2"], console=console)
        engine.resolve(Direction.LEFT if choice == "1" else Direction.RIGHT)
        await settle()

    ranking = await task

    table = Table(title=f"My {title} Song Ranking")
    table.add_column("#", justify="right")
    table.add_column("Song")
    for index, song in enumerate(ranking, start=1):
        table.add_row(str(index), song)
    console.print(table)
    console.print(f"Finished after {engine.estimate.completed} comparisons")

    state_dir = settings.state_path
    stem = slugify(title)
    (state_dir / f"{stem}-ranking.txt").write_text(format_ranking(title, ranking), encoding="utf-8")
    (state_dir / f"{stem}-history.txt").write_text(
        format_decisions(title, engine.decisions, partial=False, clean=clean),
        encoding="utf-8",
    )
    console.print(f"Saved ranking and decision history to {state_dir}")
    return 0


def run_rank(args: argparse.Namespace) -> int:
    from rich.console import Console

    from songsort.core.config import get_settings

    settings = get_settings()
    console = Console()
    try:
        return asyncio.run(_rank_interactive(args, settings, console))
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[red]{exc}[/red]")
        return 2
    except KeyboardInterrupt:
        console.print("\n[yellow]Ranking aborted[/yellow]")
        return 130


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    from songsort.core.config import get_settings

    if args.command in {None, "all"}:
        raise SystemExit(run_all(args))

    if args.command == "api":
        import uvicorn

        from songsort.app.api import create_app

        settings = get_settings()
        configure_logging(settings.log_level)
        host = args.host or settings.api_host
        port = args.port or settings.api_port
        uvicorn.run(create_app(settings), host=host, port=port, log_level=settings.log_level.lower())
        return

    if args.command == "tui":
        from songsort.tui.app import run_tui

        settings = get_settings()
        base_url = args.api_base_url or settings.api_base_url
        run_tui(
            base_url,
            default_strategy=settings.default_strategy.value,
            clean_preferences=settings.clean_preferences,
        )
        return

    if args.command == "rank":
        # Info logs would interleave with the prompts.
        configure_logging("WARNING")
        raise SystemExit(run_rank(args))

    if args.command == "test":
        raise SystemExit(run_tests(args))

    parser.print_help()


if __name__ == "__main__":
    main()
