from __future__ import annotations

import asyncio
from typing import Any

from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, DataTable, Footer, Header, Label, Static

from songsort.tui.common import _estimate_ratio, _format_seconds, _progress_bar, _row_key_value
from songsort.tui.screens import NewSessionScreen, RankingScreen
from songsort.tui.service_client import ServiceClient, ServiceClientError


class SongsortTUIApp(App[None]):
    CSS = """
    Screen {
      layout: vertical;
    }

    #root {
      layout: horizontal;
      height: 1fr;
    }

    #sessions-pane {
      width: 2fr;
      border: solid $accent;
      margin: 0 1 1 1;
      padding: 0 1;
    }

    #details-pane {
      width: 1fr;
      border: solid $accent;
      margin: 0 1 1 0;
      padding: 0 1;
    }

    .pane-title {
      text-style: bold;
      color: $accent;
      height: auto;
      margin-top: 1;
    }

    #sessions-table {
      height: 1fr;
      margin-top: 1;
    }

    #session-actions {
      height: 3;
      align-horizontal: left;
      padding-top: 1;
    }

    #session-actions Button {
      margin-right: 1;
      min-width: 14;
    }

    #session-details {
      height: 1fr;
      border: solid $secondary;
      padding: 0 1;
      margin-top: 1;
      margin-bottom: 1;
      overflow: auto;
    }
    """

    BINDINGS = [
        Binding("n", "new_session", "New Session"),
        Binding("enter", "open_selected_session", "Open Session"),
        Binding("d", "dismiss_selected", "Dismiss"),
        Binding("r", "manual_refresh", "Refresh"),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        api_base_url: str,
        *,
        default_strategy: str = "merge-insertion",
        clean_preferences: bool = False,
    ):
        super().__init__()
        self.client = ServiceClient(api_base_url)
        self.default_strategy = default_strategy
        self.clean_preferences = clean_preferences
        self.sessions: list[dict[str, Any]] = []
        self.selected_session_id: str | None = None
        self.song_lists_root: str = "song_lists"
        self.song_list_candidates: list[dict[str, Any]] = []

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Horizontal(id="root"):
            with Vertical(id="sessions-pane"):
                yield Label("Sessions", classes="pane-title")
                yield DataTable(id="sessions-table", cursor_type="row")
                with Horizontal(id="session-actions"):
                    yield Button("New Session (N)", id="new-session", variant="success")
                    yield Button("Open (Enter)", id="open-session", variant="primary")
                    yield Button("Dismiss (D)", id="dismiss-session")
                    yield Button("Refresh (R)", id="refresh")
                    yield Button("Quit (Q)", id="quit", variant="error")
            with Vertical(id="details-pane"):
                yield Label("Session Detail", classes="pane-title")
                yield Static("No session selected", id="session-details", markup=False)
        yield Footer()

    async def on_mount(self) -> None:
        table = self.query_one("#sessions-table", DataTable)
        table.add_columns("Session", "Status", "Strategy", "Songs", "Progress", "Decisions")

        try:
            health = await asyncio.to_thread(self.client.health)
            self.sub_title = f"API {health.get('status', 'unknown')}"
        except ServiceClientError as exc:
            self.sub_title = f"API unavailable: {exc}"

        await self._refresh_song_lists()
        await self.refresh_all()
        self.set_interval(1.0, self._tick_refresh)

    async def _refresh_song_lists(self) -> None:
        try:
            payload = await asyncio.to_thread(self.client.list_song_lists)
        except ServiceClientError:
            self.song_list_candidates = []
            return
        self.song_lists_root = payload.get("song_lists_root", self.song_lists_root)
        self.song_list_candidates = payload.get("candidates", [])

    async def _tick_refresh(self) -> None:
        await self.refresh_all(silent=True)

    async def refresh_all(self, silent: bool = False) -> None:
        try:
            payload = await asyncio.to_thread(self.client.list_sessions)
        except ServiceClientError as exc:
            if not silent:
                self.notify(f"Refresh failed: {exc}", severity="error")
            return

        self.sessions = payload.get("sessions", [])
        self._render_sessions_table()

    def _render_sessions_table(self) -> None:
        table = self.query_one("#sessions-table", DataTable)
        table.clear(columns=False)

        for session in self.sessions:
            table.add_row(
                session.get("session_id", ""),
                str(session.get("status", "")).upper(),
                str(session.get("strategy", "")),
                str(len(session.get("songs", []))),
                _progress_bar(_estimate_ratio(session)),
                str(len(session.get("decisions", []))),
                key=session.get("session_id", ""),
            )

        if self.selected_session_id:
            try:
                row_index = table.get_row_index(self.selected_session_id)
                table.move_cursor(row=row_index)
            except Exception:  # noqa: BLE001
                pass

        self._render_selected_session_details()

    def _selected_session(self) -> dict[str, Any] | None:
        return next((item for item in self.sessions if item.get("session_id") == self.selected_session_id), None)

    def _render_selected_session_details(self) -> None:
        details = self.query_one("#session-details", Static)
        if not self.selected_session_id:
            details.update("No session selected")
            return

        session = self._selected_session()
        if not session:
            details.update("Selected session no longer available")
            return

        estimate = session.get("estimate", {})
        request = session.get("active_request") or {}
        direct = [item for item in session.get("decisions", []) if item.get("kind") == "direct"]
        elapsed = [item["elapsed_seconds"] for item in direct if item.get("elapsed_seconds") is not None]
        lines = [
            f"Session: {session.get('session_id')}",
            f"Title: {session.get('title')}",
            f"Status: {str(session.get('status', '')).upper()}",
            f"Strategy: {session.get('strategy')}",
            f"Songs: {len(session.get('songs', []))}",
            f"Comparisons: {estimate.get('completed', 0)} "
            f"(best {estimate.get('best_case', 0)}, worst {estimate.get('worst_case', 0)})",
            f"Direct decisions: {len(direct)}",
            f"Time spent: {_format_seconds(sum(elapsed)) if elapsed else '-'}",
        ]
        if request:
            lines.append(f"Waiting on: {request.get('left')} vs {request.get('right')}")
        if session.get("error"):
            lines.append(f"Error: {session['error']}")
        lines.extend(["", "Actions: Enter open, D dismiss, N new, R refresh"])

        ranking = session.get("ranking")
        if ranking:
            lines.extend(["", "Ranking:"])
            lines.extend(f"{index}. {song}" for index, song in enumerate(ranking, start=1))

        details.update("\n".join(lines))

    @on(DataTable.RowHighlighted, "#sessions-table")
    def on_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        session_id = _row_key_value(event.row_key)
        if not session_id:
            return
        self.selected_session_id = session_id
        self._render_selected_session_details()

    @on(DataTable.RowSelected, "#sessions-table")
    def on_row_selected(self, event: DataTable.RowSelected) -> None:
        session_id = _row_key_value(event.row_key)
        if not session_id:
            return
        self.selected_session_id = session_id
        self.action_open_selected_session()

    @on(Button.Pressed, "#refresh")
    async def on_refresh_pressed(self) -> None:
        await self.refresh_all()

    async def action_manual_refresh(self) -> None:
        await self.refresh_all()

    @on(Button.Pressed, "#new-session")
    def on_new_session_pressed(self) -> None:
        self.action_new_session()

    @on(Button.Pressed, "#open-session")
    def on_open_session_pressed(self) -> None:
        self.action_open_selected_session()

    @on(Button.Pressed, "#dismiss-session")
    async def on_dismiss_session_pressed(self) -> None:
        await self.action_dismiss_selected()

    def action_new_session(self) -> None:
        self.run_worker(self._new_session_flow(), group="new-session", exclusive=True)

    def action_open_selected_session(self) -> None:
        if not self.selected_session_id:
            self.notify("Select a session first", severity="warning")
            return
        self.push_screen(
            RankingScreen(
                client=self.client,
                session_id=self.selected_session_id,
                clean_default=self.clean_preferences,
            )
        )

    async def action_dismiss_selected(self) -> None:
        if not self.selected_session_id:
            self.notify("Select a session first", severity="warning")
            return

        try:
            await asyncio.to_thread(self.client.dismiss_session, self.selected_session_id)
        except ServiceClientError as exc:
            self.notify(f"Dismiss failed: {exc}", severity="error")
            return

        dismissed_session_id = self.selected_session_id
        self.selected_session_id = None
        self.notify(f"Dismissed session: {dismissed_session_id}", severity="information")
        await self.refresh_all()

    async def _new_session_flow(self) -> None:
        await self._refresh_song_lists()

        screen = NewSessionScreen(
            client=self.client,
            song_list_candidates=self.song_list_candidates,
            default_strategy=self.default_strategy,
        )
        payload = await self.push_screen_wait(screen)
        if not payload:
            return

        try:
            session = await asyncio.to_thread(self.client.create_session, payload)
        except ServiceClientError as exc:
            self.notify(f"Start failed: {exc}", severity="error")
            return

        self.selected_session_id = session.get("session_id")
        self.notify(f"Started session: {self.selected_session_id}", severity="information")
        await self.refresh_all()
        self.action_open_selected_session()

    @on(Button.Pressed, "#quit")
    def on_quit_pressed(self) -> None:
        self.exit()


def run_tui(api_base_url: str, *, default_strategy: str = "merge-insertion", clean_preferences: bool = False) -> None:
    app = SongsortTUIApp(
        api_base_url=api_base_url,
        default_strategy=default_strategy,
        clean_preferences=clean_preferences,
    )
    app.run()
