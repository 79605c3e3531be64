from __future__ import annotations

import asyncio
from typing import Any

from textual import on
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, DataTable, Label, Static, TextArea

from songsort.tui.common import _estimate_label, _estimate_ratio, _format_seconds, _progress_bar
from songsort.tui.screens.import_decisions import ImportDecisionsScreen
from songsort.tui.service_client import ServiceClient, ServiceClientError


class RankingScreen(ModalScreen[None]):
    CSS = """
    RankingScreen {
      align: center middle;
    }

    #ranking-root {
      width: 98%;
      height: 98%;
      border: heavy $accent;
      background: $panel;
      padding: 0 1;
    }

    #ranking-title {
      text-style: bold;
      color: $accent;
      height: auto;
      margin-top: 1;
    }

    #ranking-progress,
    #ranking-notice {
      color: $text-muted;
      height: auto;
    }

    #ranking-choices {
      height: 5;
      margin-top: 1;
    }

    #ranking-choices Button {
      width: 1fr;
      height: 5;
      margin-right: 1;
    }

    #ranking-body {
      height: 1fr;
      layout: horizontal;
      margin-top: 1;
    }

    #ranking-table {
      width: 40%;
      margin-right: 1;
    }

    #history-table {
      width: 30%;
      margin-right: 1;
    }

    #ranking-export {
      width: 30%;
      border: round $secondary;
    }

    #ranking-actions {
      height: 3;
      align-horizontal: left;
      padding-top: 1;
    }

    #ranking-actions Button {
      margin-right: 1;
      min-width: 14;
    }
    """

    BINDINGS = [
        Binding("1", "choose_left", "Left"),
        Binding("left", "choose_left", "Left"),
        Binding("2", "choose_right", "Right"),
        Binding("right", "choose_right", "Right"),
        Binding("i", "import_decisions", "Import"),
        Binding("e", "export", "Export"),
        Binding("r", "refresh", "Refresh"),
        Binding("escape", "close", "Close"),
    ]

    def __init__(self, *, client: ServiceClient, session_id: str, clean_default: bool = False):
        super().__init__()
        self.client = client
        self.session_id = session_id
        self.clean_default = clean_default
        self.session: dict[str, Any] | None = None
        self._resolving = False

    def compose(self) -> ComposeResult:
        with Container(id="ranking-root"):
            yield Label(f"Ranking - {self.session_id}", id="ranking-title")
            yield Static("Loading session...", id="ranking-progress", markup=False)
            yield Static("", id="ranking-notice", markup=False)
            with Horizontal(id="ranking-choices"):
                yield Button("-", id="choose-left", variant="primary")
                yield Button("-", id="choose-right", variant="primary")
            with Horizontal(id="ranking-body"):
                yield DataTable(id="ranking-table", cursor_type="row")
                yield DataTable(id="history-table", cursor_type="row")
                with Vertical(id="ranking-export"):
                    yield TextArea("", id="export-text", read_only=True)
            with Horizontal(id="ranking-actions"):
                yield Button("Import (I)", id="ranking-import")
                yield Button("Export (E)", id="ranking-export-button")
                yield Button("Refresh (R)", id="ranking-refresh")
                yield Button("Close (Esc)", id="ranking-close", variant="error")

    async def on_mount(self) -> None:
        self.query_one("#ranking-table", DataTable).add_columns("#", "Song")
        self.query_one("#history-table", DataTable).add_columns("", "Chosen", "Rejected", "Time")
        await self.action_refresh()
        self.set_interval(1.0, self._tick_refresh)

    async def _tick_refresh(self) -> None:
        await self.action_refresh(silent=True)

    async def action_refresh(self, silent: bool = False) -> None:
        try:
            payload = await asyncio.to_thread(self.client.get_session, self.session_id)
        except ServiceClientError as exc:
            if not silent:
                self.notify(f"Refresh failed: {exc}", severity="error")
            return
        self._apply_session(payload)

    def _apply_session(self, payload: dict[str, Any]) -> None:
        self.session = payload
        self._render_choices()
        self._render_progress()
        self._render_ranking()
        self._render_history()

    def _render_choices(self) -> None:
        left = self.query_one("#choose-left", Button)
        right = self.query_one("#choose-right", Button)
        request = (self.session or {}).get("active_request")
        if not request:
            left.label = "-"
            right.label = "-"
            left.disabled = True
            right.disabled = True
            return
        left.label = f"1. {request.get('left', '')}"
        right.label = f"2. {request.get('right', '')}"
        left.disabled = False
        right.disabled = False

    def _render_progress(self) -> None:
        progress = self.query_one("#ranking-progress", Static)
        notice = self.query_one("#ranking-notice", Static)
        session = self.session or {}
        status = str(session.get("status", "")).upper()
        if status == "COMPLETED":
            label = f"Done after {session.get('estimate', {}).get('completed', 0)} comparisons"
        elif status == "FAILED":
            label = f"Failed: {session.get('error')}"
        else:
            label = _estimate_label(session)
        progress.update(f"{status} | {label} | {_progress_bar(_estimate_ratio(session), width=24)}")
        notices = session.get("notices", [])
        notice.update(notices[-1] if notices else "")

    def _render_ranking(self) -> None:
        table = self.query_one("#ranking-table", DataTable)
        table.clear(columns=False)
        ranking = (self.session or {}).get("ranking")
        if not ranking:
            table.add_row("-", "(ranking not complete)")
            return
        for index, song in enumerate(ranking, start=1):
            table.add_row(str(index), song)

    def _render_history(self) -> None:
        table = self.query_one("#history-table", DataTable)
        table.clear(columns=False)
        for decision in reversed((self.session or {}).get("decisions", [])):
            kind = decision.get("kind")
            if kind == "imported":
                marker = "X"
            elif kind == "inferred" or decision.get("ordinal") is None:
                marker = "I"
            else:
                marker = str(decision.get("ordinal"))
            table.add_row(
                marker,
                decision.get("chosen", ""),
                decision.get("rejected", ""),
                _format_seconds(decision.get("elapsed_seconds")),
            )

    async def _choose(self, direction: str) -> None:
        if self._resolving or not (self.session or {}).get("active_request"):
            return
        self._resolving = True
        try:
            payload = await asyncio.to_thread(self.client.resolve, self.session_id, direction)
        except ServiceClientError as exc:
            self.notify(f"Resolve failed: {exc}", severity="error")
            return
        finally:
            self._resolving = False
        self._apply_session(payload)
        if str(payload.get("status", "")).upper() == "COMPLETED":
            self.notify("Ranking complete", severity="information")

    async def action_choose_left(self) -> None:
        await self._choose("left")

    async def action_choose_right(self) -> None:
        await self._choose("right")

    def action_import_decisions(self) -> None:
        self.run_worker(self._import_flow(), group="import-decisions", exclusive=True)

    async def _import_flow(self) -> None:
        result = await self.app.push_screen_wait(ImportDecisionsScreen(clean_default=self.clean_default))
        if not result:
            return
        try:
            payload = await asyncio.to_thread(
                self.client.import_decisions,
                self.session_id,
                result["text"],
                result.get("clean"),
            )
        except ServiceClientError as exc:
            self.notify(f"Import failed: {exc}", severity="error")
            return
        self.notify(str(payload.get("message", "Imported")), severity="information")
        self._apply_session(payload.get("session", {}))

    async def action_export(self) -> None:
        completed = str((self.session or {}).get("status", "")).upper() == "COMPLETED"
        kinds = ["ranking", "history"] if completed else ["preferences"]
        parts: list[str] = []
        try:
            for kind in kinds:
                payload = await asyncio.to_thread(self.client.export_session, self.session_id, kind, self.clean_default)
                parts.append(str(payload.get("text", "")))
        except ServiceClientError as exc:
            self.notify(f"Export failed: {exc}", severity="error")
            return
        text = "\n\n".join(part.rstrip() for part in parts)
        self.query_one("#export-text", TextArea).load_text(text)
        self.app.copy_to_clipboard(text)
        self.notify("Export copied to clipboard", severity="information")

    def action_close(self) -> None:
        self.dismiss(None)

    @on(Button.Pressed, "#choose-left")
    async def on_left_pressed(self) -> None:
        await self.action_choose_left()

    @on(Button.Pressed, "#choose-right")
    async def on_right_pressed(self) -> None:
        await self.action_choose_right()

    @on(Button.Pressed, "#ranking-import")
    def on_import_pressed(self) -> None:
        self.action_import_decisions()

    @on(Button.Pressed, "#ranking-export-button")
    async def on_export_pressed(self) -> None:
        await self.action_export()

    @on(Button.Pressed, "#ranking-refresh")
    async def on_refresh_pressed(self) -> None:
        await self.action_refresh()

    @on(Button.Pressed, "#ranking-close")
    def on_close_pressed(self) -> None:
        self.action_close()
