from __future__ import annotations

import asyncio
from typing import Any

from textual import on
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Checkbox, Input, Label, RadioButton, RadioSet, Select, Static, TextArea

from songsort.tui.service_client import ServiceClient, ServiceClientError


class NewSessionScreen(ModalScreen[dict[str, Any] | None]):
    CSS = """
    NewSessionScreen {
      align: center middle;
    }

    #new-root {
      width: 90%;
      height: 95%;
      border: heavy $accent;
      background: $panel;
      padding: 0 1;
    }

    #new-title {
      text-style: bold;
      color: $accent;
      height: auto;
      margin-top: 1;
    }

    .label {
      color: $text-muted;
      height: auto;
      margin-top: 1;
    }

    .row {
      height: auto;
    }

    #song-list-select {
      width: 1fr;
    }

    #songs {
      height: 1fr;
      border: round $secondary;
    }

    #new-actions {
      height: 3;
      align-horizontal: left;
      padding-top: 1;
    }

    #new-actions Button,
    .row Button {
      margin-right: 1;
      min-width: 14;
    }
    """

    BINDINGS = [
        Binding("ctrl+s", "submit", "Start"),
        Binding("escape", "cancel", "Cancel"),
    ]

    def __init__(
        self,
        *,
        client: ServiceClient,
        song_list_candidates: list[dict[str, Any]],
        default_strategy: str = "merge-insertion",
    ):
        super().__init__()
        self.client = client
        self.song_list_candidates = song_list_candidates
        self.default_strategy = default_strategy

    def compose(self) -> ComposeResult:
        options = [
            (str(item.get("relative_to_song_lists", item.get("path", ""))), str(item.get("path", "")))
            for item in self.song_list_candidates
        ]
        with Container(id="new-root"):
            yield Label("New Ranking Session", id="new-title")
            yield Label("Song list file (optional)", classes="label")
            with Horizontal(classes="row"):
                yield Select(options=options, prompt="Pick a song list", id="song-list-select")
                yield Button("Load", id="load-song-list")
            yield Label("Title", classes="label")
            yield Input(id="session-title", placeholder="My favourite songs")
            yield Label("Songs (one per line)", classes="label")
            yield TextArea("", id="songs")
            with Horizontal(classes="row"):
                with Vertical():
                    yield Label("Strategy", classes="label")
                    with RadioSet(id="strategy-radio"):
                        yield RadioButton(
                            "Merge-insertion (fewest questions)",
                            id="strategy-merge-insertion",
                            value=self.default_strategy == "merge-insertion",
                        )
                        yield RadioButton("Merge sort", id="strategy-merge", value=self.default_strategy == "merge")
                with Vertical():
                    yield Label("Options", classes="label")
                    yield Checkbox("Shuffle songs first", id="shuffle")
            yield Static("Ctrl+S start | Esc cancel", classes="label")
            with Horizontal(id="new-actions"):
                yield Button("Start (Ctrl+S)", id="start-session", variant="success")
                yield Button("Cancel (Esc)", id="cancel-session", variant="error")

    async def on_mount(self) -> None:
        self.set_focus(self.query_one("#session-title", Input))

    def _collect_songs(self) -> list[str]:
        raw = self.query_one("#songs", TextArea).text
        return [line.strip() for line in raw.splitlines() if line.strip()]

    def _build_payload(self) -> dict[str, Any] | None:
        songs = self._collect_songs()
        if not songs:
            self.notify("Add at least one song", severity="warning")
            return None
        if len(set(songs)) != len(songs):
            self.notify("Songs must be unique", severity="warning")
            return None

        strategy = "merge" if self.query_one("#strategy-merge", RadioButton).value else "merge-insertion"
        title = self.query_one("#session-title", Input).value.strip()
        return {
            "title": title or None,
            "songs": songs,
            "strategy": strategy,
            "shuffle": bool(self.query_one("#shuffle", Checkbox).value),
        }

    async def action_load_song_list(self) -> None:
        value = self.query_one("#song-list-select", Select).value
        if not isinstance(value, str) or not value:
            self.notify("Pick a song list first", severity="warning")
            return

        try:
            payload = await asyncio.to_thread(self.client.load_song_list, value)
        except ServiceClientError as exc:
            self.notify(f"Load failed: {exc}", severity="error")
            return

        self.query_one("#songs", TextArea).load_text("\n".join(payload.get("songs", [])))
        title = self.query_one("#session-title", Input)
        if not title.value.strip():
            title.value = str(payload.get("name", ""))
        self.notify(f"Loaded {len(payload.get('songs', []))} songs", severity="information")

    def action_submit(self) -> None:
        payload = self._build_payload()
        if payload is not None:
            self.dismiss(payload)

    def action_cancel(self) -> None:
        self.dismiss(None)

    @on(Button.Pressed, "#load-song-list")
    async def on_load_pressed(self) -> None:
        await self.action_load_song_list()

    @on(Button.Pressed, "#start-session")
    def on_start_pressed(self) -> None:
        self.action_submit()

    @on(Button.Pressed, "#cancel-session")
    def on_cancel_pressed(self) -> None:
        self.action_cancel()
