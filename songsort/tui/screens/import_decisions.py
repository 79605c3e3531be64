from __future__ import annotations

from typing import Any

from textual import on
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Checkbox, Label, Static, TextArea


class ImportDecisionsScreen(ModalScreen[dict[str, Any] | None]):
    CSS = """
    ImportDecisionsScreen {
      align: center middle;
    }

    #import-root {
      width: 80%;
      height: 80%;
      border: heavy $accent;
      background: $panel;
      padding: 0 1;
    }

    #import-title {
      text-style: bold;
      color: $accent;
      height: auto;
      margin-top: 1;
    }

    #import-help {
      color: $text-muted;
      height: auto;
      margin-bottom: 1;
    }

    #import-text {
      height: 1fr;
      border: round $secondary;
    }

    #import-actions {
      height: 3;
      align-horizontal: left;
      padding-top: 1;
    }

    #import-actions Button {
      margin-right: 1;
      min-width: 14;
    }
    """

    BINDINGS = [
        Binding("ctrl+enter", "submit", "Import"),
        Binding("ctrl+s", "submit", "Import"),
        Binding("escape", "cancel", "Cancel"),
    ]

    def __init__(self, *, clean_default: bool = False):
        super().__init__()
        self.clean_default = clean_default

    def compose(self) -> ComposeResult:
        with Container(id="import-root"):
            yield Label("Import Decisions", id="import-title")
            yield Static(
                'Paste lines like "1. Song A > Song B". Quote names that contain ">".',
                id="import-help",
            )
            yield TextArea("", id="import-text")
            yield Checkbox("Clean preferences (closure + reduction)", value=self.clean_default, id="import-clean")
            with Horizontal(id="import-actions"):
                yield Button("Import (Ctrl+S)", id="import-confirm", variant="success")
                yield Button("Cancel (Esc)", id="import-cancel", variant="error")

    async def on_mount(self) -> None:
        self.set_focus(self.query_one("#import-text", TextArea))

    def action_submit(self) -> None:
        text = self.query_one("#import-text", TextArea).text
        if not text.strip():
            self.notify("No decisions to import", severity="warning")
            self.dismiss(None)
            return
        self.dismiss({"text": text, "clean": bool(self.query_one("#import-clean", Checkbox).value)})

    def action_cancel(self) -> None:
        self.dismiss(None)

    @on(Button.Pressed, "#import-confirm")
    def on_confirm_pressed(self) -> None:
        self.action_submit()

    @on(Button.Pressed, "#import-cancel")
    def on_cancel_pressed(self) -> None:
        self.action_cancel()
