"""Keyboard-driven entry modal with one or more fields."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static

from biller.errors import BillerError

AMOUNT = "amount"
SIGNED_AMOUNT = "signed_amount"
TEXT = "text"


@dataclass(frozen=True)
class FormField:
    label: str
    kind: str = TEXT
    max_length: int = 40


@dataclass(frozen=True)
class FormOutcome:
    """Wraps whatever the submit handler returned; a canceled form dismisses with None."""

    result: Any


class FormModal(ModalScreen[FormOutcome | None]):
    """
    Collect draft values and hand them to `on_submit` on Enter.

    The handler raising a BillerError keeps the modal open with the message
    shown inline, so the draft is only committed once it is accepted.
    """

    CSS = """
    FormModal {
        align: center middle;
        background: $background 60%;
    }

    #form-dialog {
        width: 60;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #form-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #form-prompt {
        color: white;
        margin-bottom: 1;
    }

    #form-fields {
        border: heavy $secondary;
        padding: 0 1;
        color: white;
        margin-bottom: 1;
    }

    #form-error {
        color: #ffb3b3;
        margin-bottom: 1;
    }

    #form-help {
        color: #dddddd;
    }
    """

    def __init__(
        self,
        title: str,
        prompt: str,
        fields: list[FormField],
        on_submit: Callable[[list[str]], Awaitable[Any]],
    ) -> None:
        super().__init__()
        self.form_title = title
        self.prompt = prompt
        self.fields = fields
        self.on_submit = on_submit
        self.values = ["" for _ in fields]
        self.active = 0
        self.error = ""
        self.submitting = False

    def compose(self) -> ComposeResult:
        with Container(id="form-dialog"):
            yield Static(self.form_title, id="form-title")
            yield Static(self.prompt, id="form-prompt")
            yield Static(id="form-fields")
            yield Static(id="form-error")
            help_text = "Enter confirm. Backspace delete. Esc cancel."
            if len(self.fields) > 1:
                help_text = "Tab next field. " + help_text
            yield Static(help_text, id="form-help")

    def on_mount(self) -> None:
        self._refresh_content()

    async def on_key(self, event: Key) -> None:
        event.stop()
        event.prevent_default()
        if self.submitting:
            return

        if event.key in {"escape", "ctrl+c"}:
            self.dismiss(None)
            return

        if event.key in {"tab", "down"}:
            self.active = (self.active + 1) % len(self.fields)
        elif event.key in {"shift+tab", "up"}:
            self.active = (self.active - 1) % len(self.fields)
        elif event.key == "enter":
            await self._confirm()
            return
        elif event.key == "backspace":
            self.values[self.active] = self.values[self.active][:-1]
            self.error = ""
        elif event.is_printable and event.character and self._accepts(event.character):
            if len(self.values[self.active]) < self.fields[self.active].max_length:
                self.values[self.active] += event.character
            self.error = ""
        self._refresh_content()

    def _accepts(self, char: str) -> bool:
        field = self.fields[self.active]
        current = self.values[self.active]
        if field.kind == TEXT:
            return True
        if char.isdigit():
            return True
        if char == "." and "." not in current:
            return True
        return field.kind == SIGNED_AMOUNT and char == "-" and not current

    async def _confirm(self) -> None:
        self.submitting = True
        try:
            result = await self.on_submit(list(self.values))
        except BillerError as exc:
            self.error = str(exc)
            self._refresh_content()
            return
        finally:
            self.submitting = False
        self.dismiss(FormOutcome(result))

    def _refresh_content(self) -> None:
        content = Text(style="white")
        for idx, (field, value) in enumerate(zip(self.fields, self.values)):
            if idx > 0:
                content.append("\n")
            pointer = "➤ " if idx == self.active else "  "
            cursor = "|" if idx == self.active else ""
            content.append(f"{pointer}{field.label}: ", style="bold white" if idx == self.active else "white")
            content.append(f"{value}{cursor}")
        self.query_one("#form-fields", Static).update(content)
        self.query_one("#form-error", Static).update(self.error or "")
