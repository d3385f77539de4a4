"""Payment method selection and UPI scan modals."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Awaitable, Callable

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static

from biller.billing import PaymentMethod
from biller.errors import BillerError
from biller.form_modal import FormOutcome
from biller.money import format_money
from biller.upi import qr_text

_METHOD_KEYS: dict[str, PaymentMethod] = {
    "c": PaymentMethod.CASH,
    "u": PaymentMethod.UPI,
    "b": PaymentMethod.BOTH,
    "p": PaymentMethod.PENDING,
}


class PaymentMethodModal(ModalScreen[FormOutcome | None]):
    """Pick how the bill is paid; Esc cancels back to the open table."""

    CSS = """
    PaymentMethodModal {
        align: center middle;
        background: $background 60%;
    }

    #method-dialog {
        width: 44;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #method-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #method-error {
        color: #ffb3b3;
    }
    """

    def __init__(self, amount: Decimal, on_choose: Callable[[PaymentMethod], Awaitable[Any]]) -> None:
        super().__init__()
        self.amount = amount
        self.on_choose = on_choose
        self.busy = False

    def compose(self) -> ComposeResult:
        with Container(id="method-dialog"):
            yield Static(f"Select Payment Method  {format_money(self.amount)}", id="method-title")
            yield Static(self._options(), id="method-options")
            yield Static(id="method-error")

    def _options(self) -> Text:
        text = Text(style="white")
        for idx, (key, method) in enumerate(_METHOD_KEYS.items()):
            if idx > 0:
                text.append("\n")
            text.append(f" {key.upper()} ", style="bold #ffffff on #2f6db5")
            text.append(f" {method.value}")
        text.append("\n")
        text.append(" Esc ", style="bold #ffffff on #b23a48")
        text.append(" Cancel")
        return text

    async def on_key(self, event: Key) -> None:
        event.stop()
        event.prevent_default()
        if self.busy:
            return
        if event.key in {"escape", "q", "ctrl+c"}:
            self.dismiss(None)
            return
        method = _METHOD_KEYS.get((event.character or "").lower())
        if method is None:
            return
        self.busy = True
        try:
            result = await self.on_choose(method)
        except BillerError as exc:
            self.query_one("#method-error", Static).update(str(exc))
            return
        finally:
            self.busy = False
        self.dismiss(FormOutcome(result))


class UpiScanModal(ModalScreen[FormOutcome | None]):
    """Show the UPI QR code for the amount due; Enter marks it paid."""

    CSS = """
    UpiScanModal {
        align: center middle;
        background: $background 60%;
    }

    #upi-dialog {
        width: auto;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #upi-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #upi-code {
        width: auto;
        margin-bottom: 1;
    }

    #upi-error {
        color: #ffb3b3;
    }

    #upi-help {
        color: #dddddd;
    }
    """

    def __init__(self, amount: Decimal, link: str, on_paid: Callable[[], Awaitable[Any]]) -> None:
        super().__init__()
        self.amount = amount
        self.link = link
        self.on_paid = on_paid
        self.busy = False

    def compose(self) -> ComposeResult:
        with Container(id="upi-dialog"):
            yield Static(f"Scan to Pay {format_money(self.amount)}", id="upi-title")
            yield Static(qr_text(self.link), id="upi-code")
            yield Static(id="upi-error")
            yield Static("Enter paid. Esc close.", id="upi-help")

    async def on_key(self, event: Key) -> None:
        event.stop()
        event.prevent_default()
        if self.busy:
            return
        if event.key in {"escape", "q", "ctrl+c"}:
            self.dismiss(None)
            return
        if event.key != "enter":
            return
        self.busy = True
        try:
            result = await self.on_paid()
        except BillerError as exc:
            self.query_one("#upi-error", Static).update(str(exc))
            return
        finally:
            self.busy = False
        self.dismiss(FormOutcome(result))
