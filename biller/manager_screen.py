"""Manager screen: date-ranged bills, transactions, registers and pending settlement."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.events import Key
from textual.screen import Screen
from textual.widgets import Header, Static

from biller.errors import PartialWriteError
from biller.form_modal import AMOUNT, SIGNED_AMOUNT, TEXT, FormField, FormModal, FormOutcome
from biller.ledger import LedgerService
from biller.models import Bill, Channel
from biller.money import format_money, parse_amount
from biller.rendering import format_bill_row, format_transaction_row, window_bounds
from biller.reports import (
    AdminSummary,
    ItemAnalytics,
    ManagerDashboard,
    ReportService,
    day_bounds,
    item_sales,
    summarize_bills,
)

TABS = ("bills", "pending", "cash", "upi", "items")
_TAB_TITLES = {
    "bills": "All Bills",
    "pending": "Pendings",
    "cash": "Cash Transactions",
    "upi": "UPI Transactions",
    "items": "Item Analytics",
}


class ManagerScreen(Screen):
    """Account details for a day range. Esc returns to the tables."""

    CSS = """
    #manager-summary {
        border: round $primary;
        padding: 0 1;
        height: auto;
    }

    #manager-tabs {
        padding: 0 1;
        height: 1;
    }

    #manager-body {
        border: round $secondary;
        padding: 0 1;
        height: 1fr;
    }

    #manager-help {
        height: 1;
        padding: 0 1;
        background: $panel;
    }
    """

    def __init__(self, ledger: LedgerService) -> None:
        super().__init__()
        self.ledger = ledger
        self.reports = ReportService(ledger)
        self.start_day = date.today()
        self.end_day = self.start_day
        self.tab = TABS[0]
        self.dashboard = ManagerDashboard()
        self.summary = AdminSummary()
        self.analytics = ItemAnalytics()
        self.drift: dict[Channel, Decimal] = {}
        self.error: str | None = None
        self.status = ""
        self.pending_index = 0

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical():
            yield Static(id="manager-summary")
            yield Static(id="manager-tabs")
            yield Static(id="manager-body")
        yield Static(
            "1-5 tab  [/] day  {/} range start  r reload  c/u adjust register  j/k s settle pending  Esc back",
            id="manager-help",
        )

    async def on_mount(self) -> None:
        await self.reload()

    async def reload(self) -> None:
        start, end = day_bounds(self.start_day, self.end_day)
        result = await self.reports.manager_dashboard(start, end)
        drift = await self.reports.register_drift()
        self.dashboard = result.data
        self.error = result.error or drift.error
        self.drift = drift.data
        self.summary = summarize_bills(self.dashboard.bills)
        self.analytics = item_sales(self.dashboard.bills)
        if self.pending_index >= len(self.dashboard.pending_bills):
            self.pending_index = 0
        self._refresh()

    async def on_key(self, event: Key) -> None:
        key = event.key
        character = event.character or ""
        if key == "escape":
            event.stop()
            event.prevent_default()
            self.app.pop_screen()
            return
        if character in {"1", "2", "3", "4", "5"}:
            self.tab = TABS[int(character) - 1]
        elif key == "tab":
            self.tab = TABS[(TABS.index(self.tab) + 1) % len(TABS)]
        elif character in {"[", "]"}:
            step = timedelta(days=-1 if character == "[" else 1)
            self.start_day += step
            self.end_day += step
            await self.reload()
        elif character in {"{", "}"}:
            self.start_day += timedelta(days=-1 if character == "{" else 1)
            self.start_day = min(self.start_day, self.end_day)
            await self.reload()
        elif character == "r":
            await self.reload()
        elif character in {"c", "u"}:
            self._open_adjustment(Channel.CASH if character == "c" else Channel.UPI)
        elif character in {"j", "k"} and self.tab == "pending":
            count = len(self.dashboard.pending_bills)
            if count:
                self.pending_index = (self.pending_index + (1 if character == "j" else -1)) % count
        elif character == "s" and self.tab == "pending":
            self._open_settlement()
        else:
            return
        event.stop()
        event.prevent_default()
        self._refresh()

    def _open_adjustment(self, channel: Channel) -> None:
        async def submit(values: list[str]) -> str:
            amount = parse_amount(values[0])
            try:
                transaction_id = await self.ledger.record_manual_transaction(channel, amount, values[1])
            except PartialWriteError as exc:
                return f"Warning: {exc}"
            return f"{channel.value.upper()} adjustment {format_money(amount)} saved ({transaction_id[:8]})"

        self.app.push_screen(
            FormModal(
                f"Add {channel.value.upper()} Transaction",
                "Negative amounts take money out of the register.",
                [FormField("Amount", SIGNED_AMOUNT, max_length=12), FormField("Reason", TEXT, max_length=60)],
                submit,
            ),
            self._after_form,
        )

    def _selected_pending(self) -> Bill | None:
        bills = self.dashboard.pending_bills
        if not bills:
            return None
        return bills[min(self.pending_index, len(bills) - 1)]

    def _open_settlement(self) -> None:
        bill = self._selected_pending()
        if bill is None:
            self.status = "No pending bill selected"
            return

        async def submit(values: list[str]) -> str:
            cash = parse_amount(values[0] or "0", "Cash")
            upi = parse_amount(values[1] or "0", "UPI")
            await self.ledger.settle_pending_bill(bill, cash, upi)
            return f"Pending bill for {bill.mobile} settled"

        self.app.push_screen(
            FormModal(
                "Settle Pending Bill",
                f"{bill.mobile}  Total {format_money(bill.total)}. Cash + UPI must equal the total.",
                [FormField("Cash", AMOUNT, max_length=10), FormField("UPI", AMOUNT, max_length=10)],
                submit,
            ),
            self._after_form,
        )

    async def _after_form(self, outcome: FormOutcome | None) -> None:
        if outcome is None:
            return
        self.status = str(outcome.result)
        await self.reload()

    def _refresh(self) -> None:
        self._refresh_summary()
        self._refresh_tabs()
        self._refresh_body()

    def _refresh_summary(self) -> None:
        text = Text()
        if self.start_day == self.end_day:
            text.append(self.start_day.strftime("%d %b %Y"), style="bold")
        else:
            text.append(f"{self.start_day:%d %b %Y} to {self.end_day:%d %b %Y}", style="bold")
        text.append(f"   Cash register {format_money(self.dashboard.cash_register)}")
        text.append(f"   UPI register {format_money(self.dashboard.upi_register)}")
        text.append(
            f"\nBills {format_money(self.summary.billed)}   UPI {format_money(self.summary.upi)}"
            f"   Cash {format_money(self.summary.cash)}   Count {self.summary.bill_count}"
        )
        for channel, amount in self.drift.items():
            if amount:
                text.append(f"\n{channel.value.upper()} register off from transactions by {amount}", style="#ffb3b3")
        if self.error:
            text.append(f"\n{self.error}", style="#ffb3b3")
        elif self.status:
            text.append(f"\n{self.status}", style="dim")
        self.query_one("#manager-summary", Static).update(text)

    def _refresh_tabs(self) -> None:
        text = Text()
        for idx, tab in enumerate(TABS):
            style = "bold #ffffff on #c2417a" if tab == self.tab else "dim"
            text.append(f" {idx + 1} {_TAB_TITLES[tab]} ", style=style)
            text.append(" ")
        self.query_one("#manager-tabs", Static).update(text)

    def _refresh_body(self) -> None:
        body = self.query_one("#manager-body", Static)
        lines = Text()
        if self.tab == "bills":
            rows = [format_bill_row(bill) for bill in self.dashboard.bills]
        elif self.tab == "pending":
            rows = []
            for idx, bill in enumerate(self.dashboard.pending_bills):
                row = Text("➤ " if idx == self.pending_index else "  ")
                row.append_text(format_bill_row(bill))
                rows.append(row)
        elif self.tab == "cash":
            rows = [format_transaction_row(t) for t in self.dashboard.cash_transactions]
        elif self.tab == "upi":
            rows = [format_transaction_row(t) for t in self.dashboard.upi_transactions]
        else:
            rows = [
                Text(f"{row.name:<26} {row.category:<12} x{row.quantity:<4} {format_money(row.revenue)}")
                for row in self.analytics.items
            ]
            if rows:
                rows.append(
                    Text(
                        f"{'Total':<26} {'':<12} x{self.analytics.total_quantity:<4} "
                        f"{format_money(self.analytics.total_revenue)}",
                        style="bold",
                    )
                )

        if not rows:
            body.update("Nothing recorded in this range.")
            return
        selected = self.pending_index if self.tab == "pending" else None
        start, end = window_bounds(len(rows), max(1, (body.size.height or 16) // 2), selected)
        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            lines.append_text(rows[idx])
        body.update(lines)
