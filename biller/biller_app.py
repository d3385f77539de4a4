"""Main Textual app class."""

from __future__ import annotations

import asyncio
import logging

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.events import Key
from textual.reactive import reactive
from textual.widgets import Header, Static

from biller.billing import BillingEngine, PaymentState, Settlement
from biller.config import PRINTER_ENABLED, SHOP_NAME
from biller.constant import ALL_CATEGORIES
from biller.data import CATEGORIES, filter_menu
from biller.errors import BillerError, InvalidTransitionError
from biller.form_modal import AMOUNT, TEXT, FormField, FormModal, FormOutcome
from biller.ledger import LedgerService
from biller.manager_screen import ManagerScreen
from biller.models import MenuItem, Table
from biller.money import format_money
from biller.payment_modal import PaymentMethodModal, UpiScanModal
from biller.printer import check_printer_dependencies, print_bill
from biller.rendering import format_cart_line, format_menu_item, format_table_tile, window_bounds
from biller.sessions import TableSessionStore

logger = logging.getLogger(__name__)


class BillerApp(App):
    """Table billing for the café counter."""

    TITLE = SHOP_NAME
    SUB_TITLE = "Biller"

    CSS = """
    Screen {
        layout: vertical;
    }

    #main-layout {
        height: 1fr;
    }

    #left-pane {
        width: 3fr;
    }

    #tables-pane {
        height: auto;
        border: round $primary;
        padding: 0 1;
    }

    #cart-pane {
        height: 1fr;
        border: round $primary;
        padding: 0 1;
    }

    #menu-pane {
        width: 2fr;
        border: round $secondary;
        padding: 0 1;
    }

    #search-bar {
        border: heavy $secondary;
        padding: 0 1;
        margin-bottom: 1;
        height: 3;
    }

    #results, #cart-list {
        height: 1fr;
        padding: 0 1;
    }

    #status-bar {
        height: 1;
        padding: 0 1;
        background: $panel;
    }

    .pane-title {
        text-style: bold;
    }
    """

    input_state = reactive("normal")
    category_index = reactive(0)
    search_query = reactive("")
    selected_index = reactive(0)
    cart_selected_index = reactive(None)

    BINDINGS = [
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(
        self,
        sessions: TableSessionStore,
        ledger: LedgerService,
        printer_enabled: bool = PRINTER_ENABLED,
    ) -> None:
        super().__init__()
        self.sessions = sessions
        self.ledger = ledger
        self.engine = BillingEngine(sessions, ledger)
        self.printer_enabled = printer_enabled
        self.current_table_id: int | None = None
        self.system_status = ""
        self._unsubscribe = sessions.subscribe(self._on_tables_changed)

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-layout"):
            with Vertical(id="left-pane"):
                with Vertical(id="tables-pane"):
                    yield Static("Tables", classes="pane-title")
                    yield Static(id="tables-list")
                with Vertical(id="cart-pane"):
                    yield Static(id="cart-title", classes="pane-title")
                    yield Static(id="cart-list")
            with Vertical(id="menu-pane"):
                yield Static("Menu", classes="pane-title")
                yield Static(id="search-bar")
                yield Static(id="results")
        yield Static(id="status-bar")

    def on_mount(self) -> None:
        if self.printer_enabled:
            ready, msg = check_printer_dependencies()
            self.printer_enabled = ready
            self.system_status = msg
            logger.info("Printer status: %s", msg)
        self._refresh_all()

    def on_unmount(self) -> None:
        self._unsubscribe()

    @property
    def current_table(self) -> Table | None:
        if self.current_table_id is None:
            return None
        return self.sessions.table(self.current_table_id)

    async def on_key(self, event: Key) -> None:
        if len(self.screen_stack) > 1:
            return

        if self.input_state == "active":
            self._handle_search_key(event)
            return

        key = event.key
        if event.character and event.character.isdigit() and event.character != "0":
            self._select_table(int(event.character))
        elif key in {"up", "down"}:
            self._move_menu_selection(-1 if key == "up" else 1)
        elif key in {"left", "right", "tab"}:
            self._cycle_category(-1 if key == "left" else 1)
        elif key == "enter":
            self._add_selected_item()
        elif key == "slash":
            self.input_state = "active"
            self.search_query = ""
            self.selected_index = 0
        elif key == "j":
            self._move_cart_selection(1)
        elif key == "k":
            self._move_cart_selection(-1)
        elif key in {"plus", "equals_sign"}:
            self._change_selected_quantity(1)
        elif key in {"minus", "d"}:
            self._change_selected_quantity(-1 if key == "minus" else None)
        elif key == "b":
            await self.action_generate_bill()
        elif key == "m":
            self.push_screen(ManagerScreen(self.ledger))
        elif key == "x":
            self._release_current_table()
        else:
            return
        event.stop()
        event.prevent_default()
        self._refresh_all()

    def _handle_search_key(self, event: Key) -> None:
        if event.key in {"escape", "ctrl+c"}:
            self.input_state = "normal"
            self.search_query = ""
        elif event.key == "backspace":
            self.search_query = self.search_query[:-1]
        elif event.key in {"up", "down"}:
            self._move_menu_selection(-1 if event.key == "up" else 1)
        elif event.key == "enter":
            self._add_selected_item()
        elif event.is_printable and event.character:
            self.search_query += event.character
            self.selected_index = 0
        else:
            return
        event.stop()
        event.prevent_default()
        self._refresh_all()

    def _on_tables_changed(self, tables: tuple[Table, ...]) -> None:
        self._refresh_tables()
        self._refresh_cart()

    def _select_table(self, table_id: int) -> None:
        try:
            self.sessions.select_table(table_id)
        except BillerError as exc:
            self.system_status = str(exc)
            return
        self.current_table_id = table_id
        self.cart_selected_index = None
        self.system_status = f"Table {table_id} open"

    def _filtered_results(self) -> list[MenuItem]:
        return filter_menu(CATEGORIES[self.category_index], self.search_query)

    def _cycle_category(self, delta: int) -> None:
        self.category_index = (self.category_index + delta) % len(CATEGORIES)
        self.selected_index = 0

    def _move_menu_selection(self, delta: int) -> None:
        results = self._filtered_results()
        if not results:
            self.selected_index = 0
            return
        self.selected_index = (self.selected_index + delta) % len(results)

    def _move_cart_selection(self, delta: int) -> None:
        table = self.current_table
        if table is None or not table.items:
            return
        if self.cart_selected_index is None:
            self.cart_selected_index = 0 if delta > 0 else len(table.items) - 1
        else:
            self.cart_selected_index = (self.cart_selected_index + delta) % len(table.items)

    def _add_selected_item(self) -> None:
        if self.current_table_id is None:
            self.system_status = "Pick a table (1-6) first"
            return
        results = self._filtered_results()
        if not results:
            return
        item = results[min(self.selected_index, len(results) - 1)]
        if self._blocked_by_recorded_bill(self.current_table_id):
            return
        try:
            table = self.sessions.add_item(self.current_table_id, item)
        except BillerError as exc:
            self.system_status = str(exc)
            return
        self.cart_selected_index = next(idx for idx, line in enumerate(table.items) if line.id == item.id)
        self.system_status = f"Added {item.name}"

    def _change_selected_quantity(self, delta: int | None) -> None:
        """Step the selected line's quantity; None removes the line."""
        table = self.current_table
        if table is None or self.cart_selected_index is None or not table.items:
            return
        line = table.items[min(self.cart_selected_index, len(table.items) - 1)]
        quantity = 0 if delta is None else line.quantity + delta
        if self._blocked_by_recorded_bill(table.id):
            return
        try:
            self.sessions.set_item_quantity(table.id, line.id, quantity)
        except BillerError as exc:
            self.system_status = str(exc)

    def _blocked_by_recorded_bill(self, table_id: int) -> bool:
        bill_id = self.engine.unreleased_bill(table_id)
        if bill_id is None:
            return False
        self.system_status = f"Table {table_id} is already billed ({bill_id[:8]}); press x to free it"
        return True

    def _release_current_table(self) -> None:
        if self.current_table_id is None:
            self.system_status = "Pick a table (1-6) first"
            return
        table_id = self.current_table_id
        try:
            self.engine.release_table(table_id)
        except BillerError as exc:
            self.system_status = str(exc)
            return
        self.current_table_id = None
        self.cart_selected_index = None
        self.system_status = f"Table {table_id} freed"

    async def action_generate_bill(self) -> None:
        if self.current_table_id is None:
            self.system_status = "Pick a table (1-6) first"
            return
        try:
            settlement = await self.engine.generate_bill(self.current_table_id)
        except BillerError as exc:
            self.system_status = str(exc)
            return
        if settlement is not None:
            await self._on_settled(settlement)
            return
        self._show_billing_step()

    def _show_billing_step(self) -> None:
        """Push the modal for whatever the billing engine is waiting on."""
        state = self.engine.state
        if state is PaymentState.AWAITING_METHOD:
            self.push_screen(
                PaymentMethodModal(self.engine.bill_amount, self.engine.choose_method),
                self._after_billing_step,
            )
        elif state is PaymentState.AWAITING_UPI_SCAN:
            self.push_screen(
                UpiScanModal(self.engine.upi_amount, self.engine.payment_link, self.engine.confirm_upi),
                self._after_billing_step,
            )
        elif state is PaymentState.AWAITING_CASH_SPLIT:
            self.push_screen(
                FormModal(
                    "Enter Cash Amount",
                    f"Total Bill: {format_money(self.engine.bill_amount)}",
                    [FormField("Cash", AMOUNT, max_length=10)],
                    lambda values: self.engine.submit_cash_split(values[0]),
                ),
                self._after_billing_step,
            )
        elif state is PaymentState.AWAITING_PENDING_CONTACT:
            self.push_screen(
                FormModal(
                    "Enter Phone number or name",
                    f"Total Bill: {format_money(self.engine.bill_amount)}",
                    [FormField("Contact", TEXT)],
                    lambda values: self.engine.submit_pending_contact(values[0]),
                ),
                self._after_billing_step,
            )
        elif state in {PaymentState.IDLE, PaymentState.SETTLED}:
            return
        else:
            raise InvalidTransitionError(f"unhandled billing state {state!r}")

    async def _after_billing_step(self, outcome: FormOutcome | None) -> None:
        if outcome is None:
            try:
                self.engine.cancel()
            except InvalidTransitionError as exc:
                logger.warning("Billing modal closed in state %s: %s", self.engine.state.value, exc)
            self.system_status = "Billing canceled"
            self._refresh_all()
            return
        if isinstance(outcome.result, Settlement):
            await self._on_settled(outcome.result)
            return
        self._show_billing_step()

    async def _on_settled(self, settlement: Settlement) -> None:
        if settlement.table_freed and self.current_table_id == settlement.table_id:
            self.current_table_id = None
            self.cart_selected_index = None
        bill = settlement.bill
        if bill is None:
            self.system_status = f"Table {settlement.table_id} closed"
            self._refresh_all()
            return

        self.system_status = f"Table {settlement.table_id}: {bill.status.value} {format_money(bill.total)}"
        if not settlement.table_freed:
            self.system_status = (
                f"Bill {bill.id[:8] if bill.id else ''} saved but table {settlement.table_id} was not freed; press x to free it"
            )
        self._refresh_all()
        if not self.printer_enabled:
            return
        try:
            await asyncio.to_thread(print_bill, bill)
        except Exception as exc:
            logger.warning("Bill %s saved but print failed: %s", bill.id, exc)
            self.system_status = f"Saved {bill.id[:8] if bill.id else ''} but print failed: {exc}"
            self._refresh_status()

    def _refresh_all(self) -> None:
        self._refresh_tables()
        self._refresh_cart()
        self._refresh_menu()
        self._refresh_status()

    def _refresh_tables(self) -> None:
        try:
            widget = self.query_one("#tables-list", Static)
        except NoMatches:
            return
        lines = Text()
        for idx, table in enumerate(self.sessions.tables):
            if idx > 0:
                lines.append("\n")
            lines.append_text(format_table_tile(table, table.id == self.current_table_id))
        widget.update(lines)

    def _refresh_cart(self) -> None:
        try:
            title = self.query_one("#cart-title", Static)
            widget = self.query_one("#cart-list", Static)
        except NoMatches:
            return
        table = self.current_table
        if table is None:
            title.update("Bill")
            widget.update("(pick a table with 1-6)")
            return

        title.update(f"Table {table.id}  Total {format_money(table.total)}")
        if not table.items:
            self.cart_selected_index = None
            widget.update("(no items yet)  b closes an empty table")
            return
        if self.cart_selected_index is not None and self.cart_selected_index >= len(table.items):
            self.cart_selected_index = len(table.items) - 1

        start, end = window_bounds(len(table.items), max(1, widget.size.height or 8), self.cart_selected_index)
        lines = Text()
        if start > 0:
            lines.append("⋮\n", style="dim")
        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            lines.append("➤ " if idx == self.cart_selected_index else "  ")
            lines.append_text(format_cart_line(table.items[idx]))
        if end < len(table.items):
            lines.append("\n⋮", style="dim")
        widget.update(lines)

    def _refresh_menu(self) -> None:
        try:
            bar = self.query_one("#search-bar", Static)
            results_widget = self.query_one("#results", Static)
        except NoMatches:
            return
        category = CATEGORIES[self.category_index]
        header = Text()
        header.append(f" {category} ", style="bold #ffffff on #2f6db5")
        if self.input_state == "active":
            header.append(f" /{self.search_query}|")
        elif category == ALL_CATEGORIES:
            header.append("  ←/→ category, / search", style="dim")
        bar.update(header)

        results = self._filtered_results()
        if not results:
            results_widget.update("No results")
            return
        if self.selected_index >= len(results):
            self.selected_index = 0
        start, end = window_bounds(len(results), max(1, results_widget.size.height or 8), self.selected_index)
        lines = Text()
        if start > 0:
            lines.append("⋮\n", style="dim")
        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            lines.append("➤ " if idx == self.selected_index else "  ")
            lines.append_text(format_menu_item(results[idx]))
        if end < len(results):
            lines.append("\n⋮", style="dim")
        results_widget.update(lines)

    def _refresh_status(self) -> None:
        try:
            bar = self.query_one("#status-bar", Static)
        except NoMatches:
            return
        keys = "1-6 table  Enter add  j/k line  +/- qty  d drop  b bill  x free billed table  m manager  Ctrl+Q quit"
        bar.update(f"{self.system_status or 'Ready'}  |  {keys}")
