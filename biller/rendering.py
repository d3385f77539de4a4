"""Rich text rendering helpers for the terminal UI."""

from __future__ import annotations

from rich.text import Text

from biller.models import Bill, BillStatus, CartLine, MenuItem, Table, Transaction
from biller.money import format_money


def status_style(status: BillStatus) -> str:
    """Return a consistent badge style for bill statuses."""
    if status is BillStatus.PAID:
        return "bold #0b1f0f on #5fbf72"
    if status is BillStatus.PENDING:
        return "bold #1f1600 on #e0b341"
    raise ValueError(f"unhandled bill status {status!r}")


def format_table_tile(table: Table, selected: bool) -> Text:
    text = Text()
    pointer = "➤ " if selected else "  "
    text.append(pointer)
    text.append(f"T{table.id} ", style="bold")
    if table.is_occupied:
        text.append("occupied", style="bold #ffffff on #b23a48")
        text.append(f" {format_money(table.total)}")
    else:
        text.append("free", style="dim")
    return text


def format_cart_line(line: CartLine) -> Text:
    text = Text()
    text.append(f"{line.quantity} x {line.name}")
    text.append(f"  {format_money(line.price)} = {format_money(line.line_total)}", style="dim")
    return text


def format_menu_item(item: MenuItem) -> Text:
    text = Text()
    text.append(item.name)
    text.append(f"  {format_money(item.price)}", style="dim")
    return text


def format_bill_row(bill: Bill) -> Text:
    text = Text()
    text.append(bill.time.astimezone().strftime("%d %b %H:%M"), style="dim")
    text.append(" ")
    text.append(bill.status.value, style=status_style(bill.status))
    text.append(f" {format_money(bill.total)}")
    text.append(f"  cash {format_money(bill.cash)} / upi {format_money(bill.upi)}", style="dim")
    if bill.mobile:
        text.append(f"  {bill.mobile}")
    items = ", ".join(f"{line.name} x{line.quantity}" for line in bill.items)
    if items:
        text.append(f"\n      {items}", style="dim")
    return text


def format_transaction_row(transaction: Transaction) -> Text:
    text = Text()
    text.append(transaction.time.astimezone().strftime("%d %b %H:%M"), style="dim")
    amount_style = "#ffb3b3" if transaction.amount < 0 else "white"
    text.append(f" {format_money(transaction.amount):>12}", style=amount_style)
    text.append(f"  {transaction.reason}")
    return text


def window_bounds(total: int, rows: int, selected: int | None) -> tuple[int, int]:
    """Slice of a list to show so that the selected row stays visible."""
    if total <= 0:
        return (0, 0)

    rows = max(1, rows)
    if total <= rows:
        return (0, total)

    if selected is None:
        start = 0
    else:
        start = max(0, selected - rows // 2)
        start = min(start, total - rows)

    return (start, start + rows)
