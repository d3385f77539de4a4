"""Read-only reporting over bills, transactions and registers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Generic, TypeVar

from biller.errors import StoreError
from biller.ledger import LedgerService
from biller.models import Bill, Channel, Transaction
from biller.money import ZERO, to_money

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRY_MESSAGE = "Could not load data. Please try again."


def day_bounds(start_day: date, end_day: date | None = None) -> tuple[datetime, datetime]:
    """Local-time start of `start_day` to the last microsecond of `end_day`, both tz-aware."""
    end_day = end_day or start_day
    start = datetime.combine(start_day, time.min).astimezone()
    end = datetime.combine(end_day, time.max).astimezone()
    return start, end


@dataclass(frozen=True)
class ReportResult(Generic[T]):
    data: T
    error: str | None = None


@dataclass(frozen=True)
class AdminSummary:
    bill_count: int = 0
    cash: Decimal = ZERO
    upi: Decimal = ZERO

    @property
    def billed(self) -> Decimal:
        return to_money(self.cash + self.upi)


@dataclass
class ItemSales:
    id: int
    name: str
    category: str
    price: Decimal
    quantity: int = 0
    revenue: Decimal = ZERO


@dataclass(frozen=True)
class ItemAnalytics:
    items: list[ItemSales] = field(default_factory=list)
    total_quantity: int = 0
    total_revenue: Decimal = ZERO


@dataclass(frozen=True)
class ManagerDashboard:
    bills: list[Bill] = field(default_factory=list)
    pending_bills: list[Bill] = field(default_factory=list)
    cash_transactions: list[Transaction] = field(default_factory=list)
    upi_transactions: list[Transaction] = field(default_factory=list)
    cash_register: Decimal = ZERO
    upi_register: Decimal = ZERO


def summarize_bills(bills: list[Bill]) -> AdminSummary:
    return AdminSummary(
        bill_count=len(bills),
        cash=to_money(sum((bill.cash for bill in bills), ZERO)),
        upi=to_money(sum((bill.upi for bill in bills), ZERO)),
    )


def item_sales(bills: list[Bill]) -> ItemAnalytics:
    """Aggregate quantity and revenue per menu item id across bills."""
    by_id: dict[int, ItemSales] = {}
    total_quantity = 0
    total_revenue = ZERO
    for bill in bills:
        for line in bill.items:
            row = by_id.get(line.id)
            if row is None:
                row = by_id[line.id] = ItemSales(id=line.id, name=line.name, category=line.category, price=line.price)
            row.quantity += line.quantity
            row.revenue = to_money(row.revenue + line.line_total)
            total_quantity += line.quantity
            total_revenue += line.line_total
    rows = sorted(by_id.values(), key=lambda row: (-row.quantity, row.id))
    return ItemAnalytics(items=rows, total_quantity=total_quantity, total_revenue=to_money(total_revenue))


class ReportService:
    """
    Reporting client of the ledger.

    Store failures never propagate: each report returns an empty result with
    a retry message, and nothing retries automatically.
    """

    def __init__(self, ledger: LedgerService) -> None:
        self.ledger = ledger

    async def admin_summary(self, start: datetime, end: datetime) -> ReportResult[AdminSummary]:
        try:
            bills = await self.ledger.query_bills(start, end)
        except StoreError as exc:
            logger.warning("Admin summary failed: %s", exc)
            return ReportResult(AdminSummary(), RETRY_MESSAGE)
        return ReportResult(summarize_bills(bills))

    async def item_analytics(self, start: datetime, end: datetime) -> ReportResult[ItemAnalytics]:
        try:
            bills = await self.ledger.query_bills(start, end)
        except StoreError as exc:
            logger.warning("Item analytics failed: %s", exc)
            return ReportResult(ItemAnalytics(), RETRY_MESSAGE)
        return ReportResult(item_sales(bills))

    async def manager_dashboard(self, start: datetime, end: datetime) -> ReportResult[ManagerDashboard]:
        try:
            bills, pending, cash, upi = await asyncio.gather(
                self.ledger.query_bills(start, end),
                self.ledger.query_pending_bills(start, end),
                self.ledger.query_transactions(Channel.CASH, start, end),
                self.ledger.query_transactions(Channel.UPI, start, end),
            )
            cash_register = await self.ledger.get_register_total(Channel.CASH)
            upi_register = await self.ledger.get_register_total(Channel.UPI)
        except StoreError as exc:
            logger.warning("Manager dashboard failed: %s", exc)
            return ReportResult(ManagerDashboard(), RETRY_MESSAGE)
        return ReportResult(
            ManagerDashboard(
                bills=bills,
                pending_bills=pending,
                cash_transactions=cash,
                upi_transactions=upi,
                cash_register=cash_register,
                upi_register=upi_register,
            )
        )

    async def register_drift(self) -> ReportResult[dict[Channel, Decimal]]:
        try:
            drift = {channel: await self.ledger.register_drift(channel) for channel in Channel}
        except StoreError as exc:
            logger.warning("Register drift check failed: %s", exc)
            return ReportResult({}, RETRY_MESSAGE)
        for channel, amount in drift.items():
            if amount != 0:
                logger.warning("%s register drifts from its transactions by %s", channel.value, amount)
        return ReportResult(drift)
