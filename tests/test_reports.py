"""
Tests for reporting views over the ledger.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from biller.ledger import BILLS
from biller.models import Bill, BillStatus, CartLine, Channel
from biller.reports import RETRY_MESSAGE, ReportService, day_bounds, item_sales, summarize_bills

ESPRESSO = CartLine(id=1, name="Espresso", category="Hot Coffee", price=Decimal("80.00"), quantity=1)
BROWNIE = CartLine(id=19, name="Brownie", category="Dessert", price=Decimal("90.00"), quantity=2)


def _bill(*lines, cash=None, upi=Decimal("0"), status=BillStatus.PAID, mobile=None):
    total = sum((line.line_total for line in lines), Decimal("0"))
    if status is BillStatus.PENDING:
        cash, upi = Decimal("0"), Decimal("0")
    elif cash is None:
        cash = total - upi
    return Bill(items=tuple(lines), total=total, status=status, cash=cash, upi=upi, mobile=mobile)


class TestAggregations:
    def test_summary_totals(self):
        summary = summarize_bills(
            [_bill(ESPRESSO), _bill(BROWNIE, upi=Decimal("100.00")), _bill(ESPRESSO, status=BillStatus.PENDING, mobile="x")]
        )

        assert summary.bill_count == 3
        assert summary.cash == Decimal("160.00")
        assert summary.upi == Decimal("100.00")
        assert summary.billed == Decimal("260.00")

    def test_empty_summary(self):
        summary = summarize_bills([])

        assert summary.bill_count == 0
        assert summary.billed == Decimal("0.00")

    def test_item_sales_ranked_by_quantity(self):
        analytics = item_sales([_bill(ESPRESSO), _bill(BROWNIE), _bill(ESPRESSO, BROWNIE)])

        assert [(row.name, row.quantity, row.revenue) for row in analytics.items] == [
            ("Brownie", 4, Decimal("360.00")),
            ("Espresso", 2, Decimal("160.00")),
        ]
        assert analytics.total_quantity == 6
        assert analytics.total_revenue == Decimal("520.00")

    def test_day_bounds_cover_whole_days(self):
        start, end = day_bounds(date(2024, 5, 1), date(2024, 5, 3))

        assert start.tzinfo is not None
        assert (start.hour, start.minute) == (0, 0)
        assert end - start == timedelta(days=3) - timedelta(microseconds=1)


class TestReportService:
    @pytest.mark.asyncio
    async def test_dashboard_collects_everything(self, ledger):
        await ledger.record_bill(_bill(ESPRESSO, BROWNIE, upi=Decimal("60.00")))
        await ledger.record_bill(_bill(ESPRESSO, status=BillStatus.PENDING, mobile="9999999999"))
        await ledger.record_manual_transaction(Channel.CASH, Decimal("-20"), "ice")
        now = datetime.now(timezone.utc)

        result = await ReportService(ledger).manager_dashboard(now - timedelta(hours=1), now + timedelta(hours=1))

        assert result.error is None
        board = result.data
        assert len(board.bills) == 2
        assert [b.mobile for b in board.pending_bills] == ["9999999999"]
        assert sorted(t.amount for t in board.cash_transactions) == [Decimal("-20.00"), Decimal("200.00")]
        assert [t.amount for t in board.upi_transactions] == [Decimal("60.00")]
        assert board.cash_register == Decimal("180.00")
        assert board.upi_register == Decimal("60.00")

    @pytest.mark.asyncio
    async def test_admin_summary_and_analytics(self, ledger):
        await ledger.record_bill(_bill(BROWNIE))
        now = datetime.now(timezone.utc)
        service = ReportService(ledger)

        summary = await service.admin_summary(now - timedelta(hours=1), now + timedelta(hours=1))
        analytics = await service.item_analytics(now - timedelta(hours=1), now + timedelta(hours=1))

        assert summary.data.billed == Decimal("180.00")
        assert analytics.data.items[0].quantity == 2

    @pytest.mark.asyncio
    async def test_read_failure_returns_empty_with_retry_message(self, ledger, store):
        await ledger.record_bill(_bill(ESPRESSO))
        store.fail("query", BILLS)
        now = datetime.now(timezone.utc)
        service = ReportService(ledger)

        board = await service.manager_dashboard(now - timedelta(hours=1), now + timedelta(hours=1))
        summary = await service.admin_summary(now - timedelta(hours=1), now + timedelta(hours=1))
        analytics = await service.item_analytics(now - timedelta(hours=1), now + timedelta(hours=1))

        assert board.error == RETRY_MESSAGE
        assert board.data.bills == []
        assert board.data.cash_register == Decimal("0.00")
        assert summary.error == RETRY_MESSAGE
        assert summary.data.bill_count == 0
        assert analytics.error == RETRY_MESSAGE
        assert analytics.data.items == []

    @pytest.mark.asyncio
    async def test_register_drift_report(self, ledger, store):
        store.fail("increment", "registers")
        await ledger.record_bill(_bill(ESPRESSO))

        result = await ReportService(ledger).register_drift()

        assert result.error is None
        assert result.data == {Channel.CASH: Decimal("-80.00"), Channel.UPI: Decimal("0.00")}
