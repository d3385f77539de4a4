"""
Tests for receipt layout.
"""

from datetime import datetime, timezone
from decimal import Decimal

from biller.config import SHOP_NAME
from biller.models import Bill, BillStatus, CartLine
from biller.money import format_money
from biller.printer import SEPARATOR, receipt_rows

LINES = (
    CartLine(id=3, name="Cappuccino", category="Hot Coffee", price=Decimal("140.00"), quantity=2),
    CartLine(id=13, name="Veg Sandwich", category="Food", price=Decimal("20.00"), quantity=1),
)
WHEN = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class TestReceiptRows:
    def test_split_paid_bill(self):
        bill = Bill(
            items=LINES,
            total=Decimal("300.00"),
            status=BillStatus.PAID,
            cash=Decimal("120.00"),
            upi=Decimal("180.00"),
            time=WHEN,
            id="abcdef1234567890",
        )

        rows = receipt_rows(bill)

        assert rows[0] == (SHOP_NAME, "")
        assert rows[1][1] == "abcdef12"
        assert rows.count(SEPARATOR) == 2
        assert ("2 x Cappuccino", format_money(Decimal("280.00"))) in rows
        assert rows[-3:] == [
            ("TOTAL", format_money(Decimal("300.00"))),
            ("Cash", format_money(Decimal("120.00"))),
            ("UPI", format_money(Decimal("180.00"))),
        ]

    def test_cash_only_bill_has_no_upi_row(self):
        bill = Bill(items=LINES, total=Decimal("300.00"), status=BillStatus.PAID, cash=Decimal("300.00"), time=WHEN)

        labels = [row[0] for row in receipt_rows(bill) if row is not SEPARATOR]

        assert "Cash" in labels
        assert "UPI" not in labels

    def test_pending_bill_marked_not_paid(self):
        bill = Bill(items=LINES, total=Decimal("300.00"), status=BillStatus.PENDING, mobile="9999999999", time=WHEN)

        rows = receipt_rows(bill)

        assert rows[-1] == ("NOT PAID", "9999999999")
        assert rows[1][1] == ""
