"""
Tests for domain records, money parsing and the menu catalog.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from biller.constant import ALL_CATEGORIES
from biller.data import CATEGORIES, MENU_ITEMS, filter_menu, menu_item
from biller.errors import ValidationError
from biller.models import Bill, BillStatus, CartLine, OnlineOrder, OrderStatus, Table, from_timestamp, to_timestamp
from biller.money import format_money, parse_amount
from biller.rendering import status_style, window_bounds

LINE = CartLine(id=1, name="Espresso", category="Hot Coffee", price=Decimal("80.00"), quantity=3)


class TestBill:
    def test_paid_bill_must_reconcile(self):
        with pytest.raises(ValidationError):
            Bill(items=(LINE,), total=Decimal("240.00"), status=BillStatus.PAID, cash=Decimal("200.00"))

    def test_pending_bill_needs_contact(self):
        with pytest.raises(ValidationError):
            Bill(items=(LINE,), total=Decimal("240.00"), status=BillStatus.PENDING)

    def test_negative_portions_rejected(self):
        with pytest.raises(ValidationError):
            Bill(
                items=(LINE,),
                total=Decimal("240.00"),
                status=BillStatus.PAID,
                cash=Decimal("300.00"),
                upi=Decimal("-60.00"),
            )

    def test_document_round_trip(self):
        bill = Bill(
            items=(LINE,),
            total=Decimal("240.00"),
            status=BillStatus.PENDING,
            mobile="Ravi",
            time=datetime(2024, 5, 1, 8, 30, 15, 123456, tzinfo=timezone.utc),
        )

        doc = bill.to_document()

        assert doc["total"] == "240.00"
        assert doc["time"] == "2024-05-01T08:30:15.123456Z"
        assert Bill.from_document({**doc, "id": "b1"}) == Bill(**{**bill.__dict__, "id": "b1"})


class TestRecords:
    def test_table_total_follows_items(self):
        table = Table(id=1, is_occupied=True, items=(LINE,))

        assert table.total == Decimal("240.00")
        assert table.cleared().total == Decimal("0.00")
        assert table.to_dict()["total"] == "240.00"

    @pytest.mark.parametrize("price", ["NaN", "sNaN", "Infinity", "-5"])
    def test_cart_line_rejects_unusable_price(self, price):
        with pytest.raises((ValueError, ArithmeticError)):
            CartLine.from_dict({"id": 1, "name": "Espresso", "price": price, "quantity": 1})

    def test_cart_line_from_dict_rounds_price(self):
        line = CartLine.from_dict({"id": 1, "name": "Espresso", "price": "79.999", "quantity": 2})

        assert line.price == Decimal("80.00")

    def test_timestamps_sort_as_text(self):
        early = datetime(2024, 5, 1, 23, 0, tzinfo=timezone(timedelta(hours=5, minutes=30)))
        late = datetime(2024, 5, 1, 18, 0, tzinfo=timezone.utc)

        assert to_timestamp(early) < to_timestamp(late)
        assert from_timestamp(to_timestamp(early)) == early

    def test_online_order_document(self):
        order = OnlineOrder(
            items=(LINE,),
            total=Decimal("200.00"),
            slot=datetime(2024, 5, 1, 12, tzinfo=timezone.utc),
            created_at=datetime(2024, 5, 1, 9, tzinfo=timezone.utc),
        )

        doc = order.to_document()

        assert doc["status"] == "placed"
        assert doc["createdAt"] == "2024-05-01T09:00:00.000000Z"
        assert OnlineOrder.from_document({**doc, "id": "o1"}).status is OrderStatus.PLACED


class TestMoney:
    @pytest.mark.parametrize(
        "raw, expected",
        [("120", Decimal("120.00")), (" 99.5 ", Decimal("99.50")), ("0.005", Decimal("0.01")), ("-40", Decimal("-40.00"))],
    )
    def test_parse_amount(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize("raw, message", [("", "is required"), ("12a", "must be a number"), ("inf", "must be a number")])
    def test_parse_amount_rejects(self, raw, message):
        with pytest.raises(ValidationError, match=message):
            parse_amount(raw, "Cash")

    def test_format_money(self):
        assert format_money(Decimal("1234.5")).endswith("1,234.50")


class TestCatalog:
    def test_ids_are_unique(self):
        assert len({item.id for item in MENU_ITEMS}) == len(MENU_ITEMS)

    def test_categories_start_with_all(self):
        assert CATEGORIES[0] == ALL_CATEGORIES
        assert set(CATEGORIES[1:]) == {item.category for item in MENU_ITEMS}

    def test_filter_by_category_and_query(self):
        hot = filter_menu("Hot Coffee")
        assert hot and all(item.category == "Hot Coffee" for item in hot)

        assert [item.name for item in filter_menu(ALL_CATEGORIES, "chai")] == ["Masala Chai"]
        assert filter_menu("Tea", "espresso") == []

    def test_menu_item_lookup(self):
        assert menu_item(1).name == "Espresso"
        with pytest.raises(KeyError):
            menu_item(999)


class TestRendering:
    def test_every_status_has_a_style(self):
        assert {status_style(status) for status in BillStatus}

    @pytest.mark.parametrize(
        "total, rows, selected, expected",
        [(0, 5, None, (0, 0)), (3, 5, 2, (0, 3)), (10, 4, None, (0, 4)), (10, 4, 9, (6, 10)), (10, 4, 5, (3, 7))],
    )
    def test_window_bounds(self, total, rows, selected, expected):
        assert window_bounds(total, rows, selected) == expected
