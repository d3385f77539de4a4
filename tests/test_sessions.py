"""
Tests for the table session store and its local slot.
"""

import json
from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from biller.errors import SessionSaveError, TableStateError
from biller.models import MenuItem
from biller.money import to_money
from biller.sessions import (
    JsonFileSessionSlot,
    MemorySessionSlot,
    TableSessionStore,
    initial_tables,
    parse_tables,
)

MENU = [
    MenuItem(id=1, name="Espresso", category="Hot Coffee", price=Decimal("80.00")),
    MenuItem(id=2, name="Cold Brew", category="Cold Coffee", price=Decimal("160.00")),
    MenuItem(id=3, name="Croissant", category="Food", price=Decimal("95.50")),
]


class TestTableLifecycle:
    def test_starts_with_free_tables(self, sessions):
        assert [t.id for t in sessions.tables] == [1, 2, 3, 4, 5, 6]
        assert all(not t.is_occupied and t.items == () for t in sessions.tables)

    def test_select_occupies_table(self, sessions):
        table = sessions.select_table(3)

        assert table.is_occupied
        assert sessions.table(3).is_occupied

    def test_add_item_needs_open_table(self, sessions, latte):
        with pytest.raises(TableStateError):
            sessions.add_item(1, latte)

    def test_add_same_item_increments_quantity(self, sessions, open_table, latte, cookie):
        table = open_table(1, latte, cookie, latte)

        assert [(line.id, line.quantity) for line in table.items] == [(latte.id, 2), (cookie.id, 1)]
        assert table.total == Decimal("275.00")

    def test_set_quantity(self, sessions, open_table, latte):
        open_table(1, latte)

        table = sessions.set_item_quantity(1, latte.id, 4)

        assert table.items[0].quantity == 4
        assert table.total == Decimal("500.00")

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_non_positive_quantity_removes_line(self, sessions, open_table, latte, cookie, quantity):
        open_table(1, latte, cookie)

        table = sessions.set_item_quantity(1, latte.id, quantity)

        assert [line.id for line in table.items] == [cookie.id]
        assert table.total == Decimal("25.00")
        assert table.is_occupied

    def test_close_with_open_total_is_rejected(self, sessions, open_table, latte):
        open_table(1, latte)

        with pytest.raises(TableStateError):
            sessions.close_table(1)
        assert sessions.table(1).items

    def test_close_settled_table_resets_it(self, sessions, open_table, latte):
        open_table(1, latte)

        table = sessions.close_table(1, settled=True)

        assert not table.is_occupied
        assert table.items == ()
        assert table.total == Decimal("0.00")

    def test_close_empty_table(self, sessions):
        sessions.select_table(4)

        assert not sessions.close_table(4).is_occupied

    @pytest.mark.parametrize("table_id", [0, 7, -1])
    def test_unknown_table(self, sessions, table_id):
        with pytest.raises(TableStateError):
            sessions.select_table(table_id)

    def test_other_tables_untouched(self, sessions, open_table, latte):
        open_table(1, latte)
        open_table(2, latte, latte)

        sessions.close_table(1, settled=True)

        assert sessions.table(2).total == Decimal("250.00")


class TestListenersAndSlot:
    def test_listener_gets_every_change(self, sessions, latte):
        seen = []
        sessions.subscribe(seen.append)

        sessions.select_table(1)
        sessions.add_item(1, latte)

        assert len(seen) == 2
        assert seen[-1][0].total == Decimal("125.00")

    def test_unsubscribe(self, sessions):
        seen = []
        unsubscribe = sessions.subscribe(seen.append)
        unsubscribe()

        sessions.select_table(1)

        assert seen == []

    def test_every_mutation_writes_full_list(self, sessions, slot, open_table, latte):
        open_table(2, latte)

        saved = slot.value
        assert len(saved) == 6
        assert saved[1] == {
            "id": 2,
            "isOccupied": True,
            "items": [{"id": latte.id, "name": "Latte", "category": "Hot Coffee", "price": "125.00", "quantity": 1}],
            "total": "125.00",
        }

    def test_failed_slot_write_keeps_state(self, latte):
        class BrokenSlot(MemorySessionSlot):
            def save(self, value):
                raise OSError("disk full")

        store = TableSessionStore(BrokenSlot(), count=2)

        with pytest.raises(SessionSaveError, match="disk full"):
            store.select_table(1)
        assert not store.table(1).is_occupied

    def test_restores_from_slot(self, sessions, slot, open_table, latte, cookie):
        open_table(1, latte, cookie)
        open_table(5, latte)

        restored = TableSessionStore(MemorySessionSlot(slot.value), count=6)

        assert restored.tables == sessions.tables

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            "garbage",
            [{"id": 1, "isOccupied": True}],
            [{"id": 9, "isOccupied": False, "items": [], "total": "0"}],
            [
                {"id": 1, "isOccupied": False, "items": [], "total": "0"},
                {"id": 1, "isOccupied": False, "items": [], "total": "0"},
            ],
            [{"id": 1, "isOccupied": True, "items": [{"id": 1, "name": "x", "price": "oops", "quantity": 1}], "total": "0"}],
            [{"id": 1, "isOccupied": True, "items": [{"id": 1, "name": "x", "price": "10", "quantity": 0}], "total": "0"}],
            [{"id": 1, "isOccupied": True, "items": [{"id": 1, "name": "x", "price": "NaN", "quantity": 1}], "total": "0"}],
            [{"id": 1, "isOccupied": True, "items": [{"id": 1, "name": "x", "price": "-10", "quantity": 1}], "total": "0"}],
            [{"id": 1, "isOccupied": False, "items": [], "total": "NaN"}],
        ],
    )
    def test_untrusted_slot_data_falls_back_to_empty_tables(self, raw):
        assert parse_tables(raw, count=6) is None

        store = TableSessionStore(MemorySessionSlot(raw), count=6)

        assert store.tables == initial_tables(6)

    def test_partial_list_fills_missing_tables(self):
        raw = [{"id": 3, "isOccupied": True, "items": [], "total": "0.00"}]

        tables = parse_tables(raw, count=4)

        assert [t.id for t in tables] == [1, 2, 3, 4]
        assert tables[2].is_occupied
        assert not tables[0].is_occupied

    def test_stale_total_is_recomputed(self):
        raw = [
            {
                "id": 1,
                "isOccupied": False,
                "items": [{"id": 1, "name": "Espresso", "category": "Hot Coffee", "price": "80.00", "quantity": 2}],
                "total": "999.00",
            }
        ]

        table = parse_tables(raw, count=1)[0]

        assert table.total == Decimal("160.00")
        assert table.is_occupied


class TestJsonFileSlot:
    def test_round_trip_through_file(self, tmp_path, latte):
        path = tmp_path / "state" / "tables.json"
        store = TableSessionStore(JsonFileSessionSlot(path, key="restaurantTables"), count=3)
        store.select_table(2)
        store.add_item(2, latte)

        on_disk = json.loads(path.read_text(encoding="utf-8"))
        assert list(on_disk) == ["restaurantTables"]

        restored = TableSessionStore(JsonFileSessionSlot(path, key="restaurantTables"), count=3)
        assert restored.table(2).total == Decimal("125.00")

    def test_missing_file(self, tmp_path):
        assert JsonFileSessionSlot(tmp_path / "nope.json").load() is None

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "tables.json"
        path.write_text("{not json", encoding="utf-8")

        assert JsonFileSessionSlot(path).load() is None
        assert TableSessionStore(JsonFileSessionSlot(path), count=2).tables == initial_tables(2)


_operations = st.lists(
    st.tuples(st.sampled_from(["add", "set"]), st.integers(min_value=0, max_value=2), st.integers(-2, 6)),
    max_size=30,
)


class TestTotalProperties:
    @given(operations=_operations)
    @settings(max_examples=75, deadline=None)
    def test_total_always_matches_lines(self, operations):
        """Property: after every add or quantity change, total is the sum of price times quantity."""
        slot = MemorySessionSlot()
        store = TableSessionStore(slot, count=1)
        store.select_table(1)

        for op, item_index, quantity in operations:
            item = MENU[item_index]
            if op == "add":
                table = store.add_item(1, item)
            else:
                table = store.set_item_quantity(1, item.id, quantity)

            expected = to_money(sum((line.price * line.quantity for line in table.items), Decimal("0")))
            assert table.total == expected
            assert all(line.quantity >= 1 for line in table.items)
            assert len({line.id for line in table.items}) == len(table.items)
            assert slot.value[0]["total"] == str(expected)
