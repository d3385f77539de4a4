"""Table session store: the single writer of table state."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Protocol

from biller.config import SESSION_PATH, SESSION_SLOT_KEY, TABLE_COUNT
from biller.errors import SessionSaveError, TableStateError
from biller.models import CartLine, MenuItem, Table
from biller.money import to_money

logger = logging.getLogger(__name__)

TablesListener = Callable[[tuple[Table, ...]], None]


def initial_tables(count: int = TABLE_COUNT) -> tuple[Table, ...]:
    return tuple(Table(id=table_id) for table_id in range(1, count + 1))


def with_item_added(table: Table, item: MenuItem) -> Table:
    """Increment the line for `item` or append it with quantity 1."""
    if not table.is_occupied:
        raise TableStateError(f"Table {table.id} is not open")
    lines = list(table.items)
    for idx, line in enumerate(lines):
        if line.id == item.id:
            lines[idx] = replace(line, quantity=line.quantity + 1)
            break
    else:
        lines.append(CartLine.from_item(item))
    return replace(table, items=tuple(lines))


def with_item_quantity(table: Table, item_id: int, quantity: int) -> Table:
    """Set a line quantity, clamped at zero; zero drops the line."""
    if not table.is_occupied:
        raise TableStateError(f"Table {table.id} is not open")
    quantity = max(0, quantity)
    lines = []
    for line in table.items:
        if line.id != item_id:
            lines.append(line)
        elif quantity > 0:
            lines.append(replace(line, quantity=quantity))
    return replace(table, items=tuple(lines))


class SessionSlot(Protocol):
    """A local key-value slot holding the serialized table list."""

    def load(self) -> Any | None: ...

    def save(self, value: Any) -> None: ...


class MemorySessionSlot:
    def __init__(self, value: Any | None = None) -> None:
        self.value = value

    def load(self) -> Any | None:
        return self.value

    def save(self, value: Any) -> None:
        self.value = value


class JsonFileSessionSlot:
    """Stores the table list under one key of a small JSON file."""

    def __init__(self, path: str | Path = SESSION_PATH, key: str = SESSION_SLOT_KEY) -> None:
        self.path = Path(path)
        self.key = key

    def load(self) -> Any | None:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Could not read session slot %s: %s", self.path, exc)
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Session slot %s is not valid JSON: %s", self.path, exc)
            return None
        if not isinstance(data, dict):
            return None
        return data.get(self.key)

    def save(self, value: Any) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps({self.key: value}, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)


def parse_tables(raw: Any, count: int = TABLE_COUNT) -> tuple[Table, ...] | None:
    """
    Rebuild tables from slot data, or return None when the data cannot be trusted.

    Each entry must carry id, isOccupied, items and total. Ids outside the
    fleet or duplicated reject the whole list. Missing tables come back empty.
    """
    if not isinstance(raw, list):
        return None
    by_id: dict[int, Table] = {}
    for entry in raw:
        if not isinstance(entry, dict) or not all(k in entry for k in ("id", "isOccupied", "items", "total")):
            return None
        try:
            table_id = int(entry["id"])
            lines = tuple(CartLine.from_dict(line) for line in entry["items"])
            stored_total = to_money(str(entry["total"]))
        except (TypeError, ValueError, KeyError, ArithmeticError):
            return None
        if not stored_total.is_finite():
            return None
        if not (1 <= table_id <= count) or table_id in by_id:
            return None
        table = Table(id=table_id, is_occupied=bool(entry["isOccupied"]) or bool(lines), items=lines)
        if table.total != stored_total:
            logger.warning("Table %s stored total %s disagrees with items; using %s", table_id, stored_total, table.total)
        by_id[table_id] = table
    return tuple(by_id.get(table_id, Table(id=table_id)) for table_id in range(1, count + 1))


class TableSessionStore:
    """
    Owns the fixed table fleet.

    Every mutation builds the new table value, writes the full list to the
    session slot, and only then swaps it in and notifies listeners.
    """

    def __init__(self, slot: SessionSlot | None = None, count: int = TABLE_COUNT) -> None:
        self.slot = slot if slot is not None else MemorySessionSlot()
        self.count = count
        self._listeners: list[TablesListener] = []
        restored = parse_tables(self.slot.load(), count)
        if restored is None:
            logger.info("Starting with %d empty tables", count)
            restored = initial_tables(count)
        self._tables = restored

    @property
    def tables(self) -> tuple[Table, ...]:
        return self._tables

    def table(self, table_id: int) -> Table:
        if not (1 <= table_id <= self.count):
            raise TableStateError(f"Unknown table {table_id}")
        return self._tables[table_id - 1]

    def subscribe(self, listener: TablesListener) -> Callable[[], None]:
        """Register a change listener; the returned callable unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def select_table(self, table_id: int) -> Table:
        table = self.table(table_id)
        if table.is_occupied:
            return table
        return self._commit(replace(table, is_occupied=True))

    def add_item(self, table_id: int, item: MenuItem) -> Table:
        return self._commit(with_item_added(self.table(table_id), item))

    def set_item_quantity(self, table_id: int, item_id: int, quantity: int) -> Table:
        return self._commit(with_item_quantity(self.table(table_id), item_id, quantity))

    def close_table(self, table_id: int, *, settled: bool = False) -> Table:
        """
        Reset a table to free and empty.

        Without `settled` this only succeeds for a zero total; a table with
        items is closed by the billing engine once its bill is recorded.
        """
        table = self.table(table_id)
        if not settled and table.total != 0:
            raise TableStateError(f"Table {table_id} has an open total of {table.total}; generate the bill first")
        return self._commit(table.cleared())

    def _commit(self, table: Table) -> Table:
        tables = list(self._tables)
        tables[table.id - 1] = table
        snapshot = tuple(tables)
        try:
            self.slot.save([t.to_dict() for t in snapshot])
        except OSError as exc:
            raise SessionSaveError(f"Could not save table {table.id}: {exc}") from exc
        self._tables = snapshot
        for listener in list(self._listeners):
            listener(snapshot)
        return table
