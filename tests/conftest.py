"""
Pytest configuration and fixtures for biller tests.
"""

from decimal import Decimal

import pytest

from biller.billing import BillingEngine
from biller.errors import StoreError
from biller.ledger import LedgerService
from biller.models import MenuItem
from biller.sessions import MemorySessionSlot, TableSessionStore
from biller.store import MemoryDocumentStore


class FlakyStore:
    """
    Memory store that can be told to fail chosen (operation, collection) pairs.

    Used to reproduce partial writes: a bill lands but its register increment
    does not, and so on.
    """

    def __init__(self, inner=None):
        self.inner = inner or MemoryDocumentStore()
        self.failures = set()
        self.calls = []

    def fail(self, op, collection):
        self.failures.add((op, collection))

    def heal(self):
        self.failures.clear()

    def _check(self, op, collection):
        self.calls.append((op, collection))
        if (op, collection) in self.failures:
            raise StoreError(f"simulated {op} failure on {collection}")

    async def add(self, collection, data):
        self._check("add", collection)
        return await self.inner.add(collection, data)

    async def get(self, collection, doc_id):
        self._check("get", collection)
        return await self.inner.get(collection, doc_id)

    async def update(self, collection, doc_id, fields):
        self._check("update", collection)
        return await self.inner.update(collection, doc_id, fields)

    async def increment(self, collection, doc_id, field_name, delta):
        self._check("increment", collection)
        return await self.inner.increment(collection, doc_id, field_name, delta)

    async def query(self, collection, filters=()):
        self._check("query", collection)
        return await self.inner.query(collection, filters)


@pytest.fixture
def store():
    return FlakyStore()


@pytest.fixture
def slot():
    return MemorySessionSlot()


@pytest.fixture
def sessions(slot):
    return TableSessionStore(slot, count=6)


@pytest.fixture
def ledger(store):
    return LedgerService(store)


@pytest.fixture
def engine(sessions, ledger):
    return BillingEngine(sessions, ledger)


@pytest.fixture
def latte():
    return MenuItem(id=101, name="Latte", category="Hot Coffee", price=Decimal("125.00"))


@pytest.fixture
def cookie():
    return MenuItem(id=102, name="Cookie", category="Dessert", price=Decimal("25.00"))


@pytest.fixture
def open_table(sessions):
    """Occupy a table and add each item once, in order."""

    def _open(table_id, *items):
        sessions.select_table(table_id)
        for item in items:
            sessions.add_item(table_id, item)
        return sessions.table(table_id)

    return _open
