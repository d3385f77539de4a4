"""Online order queue sharing the document store with the billing core."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from biller.models import CartLine, OnlineOrder, OrderStatus, to_timestamp
from biller.store import DocumentStore

logger = logging.getLogger(__name__)

ONLINE_ORDERS = "online-orders"


class OnlineOrderService:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def list_orders(self, start: datetime, end: datetime) -> list[OnlineOrder]:
        """Orders whose delivery slot falls within [start, end]."""
        docs = await self.store.query(
            ONLINE_ORDERS, [("slot", ">=", to_timestamp(start)), ("slot", "<=", to_timestamp(end))]
        )
        orders = [OnlineOrder.from_document(doc) for doc in docs]
        return sorted(orders, key=lambda order: order.slot)

    async def create_order(self, items: list[CartLine], total: Decimal, slot: datetime) -> str:
        order = OnlineOrder(items=tuple(items), total=total, slot=slot)
        order_id = await self.store.add(ONLINE_ORDERS, order.to_document())
        logger.info("Online order %s placed for slot %s total=%s", order_id, order.slot.isoformat(), order.total)
        return order_id

    async def update_status(self, order_id: str, status: OrderStatus) -> None:
        await self.store.update(ONLINE_ORDERS, order_id, {"status": status.value})
        logger.info("Online order %s moved to %s", order_id, status.value)
