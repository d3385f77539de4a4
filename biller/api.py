"""HTTP interface for the online order queue."""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from biller.config import API_HOST, API_PORT, STORE_PATH
from biller.errors import DocumentNotFoundError, StoreError
from biller.models import CartLine, OnlineOrder, OrderStatus
from biller.money import to_money
from biller.online_orders import OnlineOrderService
from biller.reports import day_bounds
from biller.store import SqliteDocumentStore

logger = logging.getLogger(__name__)


class CartItemIn(BaseModel):
    id: int
    name: str
    category: str = ""
    price: Decimal = Field(ge=0)
    quantity: int = Field(ge=1)


class OrderCreate(BaseModel):
    cart: Optional[List[CartItemIn]] = None
    discounted: Optional[Decimal] = None
    selectedSlot: Optional[datetime] = None


class OrderStatusUpdate(BaseModel):
    orderId: Optional[str] = None
    status: Optional[str] = None


def _message(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message, **extra})


def order_to_json(order: OnlineOrder) -> dict[str, Any]:
    return {
        "id": order.id,
        "items": [line.to_dict() for line in order.items],
        "total": str(order.total),
        "slot": order.slot.isoformat(),
        "createdAt": order.created_at.isoformat(),
        "status": order.status.value,
    }


def create_app(service: OnlineOrderService | None = None) -> FastAPI:
    if service is None:
        store = SqliteDocumentStore(STORE_PATH)
        store.bootstrap_schema()
        service = OnlineOrderService(store)

    app = FastAPI(title="Caffeine Club Online Orders")
    app.state.orders = service
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def orders(request: Request) -> OnlineOrderService:
        return request.app.state.orders

    @app.get("/api/online-order")
    async def list_orders(request: Request, startDate: Optional[str] = None, endDate: Optional[str] = None):
        if not startDate or not endDate:
            return _message(400, "Both startDate and endDate query parameters are required")
        try:
            start, end = day_bounds(date.fromisoformat(startDate), date.fromisoformat(endDate))
        except ValueError:
            return _message(400, "startDate and endDate must be YYYY-MM-DD dates")
        try:
            found = await orders(request).list_orders(start, end)
        except StoreError as exc:
            logger.error("Error retrieving orders: %s", exc)
            return _message(500, "Error retrieving orders", error=str(exc))
        return _message(200, "Orders retrieved successfully", data=[order_to_json(order) for order in found])

    @app.post("/api/online-order")
    async def create_order(request: Request, body: OrderCreate):
        if not body.cart or body.discounted is None or body.selectedSlot is None:
            return _message(400, "Missing required order data")
        lines = [
            CartLine(id=i.id, name=i.name, category=i.category, price=to_money(i.price), quantity=i.quantity)
            for i in body.cart
        ]
        try:
            order_id = await orders(request).create_order(lines, to_money(body.discounted), body.selectedSlot)
        except StoreError as exc:
            logger.error("Error saving order: %s", exc)
            return _message(500, "Error saving order", error=str(exc))
        return _message(201, "Order saved successfully", orderId=order_id)

    @app.put("/api/online-order")
    async def update_order(request: Request, body: OrderStatusUpdate):
        if not body.orderId or not body.status:
            return _message(400, "Missing orderId or status in request body")
        try:
            status = OrderStatus(body.status)
        except ValueError:
            allowed = ", ".join(s.value for s in OrderStatus)
            return _message(400, f"Unknown status {body.status!r}; expected one of {allowed}")
        try:
            await orders(request).update_status(body.orderId, status)
        except DocumentNotFoundError:
            return _message(404, f"Order {body.orderId} not found")
        except StoreError as exc:
            logger.error("Error updating order %s: %s", body.orderId, exc)
            return _message(500, "Error updating order", error=str(exc))
        return _message(200, f"Order {body.orderId} updated successfully")

    return app


def serve() -> None:
    import uvicorn

    from biller.logs import configure_logging

    configure_logging()
    uvicorn.run(create_app(), host=API_HOST, port=API_PORT)
