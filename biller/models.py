"""Domain models for the café biller."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from biller.errors import ValidationError
from biller.money import ZERO, to_money

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_timestamp(moment: datetime) -> str:
    """Fixed-width UTC text so stored timestamps sort and compare as strings."""
    return moment.astimezone(timezone.utc).strftime(_TIMESTAMP_FORMAT)


def from_timestamp(text: str) -> datetime:
    return datetime.strptime(text, _TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


class BillStatus(str, Enum):
    PAID = "Paid"
    PENDING = "Pending"


class Channel(str, Enum):
    """Payment channel with its own transaction log and register."""

    CASH = "cash"
    UPI = "upi"

    @property
    def collection(self) -> str:
        return f"{self.value}-transactions"


class OrderStatus(str, Enum):
    PLACED = "placed"
    CONFIRMED = "confirmed"
    PAID = "paid"
    DELIVERED = "delivered"
    CANCELED = "canceled"
    REFUNDED = "refunded"


@dataclass(frozen=True)
class MenuItem:
    """A purchasable catalog entry."""

    id: int
    name: str
    category: str
    price: Decimal


@dataclass(frozen=True)
class CartLine:
    """A menu item with the quantity ordered on a table."""

    id: int
    name: str
    category: str
    price: Decimal
    quantity: int

    @classmethod
    def from_item(cls, item: MenuItem, quantity: int = 1) -> CartLine:
        return cls(id=item.id, name=item.name, category=item.category, price=item.price, quantity=quantity)

    @property
    def line_total(self) -> Decimal:
        return to_money(self.price * self.quantity)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "price": str(to_money(self.price)),
            "quantity": self.quantity,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CartLine:
        quantity = int(data["quantity"])
        if quantity < 1:
            raise ValueError(f"cart line quantity must be positive, got {quantity}")
        price = Decimal(str(data["price"]))
        if not price.is_finite() or price < 0:
            raise ValueError(f"cart line price must be a non-negative number, got {data['price']!r}")
        return cls(
            id=int(data["id"]),
            name=str(data["name"]),
            category=str(data.get("category", "")),
            price=to_money(price),
            quantity=quantity,
        )


def lines_total(lines: tuple[CartLine, ...]) -> Decimal:
    return to_money(sum((line.price * line.quantity for line in lines), ZERO))


@dataclass(frozen=True)
class Table:
    """
    A physical table and its open cart.

    `total` is derived from `items` on every access, so it can never drift
    from the cart contents.
    """

    id: int
    is_occupied: bool = False
    items: tuple[CartLine, ...] = ()

    @property
    def total(self) -> Decimal:
        return lines_total(self.items)

    def cleared(self) -> Table:
        return replace(self, is_occupied=False, items=())

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "isOccupied": self.is_occupied,
            "items": [line.to_dict() for line in self.items],
            "total": str(self.total),
        }


@dataclass(frozen=True)
class Bill:
    """A finalized or pending sales record."""

    items: tuple[CartLine, ...]
    total: Decimal
    status: BillStatus
    cash: Decimal = ZERO
    upi: Decimal = ZERO
    time: datetime = field(default_factory=utc_now)
    mobile: str | None = None
    id: str | None = None

    def __post_init__(self) -> None:
        if self.cash < 0 or self.upi < 0:
            raise ValidationError("Bill cash and UPI amounts cannot be negative.")
        if self.status is BillStatus.PAID:
            if to_money(self.cash + self.upi) != to_money(self.total):
                raise ValidationError(
                    f"Paid bill must reconcile: cash {self.cash} + upi {self.upi} != total {self.total}"
                )
        elif self.status is BillStatus.PENDING:
            if not (self.mobile or "").strip():
                raise ValidationError("Pending bill requires a contact.")

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "items": [line.to_dict() for line in self.items],
            "total": str(to_money(self.total)),
            "status": self.status.value,
            "cash": str(to_money(self.cash)),
            "upi": str(to_money(self.upi)),
            "time": to_timestamp(self.time),
        }
        if self.mobile:
            doc["mobile"] = self.mobile
        return doc

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> Bill:
        return cls(
            id=doc.get("id"),
            items=tuple(CartLine.from_dict(line) for line in doc.get("items", [])),
            total=to_money(doc["total"]),
            status=BillStatus(doc["status"]),
            cash=to_money(doc.get("cash", "0")),
            upi=to_money(doc.get("upi", "0")),
            time=from_timestamp(doc["time"]),
            mobile=doc.get("mobile") or None,
        )


@dataclass(frozen=True)
class Transaction:
    """A signed movement in one payment channel."""

    channel: Channel
    amount: Decimal
    reason: str
    time: datetime = field(default_factory=utc_now)
    id: str | None = None

    def to_document(self) -> dict[str, Any]:
        return {"amount": str(to_money(self.amount)), "reason": self.reason, "time": to_timestamp(self.time)}

    @classmethod
    def from_document(cls, channel: Channel, doc: dict[str, Any]) -> Transaction:
        return cls(
            id=doc.get("id"),
            channel=channel,
            amount=to_money(doc["amount"]),
            reason=str(doc.get("reason", "")),
            time=from_timestamp(doc["time"]),
        )


@dataclass(frozen=True)
class OnlineOrder:
    """An order placed through the online channel for a delivery slot."""

    items: tuple[CartLine, ...]
    total: Decimal
    slot: datetime
    created_at: datetime = field(default_factory=utc_now)
    status: OrderStatus = OrderStatus.PLACED
    id: str | None = None

    def to_document(self) -> dict[str, Any]:
        return {
            "items": [line.to_dict() for line in self.items],
            "total": str(to_money(self.total)),
            "slot": to_timestamp(self.slot),
            "createdAt": to_timestamp(self.created_at),
            "status": self.status.value,
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> OnlineOrder:
        return cls(
            id=doc.get("id"),
            items=tuple(CartLine.from_dict(line) for line in doc.get("items", [])),
            total=to_money(doc["total"]),
            slot=from_timestamp(doc["slot"]),
            created_at=from_timestamp(doc["createdAt"]),
            status=OrderStatus(doc["status"]),
        )
