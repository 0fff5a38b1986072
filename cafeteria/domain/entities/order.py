"""Order domain entities and the order status state machine."""
import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from cafeteria.utils.timestamps import to_iso, from_iso


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset({OrderStatus.CANCELLED}),
}


def can_transition(current: OrderStatus, requested: OrderStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS[current]


@dataclass(frozen=True)
class OrderItem:
    """One line of an order, with name and price copied from the menu at checkout."""

    item_id: str
    name: str
    quantity: int
    price: float

    def __post_init__(self):
        """Validate order line."""
        if not self.item_id:
            raise ValueError("item_id is required")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity <= 0:
            raise ValueError("quantity must be a positive integer")
        if isinstance(self.price, bool) or not isinstance(self.price, (int, float)) or not math.isfinite(self.price):
            raise ValueError("price must be a finite number")
        if self.price < 0:
            raise ValueError("price must be non-negative")

    @property
    def subtotal(self) -> float:
        return self.price * self.quantity

    def to_record(self) -> Dict[str, Any]:
        return {
            "itemId": self.item_id,
            "name": self.name,
            "quantity": self.quantity,
            "price": self.price,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "OrderItem":
        return cls(
            item_id=record.get("itemId"),
            name=record.get("name") or record.get("itemName") or "",
            quantity=int(record.get("quantity", 0)),
            price=float(record.get("price", 0)),
        )


def items_total(items: List[OrderItem]) -> float:
    """Sum of price x quantity over the given lines."""
    return math.fsum(item.subtotal for item in items)


@dataclass
class Order:
    """Domain entity representing a placed (or draft) order."""

    user_id: str
    items: List[OrderItem]
    total_price: float
    status: OrderStatus = OrderStatus.PENDING
    id: Optional[str] = None
    outlet_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        """Validate order entity."""
        if not self.user_id:
            raise ValueError("user_id is required")
        self.status = OrderStatus(self.status)
        self.items = list(self.items)

    def total_matches(self, tolerance: float) -> bool:
        """Whether the declared total equals the line sum within ``tolerance``."""
        return math.isclose(self.total_price, items_total(self.items), rel_tol=0.0, abs_tol=tolerance)

    def to_record(self) -> Dict[str, Any]:
        record = {
            "id": self.id,
            "userId": self.user_id,
            "items": [item.to_record() for item in self.items],
            "totalPrice": self.total_price,
            "status": self.status.value,
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
        }
        if self.outlet_id is not None:
            record["outletId"] = self.outlet_id
        return record

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Order":
        created_at = from_iso(record.get("createdAt"))
        return cls(
            id=record.get("id") or record.get("_id"),
            user_id=record.get("userId"),
            items=[OrderItem.from_record(item) for item in record.get("items", [])],
            total_price=float(record.get("totalPrice", 0)),
            status=OrderStatus(record.get("status", OrderStatus.PENDING.value)),
            outlet_id=record.get("outletId"),
            created_at=created_at,
            updated_at=from_iso(record.get("updatedAt")) or created_at,
        )
