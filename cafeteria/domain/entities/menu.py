"""Menu item domain entity."""
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from cafeteria.utils.timestamps import utc_now, to_iso, from_iso


@dataclass
class MenuItem:
    """Domain entity representing an item on the cafeteria menu."""

    id: str
    name: str
    price: float
    description: Optional[str] = None
    category: Optional[str] = None
    image: Optional[str] = None
    available: bool = True
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        """Validate menu item entity."""
        validate_menu_fields(name=self.name, price=self.price)
        self.price = float(self.price)

    def to_record(self) -> Dict[str, Any]:
        record = {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "available": self.available,
            "createdAt": to_iso(self.created_at),
        }
        for key in ("description", "category", "image"):
            value = getattr(self, key)
            if value is not None:
                record[key] = value
        return record

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "MenuItem":
        return cls(
            id=record.get("id") or record.get("_id"),
            name=record.get("name", ""),
            price=record.get("price", 0),
            description=record.get("description"),
            category=record.get("category"),
            image=record.get("image"),
            # The browser client treated a missing flag as unavailable
            available=bool(record.get("available", False)),
            created_at=from_iso(record.get("createdAt")) or utc_now(),
        )


MENU_FIELD_NAMES = ("name", "price", "description", "category", "image", "available")


def validate_menu_fields(**fields: Any) -> None:
    """
    Validate the menu fields that are present.

    Raises:
        ValueError: If name is blank or price is negative or not a number
    """
    if "name" in fields and not (fields["name"] or "").strip():
        raise ValueError("name is required")
    if "price" in fields:
        price = fields["price"]
        if isinstance(price, bool) or not isinstance(price, (int, float)):
            raise ValueError("price must be a number")
        if not math.isfinite(price):
            raise ValueError("price must be a finite number")
        if price < 0:
            raise ValueError("price must be non-negative")
