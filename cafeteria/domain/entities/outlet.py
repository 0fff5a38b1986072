"""Outlet domain entity."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from cafeteria.utils.timestamps import utc_now, to_iso, from_iso


@dataclass
class Outlet:
    """Domain entity representing a cafeteria counter or outlet."""

    id: str
    name: str
    location: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    is_open: bool = True
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        """Validate outlet entity."""
        if not (self.name or "").strip():
            raise ValueError("name is required")

    def to_record(self) -> Dict[str, Any]:
        record = {
            "id": self.id,
            "name": self.name,
            "isOpen": self.is_open,
            "createdAt": to_iso(self.created_at),
        }
        for key in ("location", "description", "image"):
            value = getattr(self, key)
            if value is not None:
                record[key] = value
        return record

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Outlet":
        return cls(
            id=record.get("id") or record.get("_id"),
            name=record.get("name", ""),
            location=record.get("location"),
            description=record.get("description"),
            image=record.get("image"),
            is_open=bool(record.get("isOpen", True)),
            created_at=from_iso(record.get("createdAt")) or utc_now(),
        )


OUTLET_FIELD_NAMES: Dict[str, str] = {
    "name": "name",
    "location": "location",
    "description": "description",
    "image": "image",
    "is_open": "isOpen",
}
