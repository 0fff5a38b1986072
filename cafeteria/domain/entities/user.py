"""User domain entity and roles."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict

from cafeteria.utils.timestamps import utc_now, to_iso, from_iso


class Role(str, Enum):
    """Roles a user record can carry."""

    ADMIN = "admin"
    STAFF = "staff"
    MEMBER = "member"
    CUSTOMER = "customer"

    @classmethod
    def parse(cls, value: Any) -> "Role":
        """
        Parse a stored or requested role.

        Older records use ``user`` for customers; unknown values raise ValueError.
        """
        if isinstance(value, Role):
            return value
        if value is None or value == "":
            return DEFAULT_ROLE
        normalized = str(value).strip().lower()
        if normalized == "user":
            return cls.CUSTOMER
        return cls(normalized)


DEFAULT_ROLE = Role.CUSTOMER
STAFF_ROLES = frozenset({Role.STAFF, Role.ADMIN})


@dataclass
class User:
    """Domain entity representing a persisted user record."""

    id: str
    email: str = ""
    name: str = ""
    image: str = ""
    role: Role = DEFAULT_ROLE
    is_anonymous: bool = False
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        """Validate user entity."""
        if not self.id:
            raise ValueError("id is required")
        self.role = Role.parse(self.role)

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email or "",
            "name": self.name or "",
            "image": self.image or "",
            "role": self.role.value,
            "isAnonymous": self.is_anonymous,
            "createdAt": to_iso(self.created_at),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "User":
        # Local blobs written by the browser client key users by "uid"
        return cls(
            id=record.get("id") or record.get("uid"),
            email=record.get("email") or "",
            name=record.get("name") or record.get("displayName") or "",
            image=record.get("image") or record.get("photoURL") or "",
            role=Role.parse(record.get("role")),
            is_anonymous=bool(record.get("isAnonymous", False)),
            created_at=from_iso(record.get("createdAt")) or utc_now(),
        )


# Maps entity attribute names to stored field names for partial updates.
USER_FIELD_NAMES: Dict[str, str] = {
    "email": "email",
    "name": "name",
    "image": "image",
    "role": "role",
    "is_anonymous": "isAnonymous",
}


def user_changes_to_record(changes: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert a partial user update to stored field names.

    ``None`` values are dropped so that missing information never erases
    what is already stored.

    Raises:
        ValueError: If a field is not a mutable user field
    """
    record: Dict[str, Any] = {}
    for key, value in changes.items():
        if key not in USER_FIELD_NAMES:
            raise ValueError(f"Unknown user field: {key}")
        if value is None:
            continue
        if key == "role":
            value = Role.parse(value).value
        elif key == "is_anonymous":
            value = bool(value)
        record[USER_FIELD_NAMES[key]] = value
    return record

