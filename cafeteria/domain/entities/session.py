"""Session and provider identity entities."""
from dataclasses import dataclass
from typing import Optional

from cafeteria.domain.entities.user import Role, STAFF_ROLES, User


@dataclass(frozen=True)
class ProviderIdentity:
    """Identity as reported by the identity provider after a credential exchange."""

    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    is_anonymous: bool = False
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None

    def __post_init__(self):
        if not self.uid:
            raise ValueError("uid is required")


@dataclass(frozen=True)
class Session:
    """
    Normalized authenticated identity used for authorization decisions.

    ``role`` is what the UI displays. ``verified_role`` is the role read from
    the last successfully fetched user record and is the only one repositories
    trust; it is ``None`` when the session was resolved in degraded mode.
    """

    id: str
    is_anonymous: bool
    role: Role
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    verified_role: Optional[Role] = None
    degraded: bool = False

    @classmethod
    def from_user(cls, identity: ProviderIdentity, user: User) -> "Session":
        return cls(
            id=identity.uid,
            email=identity.email or user.email or None,
            display_name=identity.display_name or user.name or None,
            photo_url=identity.photo_url or user.image or None,
            is_anonymous=user.is_anonymous,
            role=user.role,
            verified_role=user.role,
            degraded=False,
        )

    @classmethod
    def degraded_from(cls, identity: ProviderIdentity) -> "Session":
        return cls(
            id=identity.uid,
            email=identity.email,
            display_name=identity.display_name,
            photo_url=identity.photo_url,
            is_anonymous=identity.is_anonymous,
            role=Role.CUSTOMER,
            verified_role=None,
            degraded=True,
        )

    @property
    def has_verified_staff_role(self) -> bool:
        return self.verified_role in STAFF_ROLES
