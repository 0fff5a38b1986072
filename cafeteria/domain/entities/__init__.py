"""Domain entities - core business objects."""
from cafeteria.domain.entities.user import User, Role, DEFAULT_ROLE, STAFF_ROLES
from cafeteria.domain.entities.session import Session, ProviderIdentity
from cafeteria.domain.entities.menu import MenuItem
from cafeteria.domain.entities.order import Order, OrderItem, OrderStatus
from cafeteria.domain.entities.outlet import Outlet

__all__ = [
    "User",
    "Role",
    "DEFAULT_ROLE",
    "STAFF_ROLES",
    "Session",
    "ProviderIdentity",
    "MenuItem",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Outlet",
]
