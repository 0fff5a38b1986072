"""Domain repositories.

Built on ``IPersistenceBackend``; they add entity invariants and role checks
and are the only components that mutate stored records.
"""
from cafeteria.repositories.user_repository import UserRepository
from cafeteria.repositories.menu_repository import MenuRepository
from cafeteria.repositories.order_repository import OrderRepository
from cafeteria.repositories.outlet_repository import OutletRepository

__all__ = [
    "UserRepository",
    "MenuRepository",
    "OrderRepository",
    "OutletRepository",
]
