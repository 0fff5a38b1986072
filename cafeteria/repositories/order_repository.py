"""Repository for orders and their status lifecycle."""
import logging
from dataclasses import replace
from typing import List, Optional

from cafeteria.config.settings import Config
from cafeteria.domain.entities.order import Order, OrderStatus, can_transition, items_total
from cafeteria.domain.entities.session import Session
from cafeteria.domain.exceptions import (
    InvalidOrderTotal,
    InvalidStatusTransition,
    NotFound,
    Unauthorized,
)
from cafeteria.domain.interfaces.persistence_backend import ORDERS, IPersistenceBackend
from cafeteria.repositories.access import require_session
from cafeteria.utils.timestamps import utc_now


class OrderRepository:
    """
    Orders with total validation, a monotonic status machine and
    per-user visibility.

    Visibility is decided here rather than by callers: only a session whose
    verified role is staff or admin sees other users' orders.
    """

    def __init__(self, backend: IPersistenceBackend, price_tolerance: Optional[float] = None):
        """
        Initialize the repository.

        Args:
            backend: Persistence backend (Dependency Injection)
            price_tolerance: Allowed absolute difference between the declared
                total and the line sum (defaults to Config value)
        """
        self.backend = backend
        self.price_tolerance = Config.PRICE_TOLERANCE if price_tolerance is None else price_tolerance
        self._logger = logging.getLogger(__name__)

    async def create(self, session: Optional[Session], draft: Order) -> Order:
        """
        Record a new pending order.

        Args:
            session: Caller's session
            draft: Order without id/timestamps

        Returns:
            The stored order with id, status and timestamps assigned

        Raises:
            Unauthorized: If there is no session, or the draft belongs to
                another user and the caller is not verified staff
            InvalidOrderTotal: If items are empty or the total does not match
        """
        session = require_session(session)
        if draft.user_id != session.id and not session.has_verified_staff_role:
            raise Unauthorized("Cannot place an order for another user")

        if not draft.items:
            raise InvalidOrderTotal("Order must contain at least one item")
        if not draft.total_matches(self.price_tolerance):
            raise InvalidOrderTotal(
                f"Declared total {draft.total_price} does not match items total {items_total(draft.items)}"
            )

        now = utc_now()
        record_id = await self.backend.generate_id(ORDERS)
        order = replace(
            draft,
            id=record_id,
            status=OrderStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        await self.backend.put(ORDERS, order.to_record(), record_id)
        self._logger.info(
            f"Order {record_id} created for {order.user_id}: "
            f"{len(order.items)} lines, total {order.total_price}"
        )
        return order

    async def _load(self, order_id: str) -> Order:
        record = await self.backend.get(ORDERS, order_id)
        if record is None:
            raise NotFound(ORDERS, order_id)
        return Order.from_record(record)

    async def get(self, session: Optional[Session], order_id: str) -> Optional[Order]:
        """
        Fetch one order visible to the caller.

        Raises:
            Unauthorized: If the order belongs to someone else and the caller is not staff
        """
        session = require_session(session)
        record = await self.backend.get(ORDERS, order_id)
        if record is None:
            return None
        order = Order.from_record(record)
        if order.user_id != session.id and not session.has_verified_staff_role:
            raise Unauthorized("Order belongs to another user")
        return order

    async def update(self, session: Optional[Session], order_id: str, status) -> Order:
        """
        Move an order to a new status.

        Staff may apply any allowed transition; the order's owner may only
        cancel it.

        Raises:
            Unauthorized: If the caller may not change this order
            NotFound: If the order does not exist
            InvalidStatusTransition: If the transition is not allowed
        """
        session = require_session(session)
        requested = OrderStatus(status)
        order = await self._load(order_id)

        if not session.has_verified_staff_role:
            if order.user_id != session.id or requested != OrderStatus.CANCELLED:
                raise Unauthorized("Staff role required to change order status")

        if not can_transition(order.status, requested):
            raise InvalidStatusTransition(order.status.value, requested.value)

        now = utc_now()
        await self.backend.update(
            ORDERS,
            order_id,
            {"status": requested.value, "updatedAt": now.isoformat()},
        )
        self._logger.info(f"Order {order_id}: {order.status.value} -> {requested.value} by {session.id}")
        return replace(order, status=requested, updated_at=now)

    async def list(self, session: Optional[Session]) -> List[Order]:
        """
        Orders visible to the caller, newest first.

        Verified staff see every order; everyone else, degraded sessions
        included, sees only their own.
        """
        session = require_session(session)
        if session.has_verified_staff_role:
            records = await self.backend.list(ORDERS)
        else:
            user_id = session.id
            records = await self.backend.list(ORDERS, lambda record: record.get("userId") == user_id)

        orders = [Order.from_record(record) for record in records]
        orders.sort(key=lambda order: order.created_at.timestamp() if order.created_at else 0.0, reverse=True)
        return orders
