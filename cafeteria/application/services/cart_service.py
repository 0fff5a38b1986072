"""In-memory shopping cart and checkout."""
import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional

from cafeteria.domain.entities.menu import MenuItem
from cafeteria.domain.entities.order import Order, OrderItem, OrderStatus
from cafeteria.domain.entities.session import Session
from cafeteria.domain.exceptions import CheckoutInProgress, EmptyCart, Unauthorized
from cafeteria.repositories.order_repository import OrderRepository


@dataclass(frozen=True)
class CartLine:
    """A menu item in the cart with its quantity (always positive)."""

    item_id: str
    name: str
    price: float
    quantity: int

    @property
    def subtotal(self) -> float:
        return self.price * self.quantity


class ShoppingCart:
    """
    Transient selection of menu items prior to order submission.

    Lines keep insertion order. The cart is never persisted; ``checkout``
    turns it into a pending order through the order repository.
    """

    def __init__(self, order_repository: OrderRepository):
        self.order_repository = order_repository
        self._lines: Dict[str, CartLine] = {}
        self._checking_out = False
        self._logger = logging.getLogger(__name__)

    @property
    def lines(self) -> List[CartLine]:
        return list(self._lines.values())

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def add(self, item: MenuItem) -> CartLine:
        """Add one unit of ``item``, starting a new line at quantity 1 if needed."""
        existing = self._lines.get(item.id)
        if existing is not None:
            line = CartLine(existing.item_id, existing.name, existing.price, existing.quantity + 1)
        else:
            line = CartLine(item.id, item.name, float(item.price), 1)
        self._lines[item.id] = line
        return line

    def remove(self, item_id: str) -> None:
        self._lines.pop(item_id, None)

    def set_quantity(self, item_id: str, quantity: int) -> None:
        """Set a line's quantity; zero or less removes the line."""
        if quantity <= 0:
            self.remove(item_id)
            return
        existing = self._lines.get(item_id)
        if existing is None:
            raise KeyError(f"Item {item_id} is not in the cart")
        self._lines[item_id] = CartLine(existing.item_id, existing.name, existing.price, int(quantity))

    def total_price(self) -> float:
        return math.fsum(line.subtotal for line in self._lines.values())

    def total_items(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    def clear(self) -> None:
        self._lines.clear()

    def _remove_ordered(self, ordered: List[CartLine]) -> None:
        for line in ordered:
            existing = self._lines.get(line.item_id)
            if existing is None:
                continue
            remaining = existing.quantity - line.quantity
            if remaining > 0:
                self._lines[line.item_id] = CartLine(existing.item_id, existing.name, existing.price, remaining)
            else:
                del self._lines[line.item_id]

    async def checkout(self, session: Optional[Session], outlet_id: Optional[str] = None) -> Order:
        """
        Place the cart as a pending order.

        The session and the lines are captured before the first await, so a
        session change or cart edit during the call does not alter the order.
        Once the order is stored, only the ordered quantities leave the cart;
        items added in the meantime stay for the next checkout.

        Raises:
            CheckoutInProgress: If another checkout of this cart is running
            EmptyCart: If there is nothing in the cart
            Unauthorized: If there is no session
            InvalidOrderTotal: If the order repository rejects the total
        """
        if self._checking_out:
            raise CheckoutInProgress("Checkout already in progress")
        if self.is_empty:
            raise EmptyCart("Cart is empty")
        if session is None:
            raise Unauthorized("Sign in required to check out")

        self._checking_out = True
        try:
            return await self._place_order(session, outlet_id)
        finally:
            self._checking_out = False

    async def _place_order(self, session: Session, outlet_id: Optional[str]) -> Order:
        lines = self.lines
        draft = Order(
            user_id=session.id,
            items=[
                OrderItem(item_id=line.item_id, name=line.name, quantity=line.quantity, price=line.price)
                for line in lines
            ],
            total_price=math.fsum(line.subtotal for line in lines),
            status=OrderStatus.PENDING,
            outlet_id=outlet_id,
        )

        order = await self.order_repository.create(session, draft)
        self._remove_ordered(lines)
        self._logger.info(f"Checked out {len(lines)} lines as order {order.id} for {session.id}")
        return order
